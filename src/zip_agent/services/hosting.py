"""Client for the Gitea management API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

import requests

from zip_agent.config import Settings
from zip_agent.errors import ProvisioningError

logger = logging.getLogger(__name__)

CREDENTIAL_USER = "oauth2"


def repository_name(project_id: str) -> str:
    """Return the repository name derived from a project identifier."""
    return f"project-{project_id}"


def embed_credential(url: str, token: str) -> str:
    """Insert ``oauth2:<token>@`` into the authority of ``url``."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    return f"{scheme}://{CREDENTIAL_USER}:{token}@{rest}"


class HostingClient:
    """Query, create and delete repositories owned by the configured account.

    Every call authenticates with the API token and is bounded by
    ``settings.http_timeout``.
    """

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"token {settings.gitea_token}"})

    @property
    def owner(self) -> str:
        return self._settings.gitea_owner

    def _api_url(self, path: str) -> str:
        return f"{self._settings.gitea_url}/api/v1/{path}"

    def _repo_api_url(self, name: str) -> str:
        return self._api_url(f"repos/{self.owner}/{name}")

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return self._session.request(
                method, url, timeout=self._settings.http_timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise ProvisioningError(f"{method} {url}: {exc}") from exc

    def clone_url(self, name: str) -> str:
        """Public, credential-free clone URL handed back to callers."""
        return f"{self._settings.gitea_public_url}/{self.owner}/{name}.git"

    def push_url(self, name: str) -> str:
        """Internal remote URL with the API token embedded for pushing."""
        url = f"{self._settings.gitea_url}/{self.owner}/{name}.git"
        return embed_credential(url, self._settings.gitea_token)

    def repository_exists(self, name: str) -> bool:
        response = self._request("GET", self._repo_api_url(name))
        return response.status_code == HTTPStatus.OK

    def create_repository(self, name: str) -> None:
        """Create a public, empty repository.

        A repository that already exists (created by a concurrent upload for
        the same project) counts as success.
        """
        payload = {"name": name, "private": False, "auto_init": False}
        response = self._request("POST", self._api_url("user/repos"), json=payload)
        if response.status_code == HTTPStatus.CREATED:
            logger.info("Created repository %s/%s", self.owner, name)
            return
        if response.status_code == HTTPStatus.CONFLICT or self.repository_exists(name):
            logger.info("Repository %s/%s was created concurrently", self.owner, name)
            return
        raise ProvisioningError(f"create repo failed: {response.text}")

    def ensure_repository(self, name: str) -> None:
        """Make sure ``name`` exists, creating it only when absent."""
        if self.repository_exists(name):
            return
        self.create_repository(name)

    def delete_repository(self, name: str) -> None:
        """Delete ``name``. A repository that is already gone counts as success."""
        response = self._request("DELETE", self._repo_api_url(name))
        if response.status_code not in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_FOUND):
            raise ProvisioningError(f"delete failed: {response.text}")
        if response.status_code == HTTPStatus.NO_CONTENT:
            logger.info("Deleted repository %s/%s", self.owner, name)

    def close(self) -> None:
        self._session.close()
