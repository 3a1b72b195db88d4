"""Route handlers for the API."""

from zip_agent.api.routes import health, repositories

__all__ = ["health", "repositories"]
