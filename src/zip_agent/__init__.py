"""Publish uploaded ZIP archives as Gitea repositories."""

__version__ = "0.1.0"
