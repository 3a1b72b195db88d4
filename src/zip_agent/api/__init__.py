"""HTTP API for the upload service."""
