"""HTTP transport for the ingestion service."""

from mdm.api.app import create_app

__all__ = ["create_app"]
