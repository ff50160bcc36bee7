"""HTTP front end for a metadata store."""

from .app import create_app

__all__ = ["create_app"]
