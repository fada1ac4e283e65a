"""HTTP surface for the turn processor."""

from .app import create_app

__all__ = ["create_app"]
