"""HTTP boundary for the parts search."""

from .app import create_app

__all__ = ["create_app"]
