"""Web interface for phasewise."""

from .app import create_app

__all__ = ["create_app"]
