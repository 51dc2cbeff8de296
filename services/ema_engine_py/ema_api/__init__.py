"""HTTP API for the EMA signal engine."""

from .api import app

__all__ = ["app"]
