"""HTTP surface for dataset generation and history."""

from .app import create_app

__all__ = ["create_app"]
