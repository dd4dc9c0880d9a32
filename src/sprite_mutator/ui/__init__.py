"""Web surface."""

from sprite_mutator.ui.app import create_app

__all__ = ["create_app"]
