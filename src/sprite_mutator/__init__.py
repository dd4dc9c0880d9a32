"""Sprite mutation compositing engine."""

__version__ = "0.1.0"
