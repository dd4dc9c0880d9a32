"""Exception types raised by the rendering engine."""

from __future__ import annotations


class SpriteMutatorError(Exception):
    """Base class for engine errors."""


class SpriteLoadError(SpriteMutatorError):
    """A source raster could not be fetched or decoded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to load: {url} ({reason})")
        self.url = url
        self.reason = reason


class DecodeError(SpriteMutatorError):
    """An animated source could not be decoded."""


class EncoderError(SpriteMutatorError):
    """The animated-image encoder is unavailable or failed."""
