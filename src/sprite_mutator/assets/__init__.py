"""Sprite metadata and raster loading."""

from sprite_mutator.assets.catalog import SpriteCatalog, extract_version
from sprite_mutator.assets.loader import SpriteLoader

__all__ = ["SpriteCatalog", "SpriteLoader", "extract_version"]
