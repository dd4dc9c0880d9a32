"""Image I/O utilities."""

from sprite_mutator.io.images import (
    decode_surface,
    encode_png,
    load_surface,
    save_surface,
)

__all__ = ["decode_surface", "encode_png", "load_surface", "save_surface"]
