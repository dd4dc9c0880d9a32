"""Image file and byte-stream I/O for surfaces."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from sprite_mutator.compositor.surface import Surface, surface_from_image, surface_to_image


def decode_surface(data: bytes) -> Surface:
    """Decode PNG/JPEG/WebP/GIF bytes (first frame) into a surface.

    Raises ``ValueError`` when the bytes are not a readable image.
    """

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            return surface_from_image(image)
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Unreadable image data: {exc}") from exc


def load_surface(path: Path) -> Surface:
    """Load an image file into a surface."""

    return decode_surface(Path(path).read_bytes())


def encode_png(surface: Surface) -> bytes:
    buffer = io.BytesIO()
    surface_to_image(surface).save(buffer, format="PNG")
    return buffer.getvalue()


def save_surface(path: Path, surface: Surface) -> None:
    """Save a surface as an 8-bit straight-alpha PNG."""

    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_bytes(encode_png(surface))
