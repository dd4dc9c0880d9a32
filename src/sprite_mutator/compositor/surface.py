"""RGBA pixel surfaces stored in premultiplied-alpha form."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image


@dataclass
class Surface:
    """A width x height RGBA buffer.

    ``pixels`` has shape (height, width, 4), dtype float32, premultiplied
    alpha in [0, 1]. Blending happens directly on this array.
    """

    pixels: np.ndarray

    @classmethod
    def blank(cls, width: int, height: int) -> "Surface":
        return cls(np.zeros((max(0, int(height)), max(0, int(width)), 4), dtype=np.float32))

    @classmethod
    def from_straight(cls, rgba: np.ndarray) -> "Surface":
        """Build a surface from straight-alpha float or uint8 RGBA data."""

        data = np.asarray(rgba)
        if data.dtype == np.uint8:
            data = data.astype(np.float32) / 255.0
        return cls(to_premultiplied(np.clip(data.astype(np.float32), 0.0, 1.0)))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]

    @property
    def released(self) -> bool:
        return self.pixels.size == 0

    def copy(self) -> "Surface":
        return Surface(self.pixels.copy())

    def release(self) -> None:
        """Drop the backing pixel memory."""

        self.pixels = np.zeros((0, 0, 4), dtype=np.float32)

    def straight(self) -> np.ndarray:
        return to_straight_alpha(self.pixels)


def to_straight_alpha(premultiplied: np.ndarray) -> np.ndarray:
    """Convert premultiplied RGBA to straight-alpha RGBA."""

    alpha = np.clip(premultiplied[..., 3:4], 0.0, 1.0)
    safe_alpha = np.where(alpha <= 1e-6, 1.0, alpha)
    rgb = np.clip(premultiplied[..., :3] / safe_alpha, 0.0, 1.0)
    return np.concatenate([rgb, alpha], axis=-1)


def to_premultiplied(straight: np.ndarray) -> np.ndarray:
    """Convert straight-alpha RGBA to premultiplied RGBA."""

    premultiplied = straight.astype(np.float32, copy=True)
    premultiplied[..., :3] *= premultiplied[..., 3:4]
    return premultiplied


def surface_to_image(surface: Surface) -> Image.Image:
    """Convert a surface to a straight-alpha 8-bit PIL image."""

    straight = to_straight_alpha(surface.pixels)
    data = (np.clip(straight, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    return Image.fromarray(data)


def surface_from_image(image: Image.Image) -> Surface:
    """Convert any PIL image to a premultiplied surface."""

    data = np.asarray(image.convert("RGBA")).astype(np.float32) / 255.0
    return Surface(to_premultiplied(data))
