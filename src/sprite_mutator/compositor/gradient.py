"""Colour parsing and linear gradients."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Tuple

import numpy as np
from PIL import ImageColor

RGBA = Tuple[float, float, float, float]


@lru_cache(maxsize=256)
def parse_color(value: str) -> RGBA:
    """Parse a CSS colour string to straight RGBA floats in [0, 1]."""

    text = value.strip()
    if text.lower() == "transparent":
        return (0.0, 0.0, 0.0, 0.0)
    r, g, b, a = ImageColor.getcolor(text, "RGBA")
    return (r / 255.0, g / 255.0, b / 255.0, a / 255.0)


def premultiplied_color(value: str) -> np.ndarray:
    r, g, b, a = parse_color(value)
    return np.array([r * a, g * a, b * a, a], dtype=np.float32)


@dataclass
class LinearGradient:
    """Linear gradient between two points, evaluated at pixel centres."""

    x0: float
    y0: float
    x1: float
    y1: float
    stops: List[Tuple[float, str]] = field(default_factory=list)

    def add_color_stop(self, offset: float, color: str) -> None:
        if not 0.0 <= offset <= 1.0:
            raise ValueError(f"Colour stop offset {offset} outside [0, 1]")
        self.stops.append((float(offset), color))

    def render(self, width: int, height: int, origin: Tuple[float, float] = (0.0, 0.0)) -> np.ndarray:
        """Rasterise to a premultiplied (height, width, 4) array.

        A zero-length gradient or one without stops paints nothing.
        """

        out = np.zeros((height, width, 4), dtype=np.float32)
        dx = self.x1 - self.x0
        dy = self.y1 - self.y0
        length_sq = dx * dx + dy * dy
        if not self.stops or length_sq == 0.0 or width == 0 or height == 0:
            return out

        xs = np.arange(width, dtype=np.float32) + 0.5 - origin[0]
        ys = np.arange(height, dtype=np.float32) + 0.5 - origin[1]
        px, py = np.meshgrid(xs, ys)
        t = ((px - self.x0) * dx + (py - self.y0) * dy) / length_sq
        t = np.clip(t, 0.0, 1.0)

        ordered = sorted(enumerate(self.stops), key=lambda item: (item[1][0], item[0]))
        offsets = np.array([stop[0] for _, stop in ordered], dtype=np.float32)
        colors = np.stack([premultiplied_color(stop[1]) for _, stop in ordered])
        for channel in range(4):
            out[..., channel] = np.interp(t, offsets, colors[:, channel])
        return out


def angle_gradient(width: int, height: int, angle: float, full_span: bool) -> LinearGradient:
    """Gradient through the surface centre at ``angle`` degrees from vertical.

    The short variant spans the smaller dimension; the full-span variant
    projects the angle onto both axes so the gradient reaches the corners of
    tall surfaces.
    """

    rad = math.radians(angle - 90.0)
    cx = width / 2.0
    cy = height / 2.0
    dx = math.cos(rad)
    dy = math.sin(rad)
    if full_span:
        radius = abs(dx) * width / 2.0 + abs(dy) * height / 2.0
    else:
        radius = min(width, height) / 2.0
    return LinearGradient(cx - dx * radius, cy - dy * radius, cx + dx * radius, cy + dy * radius)
