"""Immediate-mode 2D drawing context over a Surface.

Mirrors the small part of the HTML canvas API the renderer relies on: a
composite operator, global alpha, image smoothing, a save/restore stack and
an affine transform. Unsupported operator names are ignored on assignment,
which is what blend capability probing relies on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Union

import numpy as np
from PIL import Image

from sprite_mutator.compositor.blend import COMPOSITE_OPERATIONS
from sprite_mutator.compositor.gradient import LinearGradient, premultiplied_color
from sprite_mutator.compositor.surface import (
    Surface,
    surface_from_image,
    surface_to_image,
)

Paint = Union[str, LinearGradient]

_EPS = 1e-6


@dataclass
class _State:
    composite_operation: str
    global_alpha: float
    image_smoothing: bool
    transform: np.ndarray


class DrawContext:
    """Drawing state bound to one target surface."""

    def __init__(self, surface: Surface, operators: Optional[FrozenSet[str]] = None) -> None:
        self.surface = surface
        self._operators = frozenset(COMPOSITE_OPERATIONS) if operators is None else frozenset(operators)
        self._composite_operation = "source-over"
        self._global_alpha = 1.0
        self.image_smoothing = True
        self._transform = np.eye(3, dtype=np.float64)
        self._stack: List[_State] = []

    # ── State ──

    @property
    def global_composite_operation(self) -> str:
        return self._composite_operation

    @global_composite_operation.setter
    def global_composite_operation(self, op: str) -> None:
        if op in self._operators and op in COMPOSITE_OPERATIONS:
            self._composite_operation = op

    @property
    def global_alpha(self) -> float:
        return self._global_alpha

    @global_alpha.setter
    def global_alpha(self, value: float) -> None:
        value = float(value)
        if math.isfinite(value) and 0.0 <= value <= 1.0:
            self._global_alpha = value

    @property
    def transform(self) -> np.ndarray:
        return self._transform.copy()

    def save(self) -> None:
        self._stack.append(
            _State(
                composite_operation=self._composite_operation,
                global_alpha=self._global_alpha,
                image_smoothing=self.image_smoothing,
                transform=self._transform.copy(),
            )
        )

    def restore(self) -> None:
        if not self._stack:
            return
        state = self._stack.pop()
        self._composite_operation = state.composite_operation
        self._global_alpha = state.global_alpha
        self.image_smoothing = state.image_smoothing
        self._transform = state.transform

    def translate(self, tx: float, ty: float) -> None:
        self._transform = self._transform @ np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])

    def rotate(self, radians: float) -> None:
        c = math.cos(radians)
        s = math.sin(radians)
        self._transform = self._transform @ np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

    def scale(self, sx: float, sy: float) -> None:
        self._transform = self._transform @ np.array([[sx, 0.0, 0.0], [0.0, sy, 0.0], [0.0, 0.0, 1.0]])

    # ── Drawing ──

    def clear_rect(self, x: float, y: float, width: float, height: float) -> None:
        bounds = self._device_rect(x, y, width, height)
        if bounds is None:
            return
        x0, y0, x1, y1 = bounds
        self.surface.pixels[y0:y1, x0:x1] = 0.0

    def fill_rect(self, x: float, y: float, width: float, height: float, paint: Paint) -> None:
        bounds = self._device_rect(x, y, width, height)
        if bounds is None:
            return
        x0, y0, x1, y1 = bounds
        target_h, target_w = self.surface.height, self.surface.width
        layer = np.zeros((target_h, target_w, 4), dtype=np.float32)
        if isinstance(paint, LinearGradient):
            sx, sy = self._transform[0, 0], self._transform[1, 1]
            if abs(sx - 1.0) > _EPS or abs(sy - 1.0) > _EPS:
                region = self._gradient_in_user_space(paint, x0, y0, x1, y1)
            else:
                region = paint.render(
                    x1 - x0,
                    y1 - y0,
                    origin=(self._transform[0, 2] - x0, self._transform[1, 2] - y0),
                )
            layer[y0:y1, x0:x1] = region
        else:
            layer[y0:y1, x0:x1] = premultiplied_color(paint)
        self._composite(layer)

    def draw_image(
        self,
        image: Surface,
        dx: float,
        dy: float,
        dw: Optional[float] = None,
        dh: Optional[float] = None,
    ) -> None:
        """Draw ``image`` with its top-left at (dx, dy), optionally resized."""

        sw, sh = image.width, image.height
        dw = float(sw) if dw is None else float(dw)
        dh = float(sh) if dh is None else float(dh)
        if sw == 0 or sh == 0 or dw == 0.0 or dh == 0.0:
            return
        if self.surface.width == 0 or self.surface.height == 0:
            return
        matrix = self._transform @ np.array(
            [[dw / sw, 0.0, dx], [0.0, dh / sh, dy], [0.0, 0.0, 1.0]]
        )
        self._composite(self._rasterize(image, matrix))

    def get_pixel_alpha(self, x: int, y: int) -> int:
        """Alpha byte (0-255) of the pixel at device coordinates."""

        if not (0 <= x < self.surface.width and 0 <= y < self.surface.height):
            return 0
        return int(round(float(self.surface.pixels[y, x, 3]) * 255.0))

    # ── Internals ──

    def _device_rect(self, x: float, y: float, width: float, height: float) -> Optional[tuple[int, int, int, int]]:
        m = self._transform
        if abs(m[0, 1]) > _EPS or abs(m[1, 0]) > _EPS:
            raise ValueError("Rectangle operations require an axis-aligned transform")
        ax = m[0, 0] * x + m[0, 2]
        ay = m[1, 1] * y + m[1, 2]
        bx = m[0, 0] * (x + width) + m[0, 2]
        by = m[1, 1] * (y + height) + m[1, 2]
        x0 = max(0, int(round(min(ax, bx))))
        y0 = max(0, int(round(min(ay, by))))
        x1 = min(self.surface.width, int(round(max(ax, bx))))
        y1 = min(self.surface.height, int(round(max(ay, by))))
        if x1 <= x0 or y1 <= y0:
            return None
        return x0, y0, x1, y1

    def _gradient_in_user_space(
        self, paint: LinearGradient, x0: int, y0: int, x1: int, y1: int
    ) -> np.ndarray:
        m = self._transform
        scaled = LinearGradient(
            paint.x0 * m[0, 0],
            paint.y0 * m[1, 1],
            paint.x1 * m[0, 0],
            paint.y1 * m[1, 1],
            list(paint.stops),
        )
        return scaled.render(x1 - x0, y1 - y0, origin=(m[0, 2] - x0, m[1, 2] - y0))

    def _rasterize(self, image: Surface, matrix: np.ndarray) -> np.ndarray:
        """Place ``image`` into a full-size transparent layer under ``matrix``."""

        target_h, target_w = self.surface.height, self.surface.width
        layer = np.zeros((target_h, target_w, 4), dtype=np.float32)
        is_unit = (
            abs(matrix[0, 0] - 1.0) < _EPS
            and abs(matrix[1, 1] - 1.0) < _EPS
            and abs(matrix[0, 1]) < _EPS
            and abs(matrix[1, 0]) < _EPS
        )
        tx, ty = matrix[0, 2], matrix[1, 2]
        if is_unit and abs(tx - round(tx)) < _EPS and abs(ty - round(ty)) < _EPS:
            ox, oy = int(round(tx)), int(round(ty))
            x0, y0 = max(0, ox), max(0, oy)
            x1 = min(target_w, ox + image.width)
            y1 = min(target_h, oy + image.height)
            if x1 > x0 and y1 > y0:
                layer[y0:y1, x0:x1] = image.pixels[y0 - oy : y1 - oy, x0 - ox : x1 - ox]
            return layer

        inverse = np.linalg.inv(matrix)
        resample = Image.BILINEAR if self.image_smoothing else Image.NEAREST
        warped = surface_to_image(image).transform(
            (target_w, target_h),
            Image.AFFINE,
            (inverse[0, 0], inverse[0, 1], inverse[0, 2], inverse[1, 0], inverse[1, 1], inverse[1, 2]),
            resample=resample,
        )
        return surface_from_image(warped).pixels

    def _composite(self, layer: np.ndarray) -> None:
        if self._global_alpha < 1.0:
            layer = layer * self._global_alpha
        op = COMPOSITE_OPERATIONS[self._composite_operation]
        self.surface.pixels[...] = op(layer, self.surface.pixels)
