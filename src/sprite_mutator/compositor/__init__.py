"""Surfaces, drawing context and blend operators."""

from sprite_mutator.compositor.blend import (
    COMPOSITE_OPERATIONS,
    BlendSupport,
    pick_blend_op,
    probe_blend_support,
)
from sprite_mutator.compositor.context import DrawContext
from sprite_mutator.compositor.gradient import LinearGradient, angle_gradient, parse_color
from sprite_mutator.compositor.surface import (
    Surface,
    surface_from_image,
    surface_to_image,
)

__all__ = [
    "COMPOSITE_OPERATIONS",
    "BlendSupport",
    "DrawContext",
    "LinearGradient",
    "Surface",
    "angle_gradient",
    "parse_color",
    "pick_blend_op",
    "probe_blend_support",
    "surface_from_image",
    "surface_to_image",
]
