"""Icon and overlay layout."""

from sprite_mutator.layout.icons import (
    compute_icon_layout,
    fallback_anchor,
    find_icon_key,
    icon_z,
    is_tall_key,
    place_icon,
    place_tall_overlay,
    symmetric_padding,
)

__all__ = [
    "compute_icon_layout",
    "fallback_anchor",
    "find_icon_key",
    "icon_z",
    "is_tall_key",
    "place_icon",
    "place_tall_overlay",
    "symmetric_padding",
]
