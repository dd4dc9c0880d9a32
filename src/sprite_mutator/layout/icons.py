"""Icon and tall-plant overlay placement relative to a sprite.

Pure layout math: no pixels are touched here. The slot renderer turns these
results into draw operations.
"""

from __future__ import annotations

import math
import re
from typing import AbstractSet, Dict, Iterable, List, Optional, Tuple

from sprite_mutator.data import DrawOp, IconLayout, MutationMeta

TILE_SIZE_WORLD = 256
BASE_ICON_SCALE = 0.5
MAX_ICON_SCALE_FACTOR = 1.5
TALL_PLANT_MUTATION_ICON_SCALE_BOOST = 2
DEFAULT_ICON_TARGET_Y = 0.4
VERTICAL_SHAPE_RATIO = 1.5
UNTINTED_OVERLAY_HEIGHT = 0.9
# Fixed offset for bottom-anchored overlays, kept as the game ships it.
UNTINTED_OVERLAY_Y_OFFSET = 100

# z-order of decorations around the sprite (the sprite itself is z=0).
Z_BEHIND = -1
Z_ICON = 2
Z_OVERLAY = 3
Z_FLOATING = 10

MUT_ICON_X_EXCEPT: Dict[str, float] = {
    "Pepper": 0.5,
    "Banana": 0.6,
}

MUT_ICON_Y_EXCEPT: Dict[str, float] = {
    "Banana": 0.6,
    "Carrot": 0.6,
    "Sunflower": 0.5,
    "Starweaver": 0.5,
    "FavaBean": 0.25,
    "BurrosTail": 0.2,
}

_MUTATION_ALIASES: Dict[str, Tuple[str, ...]] = {
    "Ambershine": ("Ambershine", "Amberlit"),
    "Dawncharged": ("Dawncharged", "Dawnbound"),
    "Ambercharged": ("Ambercharged", "Amberbound"),
}

# The sprite metadata carries no anchors for tall plants; these were measured.
TALL_PLANT_ANCHORS: Dict[str, Tuple[float, float]] = {
    "sprite/tall-plant/Bamboo": (0.519573, 0.964063),
    "sprite/tall-plant/Cactus": (0.517937, 0.952344),
}
TALL_PLANT_DEFAULT_ANCHOR = (0.5, 0.96)
DEFAULT_ANCHOR = (0.5, 0.5)

_TALL_PATTERN = re.compile(r"tall-?plant", re.IGNORECASE)


def is_tall_key(key: str) -> bool:
    return bool(_TALL_PATTERN.search(key or ""))


def base_name_of(key: str) -> str:
    return str(key or "").split("/")[-1]


def mutation_aliases(mutation: str) -> Tuple[str, ...]:
    return _MUTATION_ALIASES.get(mutation, (mutation,))


def compute_icon_layout(
    sprite_width: int,
    sprite_height: int,
    anchor_x: float,
    anchor_y: float,
    sprite_key: str,
    is_tall: bool,
) -> IconLayout:
    """Target anchor, pixel offset and icon scale for a sprite.

    Tall-and-narrow shapes (height > 1.5 x width) keep icons at the sprite's
    own anchor; everything else centres them at 0.4 of the height. Per-species
    exceptions override both axes.
    """

    base_name = base_name_of(sprite_key)
    target_x = MUT_ICON_X_EXCEPT.get(base_name, anchor_x)
    is_vertical = sprite_height > sprite_width * VERTICAL_SHAPE_RATIO
    target_y = MUT_ICON_Y_EXCEPT.get(base_name, anchor_y if is_vertical else DEFAULT_ICON_TARGET_Y)

    offset = (
        (target_x - anchor_x) * sprite_width,
        (target_y - anchor_y) * sprite_height,
    )
    scale_factor = min(MAX_ICON_SCALE_FACTOR, min(sprite_width, sprite_height) / TILE_SIZE_WORLD)
    icon_scale = BASE_ICON_SCALE * scale_factor
    if is_tall:
        icon_scale *= TALL_PLANT_MUTATION_ICON_SCALE_BOOST

    return IconLayout(
        width=sprite_width,
        height=sprite_height,
        anchor_x=anchor_x,
        anchor_y=anchor_y,
        offset=offset,
        icon_scale=icon_scale,
    )


def icon_candidates(item_key: str, mutation: str, is_tall: bool) -> List[str]:
    """Asset ids to try for a mutation icon, most specific first."""

    base = base_name_of(item_key)
    candidates: List[str] = []
    for name in mutation_aliases(mutation):
        if is_tall:
            candidates.append(f"sprite/mutation-overlay/{name}TallPlantIcon")
            candidates.append(f"sprite/mutation-overlay/{name}TallPlant")
        candidates.extend(
            [
                f"sprite/mutation/{name}Icon",
                f"sprite/mutation/{name}",
                f"sprite/mutation/{name}{base}",
                f"sprite/mutation/{name}-{base}",
                f"sprite/mutation/{name}_{base}",
                f"sprite/mutation/{name}/{base}",
            ]
        )
    return candidates


def find_icon_key(
    item_key: str,
    mutation: str,
    is_tall: bool,
    meta: Optional[MutationMeta],
    known_ids: AbstractSet[str],
) -> Optional[str]:
    """Resolve the icon asset for ``mutation`` on ``item_key``.

    Returns None when no candidate exists; that means "no icon here".
    """

    if not mutation:
        return None
    override = meta.tall_plant_icon_override if meta else None
    if is_tall and override and override in known_ids:
        return override
    for candidate in icon_candidates(item_key, mutation, is_tall):
        if candidate in known_ids:
            return candidate
    return None


def fallback_anchor(sprite_key: str) -> Tuple[float, float]:
    """Anchor for sprites whose metadata carries none."""

    if sprite_key in TALL_PLANT_ANCHORS:
        return TALL_PLANT_ANCHORS[sprite_key]
    if is_tall_key(sprite_key):
        return TALL_PLANT_DEFAULT_ANCHOR
    return DEFAULT_ANCHOR


def icon_z(meta: MutationMeta, is_tall: bool) -> int:
    """Floating icons are always topmost; tall-plant icons sit behind the sprite."""

    if meta.floating_icon:
        return Z_FLOATING
    return Z_BEHIND if is_tall else Z_ICON


def place_icon(
    layout: IconLayout,
    icon_width: int,
    icon_height: int,
    icon_anchor: Tuple[float, float],
) -> Tuple[float, float, float, float]:
    """Top-left corner and drawn size of an icon, in sprite pixel space."""

    pivot_x = layout.anchor_x * layout.width
    pivot_y = layout.anchor_y * layout.height
    scaled_w = icon_width * layout.icon_scale
    scaled_h = icon_height * layout.icon_scale
    draw_x = pivot_x + layout.offset[0] - icon_anchor[0] * scaled_w
    draw_y = pivot_y + layout.offset[1] - icon_anchor[1] * scaled_h
    return draw_x, draw_y, scaled_w, scaled_h


def calc_overlay_position(
    base_width: float,
    base_height: float,
    overlay_width: float,
    overlay_height: float,
    anchor_x: float = 0.5,
    anchor_y: float = 1.0,
) -> Tuple[float, float]:
    """Bottom-anchored overlay origin, centred on the sprite's anchor X."""

    return (
        anchor_x * base_width - overlay_width * 0.5,
        anchor_y * base_height - overlay_height + UNTINTED_OVERLAY_Y_OFFSET,
    )


def place_tall_overlay(
    sprite_width: int,
    sprite_height: int,
    anchor: Tuple[float, float],
    overlay_width: int,
    overlay_height: int,
    has_tint: bool,
) -> Tuple[float, float, int, int]:
    """Position and size of a tall-plant texture overlay.

    Tinted mutations already colour the whole plant, so the overlay adds only
    texture: natural size, top-anchored. Untinted ones must cover the plant:
    scaled to 90% of its height and bottom-anchored.
    """

    if has_tint:
        draw_w, draw_h = overlay_width, overlay_height
        return anchor[0] * sprite_width - draw_w * 0.5, 0.0, draw_w, draw_h

    draw_h = int(round(sprite_height * UNTINTED_OVERLAY_HEIGHT))
    draw_w = int(round(overlay_width * (draw_h / overlay_height)))
    pos_x, pos_y = calc_overlay_position(sprite_width, sprite_height, draw_w, draw_h, anchor[0], anchor[1])
    return pos_x, pos_y, draw_w, draw_h


def symmetric_padding(ops: Iterable[DrawOp], width: int, height: int) -> Tuple[int, int]:
    """Horizontal and vertical padding that fits every op around the sprite.

    Padding is symmetric so the sprite's centre stays at the padded surface's
    centre.
    """

    min_x, min_y, max_x, max_y = 0.0, 0.0, float(width), float(height)
    for op in ops:
        min_x = min(min_x, op.x)
        min_y = min(min_y, op.y)
        max_x = max(max_x, op.x + op.width)
        max_y = max(max_y, op.y + op.height)
    pad_h = max(max(0, math.ceil(-min_x)), max(0, math.ceil(max_x - width)))
    pad_v = max(max(0, math.ceil(-min_y)), max(0, math.ceil(max_y - height)))
    return pad_h, pad_v
