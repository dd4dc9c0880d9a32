"""Slot composition: base sprite, tints, icons, overlays and cosmetic layers.

Decoration depth around a sprite:

    z = -1  tall-plant icons (Puddle, ThunderstruckGround), behind the sprite
    z =  0  the sprite itself
    z =  2  regular mutation icons
    z =  3  tall-plant texture overlays, clipped to the sprite silhouette
    z = 10  floating icons (Dawnlit, Ambershine, ...), always on top
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from sprite_mutator.assets.catalog import SpriteCatalog
from sprite_mutator.assets.loader import SpriteLoader
from sprite_mutator.compositor.blend import BlendSupport, probe_blend_support
from sprite_mutator.compositor.context import DrawContext
from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import DrawOp, Slot
from sprite_mutator.diagnostics.tracker import RenderStats, Timer
from sprite_mutator.errors import SpriteLoadError
from sprite_mutator.layout.icons import (
    Z_OVERLAY,
    compute_icon_layout,
    find_icon_key,
    icon_z,
    is_tall_key,
    place_icon,
    place_tall_overlay,
    symmetric_padding,
)
from sprite_mutator.mutations.defs import MUTATION_META, MUTATIONS, resolve_active_mutations
from sprite_mutator.mutations.engine import apply_mutations
from sprite_mutator.render.cache import RenderCache

logger = logging.getLogger(__name__)

COSMETIC_LAYER_ORDER: Tuple[str, ...] = (
    "Default",
    "Mid",
    "Bottom",
    "Top",
    "Expression",
    "FaceProp",
    "Status",
    "Banner",
)

# Alpha byte above which a pixel counts as a hit (about 4% opacity).
HIT_ALPHA_THRESHOLD = 10
# Half-extent used before a slot's source has ever been loaded.
UNLOADED_HIT_HALF_EXTENT = 128


class SlotRenderer:
    """Renders slots to surfaces and composites them onto an output."""

    def __init__(
        self,
        catalog: SpriteCatalog,
        loader: SpriteLoader,
        cache: Optional[RenderCache] = None,
        support: Optional[BlendSupport] = None,
        stats: Optional[RenderStats] = None,
    ) -> None:
        self.catalog = catalog
        self.loader = loader
        self.cache = cache if cache is not None else RenderCache()
        self.support = support if support is not None else probe_blend_support()
        self.stats = stats if stats is not None else RenderStats()

    # ── Fingerprint ──

    @staticmethod
    def frame_index_for(slot: Slot, frame_index: Optional[int] = None) -> int:
        if not slot.is_animated:
            return -1
        requested = slot.current_frame if frame_index is None else frame_index
        return max(0, min(requested, len(slot.frames) - 1))

    def fingerprint(self, slot: Slot, frame_index: Optional[int] = None) -> str:
        return RenderCache.make_key(
            slot.sprite_url,
            slot.mutations,
            slot.options.icons,
            slot.options.overlays,
            slot.scale,
            slot.rotation,
            slot.custom_tint.color,
            slot.custom_tint.opacity,
            self.frame_index_for(slot, frame_index),
            slot.cosmetic_layers if slot.type == "cosmetic" else None,
        )

    # ── Single slot ──

    async def render_slot(self, slot: Slot, frame_index: Optional[int] = None) -> Optional[Surface]:
        """Rendered surface for ``slot``, or None when it has no source.

        Failures loading the base sprite propagate; missing or broken
        decorations are skipped.
        """

        if not slot.sprite_url:
            return None

        key = self.fingerprint(slot, frame_index)
        cached = self.cache.get(key)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached
        self.stats.cache_misses += 1

        with Timer() as timer:
            surface = await self._source_surface(slot, frame_index)
            tall = is_tall_key(slot.sprite_key)
            tint = slot.custom_tint if slot.custom_tint.opacity > 0 else None
            apply_mutations(surface, slot.mutations, tall, tint, self.support)

            if slot.options.icons or (tall and slot.options.overlays):
                surface = await self._decorate(slot, surface, tall)
            if slot.type == "cosmetic" and slot.cosmetic_layers:
                await self._draw_cosmetics(slot, surface)

        self.stats.record_render(timer.elapsed)
        self.cache.set(key, surface)
        return surface

    async def _source_surface(self, slot: Slot, frame_index: Optional[int]) -> Surface:
        if slot.is_animated:
            return slot.frames[self.frame_index_for(slot, frame_index)].surface.copy()
        self.stats.source_loads += 1
        raster = await self.loader.load(slot.sprite_url)
        return raster.copy()

    async def _decorate(self, slot: Slot, surface: Surface, tall: bool) -> Surface:
        width, height = surface.width, surface.height
        anchor = self.catalog.sprite_anchor(slot.sprite_key)
        ops: List[DrawOp] = []
        active = resolve_active_mutations(slot.mutations)

        if slot.options.icons:
            for mutation in active:
                op = await self._icon_op(slot, mutation, tall, width, height, anchor)
                if op is not None:
                    ops.append(op)

        if tall and slot.options.overlays:
            for mutation in active:
                op = await self._overlay_op(slot, surface, mutation, anchor)
                if op is not None:
                    ops.append(op)

        if not ops:
            return surface

        pad_h, pad_v = symmetric_padding(ops, width, height)
        out = Surface.blank(width + pad_h * 2, height + pad_v * 2)
        ctx = DrawContext(out)
        ctx.image_smoothing = False
        ordered = sorted(ops, key=lambda item: item.z)
        for op in ordered:
            if op.z < 0:
                ctx.draw_image(op.image, op.x + pad_h, op.y + pad_v, op.width, op.height)
        ctx.draw_image(surface, pad_h, pad_v)
        for op in ordered:
            if op.z >= 0:
                ctx.draw_image(op.image, op.x + pad_h, op.y + pad_v, op.width, op.height)
        logger.debug(
            "Decorated %s with %d ops, padding %dx%d", slot.sprite_key, len(ops), pad_h, pad_v
        )
        return out

    async def _icon_op(
        self,
        slot: Slot,
        mutation: str,
        tall: bool,
        width: int,
        height: int,
        anchor: Tuple[float, float],
    ) -> Optional[DrawOp]:
        meta = MUTATION_META.get(mutation)
        if meta is None:
            return None
        # Tall plants show the texture overlay instead, unless an icon goes behind them.
        if tall and meta.tall_overlay_key and not meta.tall_plant_icon_override:
            return None
        icon_id = find_icon_key(slot.sprite_key, mutation, tall, meta, self.catalog.sprite_ids())
        if icon_id is None:
            return None
        url = self.catalog.find_sprite_url(icon_id)
        if url is None:
            return None
        icon = await self._load_decoration(url)
        if icon is None:
            return None
        layout = compute_icon_layout(width, height, anchor[0], anchor[1], slot.sprite_key, tall)
        x, y, w, h = place_icon(layout, icon.width, icon.height, self.catalog.icon_anchor(icon_id))
        return DrawOp(icon, x, y, w, h, icon_z(meta, tall))

    async def _overlay_op(
        self,
        slot: Slot,
        surface: Surface,
        mutation: str,
        anchor: Tuple[float, float],
    ) -> Optional[DrawOp]:
        meta = MUTATION_META.get(mutation)
        if meta is None or not meta.tall_overlay_key:
            return None
        url = self.catalog.find_sprite_url(meta.tall_overlay_key)
        if url is None:
            logger.debug("No overlay asset %s for %s", meta.tall_overlay_key, slot.sprite_key)
            return None
        overlay = await self._load_decoration(url)
        if overlay is None or overlay.height == 0:
            return None

        definition = MUTATIONS.get(mutation)
        has_tint = (definition.alpha or 0.0) > 0 if definition else False
        x, y, w, h = place_tall_overlay(
            surface.width, surface.height, anchor, overlay.width, overlay.height, has_tint
        )
        if w <= 0 or h <= 0:
            return None

        # Keep only the overlay pixels that fall on the sprite.
        masked = Surface.blank(w, h)
        ctx = DrawContext(masked)
        ctx.image_smoothing = False
        ctx.draw_image(overlay, 0, 0, w, h)
        ctx.global_composite_operation = "destination-in"
        ctx.draw_image(surface, -x, -y)
        logger.debug(
            "Overlay %s: %dx%d -> %dx%d at (%.1f, %.1f), tinted=%s",
            meta.tall_overlay_key, overlay.width, overlay.height, w, h, x, y, has_tint,
        )
        return DrawOp(masked, x, y, w, h, Z_OVERLAY)

    async def _draw_cosmetics(self, slot: Slot, surface: Surface) -> None:
        ctx = DrawContext(surface)
        for category in COSMETIC_LAYER_ORDER:
            cosmetic_id = slot.cosmetic_layers.get(category)
            if not cosmetic_id:
                continue
            url = self.catalog.cosmetic_url(category, cosmetic_id)
            if url is None:
                continue
            layer = await self._load_decoration(url)
            if layer is not None:
                ctx.draw_image(layer, 0, 0, surface.width, surface.height)

    async def _load_decoration(self, url: str) -> Optional[Surface]:
        try:
            return await self.loader.load(url)
        except SpriteLoadError as exc:
            self.stats.decorations_skipped += 1
            logger.warning("Skipping decoration: %s", exc)
            return None

    # ── All slots ──

    async def render_all(self, output: Surface, slots: Sequence[Slot]) -> None:
        """Clear ``output`` and draw every visible slot, lowest index first."""

        ctx = DrawContext(output)
        ctx.image_smoothing = True
        ctx.clear_rect(0, 0, output.width, output.height)
        for slot in slots:
            if not slot.visible or not slot.sprite_url:
                continue
            rendered = await self.render_slot(slot)
            if rendered is None:
                continue
            ctx.save()
            ctx.translate(output.width / 2 + slot.position[0], output.height / 2 + slot.position[1])
            ctx.rotate(math.radians(slot.rotation))
            ctx.scale(slot.scale, slot.scale)
            ctx.draw_image(rendered, -rendered.width / 2, -rendered.height / 2)
            ctx.restore()
            self.stats.frames_composited += 1

    def hit_test(self, slots: Sequence[Slot], width: int, height: int, x: float, y: float) -> Optional[int]:
        """Index of the topmost visible slot under (x, y) in output space."""

        for index in range(len(slots) - 1, -1, -1):
            slot = slots[index]
            if not slot.visible or not slot.sprite_url or slot.scale == 0:
                continue
            rel_x = x - (width / 2 + slot.position[0])
            rel_y = y - (height / 2 + slot.position[1])
            angle = -math.radians(slot.rotation)
            local_x = rel_x * math.cos(angle) - rel_y * math.sin(angle)
            local_y = rel_x * math.sin(angle) + rel_y * math.cos(angle)

            rendered = self.cache.get(self.fingerprint(slot))
            if rendered is not None and not rendered.released:
                half_w = rendered.width / 2 * abs(slot.scale)
                half_h = rendered.height / 2 * abs(slot.scale)
                if abs(local_x) > half_w or abs(local_y) > half_h:
                    continue
                px = int(round(local_x / slot.scale + rendered.width / 2))
                py = int(round(local_y / slot.scale + rendered.height / 2))
                if DrawContext(rendered).get_pixel_alpha(px, py) > HIT_ALPHA_THRESHOLD:
                    return index
                continue

            raw = self.loader.get_cached(slot.sprite_url)
            half_w = (raw.width / 2 if raw is not None else UNLOADED_HIT_HALF_EXTENT) * abs(slot.scale)
            half_h = (raw.height / 2 if raw is not None else UNLOADED_HIT_HALF_EXTENT) * abs(slot.scale)
            if abs(local_x) <= half_w and abs(local_y) <= half_h:
                return index
        return None
