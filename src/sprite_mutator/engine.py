"""Composition root: wires catalog, loader, cache, renderer and slot pool."""

from __future__ import annotations

import logging
from typing import Optional

from sprite_mutator.animation.decoder import decode_gif
from sprite_mutator.animation.encoder import GifEncoder
from sprite_mutator.assets.catalog import Document, SpriteCatalog
from sprite_mutator.assets.loader import SpriteLoader
from sprite_mutator.compositor.blend import probe_blend_support
from sprite_mutator.compositor.surface import Surface
from sprite_mutator.config.schema import Config, load_config
from sprite_mutator.data import DecodedAnimation
from sprite_mutator.diagnostics.tracker import RenderStats
from sprite_mutator.render.cache import RenderCache
from sprite_mutator.render.exporter import ProgressCallback, export_gif, export_png
from sprite_mutator.render.renderer import SlotRenderer
from sprite_mutator.state import SLOT_CLEARED, SlotPool

logger = logging.getLogger(__name__)


class Engine:
    """Owns every process-wide cache and exposes the rendering entry points.

    Blend support is probed once here and handed to the renderer. Clearing a
    slot drops the render cache; reloading game data also rebuilds the
    catalog indexes and forgets loaded rasters.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        catalog: Optional[SpriteCatalog] = None,
        loader: Optional[SpriteLoader] = None,
    ) -> None:
        self.config = config or load_config()
        self.catalog = catalog or SpriteCatalog.from_files(
            self.config.sprite_data,
            self.config.cosmetics,
            asset_base_url=self.config.asset_base_url,
            game_version=self.config.game_version,
        )
        self.loader = loader or SpriteLoader(
            max_concurrency=self.config.loader.max_concurrency,
            max_cache_size=self.config.loader.max_cache_size,
        )
        self.support = probe_blend_support()
        self.stats = RenderStats()
        self.cache = RenderCache(capacity=self.config.cache.render_capacity)
        self.renderer = SlotRenderer(self.catalog, self.loader, self.cache, self.support, self.stats)
        self.pool = SlotPool(self.config.slot_count)
        self.encoder = GifEncoder(quality=self.config.export.gif_quality)
        self.pool.subscribe(self._on_slot_event)
        logger.info("Engine ready; blend operators: %s", ", ".join(sorted(self.support.operators)))

    def _on_slot_event(self, event: str, index: Optional[int]) -> None:
        if event == SLOT_CLEARED:
            self.cache.clear()

    async def render_slot(self, index: int, frame_index: Optional[int] = None) -> Optional[Surface]:
        return await self.renderer.render_slot(self.pool[index], frame_index)

    async def render_all(self, output: Optional[Surface] = None) -> Surface:
        if output is None:
            size = self.config.export.compose_size
            output = Surface.blank(size, size)
        await self.renderer.render_all(output, self.pool.slots)
        return output

    def hit_test(self, width: int, height: int, x: float, y: float) -> Optional[int]:
        return self.renderer.hit_test(self.pool.slots, width, height, x, y)

    def clear_slot(self, index: int) -> None:
        self.pool.clear(index)

    def reload_catalog(self, sprite_data: Optional[Document] = None, cosmetics: Optional[Document] = None) -> None:
        self.catalog.rebuild(sprite_data, cosmetics)
        self.cache.clear()
        self.loader.clear_cache()

    def load_animation(self, index: int, data: bytes) -> DecodedAnimation:
        """Decode GIF bytes and attach the frames to slot ``index``."""

        animation = decode_gif(data, self.config.export.min_frame_delay_ms)
        self.pool.update(index, frames=animation.frames, current_frame=0)
        return animation

    async def export_png(self) -> bytes:
        export = self.config.export
        return await export_png(self.renderer, self.pool.slots, export.size, export.compose_size)

    async def export_gif(self, on_progress: Optional[ProgressCallback] = None) -> bytes:
        export = self.config.export
        return await export_gif(
            self.renderer,
            self.pool.slots,
            self.encoder,
            size=export.size,
            compose_size=export.compose_size,
            quality=export.gif_quality,
            on_progress=on_progress,
        )

    async def close(self) -> None:
        self.cache.clear()
        await self.loader.close()
