"""PNG and GIF export of a composed scene."""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, List, Optional, Sequence

from sprite_mutator.animation.encoder import GifEncoder
from sprite_mutator.compositor.context import DrawContext
from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import AnimationFrame, Slot
from sprite_mutator.io.images import encode_png
from sprite_mutator.render.renderer import SlotRenderer

logger = logging.getLogger(__name__)

EXPORT_SIZE = 512
# Scenes are composed at this size, then scaled down to the export size.
COMPOSE_SIZE = 1024
STATIC_FRAME_DELAY_MS = 100

ProgressCallback = Callable[[float], None]


async def compose(
    renderer: SlotRenderer,
    slots: Sequence[Slot],
    size: int = EXPORT_SIZE,
    compose_size: int = COMPOSE_SIZE,
) -> Surface:
    """Render ``slots`` at ``compose_size`` and return them scaled to ``size``."""

    full = Surface.blank(compose_size, compose_size)
    await renderer.render_all(full, slots)
    if size == compose_size:
        return full
    out = Surface.blank(size, size)
    ctx = DrawContext(out)
    ctx.image_smoothing = True
    ctx.draw_image(full, 0, 0, size, size)
    return out


async def export_png(
    renderer: SlotRenderer,
    slots: Sequence[Slot],
    size: int = EXPORT_SIZE,
    compose_size: int = COMPOSE_SIZE,
) -> bytes:
    return encode_png(await compose(renderer, slots, size, compose_size))


def primary_frames(slots: Sequence[Slot]) -> List[AnimationFrame]:
    """Frames of the visible animated slot with the most frames; they set the timeline."""

    best: List[AnimationFrame] = []
    for slot in slots:
        if slot.visible and slot.is_animated and len(slot.frames) > len(best):
            best = slot.frames
    return best


async def export_gif(
    renderer: SlotRenderer,
    slots: Sequence[Slot],
    encoder: GifEncoder,
    size: int = EXPORT_SIZE,
    compose_size: int = COMPOSE_SIZE,
    quality: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> bytes:
    """Encode the scene as a GIF.

    With animated slots the output follows the longest animation; shorter
    ones wrap around. A static scene becomes a single 100 ms frame.
    """

    timeline = primary_frames(slots)
    frames: List[AnimationFrame] = []
    if not timeline:
        frames.append(AnimationFrame(await compose(renderer, slots, size, compose_size), STATIC_FRAME_DELAY_MS))
    else:
        for index, primary in enumerate(timeline):
            staged = [
                dataclasses.replace(slot, current_frame=index % len(slot.frames)) if slot.is_animated else slot
                for slot in slots
            ]
            frames.append(AnimationFrame(await compose(renderer, staged, size, compose_size), primary.duration_ms))
            logger.debug("Rendered export frame %d/%d", index + 1, len(timeline))

    return await encoder.encode(frames, size, size, quality=quality, on_progress=on_progress)
