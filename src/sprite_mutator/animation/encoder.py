"""GIF encoding of rendered frame sequences."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Callable, List, Optional, Sequence

import numpy as np
from PIL import Image

from sprite_mutator.compositor.surface import surface_to_image
from sprite_mutator.data import AnimationFrame
from sprite_mutator.errors import EncoderError

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 10
# Palette slot reserved for transparent pixels.
TRANSPARENT_INDEX = 255
ALPHA_CUTOFF = 128

ProgressCallback = Callable[[float], None]


class GifEncoder:
    """Batch GIF encoder.

    ``quality`` follows the usual GIF encoder convention: 1 is the slowest,
    best palette, larger values trade palette refinement for speed.
    """

    def __init__(self, quality: int = DEFAULT_QUALITY) -> None:
        if quality < 1:
            raise ValueError("quality must be >= 1")
        self.quality = quality
        self._writer_ready = False

    def ensure_writer(self) -> None:
        """Check once that the GIF writer is available."""

        if self._writer_ready:
            return
        Image.init()
        if "GIF" not in Image.SAVE:
            raise EncoderError("GIF writer is not available in this Pillow build")
        self._writer_ready = True
        logger.debug("GIF writer ready")

    async def encode(
        self,
        frames: Sequence[AnimationFrame],
        width: int,
        height: int,
        quality: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bytes:
        """Encode ``frames`` in order; resolves with the GIF bytes."""

        if not frames:
            raise EncoderError("No frames to encode")
        if width <= 0 or height <= 0:
            raise EncoderError(f"Invalid output size {width}x{height}")
        self.ensure_writer()

        loop = asyncio.get_running_loop()

        def report(progress: float) -> None:
            if on_progress is not None:
                loop.call_soon_threadsafe(on_progress, progress)

        try:
            data = await asyncio.to_thread(
                self._encode_sync, list(frames), width, height, quality or self.quality, report
            )
        except (OSError, ValueError) as exc:
            raise EncoderError(f"GIF encode failed: {exc}") from exc
        logger.info("Encoded %d frames (%d bytes)", len(frames), len(data))
        return data

    def _encode_sync(
        self,
        frames: List[AnimationFrame],
        width: int,
        height: int,
        quality: int,
        report: ProgressCallback,
    ) -> bytes:
        images: List[Image.Image] = []
        for index, frame in enumerate(frames):
            image = surface_to_image(frame.surface)
            if image.size != (width, height):
                image = image.resize((width, height), Image.BILINEAR)
            images.append(self._quantize(image, quality))
            report((index + 1) / (len(frames) + 1))

        buffer = io.BytesIO()
        images[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=[max(1, int(frame.duration_ms)) for frame in frames],
            loop=0,
            disposal=2,
            transparency=TRANSPARENT_INDEX,
            optimize=False,
        )
        report(1.0)
        return buffer.getvalue()

    @staticmethod
    def _quantize(image: Image.Image, quality: int) -> Image.Image:
        rgba = image.convert("RGBA")
        paletted = rgba.convert("RGB").quantize(
            colors=TRANSPARENT_INDEX,
            method=Image.Quantize.MEDIANCUT,
            kmeans=max(0, DEFAULT_QUALITY - quality),
        )
        indices = np.array(paletted, dtype=np.uint8)
        indices[np.asarray(rgba.getchannel("A")) < ALPHA_CUTOFF] = TRANSPARENT_INDEX

        palette = (paletted.getpalette() or [])[: TRANSPARENT_INDEX * 3]
        palette += [0] * (768 - len(palette))
        out = Image.frombytes("P", rgba.size, indices.tobytes())
        out.putpalette(palette)
        return out
