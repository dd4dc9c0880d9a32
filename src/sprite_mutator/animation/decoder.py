"""Animated source decoding with GIF disposal handling.

The decoder keeps one canvas the size of the animation. Each frame is drawn
onto it, the result is captured, then the frame's disposal method decides
what the canvas looks like before the next frame:

    0, 1  leave the canvas as it is
    2     clear the frame's rectangle (restore to background)
    3     put back the canvas as it was before the frame was drawn
"""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Protocol

import numpy as np
from PIL import Image, UnidentifiedImageError

from sprite_mutator.compositor.context import DrawContext
from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import AnimationFrame, DecodedAnimation, FrameInfo
from sprite_mutator.errors import DecodeError

logger = logging.getLogger(__name__)

DISPOSE_BACKGROUND = 2
DISPOSE_PREVIOUS = 3

MIN_FRAME_DELAY_MS = 20


class FrameSource(Protocol):
    """Raw access to the frames of an animated image."""

    width: int
    height: int
    loop_count: int

    def frame_count(self) -> int:
        ...

    def frame_info(self, index: int) -> FrameInfo:
        ...

    def decode_frame(self, index: int) -> np.ndarray:
        """Straight RGBA uint8 array of canvas size; transparent outside the frame rectangle."""
        ...


def _skip_sub_blocks(data: bytes, pos: int) -> int:
    while True:
        if pos >= len(data):
            raise DecodeError("Truncated GIF data")
        size = data[pos]
        pos += 1
        if size == 0:
            return pos
        pos += size


def split_gif_frames(data: bytes) -> List[bytes]:
    """Cut a GIF stream into standalone single-image GIFs, one per frame.

    Each piece keeps the logical screen header, the global colour table and
    the frame's own graphic control extension, so it decodes to exactly the
    pixels that frame stores with nothing composited underneath.
    """

    if data[:6] not in (b"GIF87a", b"GIF89a") or len(data) < 13:
        raise DecodeError("Not a GIF stream")
    flags = data[10]
    pos = 13
    if flags & 0x80:
        pos += 3 * (2 << (flags & 0x07))
    header = data[:pos]

    frames: List[bytes] = []
    control = b""
    while pos < len(data):
        block = data[pos]
        if block == 0x3B:
            break
        if block == 0x21:
            end = _skip_sub_blocks(data, pos + 2)
            if data[pos + 1] == 0xF9:
                control = data[pos:end]
            pos = end
        elif block == 0x2C:
            if pos + 10 > len(data):
                raise DecodeError("Truncated GIF image descriptor")
            local = data[pos + 9]
            end = pos + 10
            if local & 0x80:
                end += 3 * (2 << (local & 0x07))
            # LZW minimum code size, then the image data sub-blocks.
            end = _skip_sub_blocks(data, end + 1)
            frames.append(header + control + data[pos:end] + b"\x3b")
            control = b""
            pos = end
        else:
            raise DecodeError(f"Unexpected GIF block 0x{block:02x} at offset {pos}")
    return frames


class PillowFrameSource:
    """Frame source backed by Pillow's multi-frame readers.

    Pillow's GIF reader returns every frame already composited over the
    previous ones. For GIFs each frame is therefore decoded again from its
    own standalone stream, so transparent pixels stay transparent and the
    decoder applies disposal by itself.
    """

    def __init__(self, data: bytes) -> None:
        try:
            self._image = Image.open(io.BytesIO(data))
            self._image.load()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise DecodeError(f"Unreadable animation: {exc}") from exc
        self.width, self.height = self._image.size
        self.loop_count = int(self._image.info.get("loop", 0))
        self._raw_frames: Optional[List[bytes]] = (
            split_gif_frames(data) if self._image.format == "GIF" else None
        )

    def frame_count(self) -> int:
        return int(getattr(self._image, "n_frames", 1))

    def _seek(self, index: int) -> None:
        try:
            self._image.seek(index)
        except EOFError as exc:
            raise DecodeError(f"Frame {index} is out of range") from exc

    def frame_info(self, index: int) -> FrameInfo:
        self._seek(index)
        x0, y0, x1, y1 = getattr(self._image, "dispose_extent", (0, 0, self.width, self.height))
        duration_ms = int(self._image.info.get("duration", 0) or 0)
        return FrameInfo(
            x=x0,
            y=y0,
            width=x1 - x0,
            height=y1 - y0,
            delay=duration_ms // 10,
            disposal=int(getattr(self._image, "disposal_method", 0) or 0),
        )

    def _raw_frame(self, index: int) -> Image.Image:
        raw = self._raw_frames or []
        if not 0 <= index < len(raw):
            raise DecodeError(f"Frame {index} is out of range")
        try:
            with Image.open(io.BytesIO(raw[index])) as frame:
                return frame.convert("RGBA")
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise DecodeError(f"Frame {index} is unreadable: {exc}") from exc

    def decode_frame(self, index: int) -> np.ndarray:
        info = self.frame_info(index)
        if self._raw_frames is not None:
            frame = self._raw_frame(index)
        else:
            frame = self._image.convert("RGBA")
        if frame.size != (self.width, self.height):
            raise DecodeError(f"Frame {index} is {frame.size}, expected {self.width}x{self.height}")
        full = np.asarray(frame, dtype=np.uint8)
        # Only the frame's own rectangle is drawn; the rest stays transparent.
        out = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        ys = slice(max(0, info.y), min(self.height, info.y + info.height))
        xs = slice(max(0, info.x), min(self.width, info.x + info.width))
        out[ys, xs] = full[ys, xs]
        return out


class AnimationDecoder:
    """Composites frames from a :class:`FrameSource` one at a time."""

    def __init__(self, source: FrameSource, min_delay_ms: int = MIN_FRAME_DELAY_MS) -> None:
        if source.width <= 0 or source.height <= 0:
            raise DecodeError(f"Invalid animation size {source.width}x{source.height}")
        self.source = source
        self.min_delay_ms = min_delay_ms
        self.canvas = Surface.blank(source.width, source.height)
        self.next_index = 0
        self._saved: Optional[np.ndarray] = None

    @property
    def done(self) -> bool:
        return self.next_index >= self.source.frame_count()

    def step(self) -> AnimationFrame:
        """Draw the next frame and return its composited snapshot."""

        index = self.next_index
        info = self.source.frame_info(index)
        pixels = self.source.decode_frame(index)
        if pixels.shape != (self.canvas.height, self.canvas.width, 4):
            raise DecodeError(f"Frame {index} has shape {pixels.shape}, expected canvas size")

        ctx = DrawContext(self.canvas)
        if info.disposal == DISPOSE_PREVIOUS:
            self._saved = self.canvas.pixels.copy()
        if info.disposal == DISPOSE_BACKGROUND:
            ctx.clear_rect(info.x, info.y, info.width, info.height)

        ctx.draw_image(Surface.from_straight(pixels), 0, 0)
        frame = AnimationFrame(self.canvas.copy(), self.delay_ms(info))

        if info.disposal == DISPOSE_BACKGROUND:
            ctx.clear_rect(info.x, info.y, info.width, info.height)
        elif info.disposal == DISPOSE_PREVIOUS and self._saved is not None:
            self.canvas.pixels[...] = self._saved
            self._saved = None

        self.next_index += 1
        return frame

    def delay_ms(self, info: FrameInfo) -> int:
        return max(info.delay * 10, self.min_delay_ms)

    def decode_all(self) -> DecodedAnimation:
        frames: List[AnimationFrame] = []
        while not self.done:
            frames.append(self.step())
        if not frames:
            raise DecodeError("Animation has no frames")
        logger.debug(
            "Decoded %d frames at %dx%d", len(frames), self.source.width, self.source.height
        )
        return DecodedAnimation(
            width=self.source.width,
            height=self.source.height,
            frames=frames,
            loop_count=self.source.loop_count,
        )


def decode_gif(data: bytes, min_delay_ms: int = MIN_FRAME_DELAY_MS) -> DecodedAnimation:
    """Decode GIF bytes into composited frames."""

    return AnimationDecoder(PillowFrameSource(data), min_delay_ms).decode_all()
