"""Shared fakes for the test suite: surfaces, loaders, frame clocks."""

from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import FrameInfo
from sprite_mutator.errors import SpriteLoadError


def solid_surface(width: int, height: int, rgba: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 1.0)) -> Surface:
    """Surface filled with one straight-alpha colour."""
    data = np.zeros((height, width, 4), dtype=np.float32)
    data[...] = rgba
    return Surface.from_straight(data)


class FakeLoader:
    """In-memory loader that counts every load call."""

    def __init__(self, surfaces: Optional[Dict[str, Surface]] = None):
        self.surfaces = dict(surfaces or {})
        self.calls: List[str] = []

    async def load(self, url: str, priority: int = 0) -> Surface:
        self.calls.append(url)
        if url not in self.surfaces:
            raise SpriteLoadError(url, "not found")
        return self.surfaces[url]

    def get_cached(self, url: str) -> Optional[Surface]:
        return self.surfaces.get(url)

    def clear_cache(self) -> None:
        pass

    async def close(self) -> None:
        pass


class ManualFrameClock:
    """Frame clock driven by the test; ``advance`` fires refresh callbacks every ``step`` ms."""

    def __init__(self):
        self.time = 0.0
        self.pending: List[Tuple[object, Callable[[], None]]] = []

    def now(self) -> float:
        return self.time

    def request(self, callback: Callable[[], None]) -> object:
        handle = object()
        self.pending.append((handle, callback))
        return handle

    def cancel(self, handle: object) -> None:
        self.pending = [item for item in self.pending if item[0] is not handle]

    def advance(self, ms: float, step: float = 10.0) -> None:
        target = self.time + ms
        while self.time < target:
            self.time = min(target, self.time + step)
            due, self.pending = self.pending, []
            for _, callback in due:
                callback()


class FakeFrameSource:
    """Frame source built from (FrameInfo, straight RGBA uint8 canvas) pairs."""

    def __init__(self, width: int, height: int, frames: List[Tuple[FrameInfo, np.ndarray]], loop_count: int = 0):
        self.width = width
        self.height = height
        self.loop_count = loop_count
        self._frames = frames

    def frame_count(self) -> int:
        return len(self._frames)

    def frame_info(self, index: int) -> FrameInfo:
        return self._frames[index][0]

    def decode_frame(self, index: int) -> np.ndarray:
        return self._frames[index][1]


def frame_pixels(width: int, height: int, rect: Tuple[int, int, int, int], color: Tuple[int, int, int, int]) -> np.ndarray:
    """Canvas-sized RGBA uint8 array with ``color`` inside ``rect`` (x, y, w, h)."""
    data = np.zeros((height, width, 4), dtype=np.uint8)
    x, y, w, h = rect
    data[y:y + h, x:x + w] = color
    return data
