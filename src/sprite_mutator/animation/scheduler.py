"""Frame-clock driven playback of decoded animation frames."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Callable, List, Optional, Protocol

from sprite_mutator.data import AnimationFrame

logger = logging.getLogger(__name__)

FrameCallback = Callable[[AnimationFrame, int], None]


class PlaybackState(enum.Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class FrameClock(Protocol):
    """Millisecond clock that can call back once per display refresh."""

    def now(self) -> float:
        ...

    def request(self, callback: Callable[[], None]) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...


class AsyncioFrameClock:
    """Refresh callbacks on the running event loop at a fixed rate."""

    def __init__(self, fps: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.interval = 1.0 / fps
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def request(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.interval, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class FrameScheduler:
    """Advances through frames as their display durations elapse."""

    def __init__(self, clock: FrameClock) -> None:
        self.clock = clock
        self._frames: List[AnimationFrame] = []
        self._index = 0
        self._state = PlaybackState.STOPPED
        self._handle: Any = None
        self._last_advance = 0.0
        self._callback: Optional[FrameCallback] = None
        self._closed = False

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def current_frame_index(self) -> int:
        return self._index

    def set_frames(self, frames: List[AnimationFrame]) -> None:
        self.stop()
        self._frames = list(frames)
        self._index = 0

    def set_callback(self, callback: Optional[FrameCallback]) -> None:
        self._callback = callback

    def play(self) -> None:
        if self._closed or self.is_playing or not self._frames:
            return
        self._state = PlaybackState.PLAYING
        self._last_advance = self.clock.now()
        self._tick()

    def pause(self) -> None:
        if self._handle is not None:
            self.clock.cancel(self._handle)
            self._handle = None
        if self._state is PlaybackState.PLAYING:
            self._state = PlaybackState.PAUSED

    def stop(self) -> None:
        self.pause()
        self._state = PlaybackState.STOPPED
        self._index = 0

    def seek(self, index: int) -> None:
        """Jump to ``index`` (clamped) and report it immediately."""

        if not self._frames:
            self._index = 0
            return
        self._index = max(0, min(index, len(self._frames) - 1))
        self._emit()

    def close(self) -> None:
        self.stop()
        self._callback = None
        self._closed = True

    def _emit(self) -> None:
        if self._callback is not None:
            self._callback(self._frames[self._index], self._index)

    def _tick(self) -> None:
        self._handle = None
        if not self.is_playing or not self._frames:
            return
        now = self.clock.now()
        if now - self._last_advance >= self._frames[self._index].duration_ms:
            self._last_advance = now
            self._index = (self._index + 1) % len(self._frames)
            self._emit()
        if self.is_playing:
            self._handle = self.clock.request(self._tick)
