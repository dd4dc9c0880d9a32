"""LRU cache of rendered slot surfaces keyed by an input fingerprint."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional

from sprite_mutator.compositor.surface import Surface

logger = logging.getLogger(__name__)

MAX_ENTRIES = 300


@dataclass
class CacheEntry:
    key: str
    surface: Surface
    last_used: float
    sequence: int


class RenderCache:
    """Fixed-capacity cache; the least recently used entry goes first."""

    def __init__(self, capacity: int = MAX_ENTRIES, clock: Callable[[], float] = time.monotonic) -> None:
        if capacity < 1:
            raise ValueError("Render cache capacity must be at least 1")
        self.capacity = capacity
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._sequence = itertools.count()

    @staticmethod
    def make_key(
        sprite_url: str,
        mutations: Iterable[str],
        icons: bool,
        overlays: bool,
        scale: float,
        rotation: float,
        tint_color: str,
        tint_opacity: float,
        frame_index: int = -1,
        cosmetic_layers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Deterministic fingerprint of every input that changes pixels.

        Mutations are order independent.
        """

        key = (
            f"{sprite_url}|{','.join(sorted(mutations))}|{icons}|{overlays}|{scale}|{rotation}"
            f"|{tint_color}:{tint_opacity}|f{frame_index}"
        )
        if cosmetic_layers:
            layers = ",".join(f"{cat}={item}" for cat, item in sorted(cosmetic_layers.items()))
            key += f"|c{layers}"
        return key

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Surface]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        entry.last_used = self._clock()
        entry.sequence = next(self._sequence)
        return entry.surface

    def set(self, key: str, surface: Surface) -> None:
        previous = self._entries.get(key)
        if previous is not None:
            if previous.surface is not surface:
                previous.surface.release()
        elif len(self._entries) >= self.capacity:
            self._evict_lru()
        self._entries[key] = CacheEntry(key, surface, self._clock(), next(self._sequence))

    def clear(self) -> None:
        for entry in self._entries.values():
            entry.surface.release()
        self._entries.clear()

    def _evict_lru(self) -> None:
        oldest: Optional[CacheEntry] = None
        for entry in self._entries.values():
            if oldest is None or (entry.last_used, entry.sequence) < (oldest.last_used, oldest.sequence):
                oldest = entry
        if oldest is None:
            return
        oldest.surface.release()
        del self._entries[oldest.key]
        logger.debug("Render cache evicted %s", oldest.key)
