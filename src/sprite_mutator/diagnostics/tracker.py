"""Render counters and timing."""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict


@dataclass
class RenderStats:
    """Counts renders, cache traffic, source loads and skipped decorations."""

    renders: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    source_loads: int = 0
    decorations_skipped: int = 0
    frames_composited: int = 0
    render_ms: float = 0.0

    def record_render(self, elapsed_s: float) -> None:
        self.renders += 1
        self.render_ms += elapsed_s * 1000.0

    def snapshot(self) -> Dict[str, float]:
        return asdict(self)

    def reset(self) -> None:
        for name, value in asdict(RenderStats()).items():
            setattr(self, name, value)

    def export(self, path: Path) -> None:
        """Write the counters to a JSON file."""

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.snapshot(), indent=2))


class Timer:
    """Simple context timer for profiling blocks."""

    def __init__(self) -> None:
        self.start = 0.0
        self.elapsed = 0.0

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.elapsed = time.perf_counter() - self.start
