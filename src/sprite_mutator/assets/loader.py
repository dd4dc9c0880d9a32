"""Asynchronous sprite loader.

Loads are queued by priority (higher first, FIFO within a priority) and run
at most ``max_concurrency`` at a time. Concurrent requests for the same URL
share one fetch, and decoded surfaces are kept in an LRU cache.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple

import aiohttp

from sprite_mutator.compositor.surface import Surface
from sprite_mutator.errors import SpriteLoadError
from sprite_mutator.io.images import decode_surface

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]

MAX_CONCURRENCY = 6
MAX_CACHE_SIZE = 500
PRELOAD_PRIORITY = -1


class SpriteLoader:
    """Bounded-concurrency, de-duplicating, caching raster loader."""

    def __init__(
        self,
        max_concurrency: int = MAX_CONCURRENCY,
        max_cache_size: int = MAX_CACHE_SIZE,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.max_cache_size = max_cache_size
        self._fetcher = fetcher
        self._cache: "OrderedDict[str, Surface]" = OrderedDict()
        self._pending: Dict[str, asyncio.Future] = {}
        self._queue: List[Tuple[int, int, str, asyncio.Future]] = []
        self._sequence = itertools.count()
        self._active = 0
        self._tasks: Set[asyncio.Task] = set()
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    async def load(self, url: str, priority: int = 0) -> Surface:
        """Return the decoded raster for ``url``; raises SpriteLoadError."""

        cached = self._cache.get(url)
        if cached is not None:
            self._cache.move_to_end(url)
            return cached

        inflight = self._pending.get(url)
        if inflight is not None:
            return await asyncio.shield(inflight)

        future = asyncio.get_running_loop().create_future()
        self._pending[url] = future
        future.add_done_callback(lambda _: self._pending.pop(url, None))
        heapq.heappush(self._queue, (-priority, next(self._sequence), url, future))
        self._process_queue()
        return await asyncio.shield(future)

    def get_cached(self, url: str) -> Optional[Surface]:
        return self._cache.get(url)

    def preload(self, urls: Iterable[str]) -> None:
        """Queue low-priority loads; failures are logged, not raised."""

        for url in urls:
            if url in self._cache or url in self._pending:
                continue
            task = asyncio.ensure_future(self.load(url, PRELOAD_PRIORITY))
            self._tasks.add(task)
            task.add_done_callback(self._finish_preload)

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _finish_preload(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Preload failed: %s", task.exception())

    def _process_queue(self) -> None:
        while self._active < self.max_concurrency and self._queue:
            _, _, url, future = heapq.heappop(self._queue)
            self._active += 1
            task = asyncio.ensure_future(self._run(url, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, url: str, future: asyncio.Future) -> None:
        try:
            surface = await self._fetch(url)
        except SpriteLoadError as exc:
            if not future.done():
                future.set_exception(exc)
        except Exception as exc:  # noqa: BLE001 - surfaced to every waiter
            if not future.done():
                future.set_exception(SpriteLoadError(url, str(exc)))
        else:
            self._store(url, surface)
            if not future.done():
                future.set_result(surface)
        finally:
            self._active -= 1
            self._process_queue()

    async def _fetch(self, url: str) -> Surface:
        logger.debug("Fetching %s", url)
        try:
            if self._fetcher is not None:
                data = await self._fetcher(url)
            elif url.startswith(("http://", "https://")):
                data = await self._fetch_http(url)
            else:
                data = await asyncio.to_thread(Path(url).read_bytes)
        except SpriteLoadError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise SpriteLoadError(url, str(exc)) from exc
        try:
            return decode_surface(data)
        except ValueError as exc:
            raise SpriteLoadError(url, "decode failed") from exc

    async def _fetch_http(self, url: str) -> bytes:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        async with self._session.get(url) as response:
            if response.status != 200:
                raise SpriteLoadError(url, f"HTTP {response.status}")
            return await response.read()

    def _store(self, url: str, surface: Surface) -> None:
        if url not in self._cache and len(self._cache) >= self.max_cache_size:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("Loader cache evicted %s", evicted)
        self._cache[url] = surface
        self._cache.move_to_end(url)
