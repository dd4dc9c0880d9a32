"""
Tests for sprite metadata and the asynchronous loader.

Tests cover:
- Catalog indexes, URL building, anchors, cosmetics, rebuild
- Loader coalescing, priority ordering, LRU cache and failures
"""

import asyncio
import json

import pytest

from sprite_mutator.assets import SpriteCatalog, SpriteLoader, extract_version
from sprite_mutator.errors import SpriteLoadError
from sprite_mutator.io.images import encode_png

from helpers import solid_surface


SPRITE_DATA = {
    "categories": [
        {
            "cat": "plants",
            "items": [
                {
                    "type": "frame",
                    "id": "sprite/plant/Carrot",
                    "url": "https://cdn.example/version/abc123/assets/Carrot.png",
                    "anchor": {"x": 0.4, "y": 0.8},
                },
                {"type": "frame", "id": "sprite/tall-plant/Bamboo", "url": "bamboo.png"},
                {"type": "animation", "id": "sprite/anim/Sparkle"},
            ],
        }
    ]
}


# =============================================================================
# Catalog
# =============================================================================


class TestSpriteCatalog:
    def test_sprite_ids_include_every_item(self):
        catalog = SpriteCatalog(SPRITE_DATA)
        assert catalog.sprite_ids() == frozenset(
            {"sprite/plant/Carrot", "sprite/tall-plant/Bamboo", "sprite/anim/Sparkle"}
        )

    def test_url_without_base_is_the_item_url(self):
        catalog = SpriteCatalog(SPRITE_DATA)
        assert catalog.find_sprite_url("sprite/tall-plant/Bamboo") == "bamboo.png"
        assert catalog.find_sprite_url("sprite/anim/Sparkle") is None
        assert catalog.find_sprite_url("sprite/plant/Nope") is None

    def test_url_with_base_keeps_version(self):
        catalog = SpriteCatalog(SPRITE_DATA, asset_base_url="https://game.example/", game_version="fff")
        assert (
            catalog.find_sprite_url("sprite/plant/Carrot")
            == "https://game.example/assets/sprites/plants/Carrot.png?v=abc123"
        )
        assert (
            catalog.find_sprite_url("sprite/tall-plant/Bamboo")
            == "https://game.example/assets/sprites/plants/Bamboo.png?v=fff"
        )

    def test_extract_version(self):
        assert extract_version("https://x/version/deadbeef/a.png") == "deadbeef"
        assert extract_version("a.png?v=123abc") == "123abc"
        assert extract_version("a.png") is None

    def test_anchors(self):
        catalog = SpriteCatalog(SPRITE_DATA)
        assert catalog.sprite_anchor("sprite/plant/Carrot") == (0.4, 0.8)
        assert catalog.sprite_anchor("sprite/tall-plant/Bamboo") == (0.519573, 0.964063)
        assert catalog.sprite_anchor("sprite/plant/Unknown") == (0.5, 0.5)
        assert catalog.icon_anchor("sprite/tall-plant/Bamboo") == (0.5, 0.5)

    def test_cosmetic_url(self):
        catalog = SpriteCatalog(cosmetics={"categories": [{"cat": "Top", "items": [{"id": "hat", "url": "hat.png"}]}]})
        assert catalog.cosmetic_url("Top", "hat") == "hat.png"
        assert catalog.cosmetic_url("Top", "cap") is None
        assert catalog.cosmetic_url("Mid", "hat") is None

    def test_rebuild_replaces_indexes(self):
        catalog = SpriteCatalog(SPRITE_DATA)
        assert "sprite/plant/Carrot" in catalog.sprite_ids()
        catalog.rebuild({"categories": [{"cat": "pets", "items": [{"type": "frame", "id": "sprite/pet/Bee", "url": "bee.png"}]}]})
        assert catalog.sprite_ids() == frozenset({"sprite/pet/Bee"})
        assert catalog.find_sprite_url("sprite/plant/Carrot") is None

    def test_from_files(self, tmp_path):
        path = tmp_path / "sprites.json"
        path.write_text(json.dumps(SPRITE_DATA))
        catalog = SpriteCatalog.from_files(path)
        assert "sprite/plant/Carrot" in catalog.sprite_ids()


# =============================================================================
# Loader
# =============================================================================


PNG = encode_png(solid_surface(3, 2))


class TestSpriteLoader:
    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_fetch(self):
        calls = []

        async def fetcher(url):
            calls.append(url)
            await asyncio.sleep(0.01)
            return PNG

        loader = SpriteLoader(fetcher=fetcher)
        first, second = await asyncio.gather(loader.load("a.png"), loader.load("a.png"))
        assert first is second
        assert calls == ["a.png"]
        assert first.size == (3, 2)

    @pytest.mark.asyncio
    async def test_cached_surface_is_returned_without_fetch(self):
        calls = []

        async def fetcher(url):
            calls.append(url)
            return PNG

        loader = SpriteLoader(fetcher=fetcher)
        await loader.load("a.png")
        await loader.load("a.png")
        assert calls == ["a.png"]
        assert loader.get_cached("a.png") is not None

    @pytest.mark.asyncio
    async def test_higher_priority_runs_first(self):
        order = []
        gate = asyncio.Event()

        async def fetcher(url):
            order.append(url)
            if url == "first.png":
                await gate.wait()
            return PNG

        loader = SpriteLoader(max_concurrency=1, fetcher=fetcher)
        first = asyncio.ensure_future(loader.load("first.png"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        low = asyncio.ensure_future(loader.load("low.png", priority=0))
        high = asyncio.ensure_future(loader.load("high.png", priority=5))
        await asyncio.sleep(0)
        assert loader.queued_count == 2
        assert loader.active_count == 1
        gate.set()
        await asyncio.gather(first, low, high)
        assert order == ["first.png", "high.png", "low.png"]

    @pytest.mark.asyncio
    async def test_lru_evicts_least_recently_used(self):
        async def fetcher(url):
            return PNG

        loader = SpriteLoader(max_cache_size=2, fetcher=fetcher)
        await loader.load("a.png")
        await loader.load("b.png")
        await loader.load("a.png")
        await loader.load("c.png")
        assert loader.get_cached("b.png") is None
        assert loader.get_cached("a.png") is not None
        assert loader.get_cached("c.png") is not None

    @pytest.mark.asyncio
    async def test_fetch_failure_raises_load_error(self):
        async def fetcher(url):
            raise OSError("connection refused")

        loader = SpriteLoader(fetcher=fetcher)
        with pytest.raises(SpriteLoadError) as info:
            await loader.load("down.png")
        assert info.value.url == "down.png"
        assert loader.active_count == 0

    @pytest.mark.asyncio
    async def test_undecodable_bytes_raise_load_error(self):
        async def fetcher(url):
            return b"not an image"

        loader = SpriteLoader(fetcher=fetcher)
        with pytest.raises(SpriteLoadError, match="decode failed"):
            await loader.load("bad.png")

    @pytest.mark.asyncio
    async def test_local_files_are_read(self, tmp_path):
        path = tmp_path / "sprite.png"
        path.write_bytes(PNG)
        loader = SpriteLoader()
        surface = await loader.load(str(path))
        assert surface.size == (3, 2)
        await loader.close()

    @pytest.mark.asyncio
    async def test_missing_local_file_raises_load_error(self, tmp_path):
        loader = SpriteLoader()
        with pytest.raises(SpriteLoadError):
            await loader.load(str(tmp_path / "missing.png"))

    @pytest.mark.asyncio
    async def test_preload_swallows_failures(self):
        async def fetcher(url):
            if url == "bad.png":
                raise OSError("nope")
            return PNG

        loader = SpriteLoader(fetcher=fetcher)
        loader.preload(["good.png", "bad.png"])
        for _ in range(5):
            await asyncio.sleep(0)
        assert loader.get_cached("good.png") is not None
        assert loader.get_cached("bad.png") is None

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError):
            SpriteLoader(max_concurrency=0)
