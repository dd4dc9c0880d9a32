"""Read-only sprite and cosmetics metadata.

Both documents share one shape::

    {"categories": [{"cat": "plants", "items": [
        {"type": "frame", "id": "sprite/plant/Carrot", "url": "...",
         "anchor": {"x": 0.5, "y": 0.9}}]}]}

Lookups are served from indexes built on first use. ``invalidate()`` drops
them and ``rebuild()`` swaps in freshly loaded documents.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Tuple

from sprite_mutator.layout.icons import TALL_PLANT_ANCHORS, fallback_anchor

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

_VERSION_PATTERNS = (
    re.compile(r"[?&]v=([a-f0-9]+)", re.IGNORECASE),
    re.compile(r"/version/([a-f0-9]+)/", re.IGNORECASE),
)


def extract_version(url: str) -> Optional[str]:
    """Version hash carried by an asset URL, if any."""

    for pattern in _VERSION_PATTERNS:
        match = pattern.search(url or "")
        if match:
            return match.group(1)
    return None


def _read_document(path: Optional[Path]) -> Optional[Document]:
    if path is None:
        return None
    return json.loads(Path(path).read_text())


class SpriteCatalog:
    """Index over sprite-data and cosmetics documents."""

    def __init__(
        self,
        sprite_data: Optional[Document] = None,
        cosmetics: Optional[Document] = None,
        asset_base_url: str = "",
        game_version: Optional[str] = None,
    ) -> None:
        self._sprite_data = sprite_data
        self._cosmetics = cosmetics
        self.asset_base_url = asset_base_url.rstrip("/")
        self.game_version = game_version
        self._ids: Optional[FrozenSet[str]] = None
        self._frames: Optional[Dict[str, Tuple[str, Dict[str, Any]]]] = None

    @classmethod
    def from_files(
        cls,
        sprite_data_path: Optional[Path],
        cosmetics_path: Optional[Path] = None,
        asset_base_url: str = "",
        game_version: Optional[str] = None,
    ) -> "SpriteCatalog":
        return cls(
            sprite_data=_read_document(sprite_data_path),
            cosmetics=_read_document(cosmetics_path),
            asset_base_url=asset_base_url,
            game_version=game_version,
        )

    # ── Cache lifecycle ──

    def invalidate(self) -> None:
        self._ids = None
        self._frames = None

    def rebuild(self, sprite_data: Optional[Document] = None, cosmetics: Optional[Document] = None) -> None:
        """Replace the backing documents and rebuild the indexes."""

        if sprite_data is not None:
            self._sprite_data = sprite_data
        if cosmetics is not None:
            self._cosmetics = cosmetics
        self.invalidate()
        self._build()
        logger.info("Sprite catalog rebuilt with %d sprite ids", len(self._ids or ()))

    def _build(self) -> None:
        ids = set()
        frames: Dict[str, Tuple[str, Dict[str, Any]]] = {}
        for category in (self._sprite_data or {}).get("categories", []):
            cat_name = category.get("cat", "")
            for item in category.get("items", []):
                item_id = item.get("id")
                if not item_id:
                    continue
                ids.add(item_id)
                if item.get("type") == "frame" and item_id not in frames:
                    frames[item_id] = (cat_name, item)
        self._ids = frozenset(ids)
        self._frames = frames

    # ── Lookups ──

    def sprite_ids(self) -> FrozenSet[str]:
        if self._ids is None:
            self._build()
        return self._ids or frozenset()

    def frame(self, sprite_id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        if self._frames is None:
            self._build()
        return (self._frames or {}).get(sprite_id)

    def find_sprite_url(self, sprite_id: str) -> Optional[str]:
        """URL of a single-frame sprite PNG, or None when the id is unknown."""

        found = self.frame(sprite_id)
        if found is None:
            return None
        cat_name, item = found
        url = str(item.get("url", ""))
        if not self.asset_base_url:
            return url or None
        name = sprite_id.split("/")[-1]
        version = extract_version(url) or self.game_version or ""
        suffix = f"?v={version}" if version else ""
        return f"{self.asset_base_url}/assets/sprites/{cat_name}/{name}.png{suffix}"

    def icon_anchor(self, sprite_id: str) -> Tuple[float, float]:
        found = self.frame(sprite_id)
        anchor = (found[1].get("anchor") if found else None) or {}
        return (float(anchor.get("x", 0.5)), float(anchor.get("y", 0.5)))

    def sprite_anchor(self, sprite_id: str) -> Tuple[float, float]:
        """Anchor of a sprite: curated tall-plant table, metadata, then fallbacks."""

        if sprite_id in TALL_PLANT_ANCHORS:
            return TALL_PLANT_ANCHORS[sprite_id]
        found = self.frame(sprite_id)
        if found is not None:
            anchor = found[1].get("anchor")
            if anchor:
                return (float(anchor.get("x", 0.5)), float(anchor.get("y", 0.5)))
        return fallback_anchor(sprite_id)

    def cosmetic_url(self, category: str, cosmetic_id: str) -> Optional[str]:
        for cat in (self._cosmetics or {}).get("categories", []):
            if cat.get("cat") != category:
                continue
            for item in cat.get("items", []):
                if item.get("id") == cosmetic_id:
                    return item.get("url") or None
        return None
