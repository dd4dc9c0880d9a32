"""Configuration schema and loading utilities."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PresetConfig:
    """Quality/speed preset for export."""

    name: str
    gif_quality: int
    compose_size: int


@dataclass(frozen=True)
class CacheConfig:
    render_capacity: int = 300


@dataclass(frozen=True)
class LoaderConfig:
    max_concurrency: int = 6
    max_cache_size: int = 500


@dataclass(frozen=True)
class ExportConfig:
    """Output surface and GIF settings."""

    size: int = 512
    compose_size: int = 1024
    gif_quality: int = 10
    min_frame_delay_ms: int = 20


@dataclass(frozen=True)
class Config:
    """Top-level configuration for the sprite renderer."""

    preset: PresetConfig
    cache: CacheConfig = field(default_factory=CacheConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    sprite_data: Optional[Path] = None
    cosmetics: Optional[Path] = None
    asset_base_url: str = ""
    game_version: Optional[str] = None
    slot_count: int = 20
    log_level: str = "INFO"


_PRESETS: Dict[str, PresetConfig] = {
    "fast": PresetConfig(name="fast", gif_quality=20, compose_size=512),
    "balanced": PresetConfig(name="balanced", gif_quality=10, compose_size=1024),
    "high_quality": PresetConfig(name="high_quality", gif_quality=1, compose_size=1024),
}


def preset_config(name: str) -> PresetConfig:
    """Return a preset configuration by name."""

    key = name.lower()
    if key not in _PRESETS:
        raise ValueError(f"Unknown preset '{name}'. Available: {', '.join(_PRESETS)}")
    return _PRESETS[key]


def _merge_dict(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overrides into base without mutating either input."""

    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_dict(merged[key], value)
        else:
            merged[key] = value
    return merged


def _positive(name: str, value: Any) -> int:
    number = int(value)
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number


def load_config(path: Optional[Path] = None, preset_name: str = "balanced") -> Config:
    """Load configuration from JSON and apply preset defaults.

    Values in the file win over the preset; the preset only fills in export
    quality and compose size the file leaves out.
    """

    preset = preset_config(preset_name)
    base = {
        "preset": preset.name,
        "cache": {"render_capacity": 300},
        "loader": {"max_concurrency": 6, "max_cache_size": 500},
        "export": {
            "size": 512,
            "compose_size": preset.compose_size,
            "gif_quality": preset.gif_quality,
            "min_frame_delay_ms": 20,
        },
        "sprite_data": None,
        "cosmetics": None,
        "asset_base_url": "",
        "game_version": None,
        "slot_count": 20,
        "log_level": "INFO",
    }

    if path:
        raw = json.loads(Path(path).read_text())
        if "preset" in raw and raw["preset"] != preset.name:
            preset = preset_config(raw["preset"])
            base["export"]["compose_size"] = preset.compose_size
            base["export"]["gif_quality"] = preset.gif_quality
        merged = _merge_dict(base, raw)
    else:
        merged = base

    cache = merged["cache"]
    loader = merged["loader"]
    export = merged["export"]
    quality = _positive("export.gif_quality", export["gif_quality"])

    return Config(
        preset=preset,
        cache=CacheConfig(render_capacity=_positive("cache.render_capacity", cache["render_capacity"])),
        loader=LoaderConfig(
            max_concurrency=_positive("loader.max_concurrency", loader["max_concurrency"]),
            max_cache_size=_positive("loader.max_cache_size", loader["max_cache_size"]),
        ),
        export=ExportConfig(
            size=_positive("export.size", export["size"]),
            compose_size=_positive("export.compose_size", export["compose_size"]),
            gif_quality=quality,
            min_frame_delay_ms=int(export["min_frame_delay_ms"]),
        ),
        sprite_data=Path(merged["sprite_data"]) if merged.get("sprite_data") else None,
        cosmetics=Path(merged["cosmetics"]) if merged.get("cosmetics") else None,
        asset_base_url=str(merged.get("asset_base_url") or "").rstrip("/"),
        game_version=merged.get("game_version"),
        slot_count=_positive("slot_count", merged["slot_count"]),
        log_level=str(merged.get("log_level", "INFO")),
    )
