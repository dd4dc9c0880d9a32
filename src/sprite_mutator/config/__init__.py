"""Configuration loading and presets."""

from sprite_mutator.config.schema import (
    CacheConfig,
    Config,
    ExportConfig,
    LoaderConfig,
    PresetConfig,
    load_config,
    preset_config,
)

__all__ = [
    "CacheConfig",
    "Config",
    "ExportConfig",
    "LoaderConfig",
    "PresetConfig",
    "load_config",
    "preset_config",
]
