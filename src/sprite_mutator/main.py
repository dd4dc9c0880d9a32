"""Command line entry point: render a scene document to PNG or GIF."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict

from sprite_mutator.config import load_config
from sprite_mutator.engine import Engine
from sprite_mutator.logs import configure_logging

logger = logging.getLogger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sprite mutation renderer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Render a scene to an image")
    render.add_argument("scene", type=Path, help="Scene JSON document")
    render.add_argument("--out", type=Path, required=True, help="Output path (.png or .gif)")
    render.add_argument("--sprite-data", type=Path, help="Sprite metadata JSON")
    render.add_argument("--cosmetics", type=Path, help="Cosmetics metadata JSON")
    render.add_argument("--config", type=Path, help="Optional JSON config path")
    render.add_argument(
        "--preset",
        type=str,
        default="balanced",
        choices=["fast", "balanced", "high_quality"],
        help="Quality preset",
    )
    render.add_argument("--size", type=int, help="Override output size in pixels")
    render.add_argument("--log-level", type=str, help="Logging level (DEBUG, INFO, ...)")
    render.add_argument("--stats", type=Path, help="Write render counters to this JSON file")
    return parser.parse_args()


def _attach_animations(engine: Engine, scene: Dict[str, Any], base_dir: Path) -> None:
    for index, entry in enumerate(scene.get("slots", [])):
        animation = entry.get("animation")
        if not animation:
            continue
        path = Path(animation)
        if not path.is_absolute():
            path = base_dir / path
        decoded = engine.load_animation(index, path.read_bytes())
        logger.info("Slot %d: %d animation frames from %s", index, len(decoded.frames), path)


async def _render(args: argparse.Namespace, engine: Engine) -> None:
    scene = json.loads(args.scene.read_text())
    engine.pool.load_scene(scene)
    _attach_animations(engine, scene, args.scene.parent)
    try:
        if args.out.suffix.lower() == ".gif":
            data = await engine.export_gif(
                on_progress=lambda p: logger.debug("Encoding GIF... %d%%", round(p * 100))
            )
        else:
            data = await engine.export_png()
    finally:
        await engine.close()
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_bytes(data)


def main() -> None:
    args = _parse_args()
    config = load_config(args.config, args.preset)
    if args.sprite_data or args.cosmetics:
        config = dataclasses.replace(
            config,
            sprite_data=args.sprite_data or config.sprite_data,
            cosmetics=args.cosmetics or config.cosmetics,
        )
    if args.size is not None:
        config = dataclasses.replace(config, export=dataclasses.replace(config.export, size=args.size))
    configure_logging(args.log_level or config.log_level)

    engine = Engine(config)
    asyncio.run(_render(args, engine))

    snapshot = engine.stats.snapshot()
    print(f"Wrote {args.out}")
    print(f"Renders: {snapshot['renders']} (cache hits {snapshot['cache_hits']})")
    if args.stats:
        engine.stats.export(args.stats)


if __name__ == "__main__":
    main()
