"""Flask web surface for rendering scenes."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional

from flask import Flask, jsonify, request, send_file

from sprite_mutator.config import Config
from sprite_mutator.engine import Engine
from sprite_mutator.errors import DecodeError, EncoderError, SpriteLoadError

logger = logging.getLogger(__name__)


class RenderWorker:
    """Serialises renders against one engine; the output surface is not shared safely."""

    def __init__(self, engine: Engine) -> None:
        self.lock = threading.Lock()
        self.engine = engine
        self.last_error: Optional[str] = None

    def run(self, scene: Dict[str, Any], job: Callable[[], Awaitable[bytes]]) -> bytes:
        with self.lock:
            self.engine.pool.load_scene(scene)
            try:
                return asyncio.run(self._run(job))
            except Exception as exc:
                self.last_error = str(exc)
                raise

    async def _run(self, job: Callable[[], Awaitable[bytes]]) -> bytes:
        try:
            return await job()
        finally:
            # The HTTP session belongs to this request's event loop.
            await self.engine.loader.close()


def create_app(config: Optional[Config] = None, engine: Optional[Engine] = None) -> Flask:
    app = Flask(__name__)
    worker = RenderWorker(engine or Engine(config))

    def _scene() -> Dict[str, Any]:
        scene = request.get_json(silent=True)
        if not isinstance(scene, dict):
            raise ValueError("Request body must be a scene JSON object")
        return scene

    @app.errorhandler(ValueError)
    def bad_request(exc: ValueError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(SpriteLoadError)
    def load_failed(exc: SpriteLoadError):
        return jsonify({"error": str(exc), "url": exc.url}), 502

    @app.errorhandler(EncoderError)
    @app.errorhandler(DecodeError)
    def export_failed(exc: Exception):
        return jsonify({"error": str(exc)}), 500

    @app.route("/")
    def index():
        return jsonify(
            {
                "endpoints": {
                    "POST /render": "scene JSON -> PNG",
                    "POST /export/gif": "scene JSON -> GIF",
                    "GET /status": "render counters",
                }
            }
        )

    @app.route("/render", methods=["POST"])
    def render():
        data = worker.run(_scene(), worker.engine.export_png)
        return send_file(io.BytesIO(data), mimetype="image/png", download_name="sprite.png")

    @app.route("/export/gif", methods=["POST"])
    def export_gif():
        data = worker.run(_scene(), worker.engine.export_gif)
        return send_file(io.BytesIO(data), mimetype="image/gif", download_name="sprite.gif")

    @app.route("/status")
    def status():
        with worker.lock:
            payload = {
                "stats": worker.engine.stats.snapshot(),
                "cached_renders": len(worker.engine.cache),
                "blend_operators": sorted(worker.engine.support.operators),
                "last_error": worker.last_error,
            }
        return jsonify(payload)

    return app
