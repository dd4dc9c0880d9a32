"""Render diagnostics."""

from sprite_mutator.diagnostics.tracker import RenderStats, Timer

__all__ = ["RenderStats", "Timer"]
