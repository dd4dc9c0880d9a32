"""Slot rendering, render cache and export."""

from sprite_mutator.render.cache import RenderCache
from sprite_mutator.render.exporter import export_gif, export_png
from sprite_mutator.render.renderer import COSMETIC_LAYER_ORDER, SlotRenderer

__all__ = ["COSMETIC_LAYER_ORDER", "RenderCache", "SlotRenderer", "export_gif", "export_png"]
