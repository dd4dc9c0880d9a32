"""Apply mutation tints to a sprite surface in place.

Flat mutations (Gold, Wet, ...) fill the surface with ``source-atop`` at the
mutation's alpha, which works out to::

    result.rgb = tint * alpha + base.rgb * (1 - alpha)
    result.a   = base.a

and accumulates naturally when several are selected. Masked mutations
(Rainbow, the custom tint) paint a gradient clipped to the untouched sprite
silhouette, blend it onto a clean copy of that sprite, then lay the result
back over the accumulated surface with ``source-atop``.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sprite_mutator.compositor.blend import BlendSupport, probe_blend_support
from sprite_mutator.compositor.context import DrawContext
from sprite_mutator.compositor.gradient import LinearGradient, angle_gradient
from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import CustomTint, MutationDef
from sprite_mutator.mutations.defs import MUTATIONS, custom_tint_def, resolve_active_mutations

logger = logging.getLogger(__name__)

# Porter-Duff basics every backend implements; only blend modes are probed.
_BASE_OPERATORS = frozenset({"source-over", "source-atop", "destination-in"})


def _context(surface: Surface, support: BlendSupport) -> DrawContext:
    return DrawContext(surface, support.operators | _BASE_OPERATORS)


def fill_gradient(
    ctx: DrawContext,
    width: int,
    height: int,
    colors: Iterable[str],
    angle: Optional[float],
    full_span: bool,
) -> None:
    """Fill the whole context with the mutation gradient (flat for one colour)."""

    cols = list(colors) or ["#fff"]
    if angle is not None:
        gradient = angle_gradient(width, height, angle, full_span)
    else:
        gradient = LinearGradient(0.0, 0.0, 0.0, float(height))
    if len(cols) == 1:
        gradient.add_color_stop(0.0, cols[0])
        gradient.add_color_stop(1.0, cols[0])
    else:
        for index, color in enumerate(cols):
            gradient.add_color_stop(index / (len(cols) - 1), color)
    ctx.fill_rect(0, 0, width, height, gradient)


def apply_masked_filter(
    ctx: DrawContext,
    original: Surface,
    mutation: MutationDef,
    is_tall: bool,
    support: BlendSupport,
) -> None:
    """Blend a gradient clipped to ``original``'s alpha onto ``ctx``."""

    angle = mutation.angle
    if is_tall and mutation.angle_tall is not None:
        angle = mutation.angle_tall
    full_span = is_tall and angle is not None
    width, height = original.width, original.height
    blend_op = support.pick(mutation.op)

    mask = Surface.blank(width, height)
    mask_ctx = _context(mask, support)
    mask_ctx.image_smoothing = False
    fill_gradient(mask_ctx, width, height, mutation.colors, angle, full_span)
    mask_ctx.global_composite_operation = "destination-in"
    mask_ctx.draw_image(original, 0, 0)

    # Luminosity comes from the clean base, never from earlier tints.
    blended = original.copy()
    blend_ctx = _context(blended, support)
    blend_ctx.image_smoothing = False
    blend_ctx.save()
    blend_ctx.global_composite_operation = blend_op
    if mutation.alpha is not None:
        blend_ctx.global_alpha = mutation.alpha
    blend_ctx.draw_image(mask, 0, 0)
    blend_ctx.restore()

    ctx.save()
    ctx.global_composite_operation = "source-atop"
    ctx.draw_image(blended, 0, 0)
    ctx.restore()


def apply_flat_tint(ctx: DrawContext, mutation: MutationDef, width: int, height: int) -> None:
    ctx.save()
    ctx.global_composite_operation = "source-atop"
    if mutation.alpha is not None:
        ctx.global_alpha = mutation.alpha
    ctx.fill_rect(0, 0, width, height, mutation.colors[0] or "#fff")
    ctx.restore()


def build_pipeline(selected: Iterable[str], custom_tint: Optional[CustomTint] = None) -> List[MutationDef]:
    """Resolve the ordered list of tint steps for a selection."""

    pipeline = [MUTATIONS[name] for name in resolve_active_mutations(selected) if name in MUTATIONS]
    if custom_tint is not None and custom_tint.opacity > 0:
        pipeline.append(custom_tint_def(custom_tint.color, custom_tint.opacity))
    return pipeline


def apply_mutations(
    surface: Surface,
    selected: Iterable[str],
    is_tall: bool = False,
    custom_tint: Optional[CustomTint] = None,
    support: Optional[BlendSupport] = None,
) -> None:
    """Apply every selected mutation (and the custom tint) to ``surface`` in place."""

    pipeline = build_pipeline(selected, custom_tint)
    if not pipeline:
        return
    if support is None:
        support = probe_blend_support()

    width, height = surface.width, surface.height
    ctx = _context(surface, support)
    original = surface.copy()

    for step in pipeline:
        logger.debug("Applying mutation %s (masked=%s)", step.name, step.masked)
        if step.masked:
            apply_masked_filter(ctx, original, step, is_tall, support)
        else:
            apply_flat_tint(ctx, step, width, height)
