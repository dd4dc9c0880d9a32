"""Compositing operators and blend modes on premultiplied RGBA arrays.

Every operator takes ``(src, dst)`` arrays of identical shape and returns the
new destination. Porter-Duff operators work directly on premultiplied data;
the separable and non-separable blend modes follow the W3C compositing model
(blend in straight colour space, then composite with source-over).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, Tuple

import numpy as np

CompositeOp = Callable[[np.ndarray, np.ndarray], np.ndarray]

# Operators probed at startup, in the order the runtime is asked about them.
PROBED_OPERATORS: Tuple[str, ...] = (
    "color",
    "hue",
    "saturation",
    "luminosity",
    "overlay",
    "screen",
    "lighter",
    "source-atop",
)

_FALLBACK_CHAIN: Tuple[str, ...] = ("overlay", "screen", "lighter")
_HSL_FAMILY: Dict[str, Tuple[str, ...]] = {"color": ("hue", "saturation")}
_FLAT_OVER = "source-atop"


def _unpremultiply(rgba: np.ndarray) -> np.ndarray:
    alpha = rgba[..., 3:4]
    safe_alpha = np.where(alpha <= 1e-6, 1.0, alpha)
    return np.clip(rgba[..., :3] / safe_alpha, 0.0, 1.0)


# ── Porter-Duff ──


def source_over(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    return src + dst * (1.0 - src[..., 3:4])


def source_atop(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """Draw source only where the destination exists; destination alpha is kept."""

    out = np.empty_like(dst)
    src_a = src[..., 3:4]
    dst_a = dst[..., 3:4]
    out[..., :3] = src[..., :3] * dst_a + dst[..., :3] * (1.0 - src_a)
    out[..., 3] = dst[..., 3]
    return out


def destination_in(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """Keep the destination only where the source has coverage."""

    return dst * src[..., 3:4]


def lighter(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    return np.clip(src + dst, 0.0, 1.0)


# ── Separable blend functions B(Cb, Cs) ──


def _screen(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return cb + cs - cb * cs


def _overlay(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return np.where(cb <= 0.5, 2.0 * cb * cs, _screen(2.0 * cb - 1.0, cs))


# ── Non-separable blend functions ──


def _lum(rgb: np.ndarray) -> np.ndarray:
    return 0.3 * rgb[..., 0:1] + 0.59 * rgb[..., 1:2] + 0.11 * rgb[..., 2:3]


def _clip_color(rgb: np.ndarray) -> np.ndarray:
    lum = _lum(rgb)
    low = np.min(rgb, axis=-1, keepdims=True)
    high = np.max(rgb, axis=-1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        lifted = np.where(low < 0.0, lum + (rgb - lum) * lum / (lum - low), rgb)
        clipped = np.where(high > 1.0, lum + (lifted - lum) * (1.0 - lum) / (high - lum), lifted)
    return np.clip(np.nan_to_num(clipped), 0.0, 1.0)


def _set_lum(rgb: np.ndarray, lum: np.ndarray) -> np.ndarray:
    return _clip_color(rgb + (lum - _lum(rgb)))


def _sat(rgb: np.ndarray) -> np.ndarray:
    return np.max(rgb, axis=-1, keepdims=True) - np.min(rgb, axis=-1, keepdims=True)


def _set_sat(rgb: np.ndarray, sat: np.ndarray) -> np.ndarray:
    low = np.min(rgb, axis=-1, keepdims=True)
    spread = np.max(rgb, axis=-1, keepdims=True) - low
    with np.errstate(divide="ignore", invalid="ignore"):
        scaled = np.where(spread > 1e-6, (rgb - low) * sat / spread, 0.0)
    return np.nan_to_num(scaled)


def _hue(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return _set_lum(_set_sat(cs, _sat(cb)), _lum(cb))


def _saturation(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return _set_lum(_set_sat(cb, _sat(cs)), _lum(cb))


def _color(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return _set_lum(cs, _lum(cb))


def _luminosity(cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    return _set_lum(cb, _lum(cs))


def _blend_mode(blend: Callable[[np.ndarray, np.ndarray], np.ndarray]) -> CompositeOp:
    """Wrap a blend function into a source-over compositing operator."""

    def op(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
        src_a = src[..., 3:4]
        dst_a = dst[..., 3:4]
        mixed = blend(_unpremultiply(dst), _unpremultiply(src))
        out = np.empty_like(dst)
        out[..., :3] = src[..., :3] * (1.0 - dst_a) + src_a * dst_a * mixed + dst[..., :3] * (1.0 - src_a)
        out[..., 3:4] = src_a + dst_a * (1.0 - src_a)
        return out

    return op


COMPOSITE_OPERATIONS: Dict[str, CompositeOp] = {
    "source-over": source_over,
    "source-atop": source_atop,
    "destination-in": destination_in,
    "lighter": lighter,
    "screen": _blend_mode(_screen),
    "overlay": _blend_mode(_overlay),
    "hue": _blend_mode(_hue),
    "saturation": _blend_mode(_saturation),
    "color": _blend_mode(_color),
    "luminosity": _blend_mode(_luminosity),
}


@dataclass(frozen=True)
class BlendSupport:
    """Immutable set of compositing operators a drawing backend honours."""

    operators: FrozenSet[str]

    def supports(self, op: str) -> bool:
        return op in self.operators

    def pick(self, desired: str) -> str:
        return pick_blend_op(desired, self.operators)


def pick_blend_op(desired: str, supported: Iterable[str]) -> str:
    """Resolve a requested operator to the best one the backend supports.

    Order: the operator itself, its hue/saturation relatives (for ``color``),
    then overlay, screen and lighter, finally a flat source-atop draw.
    """

    available = frozenset(supported)
    for candidate in (desired, *_HSL_FAMILY.get(desired, ()), *_FALLBACK_CHAIN):
        if candidate in available:
            return candidate
    return _FLAT_OVER


def probe_blend_support(context_factory: Callable[[], object] | None = None) -> BlendSupport:
    """Ask a drawing context which operators it actually keeps.

    Each operator is assigned to ``global_composite_operation`` and read back;
    contexts silently ignore values they do not implement.
    """

    try:
        ctx = (context_factory or _probe_context)()
        found = set()
        for op in PROBED_OPERATORS:
            ctx.global_composite_operation = op  # type: ignore[attr-defined]
            if ctx.global_composite_operation == op:  # type: ignore[attr-defined]
                found.add(op)
    except (AttributeError, TypeError, ValueError):
        return BlendSupport(frozenset())
    return BlendSupport(frozenset(found))


def _probe_context() -> object:
    from sprite_mutator.compositor.context import DrawContext
    from sprite_mutator.compositor.surface import Surface

    return DrawContext(Surface.blank(1, 1))
