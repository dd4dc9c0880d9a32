"""Mutation definitions and the tint pipeline."""

from sprite_mutator.mutations.defs import (
    MUTATION_META,
    MUTATION_RENDER_ORDER,
    MUTATIONS,
    resolve_active_mutations,
)
from sprite_mutator.mutations.engine import apply_mutations, build_pipeline

__all__ = [
    "MUTATIONS",
    "MUTATION_META",
    "MUTATION_RENDER_ORDER",
    "apply_mutations",
    "build_pipeline",
    "resolve_active_mutations",
]
