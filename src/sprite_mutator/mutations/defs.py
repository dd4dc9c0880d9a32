"""Fixed mutation vocabulary: colour definitions, metadata and render order."""

from __future__ import annotations

from typing import Dict, Iterable, List

from sprite_mutator.data import MutationDef, MutationMeta

MUTATIONS: Dict[str, MutationDef] = {
    "Gold": MutationDef("Gold", "source-atop", ("rgb(235,200,0)",), alpha=0.7),
    "Rainbow": MutationDef(
        "Rainbow",
        "color",
        ("#FF1744", "#FF9100", "#FFEA00", "#00E676", "#2979FF", "#D500F9"),
        angle=130.0,
        angle_tall=0.0,
        masked=True,
    ),
    "Wet": MutationDef("Wet", "source-atop", ("rgb(50,180,200)",), alpha=0.25),
    "Chilled": MutationDef("Chilled", "source-atop", ("rgb(100,160,210)",), alpha=0.45),
    "Frozen": MutationDef("Frozen", "source-atop", ("rgb(100,130,220)",), alpha=0.5),
    "Thunderstruck": MutationDef("Thunderstruck", "source-atop", ("transparent",), alpha=0.0),
    "Dawnlit": MutationDef("Dawnlit", "source-atop", ("rgb(209,70,231)",), alpha=0.5),
    "Ambershine": MutationDef("Ambershine", "source-atop", ("rgb(190,100,40)",), alpha=0.5),
    "Dawncharged": MutationDef("Dawncharged", "source-atop", ("rgb(140,80,200)",), alpha=0.5),
    "Ambercharged": MutationDef("Ambercharged", "source-atop", ("rgb(170,60,25)",), alpha=0.5),
}

# tall_overlay_key: texture drawn over a tall plant, clipped to its silhouette (z=3).
# tall_plant_icon_override: icon drawn behind a tall plant (z=-1).
MUTATION_META: Dict[str, MutationMeta] = {
    "Gold": MutationMeta(exclusive=True),
    "Rainbow": MutationMeta(exclusive=True),
    "Wet": MutationMeta(
        has_overlay=True,
        overlay_key="sprite/mutation/Puddle",
        tall_overlay_key="sprite/mutation-overlay/WetTallPlant",
        icon_key="sprite/mutation/Wet",
        tall_plant_icon_override="sprite/mutation/Puddle",
    ),
    "Chilled": MutationMeta(
        has_overlay=True,
        overlay_key="sprite/mutation/Chilled",
        tall_overlay_key="sprite/mutation-overlay/ChilledTallPlant",
        icon_key="sprite/mutation/Chilled",
    ),
    "Frozen": MutationMeta(
        has_overlay=True,
        overlay_key="sprite/mutation/Frozen",
        tall_overlay_key="sprite/mutation-overlay/FrozenTallPlant",
        icon_key="sprite/mutation/Frozen",
    ),
    "Thunderstruck": MutationMeta(
        has_overlay=True,
        overlay_key="sprite/mutation/Thunderstruck",
        tall_overlay_key="sprite/mutation-overlay/ThunderstruckTallPlant",
        icon_key="sprite/mutation/Thunderstruck",
        tall_plant_icon_override="sprite/mutation/ThunderstruckGround",
    ),
    "Dawnlit": MutationMeta(icon_key="sprite/mutation/Dawnlit", floating_icon=True),
    "Ambershine": MutationMeta(icon_key="sprite/mutation/Amberlit", floating_icon=True),
    "Dawncharged": MutationMeta(icon_key="sprite/mutation/Dawncharged", floating_icon=True),
    "Ambercharged": MutationMeta(icon_key="sprite/mutation/Ambercharged", floating_icon=True),
}

# Subtle weather tints first, dominant Gold/Rainbow last.
MUTATION_RENDER_ORDER: Dict[str, int] = {
    "Wet": 0,
    "Chilled": 1,
    "Frozen": 2,
    "Thunderstruck": 3,
    "Dawnlit": 4,
    "Ambershine": 5,
    "Dawncharged": 6,
    "Ambercharged": 7,
    "Gold": 8,
    "Rainbow": 9,
}
UNKNOWN_RENDER_ORDER = 50


def resolve_active_mutations(selected: Iterable[str]) -> List[str]:
    """Order selected mutations for rendering.

    Every selected mutation is applied; exclusivity flags are informational
    only. Unknown ids follow the known ones in their original order.
    """

    return sorted(selected, key=lambda name: MUTATION_RENDER_ORDER.get(name, UNKNOWN_RENDER_ORDER))


def custom_tint_def(color: str, opacity: float) -> MutationDef:
    """Synthetic masked step for the user's custom tint."""

    return MutationDef("Custom", "source-atop", (color,), alpha=opacity, masked=True)
