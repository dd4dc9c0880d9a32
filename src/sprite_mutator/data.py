"""Core data structures used throughout the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sprite_mutator.compositor.surface import Surface


@dataclass(frozen=True)
class MutationDef:
    """Colour definition for one mutation.

    Non-masked definitions are flat source-atop tints. Masked definitions
    paint a gradient clipped to the sprite silhouette and blend it with
    ``op``.
    """

    name: str
    op: str
    colors: Tuple[str, ...]
    alpha: Optional[float] = None
    angle: Optional[float] = None
    angle_tall: Optional[float] = None
    masked: bool = False

    def __post_init__(self) -> None:
        if not self.colors:
            raise ValueError(f"Mutation '{self.name}' needs at least one colour.")


@dataclass(frozen=True)
class MutationMeta:
    """Non-colour rendering flags for a mutation (icons and overlays)."""

    has_overlay: bool = False
    overlay_key: Optional[str] = None
    tall_overlay_key: Optional[str] = None
    icon_key: Optional[str] = None
    tall_plant_icon_override: Optional[str] = None
    floating_icon: bool = False
    exclusive: bool = False


@dataclass
class CustomTint:
    color: str = "#ffffff"
    opacity: float = 0.0


@dataclass
class SlotOptions:
    icons: bool = True
    overlays: bool = True


@dataclass
class AnimationFrame:
    """One composited frame of an animated source."""

    surface: Surface
    duration_ms: int


@dataclass
class DecodedAnimation:
    width: int
    height: int
    frames: List[AnimationFrame]
    loop_count: int = 0


@dataclass(frozen=True)
class FrameInfo:
    """Per-frame header of an animated source. ``delay`` is in 1/100 s."""

    x: int
    y: int
    width: int
    height: int
    delay: int
    disposal: int = 0


@dataclass(frozen=True)
class IconLayout:
    """Where mutation icons sit relative to a sprite."""

    width: int
    height: int
    anchor_x: float
    anchor_y: float
    offset: Tuple[float, float]
    icon_scale: float


@dataclass
class DrawOp:
    """A decoration waiting to be drawn around a sprite at depth ``z``."""

    image: Surface
    x: float
    y: float
    width: float
    height: float
    z: int


SLOT_TYPES = ("sprite", "custom", "cosmetic")


@dataclass
class Slot:
    """One layer of the scene."""

    id: str
    type: str = "sprite"
    sprite_key: str = ""
    sprite_url: str = ""
    mutations: List[str] = field(default_factory=list)
    options: SlotOptions = field(default_factory=SlotOptions)
    custom_tint: CustomTint = field(default_factory=CustomTint)
    position: Tuple[float, float] = (0.0, 0.0)
    scale: float = 1.0
    rotation: float = 0.0
    visible: bool = True
    locked: bool = False
    cosmetic_layers: Dict[str, str] = field(default_factory=dict)
    frames: List[AnimationFrame] = field(default_factory=list)
    current_frame: int = 0

    @property
    def is_animated(self) -> bool:
        return bool(self.frames)

    @property
    def is_empty(self) -> bool:
        return not self.sprite_url

    @classmethod
    def from_dict(cls, slot_id: str, raw: Dict[str, object]) -> "Slot":
        """Build a slot from a scene document entry."""

        slot_type = str(raw.get("type", "sprite"))
        if slot_type not in SLOT_TYPES:
            raise ValueError(f"Unknown slot type '{slot_type}'. Available: {', '.join(SLOT_TYPES)}")
        options = raw.get("options") or {}
        tint = raw.get("custom_tint") or {}
        position = raw.get("position") or (0.0, 0.0)
        if isinstance(position, dict):
            position = (position.get("x", 0.0), position.get("y", 0.0))
        return cls(
            id=slot_id,
            type=slot_type,
            sprite_key=str(raw.get("sprite_key", "")),
            sprite_url=str(raw.get("sprite_url", "")),
            mutations=[str(m) for m in raw.get("mutations", [])],  # type: ignore[union-attr]
            options=SlotOptions(
                icons=bool(options.get("icons", True)),  # type: ignore[union-attr]
                overlays=bool(options.get("overlays", True)),  # type: ignore[union-attr]
            ),
            custom_tint=CustomTint(
                color=str(tint.get("color", "#ffffff")),  # type: ignore[union-attr]
                opacity=float(tint.get("opacity", 0.0)),  # type: ignore[union-attr]
            ),
            position=(float(position[0]), float(position[1])),  # type: ignore[index]
            scale=float(raw.get("scale", 1.0)),  # type: ignore[arg-type]
            rotation=float(raw.get("rotation", 0.0)),  # type: ignore[arg-type]
            visible=bool(raw.get("visible", True)),
            locked=bool(raw.get("locked", False)),
            cosmetic_layers={str(k): str(v) for k, v in (raw.get("cosmetic_layers") or {}).items()},  # type: ignore[union-attr]
        )

    def to_dict(self) -> Dict[str, object]:
        """Serialisable view of the slot; animation frames are not included."""

        return {
            "type": self.type,
            "sprite_key": self.sprite_key,
            "sprite_url": self.sprite_url,
            "mutations": list(self.mutations),
            "options": {"icons": self.options.icons, "overlays": self.options.overlays},
            "custom_tint": {"color": self.custom_tint.color, "opacity": self.custom_tint.opacity},
            "position": {"x": self.position[0], "y": self.position[1]},
            "scale": self.scale,
            "rotation": self.rotation,
            "visible": self.visible,
            "locked": self.locked,
            "cosmetic_layers": dict(self.cosmetic_layers),
        }
