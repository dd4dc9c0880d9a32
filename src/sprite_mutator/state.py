"""Fixed-size pool of scene slots with change notification."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional

from sprite_mutator.data import Slot

logger = logging.getLogger(__name__)

MAX_SLOTS = 20

SLOT_CHANGED = "changed"
SLOT_CLEARED = "cleared"
SLOTS_REORDERED = "reordered"
SCENE_LOADED = "loaded"

Listener = Callable[[str, Optional[int]], None]

_EDITABLE = {f.name for f in dataclasses.fields(Slot)} - {"id"}


def empty_slot(index: int) -> Slot:
    return Slot(id=f"slot-{index}")


class SlotPool:
    """The scene's slots. Slots are reset, never removed."""

    def __init__(self, size: int = MAX_SLOTS) -> None:
        if size <= 0:
            raise ValueError("Slot pool size must be positive")
        self.size = size
        self.slots: List[Slot] = [empty_slot(i) for i in range(size)]
        self.active_index = 0
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self.slots)

    def __getitem__(self, index: int) -> Slot:
        return self.slots[index]

    @property
    def active(self) -> Slot:
        return self.slots[self.active_index]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, index: Optional[int]) -> None:
        for listener in list(self._listeners):
            listener(event, index)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.slots):
            raise IndexError(f"Slot index {index} out of range (0-{len(self.slots) - 1})")

    def set_active(self, index: int) -> None:
        self._check_index(index)
        self.active_index = index

    def update(self, index: int, **changes: Any) -> Slot:
        self._check_index(index)
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValueError(f"Unknown slot fields: {', '.join(sorted(unknown))}")
        slot = self.slots[index]
        for name, value in changes.items():
            setattr(slot, name, value)
        self._emit(SLOT_CHANGED, index)
        return slot

    def clear(self, index: int) -> None:
        self._check_index(index)
        self.slots[index] = empty_slot(index)
        logger.debug("Cleared slot %d", index)
        self._emit(SLOT_CLEARED, index)

    def reorder(self, from_index: int, insert_before: int) -> None:
        """Move a slot so it lands before ``insert_before`` (may equal the pool size)."""

        self._check_index(from_index)
        if not 0 <= insert_before <= len(self.slots):
            raise IndexError(f"Insert position {insert_before} out of range")
        if insert_before in (from_index, from_index + 1):
            return
        active = self.slots[self.active_index]
        moved = self.slots.pop(from_index)
        target = insert_before - 1 if insert_before > from_index else insert_before
        self.slots.insert(target, moved)
        self.active_index = self.slots.index(active)
        self._emit(SLOTS_REORDERED, None)

    def visible_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.visible and not slot.is_empty]

    def load_scene(self, document: Dict[str, Any]) -> None:
        """Replace every slot from a scene document ``{"slots": [...], "active": n}``."""

        entries = document.get("slots", [])
        if len(entries) > self.size:
            raise ValueError(f"Scene has {len(entries)} slots; the pool holds {self.size}")
        self.slots = [
            Slot.from_dict(f"slot-{i}", entries[i]) if i < len(entries) else empty_slot(i)
            for i in range(self.size)
        ]
        active = int(document.get("active", 0))
        self.active_index = active if 0 <= active < self.size else 0
        logger.info("Loaded scene with %d slots", len(entries))
        self._emit(SCENE_LOADED, None)

    def to_scene(self) -> Dict[str, Any]:
        return {"active": self.active_index, "slots": [slot.to_dict() for slot in self.slots]}
