"""Lookup structure over generated slots, rebuilt per request."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .generator import generate
from .types import Slot, SlotRef, TimeWindow


class SlotIndex:
    """
    Slots keyed by ``(window_id, ordinal)``.

    Built from the windows of the current request; it is not meant to be
    kept across requests.
    """

    def __init__(self, slots: Iterable[Slot] = ()):
        self._slots: Dict[SlotRef, Slot] = {}
        self._by_window: Dict[str, List[Slot]] = {}
        for slot in slots:
            self.add(slot)

    @classmethod
    def from_windows(cls, windows: Iterable[TimeWindow]) -> "SlotIndex":
        index = cls()
        for window in windows:
            for slot in generate(window):
                index.add(slot)
        return index

    def add(self, slot: Slot) -> None:
        ref = slot.ref
        if ref in self._slots:
            self._by_window[slot.window_id] = [
                existing for existing in self._by_window[slot.window_id] if existing.ref != ref
            ]
        self._slots[ref] = slot
        window_slots = self._by_window.setdefault(slot.window_id, [])
        window_slots.append(slot)
        window_slots.sort(key=lambda s: s.ordinal)

    def get(self, window_id: str, ordinal: int) -> Optional[Slot]:
        return self._slots.get(SlotRef(window_id, ordinal))

    def resolve(self, ref: SlotRef) -> Optional[Slot]:
        return self._slots.get(ref)

    def for_window(self, window_id: str) -> List[Slot]:
        return list(self._by_window.get(window_id, []))

    @property
    def window_ids(self) -> List[str]:
        return list(self._by_window)

    def sorted_slots(self) -> List[Slot]:
        return sorted(self._slots.values(), key=lambda s: (s.start, s.window_id, s.ordinal))

    def __contains__(self, ref: object) -> bool:
        return ref in self._slots

    def __iter__(self) -> Iterator[Slot]:
        return iter(self._slots.values())

    def __len__(self) -> int:
        return len(self._slots)
