"""
Joint availability across several tutors.

Available slots from many tutors are lined up by start instant so a student
can see, hour by hour, which tutors are free.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pytz

from ..core.timezone_utils import get_timezone, local_date
from .types import Slot


@dataclass(frozen=True)
class JointSlotTutor:
    owner_id: str
    slot_id: str
    end: datetime
    owner_contact: Optional[str] = None
    subject: Optional[str] = None


@dataclass(frozen=True)
class JointSlot:
    start: datetime
    tutors: Tuple[JointSlotTutor, ...]

    @property
    def tutor_count(self) -> int:
        return len({tutor.owner_id for tutor in self.tutors})


@dataclass(frozen=True)
class AvailabilityStats:
    total_tutors: int
    tutors_with_slots: int
    total_slots: int
    average_slots_per_tutor: int


@dataclass(frozen=True)
class JointAvailability:
    slots_by_date: Dict[date, List[JointSlot]]
    stats: AvailabilityStats


def build_joint_slots(slots: Iterable[Slot], min_tutors: int = 1) -> List[JointSlot]:
    """
    Group slots that start at the same instant, earliest first.

    Args:
        slots: Available slots of any number of tutors
        min_tutors: Drop instants offered by fewer distinct tutors than this
    """
    by_start: Dict[datetime, List[Slot]] = {}
    for slot in slots:
        by_start.setdefault(slot.start, []).append(slot)

    joint: List[JointSlot] = []
    for start in sorted(by_start):
        members = sorted(by_start[start], key=lambda s: (s.owner_id, s.window_id, s.ordinal))
        joint_slot = JointSlot(
            start=start,
            tutors=tuple(
                JointSlotTutor(
                    owner_id=s.owner_id,
                    slot_id=s.id,
                    end=s.end,
                    owner_contact=s.owner_contact,
                    subject=s.subject,
                )
                for s in members
            ),
        )
        if joint_slot.tutor_count >= min_tutors:
            joint.append(joint_slot)
    return joint


def group_joint_slots_by_date(
    joint_slots: Iterable[JointSlot],
    tz: Optional[pytz.BaseTzInfo] = None,
) -> Dict[date, List[JointSlot]]:
    target_tz = tz or get_timezone()
    grouped: Dict[date, List[JointSlot]] = {}
    for joint_slot in sorted(joint_slots, key=lambda j: j.start):
        grouped.setdefault(local_date(joint_slot.start, target_tz), []).append(joint_slot)
    return grouped


def availability_stats(slots_by_owner: Mapping[str, Sequence[Slot]]) -> AvailabilityStats:
    total_tutors = len(slots_by_owner)
    total_slots = sum(len(slots) for slots in slots_by_owner.values())
    return AvailabilityStats(
        total_tutors=total_tutors,
        tutors_with_slots=sum(1 for slots in slots_by_owner.values() if slots),
        total_slots=total_slots,
        average_slots_per_tutor=round(total_slots / total_tutors) if total_tutors else 0,
    )
