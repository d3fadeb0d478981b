from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from activity_tracker.services.holidays import is_holiday, is_weekend


@dataclass(frozen=True)
class ShiftPolicy:
    id: str
    name: str
    include_weekends: bool
    include_holidays: bool
    description: str | None = None


DEFAULT_SHIFT_TYPES: tuple[ShiftPolicy, ...] = (
    ShiftPolicy(
        id="24-7",
        name="24/7",
        include_weekends=True,
        include_holidays=True,
        description="24 ore su 24, 7 giorni su 7",
    ),
    ShiftPolicy(
        id="feriali",
        name="Feriali",
        include_weekends=False,
        include_holidays=False,
        description="Solo giorni feriali",
    ),
)


def is_working_day(day: date, shift_type: ShiftPolicy | None) -> bool:
    if shift_type is None:
        return True
    if not shift_type.include_weekends and is_weekend(day):
        return False
    if not shift_type.include_holidays and is_holiday(day):
        return False
    return True


def find_shift_type(shift_types: Iterable[ShiftPolicy], key: str | None) -> ShiftPolicy | None:
    if not key:
        return None
    for shift_type in shift_types:
        if shift_type.id == key or shift_type.name == key:
            return shift_type
    return None
