from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from math import floor

from activity_tracker.services.time_utils import calculate_duration


class DayStatus(str, enum.Enum):
    MISSING = "MISSING"
    INCOMPLETE = "INCOMPLETE"
    OK = "OK"

    @property
    def label(self) -> str:
        return _DAY_LABELS[self]

    @property
    def monitoring_label(self) -> str:
        return _MONITORING_LABELS[self]


_DAY_LABELS = {
    DayStatus.MISSING: "Non inserito",
    DayStatus.INCOMPLETE: "Incompleto",
    DayStatus.OK: "OK",
}

_MONITORING_LABELS = {
    DayStatus.MISSING: "ASSENTE",
    DayStatus.INCOMPLETE: "INCOMPLETO",
    DayStatus.OK: "OK",
}


@dataclass(frozen=True)
class DailySummary:
    total_minutes: int
    total_hours: float
    required_minutes: int
    completion_percentage: int
    is_complete: bool
    is_overtime: bool
    overtime_minutes: int
    status: DayStatus


def completion_percentage(total_minutes: int, required_minutes: int) -> int:
    if required_minutes <= 0:
        return 100
    # Half-up rounding before the display clamp.
    return min(100, floor(total_minutes / required_minutes * 100 + 0.5))


def determine_day_status(
    total_minutes: int,
    required_minutes: int,
    *,
    is_required: bool = True,
    is_future: bool = False,
) -> DayStatus:
    if not is_required or is_future:
        return DayStatus.OK
    if total_minutes <= 0:
        return DayStatus.MISSING
    if total_minutes >= required_minutes or completion_percentage(total_minutes, required_minutes) == 100:
        return DayStatus.OK
    return DayStatus.INCOMPLETE


def calculate_daily_summary(
    activities: Iterable,
    required_minutes: int,
    *,
    is_required: bool = True,
    is_future: bool = False,
) -> DailySummary:
    total_minutes = sum(calculate_duration(activity.start_time, activity.end_time) for activity in activities)
    is_overtime = total_minutes > required_minutes
    return DailySummary(
        total_minutes=total_minutes,
        total_hours=round(total_minutes / 60, 2),
        required_minutes=required_minutes,
        completion_percentage=completion_percentage(total_minutes, required_minutes),
        is_complete=total_minutes >= required_minutes,
        is_overtime=is_overtime,
        overtime_minutes=total_minutes - required_minutes if is_overtime else 0,
        status=determine_day_status(
            total_minutes,
            required_minutes,
            is_required=is_required,
            is_future=is_future,
        ),
    )
