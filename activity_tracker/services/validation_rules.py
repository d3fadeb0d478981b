"""Write-time rules for activities within a single user-day.

Every check is a pure function over the candidate and a snapshot of the
day's existing activities. A failing check raises ``ActivityRuleError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

from activity_tracker.errors import ActivityErrorKind, ActivityRuleError
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.time_utils import calculate_duration, time_to_minutes


class TimedActivity(Protocol):
    id: str
    start_time: str
    end_time: str
    activity_type: str


def _without(activities: Iterable[TimedActivity], exclude_id: str | None) -> list[TimedActivity]:
    if exclude_id is None:
        return list(activities)
    return [activity for activity in activities if activity.id != exclude_id]


def sort_by_start(activities: Iterable[TimedActivity]) -> list[TimedActivity]:
    return sorted(activities, key=lambda activity: time_to_minutes(activity.start_time))


def find_overlap(
    start_time: str,
    end_time: str,
    existing: Iterable[TimedActivity],
    *,
    exclude_id: str | None = None,
) -> TimedActivity | None:
    new_start = time_to_minutes(start_time)
    new_end = time_to_minutes(end_time)
    for activity in _without(existing, exclude_id):
        # Half-open intervals: touching endpoints do not overlap.
        if new_start < time_to_minutes(activity.end_time) and new_end > time_to_minutes(activity.start_time):
            return activity
    return None


def check_time_overlap(
    start_time: str,
    end_time: str,
    existing: Iterable[TimedActivity],
    *,
    exclude_id: str | None = None,
) -> None:
    if time_to_minutes(start_time) >= time_to_minutes(end_time):
        raise ActivityRuleError(
            ActivityErrorKind.INVALID_RANGE,
            "End time must be after start time",
        )

    conflict = find_overlap(start_time, end_time, existing, exclude_id=exclude_id)
    if conflict is not None:
        raise ActivityRuleError(
            ActivityErrorKind.TIME_OVERLAP,
            f"Activity overlaps with {conflict.start_time}-{conflict.end_time}",
            conflicting_activity={
                "id": conflict.id,
                "startTime": conflict.start_time,
                "endTime": conflict.end_time,
            },
        )


def expected_start_time(existing: Iterable[TimedActivity], *, exclude_id: str | None = None) -> str | None:
    """End of the latest activity of the day by start time, None on an empty day."""
    ordered = sort_by_start(_without(existing, exclude_id))
    if not ordered:
        return None
    return ordered[-1].end_time


def check_continuity(
    start_time: str,
    existing: Iterable[TimedActivity],
    config: ActivityConfig,
    *,
    exclude_id: str | None = None,
) -> None:
    if not config.strict_continuity:
        return

    expected = expected_start_time(existing, exclude_id=exclude_id)
    if expected is None or start_time == expected:
        return

    raise ActivityRuleError(
        ActivityErrorKind.NON_CONTIGUOUS,
        f"Activity must start at {expected} (end of the previous activity)",
        expected_start_time=expected,
        provided_start_time=start_time,
    )


def validate_activity_type(activity_type: str | None, custom_type: str | None, config: ActivityConfig) -> None:
    allowed = list(config.activity_types)
    if not activity_type or activity_type not in config.activity_types:
        raise ActivityRuleError(
            ActivityErrorKind.INVALID_ACTIVITY_TYPE,
            f"Invalid activity type. Allowed values: {', '.join(allowed)}",
            allowed_types=allowed,
        )

    if activity_type == config.other_type and (custom_type is None or not custom_type.strip()):
        raise ActivityRuleError(
            ActivityErrorKind.MISSING_CUSTOM_TYPE,
            f'customType is required when activityType is "{config.other_type}"',
            allowed_types=allowed,
        )


def capped_minutes(activities: Iterable[TimedActivity], config: ActivityConfig) -> int:
    return sum(
        calculate_duration(activity.start_time, activity.end_time)
        for activity in activities
        if activity.activity_type != config.break_type
    )


def check_daily_limit(
    activity_type: str,
    start_time: str,
    end_time: str,
    existing: Sequence[TimedActivity],
    config: ActivityConfig,
    *,
    exclude_id: str | None = None,
) -> None:
    if activity_type == config.break_type:
        return

    total = capped_minutes(_without(existing, exclude_id), config) + calculate_duration(start_time, end_time)
    if total > config.daily_max_minutes:
        hours = config.daily_max_minutes / 60
        raise ActivityRuleError(
            ActivityErrorKind.DAILY_LIMIT_EXCEEDED,
            f"Cumulative hours cannot exceed {hours:g} hours",
        )
