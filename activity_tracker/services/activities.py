from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from activity_tracker.errors import ActivityErrorKind, ActivityRuleError
from activity_tracker.models import Activity
from activity_tracker.schemas import (
    ActivitiesRangeResponse,
    ActivityCreateRequest,
    ActivityRead,
    ActivityUpdateRequest,
    DailySummaryRead,
    DayActivitiesResponse,
)
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.activity_store import ActivityStore
from activity_tracker.services.daily_summary import DailySummary, calculate_daily_summary
from activity_tracker.settings import get_settings
from activity_tracker.services.shifts import ShiftPolicy, is_working_day
from activity_tracker.services.time_utils import (
    add_minutes_to_time,
    calculate_duration,
    parse_date,
    validate_time_step,
)
from activity_tracker.services.validation_rules import (
    check_continuity,
    check_daily_limit,
    check_time_overlap,
    expected_start_time,
    sort_by_start,
    validate_activity_type,
)

logger = logging.getLogger("activity_tracker.activities")


@lru_cache
def _local_timezone() -> ZoneInfo:
    raw_name = (get_settings().activity_timezone or "").strip() or "Europe/Rome"
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("Europe/Rome")


def local_today() -> date:
    return datetime.now(_local_timezone()).date()


def to_activity_read(activity: Activity) -> ActivityRead:
    return ActivityRead(
        id=activity.id,
        day=activity.day_date.isoformat(),
        start_time=activity.start_time,
        end_time=activity.end_time,
        activity_type=activity.activity_type,
        custom_type=activity.custom_type,
        notes=activity.notes,
        created_at=activity.created_at,
        updated_at=activity.updated_at,
        duration_minutes=calculate_duration(activity.start_time, activity.end_time),
    )


def to_summary_read(summary: DailySummary) -> DailySummaryRead:
    return DailySummaryRead(
        total_minutes=summary.total_minutes,
        total_hours=summary.total_hours,
        required_minutes=summary.required_minutes,
        completion_percentage=summary.completion_percentage,
        is_complete=summary.is_complete,
        is_overtime=summary.is_overtime,
        overtime_minutes=summary.overtime_minutes,
        status=summary.status.label,
    )


def summarize_day(
    day: date,
    activities: Iterable[Activity],
    config: ActivityConfig,
    *,
    shift_type: ShiftPolicy | None = None,
    today: date | None = None,
) -> DailySummary:
    """Daily summary shared by the day, range, calendar and monitoring views."""
    reference_day = today or local_today()
    return calculate_daily_summary(
        activities,
        config.required_minutes,
        is_required=is_working_day(day, shift_type),
        is_future=day > reference_day,
    )


def _duration_total(hours: int | None, minutes: int | None) -> int:
    total = (hours or 0) * 60 + (minutes or 0)
    if total <= 0:
        raise ActivityRuleError(ActivityErrorKind.INVALID_DURATION, "Duration must be greater than 0")
    return total


def _end_after(start_time: str, duration_minutes: int) -> str:
    end_time = add_minutes_to_time(start_time, duration_minutes)
    if end_time is None:
        raise ActivityRuleError(ActivityErrorKind.DURATION_EXCEEDS_DAY, "Duration goes past the end of the day")
    return end_time


def _explicit_times(start_time: str | None, end_time: str | None) -> tuple[str, str]:
    if not start_time or not end_time:
        raise ActivityRuleError(
            ActivityErrorKind.INCOMPLETE_TIME_RANGE,
            "Start and end time must be provided together",
        )
    validate_time_step(start_time).raise_for_error()
    validate_time_step(end_time).raise_for_error()
    return start_time, end_time


def _stored_custom_type(activity_type: str, custom_type: str | None, config: ActivityConfig) -> str | None:
    if activity_type != config.other_type:
        return None
    return custom_type.strip() if custom_type else None


def get_day_activities(
    store: ActivityStore,
    user_key: str,
    day: date,
    *,
    config: ActivityConfig,
    shift_type: ShiftPolicy | None = None,
    today: date | None = None,
) -> DayActivitiesResponse:
    activities = sort_by_start(store.find_by_date(user_key, day))
    summary = summarize_day(day, activities, config, shift_type=shift_type, today=today)
    return DayActivitiesResponse(
        day=day.isoformat(),
        activities=[to_activity_read(activity) for activity in activities],
        summary=to_summary_read(summary),
    )


def create_activity(
    store: ActivityStore,
    user_key: str,
    payload: ActivityCreateRequest,
    *,
    config: ActivityConfig,
) -> ActivityRead:
    day = parse_date(payload.day)
    validate_activity_type(payload.activity_type, payload.custom_type, config)

    with store.month_lock(user_key, day):
        existing = store.find_by_date(user_key, day)

        if payload.has_duration:
            duration = _duration_total(payload.duration_hours, payload.duration_minutes)
            start_time = expected_start_time(existing) or config.day_start
            end_time = _end_after(start_time, duration)
        else:
            start_time, end_time = _explicit_times(payload.start_time, payload.end_time)

        check_time_overlap(start_time, end_time, existing)
        check_daily_limit(payload.activity_type, start_time, end_time, existing, config)
        check_continuity(start_time, existing, config)

        activity = store.create(
            user_key,
            {
                "day_date": day,
                "start_time": start_time,
                "end_time": end_time,
                "activity_type": payload.activity_type,
                "custom_type": _stored_custom_type(payload.activity_type, payload.custom_type, config),
                "notes": payload.notes,
            },
        )

    logger.info(
        "activity_created",
        extra={
            "user_key": user_key,
            "activity_id": activity.id,
            "day": day.isoformat(),
            "start_time": start_time,
            "end_time": end_time,
        },
    )
    return to_activity_read(activity)


def update_activity(
    store: ActivityStore,
    user_key: str,
    activity_id: str,
    day: date,
    updates: ActivityUpdateRequest,
    *,
    config: ActivityConfig,
) -> ActivityRead:
    fields_set = updates.model_fields_set

    with store.month_lock(user_key, day):
        current = store.find_by_id(user_key, activity_id, day)
        if current is None:
            raise ActivityRuleError(ActivityErrorKind.NOT_FOUND, "Activity not found")

        changes: dict[str, Any] = {}
        times_changed = False

        if updates.has_duration:
            duration = _duration_total(updates.duration_hours, updates.duration_minutes)
            anchor = current.start_time
            if updates.start_time:
                validate_time_step(updates.start_time).raise_for_error()
                anchor = updates.start_time
            changes["start_time"] = anchor
            changes["end_time"] = _end_after(anchor, duration)
            times_changed = True
        elif "start_time" in fields_set or "end_time" in fields_set:
            changes["start_time"], changes["end_time"] = _explicit_times(updates.start_time, updates.end_time)
            times_changed = True

        activity_type = current.activity_type
        if "activity_type" in fields_set or "custom_type" in fields_set:
            activity_type = updates.activity_type if "activity_type" in fields_set else current.activity_type
            custom_type = updates.custom_type if "custom_type" in fields_set else current.custom_type
            validate_activity_type(activity_type, custom_type, config)
            changes["activity_type"] = activity_type
            changes["custom_type"] = _stored_custom_type(activity_type, custom_type, config)

        if "notes" in fields_set:
            changes["notes"] = updates.notes

        start_time = changes.get("start_time", current.start_time)
        end_time = changes.get("end_time", current.end_time)
        existing = store.find_by_date(user_key, current.day_date)

        # Continuity is only enforced when an activity is created.
        if times_changed:
            check_time_overlap(start_time, end_time, existing, exclude_id=current.id)
        check_daily_limit(activity_type, start_time, end_time, existing, config, exclude_id=current.id)

        updated = store.update(current, changes)

    logger.info(
        "activity_updated",
        extra={
            "user_key": user_key,
            "activity_id": updated.id,
            "day": updated.day_date.isoformat(),
            "changed_fields": sorted(changes),
        },
    )
    return to_activity_read(updated)


def delete_activity(store: ActivityStore, user_key: str, activity_id: str, day: date) -> bool:
    with store.month_lock(user_key, day):
        deleted = store.delete(user_key, activity_id, day)
    if deleted:
        logger.info(
            "activity_deleted",
            extra={"user_key": user_key, "activity_id": activity_id, "day": day.isoformat()},
        )
    return deleted


def group_by_day(activities: Iterable[Activity]) -> dict[date, list[Activity]]:
    grouped: dict[date, list[Activity]] = defaultdict(list)
    for activity in activities:
        grouped[activity.day_date].append(activity)
    return grouped


def get_activities_range(
    store: ActivityStore,
    user_key: str,
    from_day: date,
    to_day: date,
    *,
    config: ActivityConfig,
    shift_type: ShiftPolicy | None = None,
    today: date | None = None,
) -> ActivitiesRangeResponse:
    activities = store.list_activities_in_range(user_key, from_day, to_day)
    grouped = group_by_day(activities)
    daily_summaries = {
        day.isoformat(): to_summary_read(
            summarize_day(day, day_activities, config, shift_type=shift_type, today=today)
        )
        for day, day_activities in sorted(grouped.items())
    }
    return ActivitiesRangeResponse(
        from_day=from_day.isoformat(),
        to_day=to_day.isoformat(),
        activities=[to_activity_read(activity) for activity in activities],
        daily_summaries=daily_summaries,
    )
