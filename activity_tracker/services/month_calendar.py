from __future__ import annotations

from calendar import monthrange
from datetime import date, timedelta

from activity_tracker.errors import ActivityErrorKind, ActivityRuleError
from activity_tracker.models import Activity
from activity_tracker.schemas import (
    CalendarActivityPreview,
    CalendarDay,
    IrregularDay,
    IrregularitiesResponse,
    MonthCalendarResponse,
)
from activity_tracker.services.activities import group_by_day, local_today, summarize_day
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.activity_store import ActivityStore
from activity_tracker.services.daily_summary import DayStatus
from activity_tracker.services.holidays import holiday_name
from activity_tracker.services.shifts import ShiftPolicy, is_working_day
from activity_tracker.services.time_utils import calculate_duration

CALENDAR_PREVIEW_LIMIT = 4


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        raise ActivityRuleError(ActivityErrorKind.INVALID_FORMAT, f"Invalid month {year}-{month}")
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def grid_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last visible day of a Monday-first, 7-column month grid."""
    first_day, last_day = month_bounds(year, month)
    grid_start = first_day - timedelta(days=first_day.weekday())
    grid_end = last_day + timedelta(days=6 - last_day.weekday())
    return grid_start, grid_end


def _preview(activity: Activity) -> CalendarActivityPreview:
    return CalendarActivityPreview(
        id=activity.id,
        activity_type=activity.activity_type,
        custom_type=activity.custom_type or "",
        start_time=activity.start_time,
        end_time=activity.end_time,
        duration_minutes=calculate_duration(activity.start_time, activity.end_time),
        notes=activity.notes or "",
    )


def _days(first_day: date, last_day: date):
    cursor = first_day
    while cursor <= last_day:
        yield cursor
        cursor += timedelta(days=1)


def get_month_calendar(
    store: ActivityStore,
    user_key: str,
    year: int,
    month: int,
    shift_type: ShiftPolicy | None,
    *,
    config: ActivityConfig,
    today: date | None = None,
) -> MonthCalendarResponse:
    first_day, last_day = month_bounds(year, month)
    reference_day = today or local_today()
    grouped = group_by_day(store.list_activities_in_range(user_key, first_day, last_day))

    days: list[CalendarDay] = []
    for day in _days(first_day, last_day):
        day_activities = grouped.get(day, [])
        summary = summarize_day(day, day_activities, config, shift_type=shift_type, today=reference_day)
        days.append(
            CalendarDay(
                day=day.isoformat(),
                status=summary.status.label,
                total_minutes=summary.total_minutes,
                required_minutes=summary.required_minutes,
                completion_percentage=summary.completion_percentage,
                is_required=is_working_day(day, shift_type),
                is_future=day > reference_day,
                holiday_name=holiday_name(day),
                activity_count=len(day_activities),
                activities=[_preview(activity) for activity in day_activities[:CALENDAR_PREVIEW_LIMIT]],
            )
        )

    return MonthCalendarResponse(
        year=year,
        month=month,
        shift_type=shift_type.id if shift_type else None,
        days=days,
        required_minutes=config.required_minutes,
    )


def get_irregular_days_outside_month(
    store: ActivityStore,
    user_key: str,
    year: int,
    month: int,
    shift_type: ShiftPolicy | None,
    *,
    config: ActivityConfig,
    today: date | None = None,
) -> IrregularitiesResponse:
    first_day, last_day = month_bounds(year, month)
    grid_start, grid_end = grid_bounds(year, month)
    reference_day = today or local_today()
    grouped = group_by_day(store.list_activities_in_range(user_key, grid_start, grid_end))

    irregularities: list[IrregularDay] = []
    for day in _days(grid_start, grid_end):
        if first_day <= day <= last_day:
            continue
        summary = summarize_day(day, grouped.get(day, []), config, shift_type=shift_type, today=reference_day)
        if summary.status is DayStatus.OK:
            continue
        irregularities.append(
            IrregularDay(
                day=day.isoformat(),
                status=summary.status.label,
                total_minutes=summary.total_minutes,
            )
        )

    return IrregularitiesResponse(year=year, month=month, irregularities=irregularities)
