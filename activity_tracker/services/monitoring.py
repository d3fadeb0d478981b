from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from activity_tracker.schemas import MonitoringCounts, MonitoringResponse, MonitoringUserStatus
from activity_tracker.services.activities import summarize_day
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.activity_store import ActivityStore
from activity_tracker.services.users import list_users, resolve_user_shift

_STATUS_ORDER = {"ASSENTE": 0, "INCOMPLETO": 1, "OK": 2}


def get_daily_status(
    db: Session,
    day: date,
    *,
    config: ActivityConfig,
    username: str | None = None,
    status: str | None = None,
    today: date | None = None,
) -> MonitoringResponse:
    store = ActivityStore(db)
    needle = (username or "").strip().lower()
    wanted_status = (status or "").strip().upper() or None

    rows: list[MonitoringUserStatus] = []
    for user in list_users(db):
        if needle and needle not in user.username.lower():
            continue

        summary = summarize_day(
            day,
            store.find_by_date(user.user_key, day),
            config,
            shift_type=resolve_user_shift(user, config),
            today=today,
        )
        label = summary.status.monitoring_label
        if wanted_status and label != wanted_status:
            continue

        rows.append(
            MonitoringUserStatus(
                user_key=user.user_key,
                username=user.username,
                display_name=user.display_name,
                total_minutes=summary.total_minutes,
                total_hours=summary.total_hours,
                completion_percentage=summary.completion_percentage,
                status=label,
            )
        )

    rows.sort(key=lambda row: (_STATUS_ORDER[row.status], row.username))
    counts = MonitoringCounts(
        total_users=len(rows),
        ok_count=sum(1 for row in rows if row.status == "OK"),
        incomplete_count=sum(1 for row in rows if row.status == "INCOMPLETO"),
        absent_count=sum(1 for row in rows if row.status == "ASSENTE"),
    )
    return MonitoringResponse(day=day.isoformat(), users=rows, summary=counts)
