from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from activity_tracker.errors import ApiError
from activity_tracker.models import TrackedUser
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.shifts import ShiftPolicy


def register_user(db: Session, claims: dict[str, Any]) -> TrackedUser:
    user_key = str(claims["user_key"])
    username = str(claims.get("username") or user_key)
    display_name = claims.get("display_name")

    user = db.get(TrackedUser, user_key)
    now = datetime.now(timezone.utc)
    if user is None:
        user = TrackedUser(
            user_key=user_key,
            username=username,
            display_name=display_name,
            last_seen_at=now,
        )
        db.add(user)
    else:
        user.username = username
        if display_name:
            user.display_name = display_name
        user.last_seen_at = now
    db.commit()
    return user


def list_users(db: Session) -> list[TrackedUser]:
    return list(db.scalars(select(TrackedUser).order_by(TrackedUser.username.asc())).all())


def get_user(db: Session, user_key: str) -> TrackedUser:
    user = db.get(TrackedUser, user_key)
    if user is None:
        raise ApiError(status_code=404, code="USER_NOT_FOUND", message="User not found.")
    return user


def resolve_user_shift(user: TrackedUser | None, config: ActivityConfig) -> ShiftPolicy | None:
    if user is None:
        return None
    return config.find_shift(user.shift_id)


def set_user_shift(db: Session, user_key: str, shift_id: str | None, config: ActivityConfig) -> TrackedUser:
    user = get_user(db, user_key)
    shift = config.find_shift(shift_id)
    if shift_id and shift is None:
        raise ApiError(status_code=400, code="INVALID_SHIFT_TYPE", message=f"Unknown shift type: {shift_id}")
    user.shift_id = shift.id if shift else None
    db.commit()
    return user
