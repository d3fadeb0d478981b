from __future__ import annotations

import threading
import weakref
from calendar import monthrange
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from activity_tracker.models import Activity

_IMMUTABLE_FIELDS = frozenset({"id", "user_key", "day_date", "created_at"})

_REGISTRY_LOCK = threading.Lock()
# Entries drop out once no caller holds a reference to the lock.
_MONTH_LOCKS: weakref.WeakValueDictionary[tuple[str, int, int], threading.Lock] = weakref.WeakValueDictionary()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _month_bounds(day: date) -> tuple[date, date]:
    return day.replace(day=1), day.replace(day=monthrange(day.year, day.month)[1])


def _month_lock_for(user_key: str, day: date) -> threading.Lock:
    key = (user_key, day.year, day.month)
    with _REGISTRY_LOCK:
        lock = _MONTH_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MONTH_LOCKS[key] = lock
        return lock


class ActivityStore:
    """Activity persistence for one database session.

    Records are partitioned by user and month: lookups by id are scoped to
    the user-month of the given date, and ``month_lock`` serializes
    read-validate-write sequences on that partition.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def month_lock(self, user_key: str, day: date) -> Iterator[None]:
        with _month_lock_for(user_key, day):
            yield

    def find_by_date(self, user_key: str, day: date) -> list[Activity]:
        return list(
            self.db.scalars(
                select(Activity)
                .where(Activity.user_key == user_key, Activity.day_date == day)
                .order_by(Activity.start_time.asc(), Activity.created_at.asc())
            ).all()
        )

    def find_by_id(self, user_key: str, activity_id: str, day: date) -> Activity | None:
        first_day, last_day = _month_bounds(day)
        return self.db.scalar(
            select(Activity).where(
                Activity.id == activity_id,
                Activity.user_key == user_key,
                Activity.day_date >= first_day,
                Activity.day_date <= last_day,
            )
        )

    def list_activities_in_range(self, user_key: str, from_day: date, to_day: date) -> list[Activity]:
        if from_day > to_day:
            return []
        return list(
            self.db.scalars(
                select(Activity)
                .where(
                    Activity.user_key == user_key,
                    Activity.day_date >= from_day,
                    Activity.day_date <= to_day,
                )
                .order_by(Activity.day_date.asc(), Activity.start_time.asc(), Activity.created_at.asc())
            ).all()
        )

    def create(self, user_key: str, fields: dict[str, Any]) -> Activity:
        now = _utcnow()
        activity = Activity(
            id=str(uuid4()),
            user_key=user_key,
            created_at=now,
            updated_at=now,
            **fields,
        )
        self.db.add(activity)
        self.db.commit()
        self.db.refresh(activity)
        return activity

    def update(self, activity: Activity, changes: dict[str, Any]) -> Activity:
        for key, value in changes.items():
            if key in _IMMUTABLE_FIELDS:
                continue
            setattr(activity, key, value)
        activity.updated_at = _utcnow()
        self.db.commit()
        self.db.refresh(activity)
        return activity

    def delete(self, user_key: str, activity_id: str, day: date) -> bool:
        activity = self.find_by_id(user_key, activity_id, day)
        if activity is None:
            return False
        self.db.delete(activity)
        self.db.commit()
        return True

