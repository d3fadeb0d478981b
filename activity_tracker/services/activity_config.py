from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from fastapi import Depends
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from activity_tracker.db import get_db
from activity_tracker.errors import ApiError
from activity_tracker.models import ActivityTypeOption, ShiftType
from activity_tracker.settings import get_settings
from activity_tracker.services.shifts import DEFAULT_SHIFT_TYPES, ShiftPolicy, find_shift_type

DEFAULT_ACTIVITY_TYPES: tuple[str, ...] = (
    "lavoro",
    "meeting",
    "formazione",
    "supporto",
    "ferie",
    "festività",
    "malattia",
    "permesso",
    "riposo",
    "trasferta",
    "pausa",
    "altro",
)


@dataclass(frozen=True)
class ActivityConfig:
    """Snapshot of the settings the activity rules depend on.

    Built once per operation and passed explicitly, so a rule never sees the
    configuration change halfway through a write.
    """

    activity_types: tuple[str, ...] = DEFAULT_ACTIVITY_TYPES
    required_minutes: int = 480
    strict_continuity: bool = False
    day_start: str = "00:00"
    daily_max_minutes: int = 14 * 60
    break_type: str = "pausa"
    other_type: str = "altro"
    shift_types: tuple[ShiftPolicy, ...] = field(default=DEFAULT_SHIFT_TYPES)

    def find_shift(self, key: str | None) -> ShiftPolicy | None:
        return find_shift_type(self.shift_types, key)


def _shift_policy(row: ShiftType) -> ShiftPolicy:
    return ShiftPolicy(
        id=row.id,
        name=row.name,
        include_weekends=bool(row.include_weekends),
        include_holidays=bool(row.include_holidays),
        description=row.description,
    )


def load_activity_types(db: Session) -> tuple[str, ...]:
    rows = db.scalars(select(ActivityTypeOption).order_by(ActivityTypeOption.position.asc())).all()
    if not rows:
        return DEFAULT_ACTIVITY_TYPES
    return tuple(row.name for row in rows)


def load_shift_types(db: Session) -> tuple[ShiftPolicy, ...]:
    rows = db.scalars(select(ShiftType).order_by(ShiftType.id.asc())).all()
    if not rows:
        return DEFAULT_SHIFT_TYPES
    return tuple(_shift_policy(row) for row in rows)


def load_activity_config(db: Session) -> ActivityConfig:
    settings = get_settings()
    return ActivityConfig(
        activity_types=load_activity_types(db),
        required_minutes=settings.activity_required_minutes,
        strict_continuity=settings.activity_strict_continuity,
        day_start=settings.activity_day_start,
        daily_max_minutes=settings.activity_daily_max_minutes,
        break_type=settings.activity_break_type.strip(),
        other_type=settings.activity_other_type.strip(),
        shift_types=load_shift_types(db),
    )


def get_activity_config(db: Session = Depends(get_db)) -> ActivityConfig:
    return load_activity_config(db)


def normalize_activity_types(types: Iterable[str]) -> list[str]:
    normalized: list[str] = []
    for raw in types:
        if not isinstance(raw, str) or not raw.strip():
            raise ApiError(
                status_code=400,
                code="INVALID_ACTIVITY_TYPES",
                message="Every activity type must be a non-empty string.",
            )
        value = raw.strip().lower()
        if value not in normalized:
            normalized.append(value)
    if not normalized:
        raise ApiError(
            status_code=400,
            code="INVALID_ACTIVITY_TYPES",
            message="Activity types must be a non-empty list.",
        )
    return normalized


def replace_activity_types(db: Session, types: Iterable[str]) -> list[str]:
    normalized = normalize_activity_types(types)
    db.execute(delete(ActivityTypeOption))
    for position, name in enumerate(normalized):
        db.add(ActivityTypeOption(position=position, name=name))
    db.commit()
    return normalized


def replace_shift_types(db: Session, shift_types: list[ShiftPolicy]) -> list[ShiftPolicy]:
    rows: list[ShiftType] = []
    seen: set[str] = set()
    for item in shift_types:
        shift_id = item.id.strip()
        name = item.name.strip()
        if not shift_id or not name:
            raise ApiError(
                status_code=400,
                code="INVALID_SHIFT_TYPES",
                message="Shift types need a non-empty id and name.",
            )
        if shift_id in seen:
            raise ApiError(
                status_code=400,
                code="INVALID_SHIFT_TYPES",
                message=f"Duplicate shift type id: {shift_id}",
            )
        seen.add(shift_id)
        rows.append(
            ShiftType(
                id=shift_id,
                name=name,
                include_weekends=item.include_weekends,
                include_holidays=item.include_holidays,
                description=item.description,
            )
        )

    db.execute(delete(ShiftType))
    db.add_all(rows)
    db.commit()
    return list(load_shift_types(db))
