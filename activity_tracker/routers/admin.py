from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from activity_tracker.audit import audit_request
from activity_tracker.db import get_db
from activity_tracker.models import AuditActorType
from activity_tracker.schemas import (
    ActivityTypesPayload,
    IrregularitiesResponse,
    MonitoringResponse,
    ShiftTypePayload,
    ShiftTypesPayload,
    TrackedUserRead,
    UserShiftUpdateRequest,
)
from activity_tracker.security import require_admin
from activity_tracker.services.activity_config import (
    ActivityConfig,
    get_activity_config,
    replace_activity_types,
    replace_shift_types,
)
from activity_tracker.services.activities import local_today
from activity_tracker.services.activity_store import ActivityStore
from activity_tracker.services.monitoring import get_daily_status
from activity_tracker.services.month_calendar import get_irregular_days_outside_month
from activity_tracker.services.shifts import ShiftPolicy
from activity_tracker.services.time_utils import parse_date
from activity_tracker.services.users import get_user, list_users, resolve_user_shift, set_user_shift

router = APIRouter(prefix="/admin", tags=["admin"])


def _shift_payload(item: ShiftPolicy) -> ShiftTypePayload:
    return ShiftTypePayload(
        id=item.id,
        name=item.name,
        include_weekends=item.include_weekends,
        include_holidays=item.include_holidays,
        description=item.description,
    )


def _audit_admin_change(
    db: Session,
    request: Request,
    claims: dict[str, Any],
    *,
    action: str,
    entity_type: str,
    entity_id: str | None,
    details: dict[str, Any],
) -> None:
    audit_request(
        db,
        request,
        actor_type=AuditActorType.ADMIN,
        actor_id=str(claims.get("username") or claims["user_key"]),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )


@router.get("/monitoring", response_model=MonitoringResponse)
def monitoring(
    day: str | None = Query(default=None, alias="date"),
    username: str | None = Query(default=None),
    status: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _claims: dict[str, Any] = Depends(require_admin),
    config: ActivityConfig = Depends(get_activity_config),
) -> MonitoringResponse:
    target_day = parse_date(day) if day else local_today()
    return get_daily_status(db, target_day, config=config, username=username, status=status)


@router.get("/users", response_model=list[TrackedUserRead])
def users(
    db: Session = Depends(get_db),
    _claims: dict[str, Any] = Depends(require_admin),
) -> list[TrackedUserRead]:
    return [TrackedUserRead.model_validate(user) for user in list_users(db)]


@router.get("/users/{user_key}/irregularities", response_model=IrregularitiesResponse)
def user_irregularities(
    user_key: str,
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
    db: Session = Depends(get_db),
    _claims: dict[str, Any] = Depends(require_admin),
    config: ActivityConfig = Depends(get_activity_config),
) -> IrregularitiesResponse:
    user = get_user(db, user_key)
    return get_irregular_days_outside_month(
        ActivityStore(db),
        user.user_key,
        year,
        month,
        resolve_user_shift(user, config),
        config=config,
    )


@router.put("/users/{user_key}/shift", response_model=TrackedUserRead)
def update_user_shift(
    user_key: str,
    payload: UserShiftUpdateRequest,
    request: Request,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_admin),
    config: ActivityConfig = Depends(get_activity_config),
) -> TrackedUserRead:
    user = set_user_shift(db, user_key, payload.shift_id, config)
    _audit_admin_change(
        db,
        request,
        claims,
        action="USER_SHIFT_UPDATED",
        entity_type="tracked_user",
        entity_id=user.user_key,
        details={"shift_id": user.shift_id},
    )
    return TrackedUserRead.model_validate(user)


@router.get("/activity-types", response_model=ActivityTypesPayload)
def read_activity_types(
    _claims: dict[str, Any] = Depends(require_admin),
    config: ActivityConfig = Depends(get_activity_config),
) -> ActivityTypesPayload:
    return ActivityTypesPayload(activity_types=list(config.activity_types))


@router.put("/activity-types", response_model=ActivityTypesPayload)
def update_activity_types(
    payload: ActivityTypesPayload,
    request: Request,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_admin),
) -> ActivityTypesPayload:
    saved = replace_activity_types(db, payload.activity_types)
    _audit_admin_change(
        db,
        request,
        claims,
        action="ACTIVITY_TYPES_UPDATED",
        entity_type="activity_type_options",
        entity_id=None,
        details={"activity_types": saved},
    )
    return ActivityTypesPayload(activity_types=saved)


@router.get("/shift-types", response_model=ShiftTypesPayload)
def read_shift_types(
    _claims: dict[str, Any] = Depends(require_admin),
    config: ActivityConfig = Depends(get_activity_config),
) -> ShiftTypesPayload:
    return ShiftTypesPayload(shift_types=[_shift_payload(item) for item in config.shift_types])


@router.put("/shift-types", response_model=ShiftTypesPayload)
def update_shift_types(
    payload: ShiftTypesPayload,
    request: Request,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_admin),
) -> ShiftTypesPayload:
    saved = replace_shift_types(
        db,
        [
            ShiftPolicy(
                id=item.id,
                name=item.name,
                include_weekends=item.include_weekends,
                include_holidays=item.include_holidays,
                description=item.description,
            )
            for item in payload.shift_types
        ],
    )
    _audit_admin_change(
        db,
        request,
        claims,
        action="SHIFT_TYPES_UPDATED",
        entity_type="shift_types",
        entity_id=None,
        details={"shift_type_ids": [item.id for item in saved]},
    )
    return ShiftTypesPayload(shift_types=[_shift_payload(item) for item in saved])
