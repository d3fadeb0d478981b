from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from activity_tracker.audit import audit_request
from activity_tracker.db import get_db
from activity_tracker.errors import ApiError
from activity_tracker.models import AuditActorType
from activity_tracker.schemas import (
    ActivitiesRangeResponse,
    ActivityCreateRequest,
    ActivityDeleteResponse,
    ActivityRead,
    ActivityUpdateRequest,
    DayActivitiesResponse,
    DayInfoResponse,
    IrregularitiesResponse,
    MonthCalendarResponse,
)
from activity_tracker.security import require_user
from activity_tracker.services.activities import (
    create_activity,
    delete_activity,
    get_activities_range,
    get_day_activities,
    update_activity,
)
from activity_tracker.services.activity_config import ActivityConfig, get_activity_config
from activity_tracker.services.activity_store import ActivityStore
from activity_tracker.services.holidays import get_day_info, is_holiday, is_pre_holiday, is_weekend
from activity_tracker.services.month_calendar import get_irregular_days_outside_month, get_month_calendar
from activity_tracker.services.shifts import ShiftPolicy
from activity_tracker.services.time_utils import parse_date
from activity_tracker.services.users import register_user, resolve_user_shift

router = APIRouter(prefix="/api", tags=["activities"])


def _user_shift(db: Session, claims: dict[str, Any], config: ActivityConfig) -> ShiftPolicy | None:
    user = register_user(db, claims)
    return resolve_user_shift(user, config)


def _require_date_param(value: str | None) -> str:
    if not value:
        raise ApiError(status_code=400, code="MISSING_DATE", message='Query parameter "date" is required.')
    return value


def _audit(
    db: Session,
    request: Request,
    claims: dict[str, Any],
    *,
    action: str,
    entity_id: str,
    details: dict[str, Any],
) -> None:
    audit_request(
        db,
        request,
        actor_type=AuditActorType.USER,
        actor_id=str(claims["user_key"]),
        action=action,
        entity_type="activity",
        entity_id=entity_id,
        details=details,
    )


@router.get("/activities/{day}", response_model=DayActivitiesResponse)
def read_day(
    day: str,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> DayActivitiesResponse:
    parsed_day = parse_date(day)
    shift_type = _user_shift(db, claims, config)
    return get_day_activities(
        ActivityStore(db),
        claims["user_key"],
        parsed_day,
        config=config,
        shift_type=shift_type,
    )


@router.post("/activities", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create(
    payload: ActivityCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> ActivityRead:
    register_user(db, claims)
    activity = create_activity(ActivityStore(db), claims["user_key"], payload, config=config)
    _audit(
        db,
        request,
        claims,
        action="CREATE_ACTIVITY",
        entity_id=activity.id,
        details=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
    return activity


@router.put("/activities/{activity_id}", response_model=ActivityRead)
def update(
    activity_id: str,
    payload: ActivityUpdateRequest,
    request: Request,
    day: str | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> ActivityRead:
    parsed_day = parse_date(_require_date_param(day))
    activity = update_activity(
        ActivityStore(db),
        claims["user_key"],
        activity_id,
        parsed_day,
        payload,
        config=config,
    )
    _audit(
        db,
        request,
        claims,
        action="UPDATE_ACTIVITY",
        entity_id=activity_id,
        details={"updates": payload.model_dump(mode="json", by_alias=True, exclude_unset=True)},
    )
    return activity


@router.delete("/activities/{activity_id}", response_model=ActivityDeleteResponse)
def delete(
    activity_id: str,
    request: Request,
    day: str | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
) -> ActivityDeleteResponse:
    parsed_day = parse_date(_require_date_param(day))
    if not delete_activity(ActivityStore(db), claims["user_key"], activity_id, parsed_day):
        raise ApiError(status_code=404, code="NOT_FOUND", message="Activity not found.")
    _audit(
        db,
        request,
        claims,
        action="DELETE_ACTIVITY",
        entity_id=activity_id,
        details={"date": parsed_day.isoformat()},
    )
    return ActivityDeleteResponse(deleted=True, id=activity_id)


@router.get("/activities", response_model=ActivitiesRangeResponse)
def read_range(
    from_day: str | None = Query(default=None, alias="from"),
    to_day: str | None = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> ActivitiesRangeResponse:
    if not from_day or not to_day:
        raise ApiError(status_code=400, code="MISSING_PARAMS", message='Query parameters "from" and "to" are required.')
    shift_type = _user_shift(db, claims, config)
    return get_activities_range(
        ActivityStore(db),
        claims["user_key"],
        parse_date(from_day),
        parse_date(to_day),
        config=config,
        shift_type=shift_type,
    )


@router.get("/calendar/{year}/{month}", response_model=MonthCalendarResponse)
def read_month_calendar(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> MonthCalendarResponse:
    shift_type = _user_shift(db, claims, config)
    return get_month_calendar(ActivityStore(db), claims["user_key"], year, month, shift_type, config=config)


@router.get("/calendar/{year}/{month}/irregularities", response_model=IrregularitiesResponse)
def read_irregularities(
    year: int,
    month: int,
    db: Session = Depends(get_db),
    claims: dict[str, Any] = Depends(require_user),
    config: ActivityConfig = Depends(get_activity_config),
) -> IrregularitiesResponse:
    shift_type = _user_shift(db, claims, config)
    return get_irregular_days_outside_month(
        ActivityStore(db),
        claims["user_key"],
        year,
        month,
        shift_type,
        config=config,
    )


@router.get("/days/{day}/info", response_model=DayInfoResponse)
def read_day_info(day: str, _claims: dict[str, Any] = Depends(require_user)) -> DayInfoResponse:
    parsed_day = parse_date(day)
    info = get_day_info(parsed_day)
    return DayInfoResponse(
        day=parsed_day.isoformat(),
        is_special=info.is_special,
        type=info.type,
        name=info.name,
        suggested_activity_type=info.suggested_activity_type,
        message=info.message,
        is_holiday=is_holiday(parsed_day),
        is_weekend=is_weekend(parsed_day),
        is_pre_holiday=is_pre_holiday(parsed_day),
    )
