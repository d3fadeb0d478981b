from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

_DURATION_MINUTE_STEPS = (0, 15, 30, 45)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_duration_minutes(value: int | None) -> int | None:
    if value is not None and value not in _DURATION_MINUTE_STEPS:
        raise ValueError("durationMinutes must be 0, 15, 30 or 45")
    return value


class ActivityCreateRequest(CamelModel):
    day: str = Field(alias="date")
    start_time: str | None = None
    end_time: str | None = None
    duration_hours: int | None = Field(default=None, ge=0, le=24)
    duration_minutes: int | None = None
    activity_type: str
    custom_type: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("duration_minutes")
    @classmethod
    def check_duration_minutes(cls, value: int | None) -> int | None:
        return _check_duration_minutes(value)

    @property
    def has_duration(self) -> bool:
        return self.duration_hours is not None or self.duration_minutes is not None


class ActivityUpdateRequest(CamelModel):
    start_time: str | None = None
    end_time: str | None = None
    duration_hours: int | None = Field(default=None, ge=0, le=24)
    duration_minutes: int | None = None
    activity_type: str | None = None
    custom_type: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("duration_minutes")
    @classmethod
    def check_duration_minutes(cls, value: int | None) -> int | None:
        return _check_duration_minutes(value)

    @model_validator(mode="after")
    def require_one_field(self) -> ActivityUpdateRequest:
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    @property
    def has_duration(self) -> bool:
        return self.duration_hours is not None or self.duration_minutes is not None


class ActivityRead(CamelModel):
    id: str
    day: str = Field(alias="date")
    start_time: str
    end_time: str
    activity_type: str
    custom_type: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    duration_minutes: int


class DailySummaryRead(CamelModel):
    total_minutes: int
    total_hours: float
    required_minutes: int
    completion_percentage: int
    is_complete: bool
    is_overtime: bool
    overtime_minutes: int
    status: str


class DayActivitiesResponse(CamelModel):
    day: str = Field(alias="date")
    activities: list[ActivityRead]
    summary: DailySummaryRead


class ActivitiesRangeResponse(CamelModel):
    from_day: str = Field(alias="from")
    to_day: str = Field(alias="to")
    activities: list[ActivityRead]
    daily_summaries: dict[str, DailySummaryRead]


class ActivityDeleteResponse(CamelModel):
    deleted: bool
    id: str


class CalendarActivityPreview(CamelModel):
    id: str
    activity_type: str
    custom_type: str
    start_time: str
    end_time: str
    duration_minutes: int
    notes: str


class CalendarDay(CamelModel):
    day: str = Field(alias="date")
    status: str
    total_minutes: int
    required_minutes: int
    completion_percentage: int
    is_required: bool
    is_future: bool
    holiday_name: str | None = None
    activity_count: int
    activities: list[CalendarActivityPreview]


class MonthCalendarResponse(CamelModel):
    year: int
    month: int
    shift_type: str | None = None
    days: list[CalendarDay]
    required_minutes: int


class IrregularDay(CamelModel):
    day: str = Field(alias="date")
    status: str
    total_minutes: int


class IrregularitiesResponse(CamelModel):
    year: int
    month: int
    irregularities: list[IrregularDay]


class DayInfoResponse(CamelModel):
    day: str = Field(alias="date")
    is_special: bool
    type: Literal["holiday", "weekend", "preholiday", "workday"]
    name: str
    suggested_activity_type: str | None = None
    message: str | None = None
    is_holiday: bool
    is_weekend: bool
    is_pre_holiday: bool


class MonitoringUserStatus(CamelModel):
    user_key: str
    username: str
    display_name: str | None = None
    total_minutes: int
    total_hours: float
    completion_percentage: int
    status: Literal["ASSENTE", "INCOMPLETO", "OK"]


class MonitoringCounts(CamelModel):
    total_users: int
    ok_count: int
    incomplete_count: int
    absent_count: int


class MonitoringResponse(CamelModel):
    day: str = Field(alias="date")
    users: list[MonitoringUserStatus]
    summary: MonitoringCounts


class ActivityTypesPayload(CamelModel):
    activity_types: list[str]


class ShiftTypePayload(CamelModel):
    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    include_weekends: bool = True
    include_holidays: bool = True
    description: str | None = None


class ShiftTypesPayload(CamelModel):
    shift_types: list[ShiftTypePayload]


class UserShiftUpdateRequest(CamelModel):
    shift_id: str | None = None


class TrackedUserRead(CamelModel):
    user_key: str
    username: str
    display_name: str | None = None
    shift_id: str | None = None

    model_config = ConfigDict(from_attributes=True)
