from __future__ import annotations

import enum
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


class ActivityErrorKind(str, enum.Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_STEP = "INVALID_STEP"
    INVALID_RANGE = "INVALID_RANGE"
    INCOMPLETE_TIME_RANGE = "INCOMPLETE_TIME_RANGE"
    INVALID_DURATION = "INVALID_DURATION"
    DURATION_EXCEEDS_DAY = "DURATION_EXCEEDS_DAY"
    DAILY_LIMIT_EXCEEDED = "DAILY_LIMIT_EXCEEDED"
    INVALID_ACTIVITY_TYPE = "INVALID_ACTIVITY_TYPE"
    MISSING_CUSTOM_TYPE = "MISSING_CUSTOM_TYPE"
    TIME_OVERLAP = "TIME_OVERLAP"
    NON_CONTIGUOUS = "NON_CONTIGUOUS"
    NOT_FOUND = "NOT_FOUND"


ACTIVITY_ERROR_STATUS: dict[ActivityErrorKind, int] = {
    ActivityErrorKind.INVALID_FORMAT: 400,
    ActivityErrorKind.INVALID_STEP: 400,
    ActivityErrorKind.INVALID_RANGE: 400,
    ActivityErrorKind.INCOMPLETE_TIME_RANGE: 400,
    ActivityErrorKind.INVALID_DURATION: 400,
    ActivityErrorKind.DURATION_EXCEEDS_DAY: 400,
    ActivityErrorKind.DAILY_LIMIT_EXCEEDED: 400,
    ActivityErrorKind.INVALID_ACTIVITY_TYPE: 400,
    ActivityErrorKind.MISSING_CUSTOM_TYPE: 400,
    ActivityErrorKind.TIME_OVERLAP: 409,
    ActivityErrorKind.NON_CONTIGUOUS: 409,
    ActivityErrorKind.NOT_FOUND: 404,
}


class ActivityRuleError(Exception):
    """A deterministic rule violation raised by the activity core.

    The kind tags the failure; the optional fields carry the structured
    payload the client needs to display or fix it.
    """

    def __init__(
        self,
        kind: ActivityErrorKind,
        message: str,
        *,
        conflicting_activity: dict[str, str] | None = None,
        expected_start_time: str | None = None,
        provided_start_time: str | None = None,
        allowed_types: list[str] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.conflicting_activity = conflicting_activity
        self.expected_start_time = expected_start_time
        self.provided_start_time = provided_start_time
        self.allowed_types = allowed_types

    def details(self) -> dict[str, Any] | None:
        payload: dict[str, Any] = {}
        if self.conflicting_activity is not None:
            payload["conflictingActivity"] = self.conflicting_activity
        if self.expected_start_time is not None:
            payload["expectedStartTime"] = self.expected_start_time
        if self.provided_start_time is not None:
            payload["providedStartTime"] = self.provided_start_time
        if self.allowed_types is not None:
            payload["allowedTypes"] = self.allowed_types
        return payload or None

    def to_api_error(self) -> ApiError:
        return ApiError(
            status_code=ACTIVITY_ERROR_STATUS[self.kind],
            code=self.kind.value,
            message=self.message,
            details=self.details(),
        )


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(request),
    }
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})
