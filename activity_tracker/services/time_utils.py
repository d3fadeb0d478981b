from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from activity_tracker.errors import ActivityErrorKind, ActivityRuleError

MINUTES_PER_DAY = 24 * 60
ALLOWED_MINUTE_STEPS = (0, 15, 30, 45)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$", re.ASCII)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)


@dataclass(frozen=True)
class CheckResult:
    valid: bool
    kind: ActivityErrorKind | None = None
    error: str | None = None

    def raise_for_error(self) -> None:
        if not self.valid:
            raise ActivityRuleError(self.kind or ActivityErrorKind.INVALID_FORMAT, self.error or "Invalid value")


_OK = CheckResult(valid=True)


def time_to_minutes(value: str) -> int:
    match = _TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ActivityRuleError(
            ActivityErrorKind.INVALID_FORMAT,
            f"Invalid time {value!r}, expected HH:MM",
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def calculate_duration(start_time: str, end_time: str) -> int:
    # Inverted or empty ranges count as zero; writers enforce start < end separately.
    return max(0, time_to_minutes(end_time) - time_to_minutes(start_time))


def add_minutes_to_time(value: str, minutes: int) -> str | None:
    """Shift an HH:MM time forward; None when the result leaves the day."""
    total = time_to_minutes(value) + minutes
    if total < 0 or total >= MINUTES_PER_DAY:
        return None
    return minutes_to_time(total)


def validate_time_step(value: object) -> CheckResult:
    if not isinstance(value, str):
        return CheckResult(False, ActivityErrorKind.INVALID_FORMAT, "Invalid time, expected HH:MM")
    match = _TIME_RE.fullmatch(value)
    if match is None:
        return CheckResult(False, ActivityErrorKind.INVALID_FORMAT, f"Invalid time {value!r}, expected HH:MM")
    if int(match.group(2)) not in ALLOWED_MINUTE_STEPS:
        return CheckResult(False, ActivityErrorKind.INVALID_STEP, "Minutes must be 00, 15, 30 or 45")
    return _OK


def validate_date_format(value: object) -> CheckResult:
    if not isinstance(value, str) or _DATE_RE.fullmatch(value) is None:
        return CheckResult(False, ActivityErrorKind.INVALID_FORMAT, "Invalid date, expected YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError:
        return CheckResult(False, ActivityErrorKind.INVALID_FORMAT, f"Invalid date {value!r}")
    return _OK


def parse_date(value: str) -> date:
    validate_date_format(value).raise_for_error()
    return date.fromisoformat(value)
