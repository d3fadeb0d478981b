"""Italian public holidays, weekends and pre-holiday hints."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from functools import lru_cache
from types import MappingProxyType

FIXED_HOLIDAYS: dict[tuple[int, int], str] = {
    (1, 1): "Capodanno",
    (1, 6): "Epifania",
    (4, 25): "Festa della Liberazione",
    (5, 1): "Festa del Lavoro",
    (6, 2): "Festa della Repubblica",
    (8, 15): "Ferragosto",
    (11, 1): "Ognissanti",
    (12, 8): "Immacolata Concezione",
    (12, 25): "Natale",
    (12, 26): "Santo Stefano",
}

EASTER_SUNDAY_NAME = "Pasqua"
EASTER_MONDAY_NAME = "Lunedì dell'Angelo"

HOLIDAY_SUGGESTED_TYPE = "festività"
WORKDAY_SUGGESTED_TYPE = "lavoro"


@dataclass(frozen=True)
class DayInfo:
    is_special: bool
    type: str
    name: str
    suggested_activity_type: str | None
    message: str | None


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (Meeus/Jones/Butcher)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


@lru_cache(maxsize=64)
def holidays_for_year(year: int) -> MappingProxyType[date, str]:
    holidays = {date(year, month, day): name for (month, day), name in FIXED_HOLIDAYS.items()}
    easter = easter_sunday(year)
    holidays[easter] = EASTER_SUNDAY_NAME
    holidays[easter + timedelta(days=1)] = EASTER_MONDAY_NAME
    return MappingProxyType(holidays)


def holiday_name(day: date) -> str | None:
    return holidays_for_year(day.year).get(day)


def is_holiday(day: date) -> bool:
    return holiday_name(day) is not None


def is_weekend(day: date) -> bool:
    return day.isoweekday() in (6, 7)


def is_pre_holiday(day: date) -> bool:
    # Fridays count as pre-holiday for UI hints.
    if day.isoweekday() == 5:
        return True
    return is_holiday(day + timedelta(days=1))


def get_day_info(day: date) -> DayInfo:
    name = holiday_name(day)
    if name is not None:
        return DayInfo(
            is_special=True,
            type="holiday",
            name=name,
            suggested_activity_type=HOLIDAY_SUGGESTED_TYPE,
            message=f"Festività: {name}",
        )

    if is_weekend(day):
        weekend_name = "Sabato" if day.isoweekday() == 6 else "Domenica"
        return DayInfo(
            is_special=True,
            type="weekend",
            name=weekend_name,
            suggested_activity_type=HOLIDAY_SUGGESTED_TYPE,
            message=weekend_name,
        )

    if is_pre_holiday(day):
        return DayInfo(
            is_special=True,
            type="preholiday",
            name="Prefestivo",
            suggested_activity_type=None,
            message="Giorno prefestivo",
        )

    return DayInfo(
        is_special=False,
        type="workday",
        name="Giorno lavorativo",
        suggested_activity_type=WORKDAY_SUGGESTED_TYPE,
        message=None,
    )
