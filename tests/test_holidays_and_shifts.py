from __future__ import annotations

from datetime import date
import unittest

from activity_tracker.services.holidays import (
    easter_sunday,
    get_day_info,
    holiday_name,
    holidays_for_year,
    is_holiday,
    is_pre_holiday,
    is_weekend,
)
from activity_tracker.services.shifts import DEFAULT_SHIFT_TYPES, ShiftPolicy, find_shift_type, is_working_day

FERIALI = find_shift_type(DEFAULT_SHIFT_TYPES, "feriali")
ALWAYS_ON = find_shift_type(DEFAULT_SHIFT_TYPES, "24-7")


class HolidayCalendarTests(unittest.TestCase):
    def test_easter_matches_published_dates(self) -> None:
        self.assertEqual(easter_sunday(2023), date(2023, 4, 9))
        self.assertEqual(easter_sunday(2024), date(2024, 3, 31))
        self.assertEqual(easter_sunday(2025), date(2025, 4, 20))

    def test_moving_and_fixed_holidays_have_italian_names(self) -> None:
        self.assertEqual(holiday_name(date(2025, 4, 20)), "Pasqua")
        self.assertEqual(holiday_name(date(2025, 4, 21)), "Lunedì dell'Angelo")
        self.assertEqual(holiday_name(date(2025, 12, 25)), "Natale")
        self.assertTrue(is_holiday(date(2024, 4, 1)))
        self.assertFalse(is_holiday(date(2025, 4, 22)))

    def test_weekend_and_pre_holiday_hints(self) -> None:
        self.assertTrue(is_weekend(date(2025, 1, 11)))
        self.assertTrue(is_weekend(date(2025, 1, 12)))
        self.assertFalse(is_weekend(date(2025, 1, 10)))

        self.assertTrue(is_pre_holiday(date(2025, 1, 10)))  # Friday
        self.assertTrue(is_pre_holiday(date(2024, 12, 24)))
        self.assertFalse(is_pre_holiday(date(2025, 1, 8)))

    def test_day_info_precedence(self) -> None:
        holiday = get_day_info(date(2025, 12, 25))
        self.assertEqual(holiday.type, "holiday")
        self.assertEqual(holiday.name, "Natale")
        self.assertEqual(holiday.suggested_activity_type, "festività")

        saturday = get_day_info(date(2025, 1, 11))
        self.assertEqual(saturday.type, "weekend")
        self.assertEqual(saturday.name, "Sabato")

        friday = get_day_info(date(2025, 1, 10))
        self.assertEqual(friday.type, "preholiday")
        self.assertIsNone(friday.suggested_activity_type)

        workday = get_day_info(date(2025, 1, 8))
        self.assertFalse(workday.is_special)
        self.assertEqual(workday.suggested_activity_type, "lavoro")

    def test_cached_year_table_is_read_only(self) -> None:
        table = holidays_for_year(2025)
        with self.assertRaises(TypeError):
            table[date(2025, 3, 3)] = "Carnevale"  # type: ignore[index]
        self.assertIsNone(holiday_name(date(2025, 3, 3)))
        self.assertEqual(len(holidays_for_year(2025)), 12)


class ShiftPolicyTests(unittest.TestCase):
    def test_missing_shift_requires_every_day(self) -> None:
        self.assertTrue(is_working_day(date(2025, 1, 11), None))
        self.assertTrue(is_working_day(date(2025, 12, 25), None))

    def test_weekday_only_shift_skips_weekends_and_holidays(self) -> None:
        self.assertFalse(is_working_day(date(2025, 1, 11), FERIALI))
        self.assertFalse(is_working_day(date(2025, 4, 21), FERIALI))
        self.assertTrue(is_working_day(date(2025, 1, 13), FERIALI))

    def test_round_the_clock_shift_requires_every_day(self) -> None:
        self.assertTrue(is_working_day(date(2025, 1, 11), ALWAYS_ON))
        self.assertTrue(is_working_day(date(2025, 4, 20), ALWAYS_ON))

    def test_holiday_exclusion_applies_on_weekends_too(self) -> None:
        weekends_only = ShiftPolicy(id="weekend", name="Weekend", include_weekends=True, include_holidays=False)
        self.assertFalse(is_working_day(date(2025, 4, 20), weekends_only))
        self.assertTrue(is_working_day(date(2025, 4, 19), weekends_only))

    def test_find_shift_type_matches_id_or_name(self) -> None:
        self.assertEqual(find_shift_type(DEFAULT_SHIFT_TYPES, "feriali"), FERIALI)
        self.assertEqual(find_shift_type(DEFAULT_SHIFT_TYPES, "24/7"), ALWAYS_ON)
        self.assertIsNone(find_shift_type(DEFAULT_SHIFT_TYPES, "notturno"))
        self.assertIsNone(find_shift_type(DEFAULT_SHIFT_TYPES, None))


if __name__ == "__main__":
    unittest.main()
