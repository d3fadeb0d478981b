from __future__ import annotations

from datetime import date
import gc
import os
from typing import Any
import unittest
from unittest.mock import patch
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from activity_tracker import models  # noqa: F401
from activity_tracker.db import Base
from activity_tracker.errors import ActivityErrorKind, ActivityRuleError
from activity_tracker.schemas import ActivityCreateRequest, ActivityUpdateRequest
from activity_tracker.services.activities import (
    _local_timezone,
    create_activity,
    delete_activity,
    get_activities_range,
    get_day_activities,
    update_activity,
)
from activity_tracker.services.activity_config import ActivityConfig
from activity_tracker.services.activity_store import _MONTH_LOCKS, ActivityStore, _month_lock_for
from activity_tracker.settings import get_settings

USER = "mrossi"
DAY = "2025-01-10"
TODAY = date(2025, 1, 31)


def _make_session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _create(payload: dict[str, Any]) -> ActivityCreateRequest:
    return ActivityCreateRequest.model_validate(payload)


def _update(payload: dict[str, Any]) -> ActivityUpdateRequest:
    return ActivityUpdateRequest.model_validate(payload)


class _StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()
        self.store = ActivityStore(self.db)
        self.config = ActivityConfig()

    def tearDown(self) -> None:
        self.db.close()

    def add(self, start: str, end: str, activity_type: str = "lavoro", *, day: str = DAY, config=None, **extra):
        payload = {"date": day, "startTime": start, "endTime": end, "activityType": activity_type, **extra}
        return create_activity(self.store, USER, _create(payload), config=config or self.config)

    def assert_rule(self, kind: ActivityErrorKind, func, *args, **kwargs) -> ActivityRuleError:
        with self.assertRaises(ActivityRuleError) as ctx:
            func(*args, **kwargs)
        self.assertEqual(ctx.exception.kind, kind)
        return ctx.exception


class CreateActivityTests(_StoreTestCase):
    def test_create_on_empty_day_returns_duration(self) -> None:
        created = self.add("09:00", "13:00")
        self.assertEqual(created.duration_minutes, 240)
        self.assertEqual(created.day, DAY)
        self.assertEqual(len(self.store.find_by_date(USER, date(2025, 1, 10))), 1)

    def test_overlapping_create_is_rejected_with_conflict(self) -> None:
        first = self.add("09:00", "13:00")
        error = self.assert_rule(ActivityErrorKind.TIME_OVERLAP, self.add, "12:00", "14:00")
        self.assertEqual(error.conflicting_activity["id"], first.id)
        self.assertEqual(len(self.store.find_by_date(USER, date(2025, 1, 10))), 1)

    def test_strict_continuity_requires_exact_chain(self) -> None:
        strict = ActivityConfig(strict_continuity=True)
        self.add("09:00", "13:00", config=strict)
        self.add("13:00", "17:00", config=strict)

        error = self.assert_rule(
            ActivityErrorKind.NON_CONTIGUOUS,
            self.add,
            "17:30",
            "18:00",
            config=strict,
        )
        self.assertEqual(error.expected_start_time, "17:00")
        self.assertEqual(error.provided_start_time, "17:30")

    def test_non_strict_mode_allows_gaps(self) -> None:
        self.add("09:00", "12:00")
        created = self.add("13:00", "17:00")
        self.assertEqual(created.start_time, "13:00")

    def test_other_type_requires_custom_type(self) -> None:
        self.assert_rule(ActivityErrorKind.MISSING_CUSTOM_TYPE, self.add, "09:00", "10:00", "altro", customType="")
        created = self.add("09:00", "10:00", "altro", customType="  Corso interno ")
        self.assertEqual(created.custom_type, "Corso interno")

    def test_custom_type_is_dropped_for_regular_types(self) -> None:
        created = self.add("09:00", "10:00", "meeting", customType="ignored")
        self.assertIsNone(created.custom_type)

    def test_time_pair_and_step_are_validated(self) -> None:
        self.assert_rule(
            ActivityErrorKind.INCOMPLETE_TIME_RANGE,
            create_activity,
            self.store,
            USER,
            _create({"date": DAY, "startTime": "09:00", "activityType": "lavoro"}),
            config=self.config,
        )
        self.assert_rule(ActivityErrorKind.INVALID_STEP, self.add, "09:10", "10:00")
        self.assert_rule(ActivityErrorKind.INVALID_RANGE, self.add, "10:00", "09:00")
        self.assert_rule(ActivityErrorKind.INVALID_FORMAT, self.add, "09:00", "10:00", day="2025-02-30")

    def test_duration_entry_chains_from_the_latest_activity(self) -> None:
        config = ActivityConfig(day_start="08:00")
        first = create_activity(
            self.store,
            USER,
            _create({"date": DAY, "durationHours": 2, "durationMinutes": 30, "activityType": "lavoro"}),
            config=config,
        )
        self.assertEqual((first.start_time, first.end_time), ("08:00", "10:30"))

        second = create_activity(
            self.store,
            USER,
            _create({"date": DAY, "durationHours": 1, "activityType": "meeting"}),
            config=config,
        )
        self.assertEqual((second.start_time, second.end_time), ("10:30", "11:30"))

    def test_duration_entry_errors(self) -> None:
        self.assert_rule(
            ActivityErrorKind.INVALID_DURATION,
            create_activity,
            self.store,
            USER,
            _create({"date": DAY, "durationHours": 0, "durationMinutes": 0, "activityType": "lavoro"}),
            config=self.config,
        )

        self.add("22:00", "23:00")
        self.assert_rule(
            ActivityErrorKind.DURATION_EXCEEDS_DAY,
            create_activity,
            self.store,
            USER,
            _create({"date": DAY, "durationHours": 1, "activityType": "lavoro"}),
            config=self.config,
        )

    def test_daily_cap_excludes_breaks(self) -> None:
        self.add("06:00", "20:00")
        self.assert_rule(ActivityErrorKind.DAILY_LIMIT_EXCEEDED, self.add, "20:00", "20:15")
        created = self.add("20:00", "21:00", "pausa")
        self.assertEqual(created.activity_type, "pausa")


class UpdateDeleteActivityTests(_StoreTestCase):
    def test_unknown_or_other_month_id_is_not_found(self) -> None:
        created = self.add("09:00", "10:00")
        self.assert_rule(
            ActivityErrorKind.NOT_FOUND,
            update_activity,
            self.store,
            USER,
            "missing",
            date(2025, 1, 10),
            _update({"notes": "x"}),
            config=self.config,
        )
        self.assert_rule(
            ActivityErrorKind.NOT_FOUND,
            update_activity,
            self.store,
            USER,
            created.id,
            date(2025, 2, 10),
            _update({"notes": "x"}),
            config=self.config,
        )

    def test_time_change_excludes_the_record_itself(self) -> None:
        created = self.add("09:00", "13:00")
        updated = update_activity(
            self.store,
            USER,
            created.id,
            date(2025, 1, 10),
            _update({"startTime": "09:00", "endTime": "12:00"}),
            config=self.config,
        )
        self.assertEqual(updated.duration_minutes, 180)
        self.assertEqual(updated.created_at, created.created_at)

    def test_time_change_into_a_neighbour_is_rejected(self) -> None:
        self.add("09:00", "13:00")
        second = self.add("13:00", "17:00")
        self.assert_rule(
            ActivityErrorKind.TIME_OVERLAP,
            update_activity,
            self.store,
            USER,
            second.id,
            date(2025, 1, 10),
            _update({"startTime": "12:30", "endTime": "17:00"}),
            config=self.config,
        )
        reloaded = self.store.find_by_id(USER, second.id, date(2025, 1, 10))
        self.assertEqual(reloaded.start_time, "13:00")

    def test_update_skips_continuity_even_in_strict_mode(self) -> None:
        strict = ActivityConfig(strict_continuity=True)
        self.add("09:00", "13:00", config=strict)
        second = self.add("13:00", "17:00", config=strict)
        updated = update_activity(
            self.store,
            USER,
            second.id,
            date(2025, 1, 10),
            _update({"startTime": "14:00", "endTime": "17:00"}),
            config=strict,
        )
        self.assertEqual(updated.start_time, "14:00")

    def test_only_one_time_is_incomplete(self) -> None:
        created = self.add("09:00", "13:00")
        self.assert_rule(
            ActivityErrorKind.INCOMPLETE_TIME_RANGE,
            update_activity,
            self.store,
            USER,
            created.id,
            date(2025, 1, 10),
            _update({"endTime": "14:00"}),
            config=self.config,
        )

    def test_duration_update_reanchors_at_current_start(self) -> None:
        created = self.add("09:00", "13:00")
        updated = update_activity(
            self.store,
            USER,
            created.id,
            date(2025, 1, 10),
            _update({"durationHours": 1, "durationMinutes": 15}),
            config=self.config,
        )
        self.assertEqual((updated.start_time, updated.end_time), ("09:00", "10:15"))

    def test_type_change_is_revalidated(self) -> None:
        created = self.add("09:00", "13:00", "altro", customType="Audit")
        self.assert_rule(
            ActivityErrorKind.MISSING_CUSTOM_TYPE,
            update_activity,
            self.store,
            USER,
            created.id,
            date(2025, 1, 10),
            _update({"customType": " "}),
            config=self.config,
        )

        updated = update_activity(
            self.store,
            USER,
            created.id,
            date(2025, 1, 10),
            _update({"activityType": "formazione", "notes": "corso"}),
            config=self.config,
        )
        self.assertEqual(updated.activity_type, "formazione")
        self.assertIsNone(updated.custom_type)
        self.assertEqual(updated.notes, "corso")

    def test_delete_reports_whether_the_record_existed(self) -> None:
        created = self.add("09:00", "13:00")
        self.assertTrue(delete_activity(self.store, USER, created.id, date(2025, 1, 10)))
        self.assertFalse(delete_activity(self.store, USER, created.id, date(2025, 1, 10)))


class DayAndRangeViewTests(_StoreTestCase):
    def test_day_view_sorts_and_summarizes(self) -> None:
        self.add("13:00", "17:00")
        self.add("09:00", "13:00")
        view = get_day_activities(self.store, USER, date(2025, 1, 10), config=self.config, today=TODAY)

        self.assertEqual([item.start_time for item in view.activities], ["09:00", "13:00"])
        self.assertTrue(view.summary.is_complete)
        self.assertEqual(view.summary.completion_percentage, 100)
        self.assertEqual(view.summary.status, "OK")

    def test_day_view_is_scoped_to_the_user(self) -> None:
        self.add("09:00", "13:00")
        view = get_day_activities(self.store, "other", date(2025, 1, 10), config=self.config, today=TODAY)
        self.assertEqual(view.activities, [])
        self.assertEqual(view.summary.status, "Non inserito")

    def test_range_spans_month_boundaries(self) -> None:
        self.add("09:00", "13:00", day="2025-01-31")
        self.add("09:00", "11:00", day="2025-02-01")
        self.add("09:00", "11:00", day="2025-02-03")

        view = get_activities_range(
            self.store,
            USER,
            date(2025, 1, 30),
            date(2025, 2, 1),
            config=self.config,
            today=TODAY,
        )
        self.assertEqual(view.from_day, "2025-01-30")
        self.assertEqual(len(view.activities), 2)
        self.assertEqual(sorted(view.daily_summaries), ["2025-01-31", "2025-02-01"])
        self.assertEqual(view.daily_summaries["2025-01-31"].total_minutes, 240)
        # 2025-02-01 is after the pinned "today".
        self.assertEqual(view.daily_summaries["2025-02-01"].status, "OK")

        dumped = view.model_dump(by_alias=True)
        self.assertIn("from", dumped)
        self.assertIn("dailySummaries", dumped)

    def test_inverted_range_is_empty(self) -> None:
        self.add("09:00", "13:00")
        view = get_activities_range(
            self.store,
            USER,
            date(2025, 1, 11),
            date(2025, 1, 9),
            config=self.config,
            today=TODAY,
        )
        self.assertEqual(view.activities, [])
        self.assertEqual(view.daily_summaries, {})


class MonthLockTests(_StoreTestCase):
    def test_lock_is_shared_within_a_month_and_dropped_after_use(self) -> None:
        key = ("lock-owner", 2025, 1)
        with self.store.month_lock("lock-owner", date(2025, 1, 10)):
            held = _MONTH_LOCKS[key]
            self.assertTrue(held.locked())
            self.assertIs(_month_lock_for("lock-owner", date(2025, 1, 31)), held)
            self.assertIsNot(_month_lock_for("lock-owner", date(2025, 2, 1)), held)
            del held
        gc.collect()
        self.assertNotIn(key, _MONTH_LOCKS)


class LocalTodayTests(unittest.TestCase):
    def tearDown(self) -> None:
        get_settings.cache_clear()
        _local_timezone.cache_clear()

    def _timezone_for(self, name: str) -> ZoneInfo:
        with patch.dict(os.environ, {"ACTIVITY_TIMEZONE": name}):
            get_settings.cache_clear()
            _local_timezone.cache_clear()
            return _local_timezone()

    def test_configured_timezone_is_used(self) -> None:
        self.assertEqual(self._timezone_for("Asia/Tokyo"), ZoneInfo("Asia/Tokyo"))

    def test_unknown_timezone_falls_back_to_rome(self) -> None:
        self.assertEqual(self._timezone_for("Mars/Olympus"), ZoneInfo("Europe/Rome"))


if __name__ == "__main__":
    unittest.main()
