from __future__ import annotations

import json
import logging
import unittest

from activity_tracker.logging_utils import JsonFormatter, setup_json_logging


class JsonLoggingTests(unittest.TestCase):
    def test_extra_fields_are_emitted_next_to_the_message(self) -> None:
        record = logging.LogRecord("activity_tracker.activities", logging.INFO, __file__, 1, "activity_created", None, None)
        record.activity_id = "abc"
        record.day = "2025-01-10"

        payload = json.loads(JsonFormatter().format(record))
        self.assertEqual(payload["message"], "activity_created")
        self.assertEqual(payload["logger"], "activity_tracker.activities")
        self.assertEqual(payload["activity_id"], "abc")
        self.assertEqual(payload["day"], "2025-01-10")
        self.assertNotIn("lineno", payload)

    def test_unknown_level_falls_back_to_info(self) -> None:
        root_logger = logging.getLogger()
        previous_handlers = list(root_logger.handlers)
        previous_level = root_logger.level
        try:
            setup_json_logging("chatty")
            self.assertEqual(root_logger.level, logging.INFO)
            setup_json_logging("debug")
            self.assertEqual(root_logger.level, logging.DEBUG)
        finally:
            root_logger.handlers[:] = previous_handlers
            root_logger.setLevel(previous_level)


if __name__ == "__main__":
    unittest.main()
