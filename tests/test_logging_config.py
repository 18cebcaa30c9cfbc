"""Tests for logging configuration."""

import json
import logging
import unittest

from fs_agent.logging_config import LOGGER_NAME, StructuredFormatter, logger, set_log_level


class TestSetLogLevel(unittest.TestCase):
    def setUp(self):
        self.original = logger.level

    def tearDown(self):
        logger.setLevel(self.original)

    def test_known_level(self):
        set_log_level("debug")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        with self.assertLogs(LOGGER_NAME, level="WARNING") as logs:
            set_log_level("chatty")
            self.assertEqual(logger.level, logging.INFO)
        self.assertIn("Unknown log level 'chatty'", logs.output[0])


class TestStructuredFormatter(unittest.TestCase):
    def test_json_output(self):
        record = logging.LogRecord(LOGGER_NAME, logging.INFO, __file__, 1, "Sending %s", ("Update",), None)
        data = json.loads(StructuredFormatter().format(record))
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["message"], "Sending Update")
        self.assertEqual(data["logger"], LOGGER_NAME)


if __name__ == "__main__":
    unittest.main()
