"""Tests for the console log format."""

from unittest.mock import patch

import structlog

from lecturescan import log


class TestRender:
    def test_event_with_fields(self):
        line = log._render(None, "info", {
            "timestamp": "12:30:45",
            "level": "INF",
            "event": "correction failed",
            "error": "bad input",
            "returncode": 1,
            "_internal": "hidden",
        })

        assert line == '12:30:45 INF correction failed error="bad input" returncode=1'

    def test_event_without_fields(self):
        line = log._render(None, "info", {"timestamp": "12:30:45", "level": "DBG", "event": "ready"})

        assert line == "12:30:45 DBG ready"


class TestStamp:
    def test_known_level(self):
        event = log._stamp(None, "warning", {"level": "warning"})

        assert event["level"] == "WRN"
        assert len(event["timestamp"]) == 8

    def test_unknown_level_truncated(self):
        assert log._stamp(None, "notice", {})["level"] == "NOT"


class TestConfigure:
    def test_debug_flag_overrides_level(self):
        with patch.object(log.structlog, "configure") as configure:
            log.configure("ERROR", debug=True)

        wrapper = configure.call_args.kwargs["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(10)
