"""
Unit tests for structured logger module.
"""

import json
from io import StringIO

import pytest

from src.common.structured_logger import (
    EventType,
    LogEvent,
    StageContext,
    StageStatus,
    StructuredLogger,
)


def events(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


@pytest.fixture
def stream():
    return StringIO()


class TestLogEvent:
    """Tests for LogEvent dataclass."""

    def test_to_json_includes_required_fields(self):
        event = LogEvent(timestamp="2026-03-14T06:00:00Z", event="run_start", run_id="run123")

        assert json.loads(event.to_json()) == {
            "timestamp": "2026-03-14T06:00:00Z", "event": "run_start", "run_id": "run123",
        }

    def test_to_json_excludes_none_values(self):
        event = LogEvent(timestamp="2026-03-14T06:00:00Z", event="stage_start", run_id="run123", stage="searching")
        result = json.loads(event.to_json())

        assert result["stage"] == "searching"
        assert "status" not in result
        assert "duration_ms" not in result


class TestStructuredLogger:

    def test_run_events(self, stream):
        logger = StructuredLogger("run123", stream=stream)

        logger.run_start(metadata={"geo_name": "Houston"})
        logger.run_complete(status="success", duration_ms=1500, metadata={"leads_selected": 5})

        start, complete = events(stream)
        assert start["event"] == EventType.RUN_START.value
        assert start["metadata"] == {"geo_name": "Houston"}
        assert complete["event"] == EventType.RUN_COMPLETE.value
        assert complete["status"] == "success"
        assert complete["duration_ms"] == 1500
        assert complete["run_id"] == "run123"

    def test_defaults_to_stdout(self, capsys):
        StructuredLogger("run123").run_start()

        assert json.loads(capsys.readouterr().out)["event"] == "run_start"

    def test_disabled_logger_is_silent(self, stream):
        logger = StructuredLogger("run123", enabled=False, stream=stream)

        logger.run_start()
        with StageContext(logger, "searching"):
            pass

        assert stream.getvalue() == ""


class TestStageContext:

    def test_records_duration_and_metadata(self, stream):
        logger = StructuredLogger("run123", stream=stream)

        with StageContext(logger, "searching") as ctx:
            ctx.add_metadata("queries", 12)

        start, complete = events(stream)
        assert start == {"timestamp": start["timestamp"], "event": "stage_start", "run_id": "run123", "stage": "searching"}
        assert complete["status"] == StageStatus.SUCCESS.value
        assert complete["metadata"] == {"queries": 12}
        assert complete["duration_ms"] == ctx.duration_ms

    def test_error_is_emitted_and_reraised(self, stream):
        logger = StructuredLogger("run123", stream=stream)

        with pytest.raises(RuntimeError, match="write concern"):
            with StageContext(logger, "persisting"):
                raise RuntimeError("write concern timeout")

        error = events(stream)[-1]
        assert error["event"] == EventType.STAGE_ERROR.value
        assert error["status"] == StageStatus.ERROR.value
        assert error["error"] == "write concern timeout"
        assert "metadata" not in error
