"""
Unit tests for src/common/logger.py
"""

import json
import logging

import pytest

from src.common.logger import JsonLineFormatter, RunLogger, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestRunLogger:

    def test_prefix_and_record_attributes(self, caplog):
        logger = get_logger("test.run_logger", run_id="5f2b9c1d8e7a", stage="fetching")

        with caplog.at_level(logging.INFO, logger="test.run_logger"):
            logger.info("Fetched 8 pages")

        record = caplog.records[-1]
        assert record.getMessage() == "[run:5f2b9c1d] [fetching] Fetched 8 pages"
        assert record.run_id == "5f2b9c1d8e7a"
        assert record.stage == "fetching"

    def test_bind_switches_and_clears(self, caplog):
        logger = RunLogger("test.run_logger", run_id="abc12345xyz")

        with caplog.at_level(logging.INFO, logger="test.run_logger"):
            logger.bind(stage="drafting").info("one")
            logger.bind(run_id="", stage="").info("two")

        assert caplog.records[-2].getMessage() == "[run:abc12345] [drafting] one"
        assert caplog.records[-1].getMessage() == "two"

    def test_exception_attaches_traceback(self, caplog):
        logger = get_logger("test.run_logger")

        with caplog.at_level(logging.ERROR, logger="test.run_logger"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Run failed")

        assert caplog.records[-1].exc_info is not None

    def test_debug_mode_sets_level(self):
        logger = get_logger("test.run_logger.debug", debug_mode=True)
        assert logger.logger.level == logging.DEBUG


class TestJsonLineFormatter:

    def test_quotes_are_escaped(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, 'Search failed for query \'"CFO" Houston\'', None, None)
        record.run_id = "run-1"
        record.stage = ""

        payload = json.loads(JsonLineFormatter().format(record))

        assert payload["message"] == 'Search failed for query \'"CFO" Houston\''
        assert payload["run_id"] == "run-1"
        assert "stage" not in payload

    def test_setup_logging_installs_single_handler(self, restore_root_logger):
        setup_logging(level="DEBUG", format="json")
        setup_logging(level="DEBUG", format="json")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonLineFormatter)
        assert logging.getLogger("urllib3").level == logging.WARNING
