"""
Unit tests for src/common/error_handling.py
"""

import logging

from src.common.error_handling import ErrorCollector, record_item_failure


class TestErrorCollector:

    def test_messages_in_insertion_order(self):
        errors = ErrorCollector()
        errors.add_error("fetch", "fetch_page", "Fetch failed for https://a.com: HTTP 404")
        errors.add_error("extract", "extract_leads", "Extraction failed for https://b.com: timeout")

        assert len(errors) == 2
        assert errors.get_error_messages() == [
            "Fetch failed for https://a.com: HTTP 404",
            "Extraction failed for https://b.com: timeout",
        ]

    def test_exception_type_recorded(self):
        errors = ErrorCollector()
        errors.add_error("search", "search", "quota", exception=RuntimeError("quota"))

        assert errors.errors[0].exception_type == "RuntimeError"
        assert errors.errors[0].recoverable is True

    def test_summary_counts_by_stage(self):
        errors = ErrorCollector()
        errors.add_error("fetch", "fetch_page", "one")
        errors.add_error("fetch", "fetch_page", "two")
        errors.add_error("draft", "generate_email", "three", severity="high")

        summary = errors.summary()

        assert summary["total"] == 3
        assert summary["by_stage"] == {"fetch": 2, "draft": 1}
        assert summary["by_severity"]["high"] == 1
        assert summary["non_recoverable"] == 0


class TestRecordItemFailure:

    def test_logs_and_collects(self, caplog):
        errors = ErrorCollector()
        logger = logging.getLogger("test.error_handling")

        with caplog.at_level(logging.WARNING, logger="test.error_handling"):
            record_item_failure(errors, logger, "fetch", "fetch_page", "Fetch failed for https://a.com: HTTP 500")

        assert errors.get_error_messages() == ["Fetch failed for https://a.com: HTTP 500"]
        assert "[fetch] [fetch_page] Fetch failed" in caplog.text

    def test_without_collector_only_logs(self, caplog):
        logger = logging.getLogger("test.error_handling")

        with caplog.at_level(logging.WARNING, logger="test.error_handling"):
            record_item_failure(None, logger, "draft", "generate_email", "Email draft failed")

        assert "Email draft failed" in caplog.text
