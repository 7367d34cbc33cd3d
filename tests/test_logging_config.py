"""Tests for structured logging configuration and redaction."""

import json
import logging

import pytest
import structlog

from cli.logging_config import MAX_VALUE_CHARS, _redact_sensitive, _truncate_long_values, redact, setup_logging


class TestLoggingConfig:
    def test_level_filtering(self):
        setup_logging(json_mode=False, level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_default_level_is_info(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_processor_chain_includes_redaction(self):
        setup_logging(json_mode=True, level="DEBUG")
        assert _redact_sensitive in structlog.get_config()["processors"]

    def test_log_file_receives_json(self, tmp_path):
        log_file = tmp_path / "logs" / "relmem.log"
        setup_logging(json_mode=False, level="INFO", log_file=log_file)
        logging.getLogger("relmem.test").info("written to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["event"] == "written to file"


class TestRedaction:
    @pytest.mark.parametrize(
        "text,leaked",
        [
            ("key=sk-ant-REDACTED", "mnopqrstuvwxyz"),
            ("Bearer abcdefghijklmnopqrstuvwxyz123", "abcdefghijklmnopqrstuvwxyz123"),
            ("연락처 hong@example.co.kr", "hong@example.co.kr"),
            ("휴대폰 010-1234-5678", "010-1234-5678"),
            ("사무실 02-123-4567", "02-123-4567"),
            ("mobile 01012345678", "01012345678"),
            ("intl +82-10-1234-5678", "1234-5678"),
        ],
    )
    def test_sensitive_values_masked(self, text, leaked):
        assert leaked not in redact(text)

    def test_dates_not_mistaken_for_phones(self):
        assert redact("[작성일] 2024. 01. 10.") == "[작성일] 2024. 01. 10."
        assert redact("occurred_at 2024-01-10T14:00:00") == "occurred_at 2024-01-10T14:00:00"

    def test_processor_only_touches_strings(self):
        event = {"event": "call 010-1234-5678", "count": 3}
        result = _redact_sensitive(None, None, event)
        assert "010-1234-5678" not in result["event"]
        assert result["count"] == 3

    def test_nested_values_redacted(self):
        event = {"event": "seeded", "subject": {"phone": "010-9876-5432", "tags": ["a@b.com"]}}
        result = _redact_sensitive(None, None, event)
        assert result["subject"]["phone"] == "REDACTED-phone"
        assert result["subject"]["tags"] == ["REDACTED@email"]


class TestTruncation:
    def test_long_values_capped(self):
        event = {"event": "x" * 600, "rendered_text": "가" * 600}
        result = _truncate_long_values(None, None, event)
        assert len(result["event"]) == 600
        assert result["rendered_text"].startswith("가" * MAX_VALUE_CHARS)
        assert result["rendered_text"].endswith("[100 more chars]")

    def test_short_values_untouched(self):
        event = {"event": "ok", "evidence": "커피를 좋아함"}
        assert _truncate_long_values(None, None, dict(event)) == event
