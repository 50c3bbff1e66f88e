"""Tests for logging formatters, context and setup."""

import json
import logging

import pytest

from request_pipeline.errors import StatusCodeError
from request_pipeline.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from request_pipeline.logging.formatters import (
    ConsoleFormatter,
    JSONFormatter,
    sanitize_url,
)
from request_pipeline.logging.setup import get_log_file_path, setup_logging
from request_pipeline.logging.utilities import assert_failure, log_exception


def make_record(msg="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="request_pipeline.test",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def preserve_root_handlers():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSanitizeUrl:
    """Tests for sanitize_url()."""

    def test_redacts_sensitive_params(self):
        url = "https://api.example.com/users?token=abc123&page=2"

        assert sanitize_url(url) == "https://api.example.com/users?token=[REDACTED]&page=2"

    def test_case_insensitive_keys(self):
        assert "secret" not in sanitize_url("https://x.test/?API_KEY=secret")

    def test_url_without_query_unchanged(self):
        assert sanitize_url("https://x.test/a/b") == "https://x.test/a/b"

    def test_empty(self):
        assert sanitize_url("") == ""


class TestLogContext:
    """Tests for context variables."""

    def test_set_and_get(self):
        set_log_context(request_id="abc", method="GET")

        ctx = get_log_context()
        assert ctx["request_id"] == "abc"
        assert ctx["method"] == "GET"
        assert ctx["stage"] is None

    def test_none_arguments_leave_values(self):
        set_log_context(stage="build")
        set_log_context(request_id="r1")

        assert get_log_context()["stage"] == "build"

    def test_clear(self):
        set_log_context(request_id="r1", method="POST", stage="send")
        clear_log_context()

        assert get_log_context() == {"request_id": None, "method": None, "stage": None}


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        line = JSONFormatter().format(make_record("Send: x"))
        entry = json.loads(line)

        assert entry["msg"] == "Send: x"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "request_pipeline.test"
        assert entry["ts"].endswith("Z")

    def test_injects_context(self):
        set_log_context(request_id="req-1", stage="evaluate")

        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["request_id"] == "req-1"
        assert entry["stage"] == "evaluate"

    def test_extra_fields_and_url_sanitizing(self):
        record = make_record(
            url="https://api.example.com/a?access_token=xyz",
            http_status=200,
            duration_ms=12.5,
        )

        entry = json.loads(JSONFormatter().format(record))

        assert entry["url"] == "https://api.example.com/a?access_token=[REDACTED]"
        assert entry["http_status"] == 200
        assert entry["duration_ms"] == 12.5

    def test_error_records_carry_source_location(self):
        entry = json.loads(JSONFormatter().format(make_record(level=logging.ERROR)))

        assert entry["file"].endswith(":10")


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_includes_short_request_id_and_url(self):
        record = make_record(
            "Received",
            request_id="0123456789abcdef",
            url="https://x.test/?password=hunter2",
        )

        line = ConsoleFormatter().format(record)

        assert "[01234567]" in line
        assert "hunter2" not in line
        assert "Received" in line

    def test_includes_stage(self):
        set_log_context(stage="deliver")

        assert "[deliver]" in ConsoleFormatter().format(make_record())


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_log_file_path_layout(self, tmp_path):
        path = get_log_file_path(tmp_path, name="svc", instance_id="p1")

        assert path.parent.parent == tmp_path
        assert path.name.startswith("svc_")
        assert path.name.endswith("_p1.log")

    def test_writes_json_lines(self, tmp_path, preserve_root_handlers):
        logger = setup_logging(name="pipeline_test", log_dir=tmp_path, use_instance_id=False)
        logger.info("Send: https://api.example.com/users - GET", extra={"http_status": 200})
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_file = get_log_file_path(tmp_path, name="pipeline_test")
        lines = [json.loads(line) for line in log_file.read_text().splitlines()]

        assert any(line["msg"].startswith("Send:") for line in lines)
        assert logging.getLogger("aiohttp").level == logging.WARNING

    def test_console_only(self, tmp_path, preserve_root_handlers):
        setup_logging(log_dir=tmp_path, log_to_file=False)

        assert list(tmp_path.iterdir()) == []


class TestUtilities:
    """Tests for log_exception / assert_failure."""

    def test_log_exception_adds_category(self, caplog):
        logger = logging.getLogger("request_pipeline.test")
        with caplog.at_level(logging.ERROR, logger="request_pipeline.test"):
            log_exception(logger, StatusCodeError(404), "Request failed")

        record = caplog.records[-1]
        assert record.error_category == "permanent"
        assert record.error_type == "StatusCodeError"

    def test_assert_failure_logs_critical_with_stack(self, caplog):
        logger = logging.getLogger("request_pipeline.test")
        with caplog.at_level(logging.CRITICAL, logger="request_pipeline.test"):
            assert_failure(logger, "No data and no error", request_id="r1")

        record = caplog.records[-1]
        assert record.levelno == logging.CRITICAL
        assert record.stack_info
        assert record.request_id == "r1"
