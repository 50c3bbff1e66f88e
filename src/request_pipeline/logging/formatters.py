"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from urllib.parse import urlparse, urlunparse

from request_pipeline.logging.context import get_log_context

# Query parameters whose values must never reach a log file
SENSITIVE_PARAMS = {
    "token",
    "access_token",
    "api_key",
    "apikey",
    "key",
    "sig",
    "signature",
    "password",
    "secret",
    "code",
}


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from URL.

    Preserves the path and structure for debugging while removing
    tokens that could grant access if exposed in logs.

    Args:
        url: URL that may contain sensitive parameters

    Returns:
        URL with sensitive parameters replaced with [REDACTED]
    """
    if not url:
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    if not parsed.query:
        return url

    sanitized_params = []
    for param in parsed.query.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized_params.append(f"{key}=[REDACTED]")
                continue
        sanitized_params.append(param)

    return urlunparse(parsed._replace(query="&".join(sanitized_params)))


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove sensitive tokens before logging.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        "request_id",
        "url",
        "http_method",
        "http_status",
        "duration_ms",
        "error_category",
        "error_message",
        "error_type",
        "destination",
        "bytes_downloaded",
        "worker_count",
        "active_units",
    ]

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["url"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if key in self.URL_FIELDS and isinstance(value, str):
            return sanitize_url(value)
        return value

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sanitized URLs."""
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }

        ctx = get_log_context()
        for key, value in ctx.items():
            if value:
                log_entry[key] = value

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._sanitize_value(field, value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]
        if ctx["stage"]:
            parts.append(f"[{ctx['stage']}]")

        prefix = " - ".join(parts)
        message = record.getMessage()

        url = getattr(record, "url", None)
        if url:
            message = f"{message} ({sanitize_url(url)})"

        request_id = getattr(record, "request_id", None) or ctx["request_id"]
        if request_id:
            return f"{prefix} - [{request_id[:8]}] {message}"

        return f"{prefix} - {message}"
