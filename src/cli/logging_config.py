"""Structured logging configuration using structlog."""

import logging
import re
import sys
from pathlib import Path

import structlog

MAX_VALUE_CHARS = 500

# Patterns to redact from log output. Contact details come from business
# cards and notes, so phone numbers and e-mails are masked with the keys.
_REDACT_PATTERNS = [
    (re.compile(r"(sk-ant-[a-zA-Z0-9_-]{10})[a-zA-Z0-9_-]*"), r"\1...REDACTED"),
    (re.compile(r"(sk-[a-zA-Z0-9_-]{6})[a-zA-Z0-9_-]{20,}"), r"\1...REDACTED"),
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9_.-]{20,}"), r"\1REDACTED"),
    (re.compile(r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)[a-zA-Z0-9_-]{10,}"), r"\1REDACTED"),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "REDACTED@email"),
    # Korean mobile/landline: 010-1234-5678, 02-123-4567, 010 1234 5678
    (re.compile(r"\b0\d{1,2}[-. ]?\d{3,4}[-. ]?\d{4}\b"), "REDACTED-phone"),
    # International form: +82-10-1234-5678, +1 415 555 0100
    (re.compile(r"\+\d{1,3}[-. ]?\d{1,4}[-. ]?\d{3,4}[-. ]?\d{4}\b"), "REDACTED-phone"),
]


def redact(value: str) -> str:
    for pattern, replacement in _REDACT_PATTERNS:
        value = pattern.sub(replacement, value)
    return value


def _scrub(value):
    if isinstance(value, str):
        return redact(value)
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(v) for v in value)
    return value


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Structlog processor to redact API keys and contact PII, nested values included."""
    for key, value in event_dict.items():
        event_dict[key] = _scrub(value)
    return event_dict


def _truncate_long_values(_, __, event_dict: dict) -> dict:
    """Rendered observations and evidence can run long; cap them in log lines."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_VALUE_CHARS:
            event_dict[key] = value[:MAX_VALUE_CHARS] + f"... [{len(value) - MAX_VALUE_CHARS} more chars]"
    return event_dict


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(json_mode: bool = False, level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure structlog with appropriate renderer.

    Args:
        json_mode: JSON renderer for machine consumption; False gives the
                   console renderer used by the CLI.
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional file that receives JSON lines in addition to stderr.
    """
    json_renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            _truncate_long_values,
            _redact_sensitive,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_formatter(json_renderer if json_mode else structlog.dev.ConsoleRenderer()))
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(_formatter(json_renderer))
        handlers.append(file_handler)

    root = logging.getLogger()
    for old in root.handlers:
        if isinstance(old, logging.FileHandler):
            old.close()
    root.handlers = handlers
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
