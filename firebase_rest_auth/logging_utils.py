"""
Structured JSON logging utilities.

Provides a JSON formatter for cloud log collectors that never lets
credential material reach the log stream, plus a logger adapter that
tags every record with the account it belongs to.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any

# Extra fields whose values are replaced before a record is emitted.
SENSITIVE_FIELDS = frozenset(
    {"id_token", "idToken", "refresh_token", "refreshToken", "password", "api_key", "oob_code"}
)

REDACTED = "***"

# Three dot-separated base64url segments: a JWT.
_JWT_PATTERN = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")

_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "taskName", "message",
    }
)


def redact(text: str) -> str:
    """Mask anything that looks like a JWT in ``text``."""
    return _JWT_PATTERN.sub(REDACTED, text)


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter with credential redaction.

    Outputs single-line JSON objects with:
    - timestamp: ISO 8601 format in UTC
    - level, logger, message
    - extra context fields, with sensitive ones masked
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }

        if record.exc_info:
            log_obj["exception"] = redact(self.formatException(record.exc_info))

        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key in SENSITIVE_FIELDS:
                log_obj[key] = REDACTED
                continue
            try:
                json.dumps(value)
                log_obj[key] = value
            except (TypeError, ValueError):
                log_obj[key] = str(value)

        return json.dumps(log_obj, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str | None = "firebase_rest_auth",
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger,
            ``None`` for the root logger)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredJsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_auth_logger(name: str) -> logging.Logger:
    """Get a logger named ``firebase_rest_auth.{name}``."""
    return logging.getLogger(f"firebase_rest_auth.{name}")


class AccountLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the account's ``local_id`` to each record."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return f"[{self.extra.get('local_id', '?')}] {msg}", kwargs
