"""Root logging configuration with redaction of venue credentials."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Optional, TextIO

REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = ("token", "api_token", "authorize", "apikey", "api_key", "secret", "password")

# "key": "value" / 'key': 'value' pairs inside rendered mappings
_MAPPING_PATTERN = re.compile(
    r"""(?P<key>['"](?:%s)['"]\s*:\s*)(?P<quote>['"])(?P<value>.*?)(?P=quote)""" % "|".join(_SENSITIVE_KEYS),
    re.IGNORECASE,
)
# key=value inside query strings and plain text
_ASSIGNMENT_PATTERN = re.compile(
    r"(?P<key>\b(?:%s)=)(?P<value>[^&\s'\"]+)" % "|".join(_SENSITIVE_KEYS),
    re.IGNORECASE,
)

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def redact(text: str) -> str:
    text = _MAPPING_PATTERN.sub(lambda m: f"{m.group('key')}{m.group('quote')}{REDACTED}{m.group('quote')}", text)
    return _ASSIGNMENT_PATTERN.sub(lambda m: f"{m.group('key')}{REDACTED}", text)


class RedactingFilter(logging.Filter):
    """Rewrite records so API tokens never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # left for the handler to report as a formatting error
            return True
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class _RedactingLogRecordFactory:
    def __init__(self, base) -> None:
        self.base = base
        self._filter = RedactingFilter()

    def __call__(self, *args: Any, **kwargs: Any) -> logging.LogRecord:
        record = self.base(*args, **kwargs)
        self._filter.filter(record)
        return record


def _debug_to_level(debug: int) -> int:
    if debug <= 0:
        return logging.WARNING
    if debug == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(
    debug: int = 1,
    *,
    stream_target: Optional[TextIO] = None,
    log_format: str = _FORMAT,
) -> logging.Logger:
    """Install a single root stream handler and enable redaction everywhere.

    Redaction is installed at record creation so loggers with their own
    handlers (for example HTTP client libraries) are covered as well.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_risk_coach_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream_target or sys.stderr)
    handler.setFormatter(logging.Formatter(log_format))
    handler.addFilter(RedactingFilter())
    handler._risk_coach_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(_debug_to_level(debug))

    factory = logging.getLogRecordFactory()
    if not isinstance(factory, _RedactingLogRecordFactory):
        logging.setLogRecordFactory(_RedactingLogRecordFactory(factory))
    return root


__all__ = ["REDACTED", "RedactingFilter", "configure_logging", "redact"]
