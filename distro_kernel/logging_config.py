"""
Structured JSON logging for the distribution ledger.

Each record is rendered as one JSON object:

    ts, level, logger, message     envelope; message is the snake_case event
    rider_id, batch_id, ...        ledger ids bound with LogContext.bind()
    <extra fields>                 whatever the call site passed as extra=
    error                          present when a ledger exception is attached

The ``error`` object is built from the exception's own structured data
(``DistroKernelError.log_fields``), so an InsufficientStockError logs the
requested and available quantities as fields rather than as message text.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, TextIO
from uuid import UUID

from distro_kernel.exceptions import DistroKernelError

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
]

LOGGER_NAMESPACE = "distro_kernel"

CONTEXT_FIELDS = ("correlation_id", "rider_id", "product_id", "batch_id", "distribution_id")

_NO_CONTEXT: Mapping[str, str] = MappingProxyType({})
_bound: ContextVar[Mapping[str, str]] = ContextVar("distro_log_context", default=_NO_CONTEXT)


class LogContext:
    """Ledger ids attached to every record logged inside a ``bind()`` block."""

    @staticmethod
    @contextmanager
    def bind(**ids: Any) -> Iterator[None]:
        """
        Tag records logged in this block with ledger ids.

        Blocks nest: inner ids are added to the outer ones and the outer set
        is restored on exit.  None values are skipped.
        """
        unknown = sorted(set(ids) - set(CONTEXT_FIELDS))
        if unknown:
            raise TypeError(f"Unknown log context field(s): {', '.join(unknown)}")
        merged = dict(_bound.get())
        merged.update((key, str(value)) for key, value in ids.items() if value is not None)
        token = _bound.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _bound.reset(token)

    @staticmethod
    def current() -> Mapping[str, str]:
        return _bound.get()


_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # UUID, Decimal and anything else without a JSON form
    return str(value)


def error_fields(exc: BaseException) -> dict[str, Any]:
    """Describe an exception for the ``error`` object of a log line."""
    fields: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, DistroKernelError):
        fields["code"] = exc.code
        fields.update(exc.log_fields())
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.current())
        # Explicit extras win over bound context.
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = error_fields(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ledger namespace, e.g. ``get_logger("services.batch_ledger")``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Send the ledger's logs to a single JSON handler.

    A later call replaces the handler installed by the earlier one, so the
    ledger logger never carries more than one of them.  Returns the handler.
    """
    global _installed
    with _lock:
        ledger = logging.getLogger(LOGGER_NAMESPACE)
        if _installed is not None:
            ledger.removeHandler(_installed)
        installed = handler or logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        ledger.addHandler(installed)
        ledger.setLevel(level)
        ledger.propagate = False
        _installed = installed
        return installed
