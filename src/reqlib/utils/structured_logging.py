r"""Structured logging utilities for machine-readable log output.

The engine tags every record it emits during a logical call with a
``call_id`` so the attempts, redirects and retries of one call can be
grouped by a log aggregator. JSON output is opt-in: attach the
``StructuredFormatter`` to a handler of the ``reqlib`` logger.

Example:
    ```python
    import logging

    from reqlib.utils.structured_logging import StructuredFormatter

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger("reqlib")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ```
"""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "call_context",
    "get_call_id",
    "log_structured",
]

import contextvars
import itertools
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

# Identifier of the logical call running in the current context
_call_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("call_id", default=None)
_call_counter = itertools.count(1)

# Attributes every LogRecord carries; anything else came from ``extra``
_RECORD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def get_call_id() -> str | None:
    """Get the identifier of the logical call running in this context.

    Returns:
        The call identifier, or ``None`` outside of a call.

    Example:
        ```pycon
        >>> from reqlib.utils.structured_logging import call_context, get_call_id
        >>> get_call_id() is None
        True
        >>> with call_context("call-7"):
        ...     get_call_id()
        ...
        'call-7'

        ```
    """
    return _call_id.get()


@contextmanager
def call_context(call_id: str | None = None) -> Iterator[str]:
    """Bind a call identifier to the current context.

    The previous identifier is restored on exit, so nested calls keep
    their own identifier. Context variables are task-local, which keeps
    concurrent calls on one event loop apart.

    Args:
        call_id: The identifier to bind. A sequential one is generated
            when omitted.

    Yields:
        The bound identifier.
    """
    if call_id is None:
        call_id = f"call-{next(_call_counter)}"
    token = _call_id.set(call_id)
    try:
        yield call_id
    finally:
        _call_id.reset(token)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes one JSON object with the fields ``timestamp``
    (ISO-8601, UTC), ``level``, ``logger``, ``message``, ``call_id``
    (when inside a call), ``exception`` (when present) and every field
    passed through ``extra``. Values that are not JSON serializable are
    rendered with ``str``.

    Example:
        ```pycon
        >>> import logging
        >>> from io import StringIO
        >>> from reqlib.utils.structured_logging import StructuredFormatter
        >>> stream = StringIO()
        >>> handler = logging.StreamHandler(stream)
        >>> handler.setFormatter(StructuredFormatter())
        >>> logger = logging.getLogger("reqlib.doctest")
        >>> logger.addHandler(handler)
        >>> logger.setLevel(logging.INFO)
        >>> logger.info("attempt sent", extra={"tries": 1})
        >>> '"tries": 1' in stream.getvalue()
        True

        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        call_id = get_call_id()
        if call_id is not None:
            payload["call_id"] = call_id
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                payload[key] = value
        return json.dumps(payload, default=str)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return created.strftime(datefmt)
        return created.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def log_structured(logger: logging.Logger, level: int, message: str, **extra: Any) -> None:
    """Log a message with structured fields.

    Args:
        logger: Logger to use.
        level: Log level (e.g., ``logging.DEBUG``).
        message: Log message.
        **extra: Additional fields included in structured output.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, extra=extra)
