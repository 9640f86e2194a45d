r"""Utility functions shared across the package."""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "call_context",
    "get_call_id",
    "log_structured",
]

from reqlib.utils.structured_logging import (
    StructuredFormatter,
    call_context,
    get_call_id,
    log_structured,
)
