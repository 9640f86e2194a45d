r"""Core configuration, option resolution and per-call state.

This package contains the pieces shared by every logical call:
the structured request configuration and its defaults, the option
resolver that merges instance defaults with call overrides, parameter
validation, and the attempt state threaded through a call.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_REDIRECT_COUNT",
    "DEFAULT_MAX_RETRY_COUNT",
    "DEFAULT_TIMEOUT",
    "SUPPORTED_OPTIONS",
    "Alternate",
    "AttemptState",
    "RequestConfig",
    "resolve_options",
    "serialize_query",
    "validate_policy_params",
    "validate_timeout",
]

from reqlib.core.config import (
    DEFAULT_MAX_REDIRECT_COUNT,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_TIMEOUT,
    SUPPORTED_OPTIONS,
    RequestConfig,
)
from reqlib.core.options import resolve_options, serialize_query
from reqlib.core.state import Alternate, AttemptState
from reqlib.core.validation import validate_policy_params, validate_timeout
