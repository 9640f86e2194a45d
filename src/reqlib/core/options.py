r"""Option resolution for request configurations.

This module merges instance defaults with per-call overrides into a
normalized, validated ``RequestConfig``. Only the option names listed in
``SUPPORTED_OPTIONS`` are honored; any other key is dropped. Structured
query parameters are flattened with square-bracket notation and appended
to the request path.
"""

from __future__ import annotations

__all__ = [
    "ensure_options",
    "format_query_value",
    "is_empty",
    "parse_endpoint",
    "resolve_options",
    "serialize_query",
    "square_bracket_notation",
]

import logging
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from reqlib.core.config import (
    DEFAULT_MAX_REDIRECT_COUNT,
    DEFAULT_MAX_RETRY_COUNT,
    DEFAULT_METHOD,
    DEFAULT_TIMEOUT,
    SUPPORTED_OPTIONS,
    RequestConfig,
)
from reqlib.core.validation import validate_policy_params, validate_port, validate_timeout

logger: logging.Logger = logging.getLogger(__name__)

OptionsLike = Mapping[str, Any] | RequestConfig | str | None

_INTEGER_OPTIONS = ("port", "timeout", "max_redirect_count", "max_retry_count")
_HOST_OPTIONS = ("host", "hostname", "hosts", "hostnames")


def is_empty(value: Any) -> bool:
    """Indicate if an option value counts as absent.

    Args:
        value: The value to check.

    Returns:
        ``True`` for ``None``, empty strings and empty containers.

    Example:
        ```pycon
        >>> from reqlib.core.options import is_empty
        >>> is_empty(None), is_empty(""), is_empty([]), is_empty({})
        (True, True, True, True)
        >>> is_empty(0), is_empty(False)
        (False, False)

        ```
    """
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, Mapping, httpx.Headers)):
        return len(value) == 0
    return False


def parse_endpoint(endpoint: str) -> dict[str, Any]:
    """Parse a literal endpoint string into structured option fields.

    Args:
        endpoint: An absolute URL such as ``"https://api.example.com/v1"``.

    Returns:
        A dictionary with ``protocol``, ``hostname``, ``host``, ``port``
        (only when explicit), ``pathname`` and ``path`` (path plus query).

    Raises:
        ValueError: If the endpoint is not an absolute URL.

    Example:
        ```pycon
        >>> from reqlib.core.options import parse_endpoint
        >>> parse_endpoint("https://test.api.io:8443/v1/tests?page=2")
        {'protocol': 'https', 'hostname': 'test.api.io', 'host': 'test.api.io:8443', 'port': 8443, 'pathname': '/v1/tests', 'path': '/v1/tests?page=2'}

        ```
    """
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as exc:
        msg = f"invalid endpoint {endpoint!r}: {exc}"
        raise ValueError(msg) from exc
    if not url.is_absolute_url:
        msg = f"endpoint must be an absolute URL, got {endpoint!r}"
        raise ValueError(msg)

    options: dict[str, Any] = {
        "protocol": url.scheme,
        "hostname": url.host,
        "host": url.netloc.decode("ascii"),
    }
    if url.port is not None:
        options["port"] = url.port
    options["pathname"] = url.path
    options["path"] = url.raw_path.decode("ascii")
    return options


def ensure_options(options: OptionsLike) -> dict[str, Any]:
    """Convert any accepted options form into a dictionary.

    Literal endpoint strings are parsed, ``RequestConfig`` instances
    contribute their set fields, and mappings are copied.

    Args:
        options: A mapping, a ``RequestConfig``, an endpoint string or
            ``None``.

    Returns:
        A new dictionary of option values.
    """
    if options is None:
        return {}
    if isinstance(options, str):
        return parse_endpoint(options)
    if isinstance(options, RequestConfig):
        return options.to_dict()
    return dict(options)


def format_query_value(value: Any) -> Any:
    """Render a leaf query value.

    Sequences with more than one element are joined with commas, a
    single-element sequence keeps its element, date and time values become
    ISO-8601 strings, booleans become ``true``/``false`` and any other
    scalar is converted with ``str``.

    Args:
        value: The leaf value.

    Returns:
        The serialized value.

    Example:
        ```pycon
        >>> from datetime import datetime, timezone
        >>> from reqlib.core.options import format_query_value
        >>> format_query_value(["field1", "field2"])
        'field1,field2'
        >>> format_query_value(["field1"])
        'field1'
        >>> format_query_value(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2024-01-02T03:04:05Z'
        >>> format_query_value(True)
        'true'

        ```
    """
    if isinstance(value, (list, tuple)):
        if len(value) == 1:
            return format_query_value(value[0])
        return ",".join(format_query_value(item) for item in value)
    if isinstance(value, datetime):
        instant = value.astimezone(timezone.utc)
        return instant.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def square_bracket_notation(query: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten nested query mappings with square-bracket notation.

    Empty values are dropped at every level.

    Args:
        query: The query mapping, possibly nested.

    Returns:
        A flat dictionary whose nested keys read ``parent[child]``.

    Example:
        ```pycon
        >>> from reqlib.core.options import square_bracket_notation
        >>> square_bracket_notation({"format": "test", "sort": {"desc": ["a", "b"]}, "skip": None})
        {'format': 'test', 'sort[desc]': ['a', 'b']}

        ```
    """
    result: dict[str, Any] = {}

    def _flatten(document: Mapping[str, Any], prefix: str) -> None:
        for key, value in document.items():
            if is_empty(value):
                continue
            name = f"{prefix}[{key}]" if prefix else str(key)
            if isinstance(value, Mapping):
                _flatten(value, name)
            else:
                result[name] = value

    _flatten(query, "")
    return result


def serialize_query(query: Mapping[str, Any]) -> dict[str, str]:
    """Serialize a structured query into flat string entries.

    Args:
        query: The query mapping, possibly nested.

    Returns:
        A flat dictionary of string keys and string values.

    Example:
        ```pycon
        >>> from reqlib.core.options import serialize_query
        >>> serialize_query({"format": "test", "sort": {"desc": ["field1", "field2"]}})
        {'format': 'test', 'sort[desc]': 'field1,field2'}

        ```
    """
    return {
        key: format_query_value(value) for key, value in square_bracket_notation(query).items()
    }


def _coerce_int(name: str, value: Any) -> Any:
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            msg = f"{name} must be an integer, got {value!r}"
            raise ValueError(msg) from None
    return value


def _normalize(options: dict[str, Any]) -> dict[str, Any]:
    if "protocol" in options:
        options["protocol"] = str(options["protocol"]).rstrip(":").lower()
    if "method" in options:
        options["method"] = str(options["method"]).upper()
    for name in _INTEGER_OPTIONS:
        if name in options:
            options[name] = _coerce_int(name, options[name])
    for name in _HOST_OPTIONS:
        value = options.get(name)
        if isinstance(value, list):
            options[name] = tuple(value)
        elif name in ("hosts", "hostnames") and isinstance(value, str):
            options[name] = (value,)
    return options


def _query_applied(query_origin: OptionsLike, path_origin: OptionsLike) -> bool:
    # the query of a resolved config is already part of its own path
    return (
        isinstance(query_origin, RequestConfig)
        and query_origin.query_applied
        and path_origin is query_origin
    )


def _build_path(path: str | None, pathname: str | None, query: Mapping[str, str]) -> str:
    path = path or pathname or "/"
    if not path.startswith("/") and "://" not in path:
        path = f"/{path}"
    if not query:
        return path
    encoded = urlencode(query, quote_via=quote)
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{encoded}"


def resolve_options(defaults: OptionsLike = None, overrides: OptionsLike = None) -> RequestConfig:
    """Merge instance defaults and call overrides into a request config.

    A call-time value wins over an instance default; empty values count as
    absent. Keys outside ``SUPPORTED_OPTIONS`` are dropped. The policy
    defaults (``max_redirect_count=5``, ``max_retry_count=3``,
    ``timeout=60000``) are applied after the merge, the query is
    serialized and appended to the path, and the policy parameters are
    validated.

    Args:
        defaults: The instance defaults.
        overrides: The call-time options.

    Returns:
        The resolved, validated configuration.

    Raises:
        ValueError: If an option value is invalid.

    Example:
        ```pycon
        >>> from reqlib.core.options import resolve_options
        >>> config = resolve_options(
        ...     {"hostname": "api.example.com", "max_retry_count": 1},
        ...     {"path": "/v1/items", "query": {"page": 2}, "unknown": True},
        ... )
        >>> config.path
        '/v1/items?page=2'
        >>> config.max_retry_count, config.max_redirect_count, config.timeout
        (1, 5, 60000)

        ```
    """
    base = ensure_options(defaults)
    call = ensure_options(overrides)

    dropped = sorted((set(base) | set(call)) - SUPPORTED_OPTIONS)
    if dropped:
        logger.debug(f"Ignoring unsupported request options: {', '.join(dropped)}")

    merged: dict[str, Any] = {}
    origins: dict[str, OptionsLike] = {}
    for name in SUPPORTED_OPTIONS:
        for origin, source in ((overrides, call), (defaults, base)):
            value = source.get(name)
            if not is_empty(value):
                merged[name] = value
                origins[name] = origin
                break
    merged = _normalize(merged)

    merged.setdefault("max_redirect_count", DEFAULT_MAX_REDIRECT_COUNT)
    merged.setdefault("max_retry_count", DEFAULT_MAX_RETRY_COUNT)
    merged.setdefault("timeout", DEFAULT_TIMEOUT)
    merged.setdefault("method", DEFAULT_METHOD)
    merged["headers"] = httpx.Headers(merged.get("headers"))

    validate_policy_params(
        max_redirect_count=merged["max_redirect_count"],
        max_retry_count=merged["max_retry_count"],
    )
    validate_timeout(merged["timeout"])
    if "port" in merged:
        validate_port(merged["port"])

    query = serialize_query(merged["query"]) if "query" in merged else {}
    if query:
        merged["query"] = query
    else:
        merged.pop("query", None)
    if _query_applied(origins.get("query"), origins.get("path")):
        query = {}
    merged["path"] = _build_path(merged.get("path"), merged.get("pathname"), query)

    return RequestConfig(**merged, query_applied=True)
