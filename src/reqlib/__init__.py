r"""reqlib - Asynchronous HTTP calls with redirects, retries and failover.

This package runs outbound HTTP calls as a sequence of physical attempts
over httpx. A single logical call follows redirects, retries server
errors and transport failures, and fails over between alternate hosts,
while reporting every transition to an optional observer.

Key Features:
    - Instance defaults merged with per-call options
    - Literal endpoint strings or structured options
    - Nested query parameters with square-bracket notation
    - Failover across alternate hosts on connection and DNS errors
    - Redirect following with a bounded chain
    - Retry of server errors and transport failures
    - Forwarding proxy support
    - JSON, text and streamed responses
    - Awaitable results or ``(error, result)`` completion callbacks

Example:
    ```pycon
    >>> import reqlib
    >>> from reqlib import EventSink, Request
    >>> body = reqlib.get("https://api.example.com/data")  # doctest: +SKIP
    >>> async def main():  # doctest: +SKIP
    ...     async with Request(
    ...         {"hostname": ["a.example.com", "b.example.com"], "protocol": "https"},
    ...         events=EventSink(on_retry=print),
    ...     ) as req:
    ...         items = await req.get({"path": "/v1/items", "query": {"page": 2}})
    ...         created = await req.post({"path": "/v1/items"}, {"name": "test"})
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "AttemptState",
    "EventSink",
    "HttpStatusError",
    "ProxyRequiredError",
    "RedirectError",
    "RedirectInvalidLocationError",
    "RedirectLimitExceededError",
    "RedirectMissingLocationError",
    "Request",
    "RequestConfig",
    "RequestError",
    "ResponseDecodeError",
    "StreamHttpError",
    "TransportError",
    "__version__",
    "delete",
    "get",
    "head",
    "patch",
    "post",
    "put",
    "request",
]

from importlib.metadata import PackageNotFoundError, version

from reqlib.api import delete, get, head, patch, post, put, request
from reqlib.callbacks import EventSink
from reqlib.client import Request
from reqlib.core import AttemptState, RequestConfig
from reqlib.exceptions import (
    HttpStatusError,
    ProxyRequiredError,
    RedirectError,
    RedirectInvalidLocationError,
    RedirectLimitExceededError,
    RedirectMissingLocationError,
    RequestError,
    ResponseDecodeError,
    StreamHttpError,
    TransportError,
)

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
