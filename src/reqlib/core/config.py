r"""Request configuration dataclass and defaults.

This module provides the default policy constants and the structured
``RequestConfig`` that replaces a free-form bag of request options. A
``RequestConfig`` is immutable: the engine derives new instances with
``dataclasses.replace`` whenever an attempt needs a different target.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_REDIRECT_COUNT",
    "DEFAULT_MAX_RETRY_COUNT",
    "DEFAULT_METHOD",
    "DEFAULT_TIMEOUT",
    "HTTPS_PORT",
    "HTTP_ERROR_THRESHOLD",
    "HTTP_PORT",
    "HTTP_RETRY_THRESHOLD",
    "SUPPORTED_OPTIONS",
    "RequestConfig",
    "default_port",
]

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

# Maximum number of 3xx hops followed within one logical call
DEFAULT_MAX_REDIRECT_COUNT = 5

# Maximum number of re-attempts for server errors and transport errors
# Total attempts for a failing endpoint = max_retry_count + 1
DEFAULT_MAX_RETRY_COUNT = 3

# Default timeout of a physical attempt, in milliseconds
DEFAULT_TIMEOUT = 60000

DEFAULT_METHOD = "GET"

HTTP_PORT = 80
HTTPS_PORT = 443

# Responses at or above this status are rejected
HTTP_ERROR_THRESHOLD = 400

# Decoded responses at or above this status are retried while budget remains
HTTP_RETRY_THRESHOLD = 500


@dataclass(frozen=True)
class RequestConfig:
    """Configuration of one logical request.

    Every field defaults to ``None`` so that a partially filled config
    never masks a value coming from the instance defaults. The policy
    defaults are applied by ``reqlib.core.options.resolve_options``.

    Args:
        agent: Optional ``httpx.AsyncBaseTransport`` used for the call.
        auth: Basic credentials, either ``"user:password"`` or a
            ``(user, password)`` tuple.
        family: IP family (4 or 6) used to pick the local bind address.
        local_address: Local address to bind outgoing connections to.
        proxy: URL of a forwarding HTTP proxy.
        reject_unauthorized: Whether TLS certificates are verified.
        socket_path: Path of a Unix domain socket to connect through.
        host: Destination host, optionally with a ``:port`` suffix. A
            sequence of hosts enables failover.
        hostname: Destination host name. A sequence enables failover.
        hosts: Alternate list of hosts used for failover.
        hostnames: Alternate list of host names used for failover.
        port: Destination port.
        protocol: URL scheme (``"http"`` or ``"https"``).
        path: Request path, including the serialized query once resolved.
        pathname: Path template used when ``path`` is not set.
        query: Query parameters. Nested values are allowed before
            resolution; afterwards it is a flat mapping of strings.
        headers: Request headers.
        method: HTTP method.
        timeout: Timeout of each physical attempt in milliseconds.
            ``0`` disables the timeout.
        max_redirect_count: Maximum number of redirects followed.
        max_retry_count: Maximum number of retries.
        query_applied: Whether ``query`` is already part of ``path``.
            Not an option; set by ``resolve_options``.

    Example:
        ```pycon
        >>> from reqlib.core.config import RequestConfig
        >>> config = RequestConfig(hostname="api.example.com", path="/v1/items")
        >>> config.hostname
        'api.example.com'
        >>> config.url
        'http://api.example.com/v1/items'

        ```
    """

    agent: Any = None
    auth: str | tuple[str, str] | None = None
    family: int | None = None
    local_address: str | None = None
    proxy: str | None = None
    reject_unauthorized: bool | None = None
    socket_path: str | None = None
    host: str | tuple[str, ...] | None = None
    hostname: str | tuple[str, ...] | None = None
    hosts: tuple[str, ...] | None = None
    hostnames: tuple[str, ...] | None = None
    port: int | None = None
    protocol: str | None = None
    path: str | None = None
    pathname: str | None = None
    query: Mapping[str, Any] | None = None
    headers: httpx.Headers | None = None
    method: str | None = None
    timeout: int | float | None = None
    max_redirect_count: int | None = None
    max_retry_count: int | None = None
    query_applied: bool = field(
        default=False, repr=False, compare=False, metadata={"option": False}
    )

    @property
    def scheme(self) -> str:
        """The URL scheme, ``http`` when no protocol is set."""
        return self.protocol or "http"

    @property
    def url(self) -> str:
        """Render the target of this config as an absolute URL.

        The path is returned untouched when it is already in absolute
        form, which is the case for attempts routed through a proxy.
        """
        path = self.path or self.pathname or "/"
        if "://" in path:
            return path
        host = self.hostname if isinstance(self.hostname, str) else None
        if host is None and isinstance(self.host, str):
            host = self.host
        authority = host or "localhost"
        if self.port is not None and ":" not in authority:
            if self.port != default_port(self.scheme):
                authority = f"{authority}:{self.port}"
        return f"{self.scheme}://{authority}{path}"

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a dictionary of its set fields.

        Returns:
            A dictionary with every option field whose value is not
            ``None``.

        Example:
            ```pycon
            >>> from reqlib.core.config import RequestConfig
            >>> RequestConfig(hostname="api.example.com", port=8080).to_dict()
            {'hostname': 'api.example.com', 'port': 8080}

            ```
        """
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.metadata.get("option", True) and getattr(self, item.name) is not None
        }


# Exhaustive allow-list of option names honored when merging options
SUPPORTED_OPTIONS: frozenset[str] = frozenset(
    item.name for item in fields(RequestConfig) if item.metadata.get("option", True)
)


def default_port(protocol: str | None) -> int:
    """Return the default port of a URL scheme.

    Args:
        protocol: The URL scheme, with or without a trailing colon.

    Returns:
        443 for secure schemes, 80 otherwise.

    Example:
        ```pycon
        >>> from reqlib.core.config import default_port
        >>> default_port("https")
        443
        >>> default_port("http:")
        80

        ```
    """
    if protocol and protocol.rstrip(":").lower() == "https":
        return HTTPS_PORT
    return HTTP_PORT
