r"""Transport client collaborator backed by httpx.

The engine never opens sockets itself. It hands each physical attempt to
a ``TransportClient``, which returns the response with its body still
unread, or raises ``reqlib.TransportError`` when no response could be
obtained. ``HttpxTransport`` is the default implementation.
"""

from __future__ import annotations

__all__ = ["HttpxTransport", "TransportClient", "get_error_code"]

import errno
import logging
import socket
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from reqlib.core.config import default_port
from reqlib.exceptions import RedirectInvalidLocationError, TransportError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from reqlib.core.config import RequestConfig

logger: logging.Logger = logging.getLogger(__name__)

_FAMILY_ADDRESSES = {4: "0.0.0.0", 6: "::"}  # noqa: S104

# Prefix of the error httpx raises when a redirect Location cannot be parsed
_INVALID_LOCATION_PREFIX = "Invalid URL in location header"


class TransportClient(Protocol):
    """Capability that performs one physical attempt."""

    async def send(self, config: RequestConfig, content: bytes) -> httpx.Response:
        """Dispatch the attempt described by ``config``.

        Args:
            config: The attempt-scoped configuration.
            content: The encoded request payload, possibly empty.

        Returns:
            The response, with status and headers known and the body
            not yet read.

        Raises:
            TransportError: If no response was received.
            RedirectInvalidLocationError: If the response is a redirect
                whose Location header cannot be parsed.
        """

    async def aclose(self) -> None:
        """Release the connections held by the transport."""


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    pending = [exc]
    while pending:
        error = pending.pop(0)
        if id(error) in seen:
            continue
        seen.add(id(error))
        yield error
        pending.extend(getattr(error, "exceptions", ()))
        for linked in (error.__cause__, error.__context__):
            if linked is not None:
                pending.append(linked)


def get_error_code(exc: BaseException) -> str | None:
    """Find the errno-style code of a transport failure.

    The exception and its cause chain (including the members of exception
    groups) are searched for the underlying socket error.

    Args:
        exc: The exception raised by the HTTP client.

    Returns:
        ``"ENOTFOUND"`` for DNS failures, ``"ECONNREFUSED"``,
        ``"ECONNRESET"``, ``"ETIMEDOUT"`` for timeouts, another errno name
        when one is known, or ``None``.

    Example:
        ```pycon
        >>> import socket
        >>> import httpx
        >>> from reqlib.transport import get_error_code
        >>> try:
        ...     raise httpx.ConnectError("unreachable") from ConnectionRefusedError()
        ... except httpx.ConnectError as exc:
        ...     get_error_code(exc)
        ...
        'ECONNREFUSED'
        >>> get_error_code(httpx.ReadTimeout("slow"))
        'ETIMEDOUT'

        ```
    """
    for error in _iter_causes(exc):
        if isinstance(error, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(error, ConnectionRefusedError):
            return "ECONNREFUSED"
        if isinstance(error, ConnectionResetError):
            return "ECONNRESET"
        if isinstance(error, (TimeoutError, httpx.TimeoutException)):
            return "ETIMEDOUT"
        if isinstance(error, OSError) and error.errno in errno.errorcode:
            return errno.errorcode[error.errno]
    return None


def _build_url(config: RequestConfig) -> tuple[httpx.URL, bytes | None]:
    scheme = config.scheme
    hostname = config.hostname if isinstance(config.hostname, str) else None
    if hostname is None and isinstance(config.host, str):
        hostname = config.host.partition(":")[0]
    hostname = hostname or "localhost"
    if ":" in hostname and not hostname.startswith("["):
        hostname = f"[{hostname}]"
    authority = hostname
    if config.port is not None and config.port != default_port(scheme):
        authority = f"{hostname}:{config.port}"

    path = config.path or "/"
    if "://" in path:
        # absolute-form target for a forwarding proxy
        return httpx.URL(f"{scheme}://{authority}/"), path.encode("ascii")
    return httpx.URL(f"{scheme}://{authority}{path}"), None


def _build_auth(auth: Any) -> httpx.Auth | None:
    if auth is None:
        return None
    if isinstance(auth, httpx.Auth):
        return auth
    if isinstance(auth, str):
        username, _, password = auth.partition(":")
        return httpx.BasicAuth(username, password)
    username, password = auth
    return httpx.BasicAuth(username, password)


class HttpxTransport:
    r"""Transport client performing attempts with ``httpx.AsyncClient``.

    One ``httpx.AsyncClient`` is created lazily per distinct connection
    profile (TLS verification, local address, Unix socket, agent) and
    reused until ``aclose``. Redirects are never followed by httpx and
    environment proxies are ignored; both are handled by the engine.

    Args:
        transport: Optional ``httpx.AsyncBaseTransport`` used for every
            client instead of a network transport (e.g.
            ``httpx.MockTransport`` in tests).

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from reqlib.core import resolve_options
        >>> from reqlib.transport import HttpxTransport
        >>> transport = HttpxTransport(httpx.MockTransport(lambda request: httpx.Response(204)))
        >>> async def main():
        ...     response = await transport.send(resolve_options("https://api.example.com/"), b"")
        ...     await transport.aclose()
        ...     return response.status_code
        ...
        >>> asyncio.run(main())
        204

        ```
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport
        self._clients: dict[tuple[Any, ...], httpx.AsyncClient] = {}

    def _get_client(self, config: RequestConfig) -> httpx.AsyncClient:
        verify = config.reject_unauthorized is not False
        local_address = config.local_address or _FAMILY_ADDRESSES.get(config.family)
        key = (id(config.agent), verify, local_address, config.socket_path)
        client = self._clients.get(key)
        if client is None:
            transport = config.agent or self._transport
            if transport is None:
                transport = httpx.AsyncHTTPTransport(
                    verify=verify, local_address=local_address, uds=config.socket_path
                )
            client = httpx.AsyncClient(
                transport=transport, follow_redirects=False, trust_env=False
            )
            self._clients[key] = client
        return client

    async def send(self, config: RequestConfig, content: bytes) -> httpx.Response:
        url, target = _build_url(config)
        client = self._get_client(config)
        request = client.build_request(
            config.method or "GET",
            url,
            content=content or None,
            headers=config.headers,
            timeout=httpx.Timeout(config.timeout / 1000 if config.timeout else None),
            extensions={"target": target} if target is not None else None,
        )
        try:
            return await client.send(request, auth=_build_auth(config.auth), stream=True)
        except httpx.RemoteProtocolError as exc:
            if not str(exc).startswith(_INVALID_LOCATION_PREFIX):
                raise self._transport_error(request, config, url, exc) from exc
            logger.debug(f"{request.method} request to {config.url} redirected: {exc}")
            raise RedirectInvalidLocationError(
                f"{request.method} request to {config.url} redirected to an invalid "
                f"location: {exc}",
                cause=exc,
            ) from exc
        except httpx.TransportError as exc:
            raise self._transport_error(request, config, url, exc) from exc

    @staticmethod
    def _transport_error(
        request: httpx.Request, config: RequestConfig, url: httpx.URL, exc: httpx.TransportError
    ) -> TransportError:
        code = get_error_code(exc)
        logger.debug(f"{request.method} request to {config.url} failed ({code}): {exc!r}")
        return TransportError(
            f"{request.method} request to {config.url} failed: {code or type(exc).__name__} "
            f"{url.host}: {exc}",
            code=code,
            cause=exc,
        )

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
