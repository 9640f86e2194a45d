r"""Asynchronous request facade.

This module provides the ``Request`` class, the entry point for making
calls. A ``Request`` stores read-only instance defaults, resolves them
against the options of each call and hands the result to a
``RequestEngine``. Calls either return their result or, when a
completion callback is given, pass ``(error, result)`` to it.
"""

from __future__ import annotations

__all__ = ["Request"]

from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx

from reqlib.core.options import resolve_options
from reqlib.engine import RequestEngine
from reqlib.exceptions import RequestError
from reqlib.transport import HttpxTransport

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from typing import Self

    from reqlib.callbacks import EventSink
    from reqlib.core.config import RequestConfig
    from reqlib.core.options import OptionsLike
    from reqlib.transport import TransportClient


class Request:
    r"""Asynchronous client issuing HTTP calls with shared defaults.

    Args:
        options: Instance defaults, given as a mapping, a
            ``RequestConfig`` or a literal endpoint string. They are never
            modified by a call.
        events: Observer receiving the lifecycle signals of every call.
        transport: The transport collaborator. An
            ``httpx.AsyncBaseTransport`` (e.g. ``httpx.MockTransport``) is
            wrapped in an ``HttpxTransport``. When omitted, a network
            ``HttpxTransport`` is created and owned by this instance.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from reqlib import Request
        >>> def handler(request):
        ...     return httpx.Response(200, json={"path": request.url.path})
        ...
        >>> async def main():
        ...     async with Request(
        ...         "https://test.api.io", transport=httpx.MockTransport(handler)
        ...     ) as req:
        ...         return await req.get({"path": "/v1/tests"})
        ...
        >>> asyncio.run(main())
        {'path': '/v1/tests'}

        ```
    """

    def __init__(
        self,
        options: OptionsLike = None,
        *,
        events: EventSink | None = None,
        transport: TransportClient | httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Fail fast on invalid defaults
        resolve_options(options)
        self._options = options
        self._owns_transport = transport is None or isinstance(transport, httpx.AsyncBaseTransport)
        if self._owns_transport:
            transport = HttpxTransport(transport)
        self._transport: TransportClient = transport
        self._engine = RequestEngine(transport, events)

    @property
    def events(self) -> EventSink:
        """The observer receiving the lifecycle signals."""
        return self._engine.events

    @property
    def owns_transport(self) -> bool:
        """Indicate if ``aclose`` closes the transport."""
        return self._owns_transport

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport when it was created by this instance."""
        if self._owns_transport:
            await self._transport.aclose()

    def get_options(self, options: OptionsLike = None) -> RequestConfig:
        """Resolve the options of a call against the instance defaults.

        Args:
            options: The call options.

        Returns:
            The configuration a call with these options would start from.

        Example:
            ```pycon
            >>> from reqlib import Request
            >>> req = Request({"hostname": "test.api.io", "max_retry_count": 1})
            >>> config = req.get_options("https://test.api.io/v1/tests?page=2")
            >>> config.path, config.max_retry_count
            ('/v1/tests?page=2', 1)

            ```
        """
        return resolve_options(self._options, options)

    async def call(
        self,
        options: OptionsLike = None,
        body: Any = None,
        *,
        method: str | None = None,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        r"""Run one logical call.

        Args:
            options: The call options, merged over the instance defaults.
            body: The request payload.
            method: The HTTP method, overriding the one in the options.
            callback: Optional completion callback. When given, it
                receives ``(None, result)`` or ``(error, None)`` and its
                return value is returned.

        Returns:
            The decoded body, an unread ``httpx.Response`` for streamed
            responses, or the return value of ``callback``.

        Raises:
            RequestError: If the call rejects and no callback is given.
            ValueError: If the options are invalid.
        """
        config = self.get_options(options)
        if method is not None:
            config = replace(config, method=method.upper())
        if callback is None:
            return await self._engine.execute(config, body)
        try:
            result = await self._engine.execute(config, body)
        except RequestError as exc:
            return callback(exc, None)
        return callback(None, result)

    async def get(
        self,
        options: OptionsLike = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a GET call. See ``call`` for the arguments."""
        return await self.call(options, method="GET", callback=callback)

    async def head(
        self,
        options: OptionsLike = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a HEAD call. See ``call`` for the arguments."""
        return await self.call(options, method="HEAD", callback=callback)

    async def delete(
        self,
        options: OptionsLike = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a DELETE call. See ``call`` for the arguments."""
        return await self.call(options, method="DELETE", callback=callback)

    async def post(
        self,
        options: OptionsLike = None,
        body: Any = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a POST call. See ``call`` for the arguments."""
        return await self.call(options, body, method="POST", callback=callback)

    async def put(
        self,
        options: OptionsLike = None,
        body: Any = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a PUT call. See ``call`` for the arguments."""
        return await self.call(options, body, method="PUT", callback=callback)

    async def patch(
        self,
        options: OptionsLike = None,
        body: Any = None,
        *,
        callback: Callable[[RequestError | None, Any], Any] | None = None,
    ) -> Any:
        """Send a PATCH call. See ``call`` for the arguments."""
        return await self.call(options, body, method="PATCH", callback=callback)
