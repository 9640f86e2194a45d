r"""One-shot asynchronous calls.

Each function opens a throwaway ``Request``, runs a single call and
closes it again. When the call yields a live stream (a streamed result,
or the response attached to a ``StreamHttpError``) the throwaway
``Request`` stays open until that response is closed, which happens once
its body is fully read or ``aclose`` is called.
"""

from __future__ import annotations

__all__ = ["delete", "get", "head", "patch", "post", "put", "request"]

from typing import TYPE_CHECKING, Any

import httpx

from reqlib.client import Request
from reqlib.exceptions import RequestError, StreamHttpError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from reqlib.callbacks import EventSink
    from reqlib.core.options import OptionsLike
    from reqlib.transport import TransportClient


class _RequestClosingStream(httpx.AsyncByteStream):
    """Response body stream closing a throwaway ``Request`` with it."""

    def __init__(self, stream: httpx.AsyncByteStream, owner: Request) -> None:
        self._stream = stream
        self._owner = owner

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            yield chunk

    async def aclose(self) -> None:
        try:
            await self._stream.aclose()
        finally:
            await self._owner.aclose()


def _hand_over(outcome: Any, owner: Request) -> bool:
    """Tie the lifetime of ``owner`` to the live response of a call.

    Args:
        outcome: The result or the error of the call.
        owner: The throwaway ``Request`` that ran the call.

    Returns:
        ``True`` when closing the response now closes ``owner``.
    """
    if not owner.owns_transport:
        return False
    if isinstance(outcome, StreamHttpError):
        response = outcome.stream
    elif isinstance(outcome, httpx.Response) and not outcome.is_closed:
        response = outcome
    else:
        return False
    response.stream = _RequestClosingStream(response.stream, owner)
    return True


async def request(
    method: str,
    options: OptionsLike = None,
    body: Any = None,
    *,
    events: EventSink | None = None,
    transport: TransportClient | httpx.AsyncBaseTransport | None = None,
    callback: Callable[[RequestError | None, Any], Any] | None = None,
) -> Any:
    r"""Run one logical call without keeping a ``Request`` around.

    Args:
        method: The HTTP method.
        options: The call options (mapping, ``RequestConfig`` or literal
            endpoint string).
        body: The request payload.
        events: Optional observer receiving the lifecycle signals.
        transport: Optional transport collaborator or
            ``httpx.AsyncBaseTransport``.
        callback: Optional completion callback receiving
            ``(error, result)``.

    Returns:
        The decoded body, the unread response of a streamed call, or the
        return value of ``callback``. An unread response keeps its
        connection open until it is read to the end or closed.

    Raises:
        RequestError: If the call rejects and no callback is given.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> import reqlib
        >>> transport = httpx.MockTransport(lambda request: httpx.Response(201, text="created"))
        >>> asyncio.run(
        ...     reqlib.request("POST", "https://test.api.io/v1/tests", "x", transport=transport)
        ... )
        'created'

        ```
    """
    req = Request(events=events, transport=transport)
    handed_over = False
    try:
        try:
            result = await req.call(options, body, method=method)
        except RequestError as exc:
            handed_over = _hand_over(exc, req)
            if callback is None:
                raise
            return callback(exc, None)
        handed_over = _hand_over(result, req)
        if callback is None:
            return result
        return callback(None, result)
    finally:
        if not handed_over:
            await req.aclose()


async def get(options: OptionsLike = None, **kwargs: Any) -> Any:
    """Run one GET call. See ``request`` for the keyword arguments."""
    return await request("GET", options, **kwargs)


async def head(options: OptionsLike = None, **kwargs: Any) -> Any:
    """Run one HEAD call. See ``request`` for the keyword arguments."""
    return await request("HEAD", options, **kwargs)


async def delete(options: OptionsLike = None, **kwargs: Any) -> Any:
    """Run one DELETE call. See ``request`` for the keyword arguments."""
    return await request("DELETE", options, **kwargs)


async def post(options: OptionsLike = None, body: Any = None, **kwargs: Any) -> Any:
    """Run one POST call. See ``request`` for the keyword arguments."""
    return await request("POST", options, body, **kwargs)


async def put(options: OptionsLike = None, body: Any = None, **kwargs: Any) -> Any:
    """Run one PUT call. See ``request`` for the keyword arguments."""
    return await request("PUT", options, body, **kwargs)


async def patch(options: OptionsLike = None, body: Any = None, **kwargs: Any) -> Any:
    """Run one PATCH call. See ``request`` for the keyword arguments."""
    return await request("PATCH", options, body, **kwargs)
