r"""Shared test helpers for engine and client tests.

This module contains builders for ``httpx.MockTransport`` handlers that
replay a scripted sequence of responses and transport failures while
recording every request they receive.
"""

from __future__ import annotations

__all__ = [
    "TEST_HOSTNAME",
    "TEST_URL",
    "ChunkStream",
    "ScriptedHandler",
    "connection_refused",
    "connection_reset",
    "dns_failure",
    "json_response",
    "make_request",
    "redirect_response",
    "stream_response",
]

import socket
from typing import TYPE_CHECKING, Any

import httpx

from reqlib import Request

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from reqlib.callbacks import EventSink

TEST_HOSTNAME = "test.api.io"
TEST_URL = f"https://{TEST_HOSTNAME}/v1/tests"


class ScriptedHandler:
    """MockTransport handler replaying a fixed script.

    Each script entry is used for one request, in order. An entry is an
    ``httpx.Response``, an exception to raise, or a callable receiving the
    request and returning a response.

    Attributes:
        requests: The requests received, in order.
    """

    def __init__(self, *script: httpx.Response | Exception | Callable[..., Any]) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.script:
            msg = f"unexpected request to {request.url}"
            raise AssertionError(msg)
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        if callable(entry) and not isinstance(entry, httpx.Response):
            return entry(request)
        return entry

    @property
    def hosts(self) -> list[str]:
        """The host of every request received, in order."""
        return [request.url.host for request in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_request(
    handler: ScriptedHandler, options: Any = None, events: EventSink | None = None
) -> Request:
    """Create a ``Request`` wired to a scripted handler."""
    return Request(options, events=events, transport=handler.transport())


def json_response(status_code: int = 200, data: Any = None, **kwargs: Any) -> httpx.Response:
    return httpx.Response(status_code, json=data if data is not None else {"test": True}, **kwargs)


def redirect_response(location: str | None, status_code: int = 302) -> httpx.Response:
    headers = {"Location": location} if location is not None else {}
    return httpx.Response(status_code, headers=headers)


def dns_failure(host: str = TEST_HOSTNAME) -> httpx.ConnectError:
    try:
        raise httpx.ConnectError(f"getaddrinfo failed for {host}") from socket.gaierror(
            socket.EAI_NONAME, "Name or service not known"
        )
    except httpx.ConnectError as exc:
        return exc


def connection_refused() -> httpx.ConnectError:
    try:
        raise httpx.ConnectError("connection refused") from ConnectionRefusedError(
            111, "Connection refused"
        )
    except httpx.ConnectError as exc:
        return exc


def connection_reset() -> httpx.ReadError:
    try:
        raise httpx.ReadError("connection reset") from ConnectionResetError(
            104, "Connection reset by peer"
        )
    except httpx.ReadError as exc:
        return exc


class ChunkStream(httpx.AsyncByteStream):
    """Response body yielding its chunks lazily."""

    def __init__(self, *chunks: bytes) -> None:
        self.chunks = chunks

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk


def stream_response(
    status_code: int = 200, *chunks: bytes, content_type: str = "application/octet-stream"
) -> httpx.Response:
    """Create a response whose body has not been read yet."""
    return httpx.Response(
        status_code, headers={"Content-Type": content_type}, stream=ChunkStream(*chunks)
    )
