r"""The attempt, redirect, retry and failover state machine.

This module provides the ``RequestEngine`` class that runs one logical
call as an ordered sequence of physical attempts. Each loop iteration
derives the attempt-scoped configuration, dispatches it through the
transport collaborator and applies the first matching transition:

- Transport error: failover to the next alternate, else retry, else reject
- 305 Use Proxy: reject
- 301/302/307/308: follow the Location header
- Non-text content type: hand the undrained stream to the caller
- Otherwise: buffer and decode; retry server errors, reject client errors
"""

from __future__ import annotations

__all__ = ["USE_PROXY", "RequestEngine"]

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

import httpx

from reqlib.callbacks import EventSink
from reqlib.codec import ResponseKind, classify_response, decode_body, encode_body
from reqlib.core.config import HTTP_ERROR_THRESHOLD, HTTP_RETRY_THRESHOLD
from reqlib.core.state import AttemptState
from reqlib.engine.attempt import prepare_attempt
from reqlib.engine.failover import FailoverSelector
from reqlib.engine.redirect import RedirectResolver
from reqlib.exceptions import (
    HttpStatusError,
    ProxyRequiredError,
    RedirectError,
    RequestError,
    StreamHttpError,
    TransportError,
)
from reqlib.transport import get_error_code
from reqlib.utils.structured_logging import call_context, log_structured

if TYPE_CHECKING:
    from reqlib.core.config import RequestConfig
    from reqlib.transport import TransportClient

logger: logging.Logger = logging.getLogger(__name__)

USE_PROXY = 305


class RequestEngine:
    """Runs logical calls through a transport collaborator.

    The engine holds no per-call state: every call to ``execute`` builds
    its own ``AttemptState`` and works on private copies of the
    configuration, so concurrent calls never interfere.

    Args:
        transport: The transport collaborator performing the attempts.
        events: Observer receiving the lifecycle signals.
        failover: The failover policy.
        redirects: The redirect policy.

    Example:
        ```pycon
        >>> import asyncio
        >>> import httpx
        >>> from reqlib.core import resolve_options
        >>> from reqlib.engine import RequestEngine
        >>> from reqlib.transport import HttpxTransport
        >>> def handler(request):
        ...     return httpx.Response(200, json={"test": True})
        ...
        >>> engine = RequestEngine(HttpxTransport(httpx.MockTransport(handler)))
        >>> asyncio.run(engine.execute(resolve_options("https://test.api.io/v1/tests")))
        {'test': True}

        ```
    """

    def __init__(
        self,
        transport: TransportClient,
        events: EventSink | None = None,
        failover: FailoverSelector | None = None,
        redirects: RedirectResolver | None = None,
    ) -> None:
        self.transport = transport
        self.events = events if events is not None else EventSink()
        self.failover = failover if failover is not None else FailoverSelector()
        self.redirects = redirects if redirects is not None else RedirectResolver()

    async def execute(self, config: RequestConfig, body: Any = None) -> Any:
        """Run one logical call to completion.

        Args:
            config: The resolved configuration of the call.
            body: The request payload, encoded once for all attempts.

        Returns:
            The decoded body (parsed JSON or text), or an unread
            ``httpx.Response`` for responses classified as streams.

        Raises:
            RequestError: When the call rejects. The attempt-scoped
                configuration and the attempt state are attached.
        """
        with call_context():
            state = AttemptState()
            content, headers = encode_body(body, config.headers)
            state.outbound_body = content
            config = self.failover.build_alternates(replace(config, headers=headers), state)
            return await self._run(config, state)

    async def _run(self, config: RequestConfig, state: AttemptState) -> Any:
        while True:
            attempt = prepare_attempt(config)
            log_structured(
                logger,
                logging.DEBUG,
                f"{attempt.method} request to {config.url} (attempt {state.tries})",
                tries=state.tries,
                redirects=len(state.redirects),
            )
            self.events.request(attempt, state)

            try:
                response = await self.transport.send(attempt, state.outbound_body)
            except RedirectError as exc:
                exc.attach(attempt, state)
                raise
            except TransportError as exc:
                config = self._recover(exc.attach(attempt, state), config, state)
                await asyncio.sleep(0)
                continue

            state.record_response(response.status_code, response.headers)
            self.events.response(attempt, state)

            if response.status_code == USE_PROXY:
                await response.aclose()
                raise ProxyRequiredError(
                    f"{attempt.method} request to {config.url} requires a proxy"
                ).attach(attempt, state)

            if self.redirects.is_redirect(response.status_code):
                await response.aclose()
                try:
                    config = self.redirects.resolve(config, response.headers, state)
                except RequestError as exc:
                    exc.attach(attempt, state)
                    raise
                self.events.redirect(prepare_attempt(config), state)
                await asyncio.sleep(0)
                continue

            if classify_response(response.headers) is ResponseKind.STREAM:
                if response.status_code >= HTTP_ERROR_THRESHOLD:
                    raise StreamHttpError(
                        f"{attempt.method} request to {config.url} failed with status "
                        f"{response.status_code}",
                        status_code=response.status_code,
                        stream=response,
                    ).attach(attempt, state)
                logger.debug(
                    f"{attempt.method} request to {config.url} resolved with a "
                    f"{response.headers.get('Content-Type')} stream"
                )
                return response

            try:
                raw = await self._read(response, attempt)
            except TransportError as exc:
                config = self._recover(exc.attach(attempt, state), config, state)
                await asyncio.sleep(0)
                continue
            try:
                result = decode_body(raw, response.headers, response.status_code)
            except RequestError as exc:
                exc.attach(attempt, state)
                raise

            if response.status_code >= HTTP_RETRY_THRESHOLD and (
                state.tries <= config.max_retry_count
            ):
                log_structured(
                    logger,
                    logging.DEBUG,
                    f"Retrying {attempt.method} request to {config.url} after "
                    f"status {response.status_code}",
                    status_code=response.status_code,
                    tries=state.tries,
                )
                self.events.retry(result, attempt, state)
                state.tries += 1
                await asyncio.sleep(0)
                continue

            if response.status_code >= HTTP_ERROR_THRESHOLD:
                logger.debug(
                    f"{attempt.method} request to {config.url} failed with status "
                    f"{response.status_code}"
                )
                raise HttpStatusError(
                    f"{attempt.method} request to {config.url} failed with status "
                    f"{response.status_code}",
                    status_code=response.status_code,
                    body=result,
                ).attach(attempt, state)

            logger.debug(
                f"{attempt.method} request to {config.url} resolved with status "
                f"{response.status_code} after {state.tries} attempt(s)"
            )
            return result

    def _recover(
        self, error: TransportError, config: RequestConfig, state: AttemptState
    ) -> RequestConfig:
        """Apply the failover and retry policies to a transport error.

        Returns:
            The logical configuration of the next attempt.

        Raises:
            TransportError: If neither policy allows another attempt.
        """
        alternate = self.failover.advance(error, state)
        if alternate is not None:
            logger.debug(
                f"Failing over to {alternate.value} after {error.code} (attempt {state.tries})"
            )
            return self.failover.select(config, alternate)
        if state.tries <= config.max_retry_count:
            state.tries += 1
            logger.debug(f"Retrying after {error.code or 'transport error'}: {error}")
            return config
        logger.debug(f"Giving up after {state.tries} attempt(s): {error}")
        raise error

    @staticmethod
    async def _read(response: httpx.Response, attempt: RequestConfig) -> bytes:
        """Buffer a response body and release the connection."""
        try:
            return await response.aread()
        except httpx.TransportError as exc:
            code = get_error_code(exc)
            raise TransportError(
                f"{attempt.method} request to {attempt.url} was interrupted: "
                f"{code or type(exc).__name__}",
                code=code,
                cause=exc,
            ) from exc
        finally:
            await response.aclose()
