r"""Lifecycle signals emitted while a logical call runs.

This module provides the observer interface of the engine. An
``EventSink`` holds optional callbacks for the four lifecycle points:

- on_request: Called immediately before each physical attempt
- on_response: Called once status and headers are known
- on_redirect: Called after the target was rewritten for a redirect
- on_retry: Called when a server error is about to be retried

Callbacks run synchronously with the transition they describe, in the
order the transitions occur. An exception raised by a callback aborts
the call.

Example:
    ```pycon
    >>> from reqlib import Request
    >>> from reqlib.callbacks import EventSink, RequestInfo
    >>> def log_attempt(info: RequestInfo) -> None:
    ...     print(f"attempt {info.state.tries} to {info.config.url}")
    ...
    >>> req = Request(events=EventSink(on_request=log_attempt))

    ```
"""

from __future__ import annotations

__all__ = [
    "EventSink",
    "RedirectInfo",
    "RequestInfo",
    "ResponseInfo",
    "RetryInfo",
]

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from reqlib.core.config import RequestConfig
    from reqlib.core.state import AttemptState


@dataclass
class RequestInfo:
    """Information passed to the on_request callback.

    Attributes:
        config: The attempt-scoped configuration about to be dispatched.
        state: The attempt state of the logical call.
    """

    config: RequestConfig
    state: AttemptState


@dataclass
class ResponseInfo:
    """Information passed to the on_response callback.

    Attributes:
        config: The attempt-scoped configuration that was dispatched.
        state: The attempt state, with ``status_code`` and ``headers`` of
            the response.
    """

    config: RequestConfig
    state: AttemptState


@dataclass
class RedirectInfo:
    """Information passed to the on_redirect callback.

    Attributes:
        config: The configuration rewritten to the redirect target.
        state: The attempt state; the new target is the last entry of
            ``state.redirects``.
    """

    config: RequestConfig
    state: AttemptState


@dataclass
class RetryInfo:
    """Information passed to the on_retry callback.

    Attributes:
        body: The decoded body of the server error being retried.
        config: The attempt-scoped configuration that failed.
        state: The attempt state, before ``tries`` is incremented.
    """

    body: Any
    config: RequestConfig
    state: AttemptState


@dataclass
class EventSink:
    """Set of lifecycle callbacks registered before a call begins.

    Args:
        on_request: Optional callback invoked before each physical attempt.
        on_response: Optional callback invoked when a response arrives.
        on_redirect: Optional callback invoked after a redirect rewrite.
        on_retry: Optional callback invoked before a server error retry.
    """

    on_request: Callable[[RequestInfo], None] | None = None
    on_response: Callable[[ResponseInfo], None] | None = None
    on_redirect: Callable[[RedirectInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None

    def request(self, config: RequestConfig, state: AttemptState) -> None:
        """Invoke on_request callback if provided."""
        if self.on_request is not None:
            self.on_request(RequestInfo(config=config, state=state))

    def response(self, config: RequestConfig, state: AttemptState) -> None:
        """Invoke on_response callback if provided."""
        if self.on_response is not None:
            self.on_response(ResponseInfo(config=config, state=state))

    def redirect(self, config: RequestConfig, state: AttemptState) -> None:
        """Invoke on_redirect callback if provided."""
        if self.on_redirect is not None:
            self.on_redirect(RedirectInfo(config=config, state=state))

    def retry(self, body: Any, config: RequestConfig, state: AttemptState) -> None:
        """Invoke on_retry callback if provided."""
        if self.on_retry is not None:
            self.on_retry(RetryInfo(body=body, config=config, state=state))
