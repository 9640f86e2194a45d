r"""Error kinds surfaced by the request engine.

Every rejected call raises a subclass of ``RequestError``. The engine
attaches the attempt-scoped configuration and the attempt state before
the error leaves the call, so callers can inspect how far the call got.
"""

from __future__ import annotations

__all__ = [
    "HttpStatusError",
    "ProxyRequiredError",
    "RedirectError",
    "RedirectInvalidLocationError",
    "RedirectLimitExceededError",
    "RedirectMissingLocationError",
    "RequestError",
    "ResponseDecodeError",
    "StreamHttpError",
    "TransportError",
]

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import httpx

    from reqlib.core.config import RequestConfig
    from reqlib.core.state import AttemptState


class RequestError(Exception):
    """Base class of all errors raised by a logical call.

    Args:
        message: A descriptive error message.
        config: The configuration of the attempt that failed.
        state: The attempt state of the logical call.
        cause: The underlying exception, if any.

    Example:
        ```pycon
        >>> from reqlib.exceptions import RequestError
        >>> error = RequestError("GET request to http://localhost/ failed")
        >>> str(error)
        'GET request to http://localhost/ failed'
        >>> error.config is None
        True

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        config: RequestConfig | None = None,
        state: AttemptState | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.config = config
        self.state = state
        self.cause = cause

    def attach(self, config: RequestConfig, state: AttemptState) -> RequestError:
        """Attach the call context to the error and return it."""
        self.config = config
        self.state = state
        return self


class TransportError(RequestError):
    """The connection could not be established or was interrupted.

    Args:
        message: A descriptive error message.
        code: Errno-style failure code (e.g. ``"ECONNREFUSED"``), or
            ``None`` when the failure has no known code.
        **kwargs: See ``RequestError``.
    """

    def __init__(self, message: str, *, code: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.code = code


class ProxyRequiredError(RequestError):
    """The server answered 305; never retried."""


class RedirectError(RequestError):
    """A redirect response could not be followed."""


class RedirectMissingLocationError(RedirectError):
    """A redirect response did not carry a Location header."""


class RedirectInvalidLocationError(RedirectError):
    """The Location header of a redirect response is not a valid URL."""


class RedirectLimitExceededError(RedirectError):
    """The redirect chain reached ``max_redirect_count``."""


class ResponseDecodeError(RequestError):
    """The response body could not be decoded as JSON.

    Args:
        message: A descriptive error message.
        body: The raw, unparsed body.
        **kwargs: See ``RequestError``.
    """

    def __init__(self, message: str, *, body: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.body = body


class HttpStatusError(RequestError):
    """The response status is an error and is not retried.

    Args:
        message: A descriptive error message.
        status_code: The HTTP status code of the response.
        body: The decoded (or raw) response body.
        **kwargs: See ``RequestError``.
    """

    def __init__(self, message: str, *, status_code: int, body: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.body = body


class StreamHttpError(RequestError):
    """The response status is an error on a response meant for streaming.

    The open response is attached so the caller can inspect or drain it.
    The caller owns it and must close it.

    Args:
        message: A descriptive error message.
        status_code: The HTTP status code of the response.
        stream: The open, unread response.
        **kwargs: See ``RequestError``.
    """

    def __init__(
        self, message: str, *, status_code: int, stream: httpx.Response, **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.stream = stream
