r"""Resolution of 3xx responses into a new request target."""

from __future__ import annotations

__all__ = ["REDIRECT_STATUS_CODES", "RedirectResolver"]

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import httpx

from reqlib.engine.attempt import split_hostname_port
from reqlib.exceptions import (
    RedirectInvalidLocationError,
    RedirectLimitExceededError,
    RedirectMissingLocationError,
)

if TYPE_CHECKING:
    from reqlib.core.config import RequestConfig
    from reqlib.core.state import AttemptState

logger: logging.Logger = logging.getLogger(__name__)

# 301 Moved Permanently, 302 Found, 307 Temporary Redirect, 308 Permanent Redirect
REDIRECT_STATUS_CODES: frozenset[int] = frozenset({301, 302, 307, 308})


class RedirectResolver:
    """Validates redirect responses and rewrites the request target.

    Example:
        ```pycon
        >>> import httpx
        >>> from reqlib.core import AttemptState, resolve_options
        >>> from reqlib.engine.redirect import RedirectResolver
        >>> resolver = RedirectResolver()
        >>> state = AttemptState()
        >>> config = resolver.resolve(
        ...     resolve_options("https://test.api.io/v1/tests"),
        ...     httpx.Headers({"Location": "//test.api.io/v1/redirected"}),
        ...     state,
        ... )
        >>> config.url
        'https://test.api.io/v1/redirected'
        >>> len(state.redirects)
        1

        ```
    """

    @staticmethod
    def is_redirect(status_code: int) -> bool:
        """Indicate if a status code is a followed redirect."""
        return status_code in REDIRECT_STATUS_CODES

    def resolve(
        self, config: RequestConfig, headers: httpx.Headers, state: AttemptState
    ) -> RequestConfig:
        """Resolve a redirect response into the next logical target.

        A ``Location`` without a scheme (``//host/path``) inherits the
        scheme of the last redirect target, or of the current config when
        no redirect was followed yet. Relative locations are resolved
        against the current target, with any port embedded in the host
        name split off first.

        Args:
            config: The logical configuration of the attempt redirected.
            headers: The headers of the redirect response.
            state: The attempt state; the resolved target is appended to
                ``state.redirects``.

        Returns:
            A new configuration targeting the redirect location.

        Raises:
            RedirectMissingLocationError: If the response has no Location.
            RedirectLimitExceededError: If the chain already holds
                ``max_redirect_count`` targets.
            RedirectInvalidLocationError: If the Location is not a valid
                URL.
        """
        method = config.method or "GET"
        location = headers.get("Location")
        if not location:
            msg = f"{method} request to {config.url} redirected with no location"
            raise RedirectMissingLocationError(msg)
        if len(state.redirects) >= (config.max_redirect_count or 0):
            msg = (
                f"{method} request to {config.url} exceeded the maximum redirect "
                f"limit ({config.max_redirect_count})"
            )
            raise RedirectLimitExceededError(msg)

        if location.startswith("//"):
            scheme = state.redirects[-1].scheme if state.redirects else config.scheme
            location = f"{scheme}:{location}"
        try:
            target = httpx.URL(split_hostname_port(config).url).join(location)
        except httpx.InvalidURL as exc:
            msg = f"{method} request to {config.url} redirected to an invalid location: {exc}"
            raise RedirectInvalidLocationError(msg, cause=exc) from exc

        state.redirects.append(target)
        logger.debug(f"{method} request to {config.url} redirected to {target}")
        return replace(
            config,
            protocol=target.scheme,
            host=target.netloc.decode("ascii"),
            hostname=target.host,
            port=target.port,
            path=target.raw_path.decode("ascii"),
            pathname=target.path,
            query=None,
        )
