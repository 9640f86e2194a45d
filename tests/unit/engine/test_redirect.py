r"""Unit tests for RedirectResolver."""

from __future__ import annotations

import httpx
import pytest

from reqlib.core import AttemptState, RequestConfig, resolve_options
from reqlib.engine import RedirectResolver
from reqlib.exceptions import (
    RedirectInvalidLocationError,
    RedirectLimitExceededError,
    RedirectMissingLocationError,
)


def location(value: str) -> httpx.Headers:
    return httpx.Headers({"Location": value})


#################################
#     Tests for is_redirect     #
#################################


@pytest.mark.parametrize("status_code", [301, 302, 307, 308])
def test_is_redirect_true(status_code: int) -> None:
    assert RedirectResolver.is_redirect(status_code)


@pytest.mark.parametrize("status_code", [200, 300, 303, 304, 305, 400, 500])
def test_is_redirect_false(status_code: int) -> None:
    assert not RedirectResolver.is_redirect(status_code)


#############################
#     Tests for resolve     #
#############################


def test_resolve_absolute_location(config: RequestConfig, state: AttemptState) -> None:
    """Test that the target fields are replaced by the location."""
    result = RedirectResolver().resolve(
        config, location("http://other.api.io:8080/v2/items?page=3"), state
    )
    assert result.protocol == "http"
    assert result.hostname == "other.api.io"
    assert result.host == "other.api.io:8080"
    assert result.port == 8080
    assert result.path == "/v2/items?page=3"
    assert result.pathname == "/v2/items"
    assert result.url == "http://other.api.io:8080/v2/items?page=3"
    assert state.redirects == [httpx.URL("http://other.api.io:8080/v2/items?page=3")]
    assert state.tries == 1


def test_resolve_keeps_other_fields(state: AttemptState) -> None:
    config = resolve_options(
        {
            "hostname": "test.api.io",
            "path": "/v1",
            "query": {"page": 1},
            "headers": {"X-Test": "1"},
            "max_retry_count": 0,
        }
    )
    result = RedirectResolver().resolve(config, location("https://test.api.io/v2"), state)
    assert result.query is None
    assert result.headers["X-Test"] == "1"
    assert result.max_retry_count == 0


def test_resolve_scheme_relative_uses_config_scheme(
    config: RequestConfig, state: AttemptState
) -> None:
    """Test that a location without scheme inherits the request
    scheme."""
    result = RedirectResolver().resolve(config, location("//test.api.io/v1/redirected"), state)
    assert result.url == "https://test.api.io/v1/redirected"


def test_resolve_scheme_relative_uses_last_redirect_scheme(state: AttemptState) -> None:
    """Test that a location without scheme inherits the scheme of the
    previous redirect."""
    resolver = RedirectResolver()
    config = resolve_options("http://test.api.io/v1/tests")
    config = resolver.resolve(config, location("https://test.api.io/v1/redirectOne"), state)
    config = resolver.resolve(config, location("//test.api.io/v1/redirectTwo"), state)
    assert config.url == "https://test.api.io/v1/redirectTwo"
    assert len(state.redirects) == 2


def test_resolve_relative_location(config: RequestConfig, state: AttemptState) -> None:
    result = RedirectResolver().resolve(config, location("/v1/moved"), state)
    assert result.url == "https://test.api.io/v1/moved"


def test_resolve_relative_location_with_invalid_port_in_hostname(state: AttemptState) -> None:
    config = resolve_options(
        {"hostname": "test.api.io:notanumber", "protocol": "https", "path": "/v1/tests"}
    )
    result = RedirectResolver().resolve(config, location("/v1/next"), state)
    assert result.url == "https://test.api.io/v1/next"
    assert result.hostname == "test.api.io"
    assert state.redirects == [httpx.URL("https://test.api.io/v1/next")]


def test_resolve_invalid_location(config: RequestConfig, state: AttemptState) -> None:
    with pytest.raises(RedirectInvalidLocationError, match=r"invalid location"):
        RedirectResolver().resolve(config, location("http://other.api.io:abc/x"), state)
    assert state.redirects == []


def test_resolve_missing_location(config: RequestConfig, state: AttemptState) -> None:
    """Test that a redirect without a Location header is rejected."""
    with pytest.raises(RedirectMissingLocationError, match=r"redirected with no location"):
        RedirectResolver().resolve(config, httpx.Headers(), state)
    assert state.redirects == []


def test_resolve_limit(state: AttemptState) -> None:
    """Test that the chain never grows beyond max_redirect_count."""
    resolver = RedirectResolver()
    config = resolve_options("https://test.api.io/v1/tests", {"max_redirect_count": 2})
    for _ in range(2):
        config = resolver.resolve(config, location("https://test.api.io/v1/tests"), state)
    with pytest.raises(RedirectLimitExceededError, match=r"maximum redirect limit \(2\)"):
        resolver.resolve(config, location("https://test.api.io/v1/tests"), state)
    assert len(state.redirects) == 2


def test_resolve_limit_zero(config: RequestConfig, state: AttemptState) -> None:
    config = resolve_options(config, {"max_redirect_count": 0})
    with pytest.raises(RedirectLimitExceededError):
        RedirectResolver().resolve(config, location("https://test.api.io/"), state)
