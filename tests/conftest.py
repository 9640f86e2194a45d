from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from reqlib.callbacks import EventSink
from reqlib.core import AttemptState, resolve_options
from tests.helpers import TEST_URL

if TYPE_CHECKING:
    from reqlib.core import RequestConfig


@pytest.fixture
def config() -> RequestConfig:
    """Create the resolved configuration of a GET call to TEST_URL."""
    return resolve_options(TEST_URL)


@pytest.fixture
def state() -> AttemptState:
    """Create a fresh attempt state."""
    return AttemptState()


@pytest.fixture
def events() -> EventSink:
    """Create an event sink whose four callbacks are mocks."""
    return EventSink(on_request=Mock(), on_response=Mock(), on_redirect=Mock(), on_retry=Mock())


@pytest.fixture
def recorded_tries() -> list[int]:
    """Collect the attempt counter seen by each on_request signal."""
    return []


@pytest.fixture
def counting_events(recorded_tries: list[int]) -> EventSink:
    """Create an event sink recording ``state.tries`` at each request
    signal."""
    return EventSink(on_request=lambda info: recorded_tries.append(info.state.tries))


@pytest.fixture
def mock_transport() -> Mock:
    """Create a mock transport collaborator."""
    return Mock(send=AsyncMock(), aclose=AsyncMock())


@pytest.fixture
def mock_stream_response() -> httpx.Response:
    """Create a mock unread response with a binary content type."""
    return Mock(
        spec=httpx.Response,
        status_code=200,
        headers=httpx.Headers({"Content-Type": "application/octet-stream"}),
        aclose=AsyncMock(),
    )
