r"""Unit tests for request body encoding and response decoding."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import httpx
import pytest

from reqlib.codec import (
    ResponseKind,
    classify_response,
    decode_body,
    encode_body,
    get_charset,
)
from reqlib.exceptions import ResponseDecodeError

#################################
#     Tests for encode_body     #
#################################


def test_encode_body_none() -> None:
    """Test that no payload encodes to empty bytes without a length."""
    content, headers = encode_body(None, httpx.Headers())
    assert content == b""
    assert headers["Content-Type"] == "application/json"
    assert "Content-Length" not in headers


def test_encode_body_json() -> None:
    content, headers = encode_body({"test": True, "items": [1, 2]}, httpx.Headers())
    assert json.loads(content) == {"test": True, "items": [1, 2]}
    assert headers["Content-Length"] == str(len(content))


def test_encode_body_json_datetime() -> None:
    """Test that datetime values are encoded as ISO-8601 instants."""
    content, _ = encode_body(
        {"at": datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)}, httpx.Headers()
    )
    assert json.loads(content) == {"at": "2024-01-02T03:04:05Z"}


def test_encode_body_str_passes_through() -> None:
    content, headers = encode_body("héllo", httpx.Headers({"Content-Type": "text/plain"}))
    assert content == "héllo".encode()
    assert headers["Content-Type"] == "text/plain"
    assert headers["Content-Length"] == "6"


def test_encode_body_bytes_pass_through() -> None:
    content, _ = encode_body(b"\x00\x01", httpx.Headers())
    assert content == b"\x00\x01"


def test_encode_body_non_json_content_type_uses_str() -> None:
    content, _ = encode_body(12345, httpx.Headers({"Content-Type": "text/plain"}))
    assert content == b"12345"


def test_encode_body_keeps_explicit_content_length() -> None:
    """Test that a caller-provided Content-Length is preserved."""
    _, headers = encode_body("abc", httpx.Headers({"Content-Length": "3"}))
    assert headers.get_list("Content-Length") == ["3"]


def test_encode_body_does_not_modify_headers() -> None:
    headers = httpx.Headers()
    encode_body({"a": 1}, headers)
    assert len(headers) == 0


#######################################
#     Tests for classify_response     #
#######################################


@pytest.mark.parametrize(
    "content_type",
    [
        "application/json",
        "application/json; charset=utf-8",
        "application/xml",
        "application/x-yaml",
        "text/html",
        "text/plain",
        "application/text",
        "application/jwt",
        "application/problem+json",
    ],
)
def test_classify_response_decode(content_type: str) -> None:
    """Test that text-like content types are decoded."""
    headers = httpx.Headers({"Content-Type": content_type})
    assert classify_response(headers) is ResponseKind.DECODE


@pytest.mark.parametrize(
    "content_type", ["application/octet-stream", "image/png", "application/pdf"]
)
def test_classify_response_stream(content_type: str) -> None:
    """Test that binary content types are streamed."""
    headers = httpx.Headers({"Content-Type": content_type})
    assert classify_response(headers) is ResponseKind.STREAM


def test_classify_response_missing_content_type() -> None:
    assert classify_response(httpx.Headers()) is ResponseKind.DECODE


#################################
#     Tests for get_charset     #
#################################


@pytest.mark.parametrize(
    ("content_type", "charset"),
    [
        ("text/html; charset=ISO-8859-1", "ISO-8859-1"),
        ('text/plain; charset="utf-8"', "utf-8"),
        ("application/json", None),
        (None, None),
    ],
)
def test_get_charset(content_type: str | None, charset: str | None) -> None:
    assert get_charset(content_type) == charset


#################################
#     Tests for decode_body     #
#################################


def test_decode_body_json() -> None:
    """Test that a JSON content type is parsed."""
    headers = httpx.Headers({"Content-Type": "application/json"})
    assert decode_body(b'{"test": true}', headers, 200) == {"test": True}


def test_decode_body_text() -> None:
    """Test that the same body under a text content type stays raw."""
    headers = httpx.Headers({"Content-Type": "application/text"})
    assert decode_body(b'{"test": true}', headers, 200) == '{"test": true}'


def test_decode_body_no_content_is_not_parsed() -> None:
    headers = httpx.Headers({"Content-Type": "application/json"})
    assert decode_body(b"", headers, 204) == ""


def test_decode_body_empty_json_is_not_parsed() -> None:
    headers = httpx.Headers({"Content-Type": "application/json"})
    assert decode_body(b"", headers, 200) == ""


def test_decode_body_charset() -> None:
    headers = httpx.Headers({"Content-Type": "text/plain; charset=ISO-8859-1"})
    assert decode_body("café".encode("latin-1"), headers, 200) == "café"


def test_decode_body_unknown_charset(caplog: pytest.LogCaptureFixture) -> None:
    """Test that an unknown charset falls back to UTF-8 with a
    warning."""
    headers = httpx.Headers({"Content-Type": "text/plain; charset=unknown-charset"})
    with caplog.at_level(logging.WARNING):
        assert decode_body("café".encode(), headers, 200) == "café"
    assert "Unknown response charset 'unknown-charset'" in caplog.text


def test_decode_body_invalid_json() -> None:
    """Test that an invalid JSON body raises with the raw body
    attached."""
    headers = httpx.Headers({"Content-Type": "application/json"})
    with pytest.raises(ResponseDecodeError, match=r"unable to parse JSON") as exc_info:
        decode_body(b"{not json", headers, 200)
    assert exc_info.value.body == "{not json"
    assert isinstance(exc_info.value.cause, ValueError)
