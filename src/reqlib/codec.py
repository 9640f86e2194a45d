r"""Encoding of outbound payloads and decoding of inbound responses.

Outbound payloads are serialized according to the request content type
and framed with a ``Content-Length`` header. Inbound responses are
classified either as streams, handed to the caller unread, or as text
bodies that are buffered and, for JSON content types, parsed.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "ResponseKind",
    "classify_response",
    "decode_body",
    "encode_body",
    "get_charset",
]

import json
import logging
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

import httpx

from reqlib.exceptions import ResponseDecodeError

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"
NO_CONTENT = 204

RE_CONTENT_TYPE_JSON = re.compile(r"json", re.IGNORECASE)
RE_CONTENT_TYPE_TEXT = re.compile(r"json|xml|yaml|html|text|jwt", re.IGNORECASE)
RE_CHARSET = re.compile(r"charset\s*=\s*\"?([\w.:-]+)\"?", re.IGNORECASE)


class ResponseKind(Enum):
    """How a response body is handed back to the caller.

    Attributes:
        STREAM: The live response is returned unread.
        DECODE: The body is buffered and decoded.
    """

    STREAM = "stream"
    DECODE = "decode"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode_body(body: Any, headers: httpx.Headers) -> tuple[bytes, httpx.Headers]:
    """Encode an outbound payload.

    When no ``Content-Type`` is present it defaults to
    ``application/json``. Bytes and strings pass through unchanged; other
    payloads are JSON-serialized when the content type is JSON and
    converted with ``str`` otherwise. A ``Content-Length`` header is set
    from the final byte length unless the payload is empty or the header
    is already present.

    Args:
        body: The payload. ``None`` means no payload.
        headers: The request headers. They are not modified.

    Returns:
        A tuple with the encoded payload and a new headers instance.

    Example:
        ```pycon
        >>> import httpx
        >>> from reqlib.codec import encode_body
        >>> content, headers = encode_body({"key": "value"}, httpx.Headers())
        >>> content
        b'{"key": "value"}'
        >>> headers["content-type"], headers["content-length"]
        ('application/json', '16')

        ```
    """
    headers = httpx.Headers(headers)
    content_type = headers.get("Content-Type")
    if not content_type:
        # opinionated default
        content_type = DEFAULT_CONTENT_TYPE
        headers["Content-Type"] = content_type

    if body is None:
        content = b""
    elif isinstance(body, (bytes, bytearray)):
        content = bytes(body)
    elif isinstance(body, str):
        content = body.encode("utf-8")
    elif RE_CONTENT_TYPE_JSON.search(content_type):
        content = json.dumps(body, default=_json_default).encode("utf-8")
    else:
        content = str(body).encode("utf-8")

    if content and "Content-Length" not in headers:
        headers["Content-Length"] = str(len(content))
    return content, headers


def classify_response(headers: httpx.Headers) -> ResponseKind:
    """Classify a response as a stream or as a body to decode.

    A response whose content type is present and is not text-like (JSON,
    XML, YAML, HTML, plain text or JWT) is a stream. A missing content
    type is treated as text.

    Args:
        headers: The response headers.

    Returns:
        The response kind.

    Example:
        ```pycon
        >>> import httpx
        >>> from reqlib.codec import classify_response
        >>> classify_response(httpx.Headers({"Content-Type": "application/octet-stream"}))
        <ResponseKind.STREAM: 'stream'>
        >>> classify_response(httpx.Headers({"Content-Type": "application/json"}))
        <ResponseKind.DECODE: 'decode'>
        >>> classify_response(httpx.Headers())
        <ResponseKind.DECODE: 'decode'>

        ```
    """
    content_type = headers.get("Content-Type")
    if content_type and not RE_CONTENT_TYPE_TEXT.search(content_type):
        return ResponseKind.STREAM
    return ResponseKind.DECODE


def get_charset(content_type: str | None) -> str | None:
    """Extract the charset parameter of a content type.

    Example:
        ```pycon
        >>> from reqlib.codec import get_charset
        >>> get_charset("text/html; charset=ISO-8859-1")
        'ISO-8859-1'
        >>> get_charset("application/json") is None
        True

        ```
    """
    if not content_type:
        return None
    match = RE_CHARSET.search(content_type)
    return match.group(1) if match else None


def _decode_text(raw: bytes, charset: str | None) -> str:
    if charset is not None:
        try:
            return raw.decode(charset, errors="replace")
        except LookupError:
            logger.warning(f"Unknown response charset {charset!r}, decoding as utf-8")
    return raw.decode("utf-8", errors="replace")


def decode_body(raw: bytes, headers: httpx.Headers, status_code: int) -> Any:
    """Decode a buffered response body.

    The charset of the content type, when present, is used to decode the
    bytes. JSON content types are parsed unless the status is 204 or the
    body is empty.

    Args:
        raw: The buffered body.
        headers: The response headers.
        status_code: The response status code.

    Returns:
        The parsed JSON value, or the body text.

    Raises:
        ResponseDecodeError: If a JSON body cannot be parsed. The raw text
            is attached as ``body``.

    Example:
        ```pycon
        >>> import httpx
        >>> from reqlib.codec import decode_body
        >>> decode_body(b'{"test": true}', httpx.Headers({"Content-Type": "application/json"}), 200)
        {'test': True}
        >>> decode_body(b'{"test": true}', httpx.Headers({"Content-Type": "application/text"}), 200)
        '{"test": true}'

        ```
    """
    content_type = headers.get("Content-Type")
    body = _decode_text(raw, get_charset(content_type))
    if (
        content_type
        and RE_CONTENT_TYPE_JSON.search(content_type)
        and status_code != NO_CONTENT
        and body
    ):
        try:
            return json.loads(body)
        except ValueError as exc:
            raise ResponseDecodeError(
                f"unable to parse JSON from response: {exc}", body=body, cause=exc
            ) from exc
    return body
