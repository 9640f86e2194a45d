r"""Mutable state threaded through the attempts of one logical call."""

from __future__ import annotations

__all__ = ["Alternate", "AttemptState"]

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx


@dataclass(frozen=True)
class Alternate:
    """One failover destination.

    Attributes:
        key: The config field the value is written to (``"host"`` or
            ``"hostname"``).
        value: The destination written to that field.
    """

    key: str
    value: str


@dataclass
class AttemptState:
    """State of one logical call.

    A new instance is created at the start of every logical call and is
    discarded once the call resolves or rejects. It is never shared
    between calls.

    Attributes:
        tries: The physical attempt counter. Starts at 1 and grows with
            each retry or failover; redirects do not change it.
        redirects: The targets visited because of 3xx responses, in order.
        alternates: The failover destinations built for this call.
        failover_cursor: Index of the alternate currently in use.
        outbound_body: The encoded request payload.
        status_code: Status code of the last response received.
        headers: Headers of the last response received.

    Example:
        ```pycon
        >>> from reqlib.core.state import AttemptState
        >>> state = AttemptState()
        >>> state.tries
        1
        >>> state.redirects
        []

        ```
    """

    tries: int = 1
    redirects: list[httpx.URL] = field(default_factory=list)
    alternates: list[Alternate] = field(default_factory=list)
    failover_cursor: int = 0
    outbound_body: bytes = b""
    status_code: int | None = None
    headers: httpx.Headers | None = None

    @property
    def current_alternate(self) -> Alternate | None:
        """The alternate selected by the failover cursor, if any."""
        if not self.alternates:
            return None
        return self.alternates[self.failover_cursor]

    def record_response(self, status_code: int, headers: httpx.Headers) -> None:
        """Track the status and headers of the latest response."""
        self.status_code = status_code
        self.headers = headers
