r"""Failover across alternate destinations.

Alternate destinations are supplied as a list under any of the ``host``,
``hostname``, ``hosts`` or ``hostnames`` options. The selector builds one
ordered list per call and moves round-robin through it when a physical
attempt fails with a connection-establishment or DNS error.
"""

from __future__ import annotations

__all__ = ["FAILOVER_ERROR_CODES", "FailoverSelector"]

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from reqlib.core.state import Alternate

if TYPE_CHECKING:
    from reqlib.core.config import RequestConfig
    from reqlib.core.state import AttemptState
    from reqlib.exceptions import TransportError

logger: logging.Logger = logging.getLogger(__name__)

# Transport error codes that trigger a switch to the next alternate
FAILOVER_ERROR_CODES: frozenset[str] = frozenset({"ECONNREFUSED", "ECONNRESET", "ENOTFOUND"})

# Option name -> config field the alternate is written to
_FAILOVER_FIELDS = (
    ("host", "host"),
    ("hostname", "hostname"),
    ("hostnames", "hostname"),
    ("hosts", "host"),
)


class FailoverSelector:
    """Selects alternate destinations after qualifying transport errors.

    Args:
        error_codes: The transport error codes that qualify for failover.

    Example:
        ```pycon
        >>> from reqlib.core import AttemptState, resolve_options
        >>> from reqlib.engine.failover import FailoverSelector
        >>> selector = FailoverSelector()
        >>> state = AttemptState()
        >>> config = selector.build_alternates(
        ...     resolve_options({"hostname": ["a.example.com", "b.example.com"]}), state
        ... )
        >>> config.hostname
        'a.example.com'
        >>> [alternate.value for alternate in state.alternates]
        ['a.example.com', 'b.example.com']

        ```
    """

    def __init__(self, error_codes: frozenset[str] = FAILOVER_ERROR_CODES) -> None:
        self.error_codes = error_codes

    def build_alternates(self, config: RequestConfig, state: AttemptState) -> RequestConfig:
        """Build the alternates list of a call and select the first one.

        The list-valued host fields are removed from the returned config so
        that later attempts do not build the list again.

        Args:
            config: The resolved configuration of the call.
            state: The attempt state receiving the alternates.

        Returns:
            The configuration targeting the first alternate, or ``config``
            unchanged when no alternates were supplied.
        """
        alternates: list[Alternate] = []
        cleared: dict[str, None] = {}
        for option, key in _FAILOVER_FIELDS:
            value = getattr(config, option)
            if isinstance(value, tuple):
                alternates.extend(Alternate(key=key, value=item) for item in value)
                cleared[option] = None
        if not cleared:
            return config

        config = replace(config, **cleared)
        state.alternates = alternates
        state.failover_cursor = 0
        if not alternates:
            return config
        logger.debug(f"Failover enabled across {len(alternates)} alternates")
        return self.select(config, alternates[0])

    @staticmethod
    def select(config: RequestConfig, alternate: Alternate) -> RequestConfig:
        """Point the config at an alternate.

        The ``host`` and ``hostname`` fields are cleared first so no stale
        value of a previous alternate remains.
        """
        return replace(config, host=None, hostname=None, **{alternate.key: alternate.value})

    def qualifies(self, error: TransportError, state: AttemptState) -> bool:
        """Indicate if an error is eligible for failover in this call."""
        return bool(state.alternates) and error.code in self.error_codes

    def advance(self, error: TransportError, state: AttemptState) -> Alternate | None:
        """Advance to the next alternate after a transport error.

        A qualifying error consumes one try and moves the cursor
        round-robin. The new alternate is offered only while the number of
        tries does not exceed the number of alternates; past that point the
        error is left to the retry policy.

        Args:
            error: The transport error of the failed attempt.
            state: The attempt state of the call.

        Returns:
            The alternate to use for the next attempt, or ``None`` when
            failover does not apply or is exhausted.
        """
        if not self.qualifies(error, state):
            return None
        state.tries += 1
        state.failover_cursor = (state.failover_cursor + 1) % len(state.alternates)
        if state.tries > len(state.alternates):
            logger.debug(f"Failover exhausted after {len(state.alternates)} alternates")
            return None
        return state.current_alternate
