r"""Parameter validation utilities for request configurations.

This module provides validation functions that ensure the policy and
framing parameters of a request configuration meet their constraints
before any attempt is made.
"""

from __future__ import annotations

__all__ = ["validate_policy_params", "validate_port", "validate_timeout"]


def validate_timeout(timeout: float) -> None:
    """Validate the timeout parameter.

    Args:
        timeout: Timeout of a physical attempt in milliseconds. ``0``
            disables the timeout.

    Raises:
        ValueError: If timeout is not a number or is negative.

    Example:
        ```pycon
        >>> from reqlib.core.validation import validate_timeout
        >>> validate_timeout(60000)
        >>> validate_timeout(0)
        >>> validate_timeout(-1)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: timeout must be >= 0, got -1

        ```
    """
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        msg = f"timeout must be a number, got {timeout!r}"
        raise ValueError(msg)
    if timeout < 0:
        msg = f"timeout must be >= 0, got {timeout}"
        raise ValueError(msg)


def validate_port(port: int) -> None:
    """Validate a destination port.

    Args:
        port: The port number.

    Raises:
        ValueError: If the port is not an integer between 1 and 65535.
    """
    if isinstance(port, bool) or not isinstance(port, int):
        msg = f"port must be an integer, got {port!r}"
        raise ValueError(msg)
    if not 0 < port < 65536:
        msg = f"port must be between 1 and 65535, got {port}"
        raise ValueError(msg)


def validate_policy_params(max_redirect_count: int, max_retry_count: int) -> None:
    """Validate the redirect and retry policy parameters.

    Args:
        max_redirect_count: Maximum number of redirects followed within
            one logical call. Must be >= 0.
        max_retry_count: Maximum number of retries within one logical
            call. Must be >= 0. A value of 0 means no retries.

    Raises:
        ValueError: If either value is not a non-negative integer.

    Example:
        ```pycon
        >>> from reqlib.core.validation import validate_policy_params
        >>> validate_policy_params(max_redirect_count=5, max_retry_count=3)
        >>> validate_policy_params(max_redirect_count=5, max_retry_count=-1)  # doctest: +SKIP

        ```
    """
    for name, value in (
        ("max_redirect_count", max_redirect_count),
        ("max_retry_count", max_retry_count),
    ):
        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"{name} must be an integer, got {value!r}"
            raise ValueError(msg)
        if value < 0:
            msg = f"{name} must be >= 0, got {value}"
            raise ValueError(msg)
