r"""Derivation of the attempt-scoped configuration.

The logical configuration of a call names the destination the caller
wants to reach. Before each physical attempt it is copied and adjusted:
a ``:port`` suffix embedded in the host name is split off, and when a
proxy is configured the copy is re-targeted at the proxy with the
original destination moved into the ``Host`` header and an absolute-form
path. The logical configuration itself is never modified.
"""

from __future__ import annotations

__all__ = ["apply_proxy", "prepare_attempt", "split_hostname_port"]

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import httpx

from reqlib.core.config import HTTP_PORT, HTTPS_PORT, default_port

if TYPE_CHECKING:
    from reqlib.core.config import RequestConfig

logger: logging.Logger = logging.getLogger(__name__)


def split_hostname_port(config: RequestConfig) -> RequestConfig:
    """Split a ``:port`` suffix embedded in the destination host name.

    An explicit ``port`` option wins over the embedded one. A port that is
    not a number is replaced by the default port of the configured
    scheme (443 for https, 80 otherwise).

    Args:
        config: The configuration to adjust.

    Returns:
        A configuration whose ``hostname`` carries no port, whose ``host``
        reads ``hostname:port`` and whose ``port`` is an integer; or
        ``config`` unchanged when no port is embedded.

    Example:
        ```pycon
        >>> from reqlib.core import RequestConfig
        >>> from reqlib.engine.attempt import split_hostname_port
        >>> config = split_hostname_port(
        ...     RequestConfig(hostname="test.api.io:notanumber", protocol="https")
        ... )
        >>> config.hostname, config.host, config.port
        ('test.api.io', 'test.api.io:443', 443)

        ```
    """
    hostname = config.hostname if isinstance(config.hostname, str) else None
    if hostname is None and isinstance(config.host, str):
        hostname = config.host
    if not hostname:
        return config

    index = hostname.find(":")
    if index <= 0:
        return replace(config, hostname=hostname)

    name, raw_port = hostname[:index], hostname[index + 1 :]
    port = config.port
    if port is None:
        try:
            port = int(raw_port, 10)
        except ValueError:
            port = default_port(config.protocol)
            logger.debug(
                f"Invalid port {raw_port!r} in host name {hostname!r}, using default port {port}"
            )
    return replace(config, hostname=name, host=f"{name}:{port}", port=port)


def apply_proxy(config: RequestConfig) -> RequestConfig:
    """Re-target a configuration at its forwarding proxy.

    The ``Host`` header is set to the original destination and the path
    is rewritten to ``scheme://host[:port]/path``, where the port segment
    only appears for non-default ports. The protocol, host, host name and
    port then point at the proxy.

    Args:
        config: The configuration to adjust.

    Returns:
        The proxied configuration, or ``config`` unchanged when no proxy
        is configured.

    Example:
        ```pycon
        >>> from reqlib.core import resolve_options
        >>> from reqlib.engine.attempt import apply_proxy
        >>> config = apply_proxy(
        ...     resolve_options(
        ...         {"hostname": "test.api.io", "path": "/v1/tests", "proxy": "http://proxy.server:8080"}
        ...     )
        ... )
        >>> config.headers["Host"], config.path
        ('test.api.io', 'http://test.api.io/v1/tests')
        >>> config.hostname, config.port
        ('proxy.server', 8080)

        ```
    """
    if not config.proxy:
        return config

    proxy = httpx.URL(config.proxy)
    host = config.host if isinstance(config.host, str) else config.hostname
    host = host or "localhost"
    headers = httpx.Headers(config.headers)
    headers["Host"] = host

    path = config.path or "/"
    if "://" not in path:
        authority = host
        if ":" not in authority and config.port not in (None, HTTP_PORT, HTTPS_PORT):
            authority = f"{host}:{config.port}"
        path = f"{config.scheme}://{authority}{path}"

    return replace(
        config,
        headers=headers,
        path=path,
        protocol=proxy.scheme,
        host=proxy.netloc.decode("ascii"),
        hostname=proxy.host,
        port=proxy.port,
    )


def prepare_attempt(config: RequestConfig) -> RequestConfig:
    """Derive the configuration of one physical attempt.

    Args:
        config: The logical configuration of the call.

    Returns:
        A private copy with the host name port split and the proxy applied.
    """
    return apply_proxy(split_hostname_port(config))
