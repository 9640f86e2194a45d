r"""Request engine and the policies it applies between attempts."""

from __future__ import annotations

__all__ = [
    "FailoverSelector",
    "RedirectResolver",
    "RequestEngine",
    "prepare_attempt",
]

from reqlib.engine.attempt import prepare_attempt
from reqlib.engine.executor import RequestEngine
from reqlib.engine.failover import FailoverSelector
from reqlib.engine.redirect import RedirectResolver
