"""Dramatiq broker resolution for the sync jobs.

Workers normally start with a real broker installed by the ``dramatiq`` CLI.
Local runs and the test suite have none, so the first job to execute installs
a :class:`~dramatiq.brokers.stub.StubBroker` when that is explicitly allowed.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

STUB_BROKER_ENV = "ORGFOLIO_ALLOW_STUB_BROKER"
_TEST_ENV_MARKERS = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER")
_TRUTHY = frozenset({"1", "true", "yes", "on"})

_lock = threading.Lock()
_ready = False


def stub_broker_allowed() -> bool:
    """Return True when a stub broker may stand in for a real one.

    That is the case under pytest or when ``ORGFOLIO_ALLOW_STUB_BROKER`` is
    set to a truthy value.
    """
    if os.environ.get(STUB_BROKER_ENV, "").strip().lower() in _TRUTHY:
        return True
    return "pytest" in sys.modules or any(
        marker in os.environ for marker in _TEST_ENV_MARKERS
    )


def ensure_broker_configured() -> None:
    """Make sure a Dramatiq broker is installed before a job body runs.

    Safe to call from several worker threads; only the first call does work.

    Raises
    ------
    RuntimeError
        If no broker is installed and a stub broker is not allowed.

    """
    global _ready

    with _lock:
        if _ready:
            return
        try:
            broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            # No default broker could be built from the installed extras.
            broker = None

        if broker is None:
            if not stub_broker_allowed():
                msg = (
                    "No Dramatiq broker configured; set "
                    f"{STUB_BROKER_ENV}=1 for local runs or configure a real broker."
                )
                raise RuntimeError(msg)
            dramatiq.set_broker(StubBroker())
        _ready = True


__all__ = ["STUB_BROKER_ENV", "ensure_broker_configured", "stub_broker_allowed"]
