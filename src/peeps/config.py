"""
Global configuration for the orchestration harness.

Timing defaults are read from the environment once, at import time, so a slow
CI machine can stretch every deadline without touching test code.
"""

import os


def _positive_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {name} environment variable: '{raw}'. Expected a number of seconds."
        ) from None
    if value <= 0:
        raise ValueError(f"Invalid {name} environment variable: '{raw}'. Must be positive.")
    return value


AWAIT_TIMEOUT = _positive_float("PEEPS_AWAIT_TIMEOUT", 30.0)
"""Seconds a verification polls before declaring a convergence timeout."""

POLL_INTERVAL = _positive_float("PEEPS_POLL_INTERVAL", 0.5)
"""Seconds slept between two evaluations of a polled predicate."""

RPC_TIMEOUT = _positive_float("PEEPS_RPC_TIMEOUT", 10.0)
"""Seconds a single RPC request may take. Independent of the await deadline."""

STARTUP_TIMEOUT = _positive_float("PEEPS_STARTUP_TIMEOUT", 60.0)
"""Seconds a launched process has to pass its liveness check."""
