"""
Bounded polling of eventually-consistent state.

The processes under test only expose pull-style queries, so every cross-process
synchronization point is a poll: evaluate a predicate, sleep, evaluate again,
until it holds or a deadline passes.

All verifiers in this package go through this one primitive instead of
running their own retry loops.

Transient vs permanent failures:

- A falsy result or an ordinary exception means "not yet". It is recorded
  and the predicate is evaluated again after the poll interval.
- A `PeepsFatalError`, or any exception type listed in `permanent`, means
  "never". It propagates at once without waiting out the deadline.

A predicate that cannot tell the two apart therefore runs until the deadline.
Only use predicates that read state: a predicate with side effects would repeat
them on every attempt.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar, cast

from peeps.config import AWAIT_TIMEOUT, POLL_INTERVAL
from peeps.types import ConvergenceTimeoutError, PeepsFatalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_present(value: object) -> bool:
    return value is not None


async def await_until(
    predicate: Callable[[], T | Awaitable[T]],
    *,
    failure_message: str,
    timeout: float | None = None,
    poll_interval: float | None = None,
    permanent: tuple[type[BaseException], ...] = (),
    accept: Callable[[T], bool] = bool,
) -> T:
    """
    Evaluate `predicate` until its result is accepted or the deadline passes.

    The sleep between attempts is cut short at the deadline and one last
    attempt is made there. An always-failing predicate therefore raises after
    roughly `timeout` seconds and never later than `timeout + poll_interval`
    (plus the duration of the final evaluation).

    Args:
        predicate: Sync or async callable. Its return value is checked with `accept`.
        failure_message: Describes the awaited condition in the timeout error.
        timeout: Deadline in seconds. Defaults to `PEEPS_AWAIT_TIMEOUT`.
        poll_interval: Seconds between attempts. Defaults to `PEEPS_POLL_INTERVAL`.
        permanent: Extra exception types that abort polling immediately.
        accept: Decides whether a result ends the wait. Defaults to truthiness.

    Returns:
        The first accepted result.

    Raises:
        ConvergenceTimeoutError: If no attempt succeeded before the deadline.
            The final attempt's exception is chained as the cause.
        PeepsFatalError: Propagated unchanged from the predicate.
    """
    timeout = AWAIT_TIMEOUT if timeout is None else timeout
    poll_interval = POLL_INTERVAL if poll_interval is None else poll_interval
    if timeout < 0:
        raise ValueError(f"timeout must be non-negative, got {timeout}")
    if poll_interval <= 0:
        raise ValueError(f"poll_interval must be positive, got {poll_interval}")

    start = time.monotonic()
    deadline = start + timeout
    attempts = 0
    last_failure: BaseException | None = None
    last_result: object = None

    while True:
        attempts += 1
        try:
            outcome = predicate()
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except PeepsFatalError:
            raise
        except permanent:
            raise
        except Exception as exc:
            # Only the most recent transient error is kept for the report.
            last_failure = exc
            last_result = None
            logger.debug("Attempt %d of '%s' failed: %r", attempts, failure_message, exc)
        else:
            result: T = outcome  # type: ignore[assignment]
            if accept(result):
                logger.debug(
                    "'%s' satisfied after %d attempts (%.2fs)",
                    failure_message,
                    attempts,
                    time.monotonic() - start,
                )
                return result
            last_failure = None
            last_result = result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            elapsed = time.monotonic() - start
            logger.warning(
                "Timed out after %.2fs (%d attempts): %s", elapsed, attempts, failure_message
            )
            raise ConvergenceTimeoutError(
                failure_message,
                timeout=timeout,
                attempts=attempts,
                elapsed=elapsed,
                last_failure=last_failure,
                last_result=last_result,
            ) from last_failure

        await asyncio.sleep(min(poll_interval, remaining))


@dataclass(frozen=True, slots=True)
class PollingAwaiter:
    """
    Polling defaults shared by a set of verifiers.

    Holds no state between calls, so one instance can serve any number of
    concurrent awaits.
    """

    timeout: float = AWAIT_TIMEOUT
    """Default deadline in seconds."""

    poll_interval: float = POLL_INTERVAL
    """Default seconds between attempts."""

    async def until(
        self,
        predicate: Callable[[], T | Awaitable[T]],
        failure_message: str,
        *,
        timeout: float | None = None,
        permanent: tuple[type[BaseException], ...] = (),
    ) -> T:
        """Wait for `predicate` to return a truthy value."""
        return await await_until(
            predicate,
            failure_message=failure_message,
            timeout=self.timeout if timeout is None else timeout,
            poll_interval=self.poll_interval,
            permanent=permanent,
        )

    async def value(
        self,
        fetch: Callable[[], T | None | Awaitable[T | None]],
        failure_message: str,
        *,
        timeout: float | None = None,
        permanent: tuple[type[BaseException], ...] = (),
    ) -> T:
        """
        Wait for `fetch` to return something other than None.

        Use this for lookups where a present value may be falsy (a zero balance).
        """
        result = await await_until(
            fetch,
            failure_message=failure_message,
            timeout=self.timeout if timeout is None else timeout,
            poll_interval=self.poll_interval,
            permanent=permanent,
            accept=_is_present,
        )
        return cast(T, result)


async def gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """
    Run awaitables concurrently and return their results in order.

    Unlike a task group, the first failure is raised as itself rather than
    wrapped in an exception group. The remaining tasks are cancelled and
    awaited before it propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
