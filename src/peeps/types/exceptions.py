"""
Exception hierarchy for the orchestration harness.

Errors fall into two families:

- Transient: the observed state is not there *yet*. Polling retries these
  until its deadline (`NotReadyError`, `RpcError`).
- Fatal: retrying cannot help. Polling aborts on these immediately and they
  always propagate to the test driver (`PeepsFatalError` and subclasses).

Every error names the entity involved and, where there is one, the expected
and actual state, so a failed run can be diagnosed from its message alone.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any


def _truncate(value: Any, limit: int = 200) -> str:
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class PeepsError(Exception):
    """
    Base exception for all harness errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class NotReadyError(PeepsError):
    """
    Raised when a process is running but cannot answer queries yet.

    Attributes:
        name: Name of the node or privacy manager.
        detail: What was attempted.
    """

    def __init__(self, name: str, detail: str) -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"{name} is not ready: {detail}")


class NodeUnreachableError(NotReadyError):
    """
    Raised when the transport to a process fails (connection refused, timeout).

    Attributes:
        endpoint: The URL that could not be reached.
    """

    def __init__(self, name: str, endpoint: str, detail: str) -> None:
        self.endpoint = endpoint
        super().__init__(name, f"{endpoint} unreachable ({detail})")


class RpcError(PeepsError):
    """
    Raised when a node answers a call with an error object or a bad status.

    Attributes:
        name: Name of the node that answered.
        method: The RPC method or REST path.
        code: JSON-RPC error code or HTTP status.
        detail: Error text returned by the node.
    """

    def __init__(self, name: str, method: str, code: int, detail: str) -> None:
        self.name = name
        self.method = method
        self.code = code
        self.detail = detail
        super().__init__(f"{name}: {method} failed with code {code}: {detail}")


class ConvergenceTimeoutError(PeepsError):
    """
    Raised when a polled condition does not hold before its deadline.

    The last failed attempt is kept both as `last_failure` and as `__cause__`.

    Attributes:
        failure_message: Caller supplied description of the awaited condition.
        timeout: The deadline in seconds.
        attempts: Number of predicate evaluations.
        elapsed: Seconds spent polling.
        last_failure: Exception raised by the final attempt, if any.
        last_result: Value returned by the final attempt when it did not raise.
    """

    def __init__(
        self,
        failure_message: str,
        *,
        timeout: float,
        attempts: int,
        elapsed: float,
        last_failure: BaseException | None = None,
        last_result: Any = None,
    ) -> None:
        self.failure_message = failure_message
        self.timeout = timeout
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_failure = last_failure
        self.last_result = last_result

        if last_failure is not None:
            last = f"last error: {last_failure!r}"
        else:
            last = f"last result: {_truncate(last_result)}"

        super().__init__(
            f"{failure_message} (timed out after {elapsed:.2f}s of {timeout:.2f}s, "
            f"{attempts} attempts, {last})"
        )


class PeerConnectivityTimeout(ConvergenceTimeoutError):
    """
    Raised when a node does not connect to all expected peers in time.

    Attributes:
        node: Name of the node that was polled.
        missing: Peer ids still absent from the node's peer set.
    """

    def __init__(
        self,
        node: str,
        missing: Iterable[str],
        *,
        timeout: float,
        attempts: int,
        elapsed: float,
        last_failure: BaseException | None = None,
    ) -> None:
        self.node = node
        self.missing = frozenset(missing)
        super().__init__(
            f"{node} failed to connect in time to peers: {sorted(self.missing)}",
            timeout=timeout,
            attempts=attempts,
            elapsed=elapsed,
            last_failure=last_failure,
            last_result=sorted(self.missing),
        )


class PeepsFatalError(PeepsError):
    """Base class for errors that must never be retried."""


class LaunchFailure(PeepsFatalError):
    """
    Raised when an external process would not start.

    Attributes:
        name: Name of the process.
        diagnostics: Output the process produced before failing.
        exit_code: Process exit code, if it exited.
    """

    def __init__(
        self,
        name: str,
        reason: str,
        *,
        diagnostics: str = "",
        exit_code: int | None = None,
    ) -> None:
        self.name = name
        self.reason = reason
        self.diagnostics = diagnostics
        self.exit_code = exit_code

        msg = f"Failed to launch {name}: {reason}"
        if exit_code is not None:
            msg = f"{msg} (exit code {exit_code})"
        if diagnostics:
            msg = f"{msg}\n--- {name} output ---\n{diagnostics}"

        super().__init__(msg)


class NodeNotStartedError(PeepsFatalError):
    """
    Raised when node state is requested before a successful start.

    Attributes:
        name: Name of the node.
        state: Lifecycle state at the time of the call.
    """

    def __init__(self, name: str, state: str) -> None:
        self.name = name
        self.state = state
        super().__init__(f"{name} has no identity in state {state}; it only exists once started")


class ConfigDivergenceError(PeepsFatalError):
    """
    Raised when an existing shared configuration differs from the candidate.

    Attributes:
        path: Location of the existing artifact.
        existing: Serialized artifact found on disk.
        candidate: Serialized candidate that was expected to match.
    """

    def __init__(self, path: Path, existing: str, candidate: str) -> None:
        self.path = path
        self.existing = existing
        self.candidate = candidate
        super().__init__(
            f"The configuration at {path} does not match the one requested\n"
            f"existing:  {existing}\n"
            f"candidate: {candidate}"
        )


class ConsensusDivergenceError(PeepsFatalError):
    """
    Raised when a node resolves a value different from the baseline node.

    Attributes:
        node: Name of the diverging node.
        handle: Description of what was resolved.
        expected: Value resolved by the baseline.
        actual: Value resolved by `node`.
    """

    def __init__(self, node: str, handle: str, expected: Any, actual: Any) -> None:
        self.node = node
        self.handle = handle
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{node} diverged on {handle}: expected {_truncate(expected)}, "
            f"got {_truncate(actual)}"
        )


class BalanceTransitionError(PeepsFatalError):
    """
    Raised when an account balance did not move by the expected amount.

    Attributes:
        node: Name of the node the balance was read from.
        address: The account.
        expected: Balance the transfer should have produced, in wei.
        actual: Balance the node reports, in wei.
    """

    def __init__(self, node: str, address: str, expected: int, actual: int) -> None:
        self.node = node
        self.address = address
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{node} reports balance {actual} for {address}, expected {expected} "
            f"(off by {actual - expected})"
        )


class DuplicateReservationError(PeepsFatalError):
    """
    Raised when a name already holds an address in the topology.

    Attributes:
        name: The name being reserved.
        address: The address it already holds.
    """

    def __init__(self, name: str, address: str) -> None:
        self.name = name
        self.address = address
        super().__init__(f"{name} already holds address {address}")


class TopologyExhaustedError(PeepsFatalError):
    """
    Raised when the subnet has no free host address left.

    Attributes:
        subnet: The subnet in CIDR notation.
        name: The name that could not be placed.
    """

    def __init__(self, subnet: str, name: str) -> None:
        self.subnet = subnet
        self.name = name
        super().__init__(f"No free address left in {subnet} for {name}")


class AlreadyExistsError(PeepsFatalError):
    """
    Raised when an atomic create finds the path already present.

    Attributes:
        path: The path that already existed.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"{path} already exists")


class EmptyReceiptError(PeepsFatalError):
    """
    Raised when a submission returns a blank handle.

    Attributes:
        sender: Name of the process the submission went to.
        operation: What was submitted.
    """

    def __init__(self, sender: str, operation: str) -> None:
        self.sender = sender
        self.operation = operation
        super().__init__(f"{sender} returned an empty receipt for {operation}")
