"""Tests for the error hierarchy."""

from __future__ import annotations

from pathlib import Path

import pytest

from peeps.types import (
    AlreadyExistsError,
    BalanceTransitionError,
    ConfigDivergenceError,
    ConsensusDivergenceError,
    ConvergenceTimeoutError,
    DuplicateReservationError,
    EmptyReceiptError,
    LaunchFailure,
    NodeNotStartedError,
    NodeUnreachableError,
    NotReadyError,
    PeepsError,
    PeepsFatalError,
    PeerConnectivityTimeout,
    RpcError,
    TopologyExhaustedError,
)


class TestHierarchy:
    """Transient errors stay apart from fatal ones."""

    @pytest.mark.parametrize(
        "error",
        [
            LaunchFailure("besu-a", "exited"),
            NodeNotStartedError("besu-a", "unstarted"),
            ConfigDivergenceError(Path("genesis.json"), "{}", "{ }"),
            ConsensusDivergenceError("besu-b", "receipt of 0x1", 1, 2),
            DuplicateReservationError("besu-a", "10.0.0.2"),
            TopologyExhaustedError("10.0.0.0/30", "besu-c"),
            AlreadyExistsError(Path("genesis.json")),
            EmptyReceiptError("orion-a", "payload for orion-b"),
            BalanceTransitionError("besu-a", "0xfe", 10, 9),
        ],
    )
    def test_fatal_errors_share_a_base(self, error: PeepsError) -> None:
        """Every never-retry error derives from the fatal base."""
        assert isinstance(error, PeepsFatalError)

    @pytest.mark.parametrize(
        "error",
        [
            NotReadyError("besu-a", "booting"),
            NodeUnreachableError("besu-a", "http://127.0.0.1:1", "refused"),
            RpcError("besu-a", "admin_peers", -32601, "Method not found"),
        ],
    )
    def test_transient_errors_are_not_fatal(self, error: PeepsError) -> None:
        """Errors polling may retry are not fatal."""
        assert not isinstance(error, PeepsFatalError)

    def test_unreachable_is_not_ready(self) -> None:
        """A failed transport counts as a node that is not ready yet."""
        error = NodeUnreachableError("besu-a", "http://127.0.0.1:1", "refused")

        assert isinstance(error, NotReadyError)
        assert error.endpoint == "http://127.0.0.1:1"
        assert "besu-a" in str(error)

    def test_connectivity_timeout_is_a_convergence_timeout(self) -> None:
        """Peer timeouts can be caught as generic convergence timeouts."""
        error = PeerConnectivityTimeout(
            "besu-a", ["0xbb", "0xaa"], timeout=1, attempts=3, elapsed=1
        )

        assert isinstance(error, ConvergenceTimeoutError)
        assert error.missing == frozenset({"0xaa", "0xbb"})
        assert "['0xaa', '0xbb']" in str(error)


class TestMessages:
    """Messages name the entity and the expected versus actual state."""

    def test_launch_failure_carries_diagnostics(self) -> None:
        """Process output and exit code are part of the message."""
        error = LaunchFailure("besu-a", "exited early", diagnostics="boom", exit_code=2)

        assert error.diagnostics == "boom"
        assert error.exit_code == 2
        assert "exit code 2" in error.message
        assert "boom" in error.message

    def test_divergence_names_node_and_values(self) -> None:
        """Consensus divergence reports both values."""
        error = ConsensusDivergenceError("besu-b", "balance of 0xfe", 10, 11)

        assert error.node == "besu-b"
        assert "besu-b" in str(error)
        assert "10" in str(error)
        assert "11" in str(error)

    def test_balance_transition_reports_the_difference(self) -> None:
        """A wrong balance names the node, the account and how far off it is."""
        error = BalanceTransitionError("besu-a", "0xfe", 1000, 958)

        assert (error.node, error.address) == ("besu-a", "0xfe")
        assert "expected 1000" in str(error)
        assert "off by -42" in str(error)

    def test_long_values_are_truncated(self) -> None:
        """Huge values do not flood the message."""
        error = ConsensusDivergenceError("besu-b", "payload", "x" * 1000, "y")

        assert len(error.message) < 400

    def test_timeout_reports_last_failure(self) -> None:
        """The final attempt's exception is named in the message."""
        cause = NotReadyError("besu-a", "booting")
        error = ConvergenceTimeoutError(
            "besu-a did not answer", timeout=1.0, attempts=4, elapsed=1.01, last_failure=cause
        )

        assert "4 attempts" in str(error)
        assert "booting" in str(error)

    def test_repr_uses_message(self) -> None:
        """Repr shows the class and the message."""
        error = AlreadyExistsError(Path("/tmp/genesis.json"))

        assert repr(error) == "AlreadyExistsError('/tmp/genesis.json already exists')"
