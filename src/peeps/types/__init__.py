"""Reusable type definitions for the orchestration harness."""

from .base import CamelModel, StrictBaseModel
from .exceptions import (
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
from .hex import ensure_hex_prefix, hex_to_int, int_to_hex

__all__ = [
    # Models
    "CamelModel",
    "StrictBaseModel",
    # Hex helpers
    "ensure_hex_prefix",
    "hex_to_int",
    "int_to_hex",
    # Exceptions
    "PeepsError",
    "PeepsFatalError",
    "NotReadyError",
    "NodeUnreachableError",
    "RpcError",
    "ConvergenceTimeoutError",
    "PeerConnectivityTimeout",
    "LaunchFailure",
    "NodeNotStartedError",
    "ConfigDivergenceError",
    "ConsensusDivergenceError",
    "BalanceTransitionError",
    "DuplicateReservationError",
    "TopologyExhaustedError",
    "AlreadyExistsError",
    "EmptyReceiptError",
]
