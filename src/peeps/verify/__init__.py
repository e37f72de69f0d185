"""Bounded polling and the verifiers built on it."""

from .awaiter import PollingAwaiter, await_until, gather_or_cancel
from .connectivity import PeerConnectivityVerifier
from .consensus import ConsensusConvergenceVerifier
from .handles import (
    BalanceQuery,
    PayloadHandle,
    PrivacyReceiptHandle,
    ReceiptHandle,
    TransactionHandle,
    TransactionReceiptHandle,
)
from .transfer import (
    BalanceChange,
    ValueReceived,
    ValueSent,
    ValueTransitionVerifier,
    transfer,
)

__all__ = [
    "BalanceChange",
    "BalanceQuery",
    "ConsensusConvergenceVerifier",
    "PayloadHandle",
    "PeerConnectivityVerifier",
    "PollingAwaiter",
    "PrivacyReceiptHandle",
    "ReceiptHandle",
    "TransactionHandle",
    "TransactionReceiptHandle",
    "ValueReceived",
    "ValueSent",
    "ValueTransitionVerifier",
    "await_until",
    "gather_or_cancel",
    "transfer",
]
