"""Ethereum node handles, identity and JSON-RPC binding."""

from peeps.process import NodeState

from .config import BESU_COMMAND, BESU_OPTIONS, NodeConfig, render_command
from .handle import NodeHandle
from .identity import NodeIdentity
from .models import (
    NodeInfo,
    PeerInfo,
    PrivacyTransactionReceipt,
    Transaction,
    TransactionReceipt,
)
from .rpc import NodeRpcClient

__all__ = [
    "BESU_COMMAND",
    "BESU_OPTIONS",
    "NodeConfig",
    "NodeHandle",
    "NodeIdentity",
    "NodeInfo",
    "NodeRpcClient",
    "NodeState",
    "PeerInfo",
    "PrivacyTransactionReceipt",
    "Transaction",
    "TransactionReceipt",
    "render_command",
]
