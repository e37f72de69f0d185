"""
Typed views of the JSON-RPC results the harness reads.

Only the fields needed for verification and diagnostics are declared;
anything else a client returns is dropped. Models are frozen so results from
different nodes compare by value.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import Field

from peeps.types import CamelModel


class RpcModel(CamelModel):
    """Immutable, lenient base for RPC results."""

    model_config = CamelModel.model_config | {"frozen": True}


M = TypeVar("M", bound=RpcModel)


class NodePorts(RpcModel):
    """Listening ports reported by `admin_nodeInfo`."""

    discovery: int | None = None
    listener: int | None = None


class NodeInfo(RpcModel):
    """Result of `admin_nodeInfo`."""

    id: str
    """Node id, hex encoded public key. Besu omits the 0x prefix."""

    enode: str
    """Enode URL other nodes use as a bootnode."""

    name: str | None = None
    """Client name and version."""

    ip: str | None = None
    """Address the node believes it is reachable at."""

    listen_addr: str | None = None
    ports: NodePorts | None = None


class PeerInfo(RpcModel):
    """One entry of `admin_peers`."""

    id: str
    name: str | None = None
    enode: str | None = None


class Log(RpcModel):
    """Event log attached to a receipt."""

    address: str
    data: str
    topics: tuple[str, ...] = ()
    log_index: str | None = None


class Transaction(RpcModel):
    """Result of `eth_getTransactionByHash`."""

    hash: str
    sender: str = Field(alias="from")
    to: str | None = None
    value: str
    nonce: str
    gas: str
    gas_price: str | None = None
    input: str
    block_hash: str | None = None
    block_number: str | None = None
    transaction_index: str | None = None


class TransactionReceipt(RpcModel):
    """Result of `eth_getTransactionReceipt`."""

    transaction_hash: str
    transaction_index: str
    block_hash: str
    block_number: str
    sender: str = Field(alias="from")
    to: str | None = None
    contract_address: str | None = None
    cumulative_gas_used: str
    gas_used: str
    effective_gas_price: str | None = None
    """Price per gas actually paid. Older clients omit it."""
    status: str | None = None
    logs: tuple[Log, ...] = ()

    @property
    def succeeded(self) -> bool:
        """Whether the transaction executed without reverting."""
        return self.status == "0x1"


class PrivacyTransactionReceipt(RpcModel):
    """Result of `priv_getTransactionReceipt`."""

    transaction_hash: str
    commitment_hash: str | None = None
    sender: str = Field(alias="from")
    to: str | None = None
    contract_address: str | None = None
    output: str | None = None
    private_from: str | None = None
    private_for: tuple[str, ...] | None = None
    privacy_group_id: str | None = None
    status: str | None = None
    logs: tuple[Log, ...] = ()


def parse_optional(model_type: type[M], result: Any) -> M | None:
    """Validate a JSON-RPC result, mapping `null` to None."""
    if result is None:
        return None
    return model_type.model_validate(result)
