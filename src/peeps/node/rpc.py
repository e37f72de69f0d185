"""
JSON-RPC client for one Ethereum node.

Each query returns None ("absent") rather than raising when the node answers
but has nothing yet: a transaction that is not mined has no receipt. Polling
treats absence as "try again". Failures are raised as:

- `NodeUnreachableError` when the transport fails (connection refused,
  request timeout). This is a `NotReadyError`: the node may still be booting.
- `RpcError` when the node answers with an error object or a non-200 status.

Every request is bounded by the client's own timeout, independent of any
deadline the caller is polling against.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from peeps.config import RPC_TIMEOUT
from peeps.types import NodeUnreachableError, RpcError, ensure_hex_prefix, hex_to_int

from .models import (
    NodeInfo,
    PeerInfo,
    PrivacyTransactionReceipt,
    Transaction,
    TransactionReceipt,
    parse_optional,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NodeRpcClient:
    """
    Thin binding to a node's HTTP JSON-RPC endpoint.

    Owned by exactly one node handle and never shared between nodes.
    The underlying connection pool is created on first use and released by `close()`.
    """

    name: str
    """Name of the node, used in error messages."""

    endpoint: str
    """JSON-RPC URL, e.g. 'http://127.0.0.1:18545'."""

    timeout: float = RPC_TIMEOUT
    """Per-request timeout in seconds."""

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    """Lazily created HTTP client."""

    _ids: itertools.count[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )
    """Request id sequence."""

    @property
    def closed(self) -> bool:
        """Whether `close()` released the connection pool."""
        return self._client is not None and self._client.is_closed

    async def call(self, method: str, *params: Any) -> Any:
        """
        Invoke a JSON-RPC method and return its `result`.

        Raises:
            NodeUnreachableError: If the request could not be delivered or timed out.
            RpcError: If the node returned an error object or an unexpected response.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        request = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }

        try:
            response = await self._client.post(self.endpoint, json=request)
        except httpx.TransportError as exc:
            raise NodeUnreachableError(
                self.name, self.endpoint, str(exc) or type(exc).__name__
            ) from exc

        if response.status_code != 200:
            raise RpcError(self.name, method, response.status_code, response.text[:200])

        try:
            body = response.json()
        except ValueError as exc:
            raise RpcError(self.name, method, response.status_code, f"invalid JSON: {exc}") from exc

        error = body.get("error")
        if error is not None:
            code = error.get("code", 0) if isinstance(error, Mapping) else 0
            message = error.get("message", error) if isinstance(error, Mapping) else error
            raise RpcError(self.name, method, int(code), str(message))

        return body.get("result")

    async def close(self) -> None:
        """Release the connection pool. Safe to call more than once."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def node_info(self) -> NodeInfo | None:
        """The node's self-reported identity."""
        return parse_optional(NodeInfo, await self.call("admin_nodeInfo"))

    async def peers(self) -> list[PeerInfo]:
        """Peers the node is currently connected to."""
        result = await self.call("admin_peers")
        return [PeerInfo.model_validate(peer) for peer in result or []]

    async def connected_peer_ids(self) -> set[str]:
        """Ids of the connected peers, 0x-prefixed and lower-case."""
        return {ensure_hex_prefix(peer.id) for peer in await self.peers()}

    async def transaction_by_hash(self, tx_hash: str) -> Transaction | None:
        """The transaction with the given hash, if the node knows it."""
        return parse_optional(Transaction, await self.call("eth_getTransactionByHash", tx_hash))

    async def transaction_receipt(self, tx_hash: str) -> TransactionReceipt | None:
        """The receipt for a mined transaction."""
        return parse_optional(
            TransactionReceipt, await self.call("eth_getTransactionReceipt", tx_hash)
        )

    async def privacy_transaction_receipt(self, tx_hash: str) -> PrivacyTransactionReceipt | None:
        """The private receipt for a privacy marker transaction."""
        return parse_optional(
            PrivacyTransactionReceipt, await self.call("priv_getTransactionReceipt", tx_hash)
        )

    async def balance_of(self, address: str, block: str = "latest") -> int | None:
        """Balance in wei of `address` at `block`."""
        result = await self.call("eth_getBalance", address, block)
        return None if result is None else hex_to_int(result)

    async def block_number(self) -> int:
        """Number of the most recent block."""
        return hex_to_int(await self.call("eth_blockNumber"))

    # -------------------------------------------------------------------------
    # Submissions
    #
    # These have side effects and must never be wrapped in a polling predicate.
    # -------------------------------------------------------------------------

    async def send_transaction(self, transaction: Mapping[str, Any]) -> str:
        """Submit an unsigned transaction for the node to sign. Returns its hash."""
        logger.debug("%s: eth_sendTransaction %s", self.name, dict(transaction))
        return await self.call("eth_sendTransaction", dict(transaction))

    async def send_raw_transaction(self, raw: str) -> str:
        """Submit a signed transaction. Returns its hash."""
        logger.debug("%s: eth_sendRawTransaction %s", self.name, raw[:20])
        return await self.call("eth_sendRawTransaction", raw)
