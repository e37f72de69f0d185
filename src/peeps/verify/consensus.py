"""
Cross-node agreement on a resolved value.

The first node of a group is authoritative: the value it resolves is the
baseline every other node must reproduce. Each node is polled until its value
is present; a present but different value is a divergence, not a delay, so it
raises immediately.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from peeps.types import ConsensusDivergenceError

from .awaiter import PollingAwaiter
from .handles import BalanceQuery, ReceiptHandle, TransactionReceiptHandle

if TYPE_CHECKING:
    from peeps.node.handle import NodeHandle
    from peeps.node.models import TransactionReceipt

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class ConsensusConvergenceVerifier:
    """Checks that a group of processes agree on the value behind a handle."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for each lookup."""

    async def await_resolvable(self, node: Any, handle: ReceiptHandle[V]) -> V:
        """
        Poll `handle` on `node` until it resolves.

        Raises:
            ConvergenceTimeoutError: If the value never became present.
        """

        async def fetch() -> V | None:
            return await handle.resolve(node)

        return await self.awaiter.value(fetch, f"{node.name} never resolved {handle.describe()}")

    async def consensus_on_value(self, nodes: Sequence[Any], handle: ReceiptHandle[V]) -> V:
        """
        Resolve `handle` on every node and require structural equality.

        Args:
            nodes: Non-empty group. The first member is the baseline.
            handle: What to resolve.

        Returns:
            The agreed value.

        Raises:
            ConsensusDivergenceError: Naming the first node whose value differs.
            ConvergenceTimeoutError: If some node never resolved the handle.
        """
        if not nodes:
            raise ValueError("consensus needs at least one node")

        baseline, *others = nodes
        expected = await self.await_resolvable(baseline, handle)
        logger.debug("%s resolved %s as %r", baseline.name, handle.describe(), expected)

        for node in others:
            actual = await self.await_resolvable(node, handle)
            if actual != expected:
                raise ConsensusDivergenceError(node.name, handle.describe(), expected, actual)

        logger.info("%d nodes agree on %s", len(nodes), handle.describe())
        return expected

    async def consensus_on_transaction_receipt(
        self, nodes: Sequence[NodeHandle], tx_hash: str
    ) -> TransactionReceipt:
        """Every node holds the same receipt for `tx_hash`."""
        return await self.consensus_on_value(nodes, TransactionReceiptHandle(tx_hash))

    async def consensus_on_balances(
        self, nodes: Sequence[NodeHandle], *addresses: str
    ) -> dict[str, int]:
        """Every node reports the same balance for each address. Returns the balances."""
        return {
            address: await self.consensus_on_value(nodes, BalanceQuery(address))
            for address in addresses
        }
