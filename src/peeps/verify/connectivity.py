"""Waiting for nodes to discover each other."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from peeps.types import ConvergenceTimeoutError, PeerConnectivityTimeout, ensure_hex_prefix

from .awaiter import PollingAwaiter, gather_or_cancel

if TYPE_CHECKING:
    from peeps.node.handle import NodeHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PeerConnectivityVerifier:
    """Polls a node's live peer set until it contains the expected peers."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults."""

    async def await_connectivity(
        self, node: NodeHandle, expected_peers: Iterable[NodeHandle]
    ) -> set[str]:
        """
        Wait until `node` reports a connection to every node in `expected_peers`.

        The node itself is ignored if it appears in `expected_peers`. The peer
        set is re-read on every attempt.

        Returns:
            The peer ids the node reported on the successful attempt.

        Raises:
            PeerConnectivityTimeout: Naming the peer ids still missing at the deadline.
        """
        own_id = ensure_hex_prefix(node.node_id)
        expected = {ensure_hex_prefix(peer.node_id) for peer in expected_peers} - {own_id}
        missing = set(expected)

        async def connected() -> set[str] | None:
            peers = await node.rpc.connected_peer_ids()
            missing.clear()
            missing.update(expected - peers)
            if missing:
                logger.debug("%s still missing %d peers", node.name, len(missing))
                return None
            return peers

        try:
            peers = await self.awaiter.value(
                connected, f"{node.name} did not connect to {len(expected)} peers"
            )
        except ConvergenceTimeoutError as e:
            raise PeerConnectivityTimeout(
                node.name,
                missing,
                timeout=e.timeout,
                attempts=e.attempts,
                elapsed=e.elapsed,
                last_failure=e.last_failure,
            ) from e.last_failure

        logger.info("%s connected to all %d expected peers", node.name, len(expected))
        return peers

    async def await_mesh(self, nodes: Sequence[NodeHandle]) -> None:
        """
        Wait until every node is connected to every other node.

        The nodes are polled concurrently. The first timeout cancels the rest
        and propagates.
        """
        await gather_or_cancel(*(self.await_connectivity(node, nodes) for node in nodes))
