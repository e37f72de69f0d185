"""Self-reported identity of a running node."""

from __future__ import annotations

from peeps.types import StrictBaseModel, ensure_hex_prefix

from .models import NodeInfo


class NodeIdentity(StrictBaseModel):
    """
    Who a node is and where to reach it.

    Unknown until the node first answers `admin_nodeInfo`, immutable afterwards.
    """

    node_id: str
    """0x-prefixed, lower-case node id (derived from the node's public key)."""

    enode: str
    """Enode URL that other nodes use to dial this one."""

    ip_address: str
    """Address reserved for the node in the network topology."""

    rpc_endpoint: str
    """JSON-RPC URL used by the harness."""

    @classmethod
    def from_node_info(cls, info: NodeInfo, *, ip_address: str, rpc_endpoint: str) -> NodeIdentity:
        """Build the identity from an `admin_nodeInfo` result."""
        return cls(
            node_id=ensure_hex_prefix(info.id),
            enode=info.enode,
            ip_address=ip_address,
            rpc_endpoint=rpc_endpoint,
        )
