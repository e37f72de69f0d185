"""Address and port allocation, bootnode wiring and the network orchestrator."""

from .network import GENESIS_FILE_NAME, Network
from .patterns import PATTERNS, bootnodes_by_dialer, chain, full_mesh, launch_waves, star
from .ports import PortAllocator
from .topology import DEFAULT_SUBNET, NetworkTopology

__all__ = [
    "DEFAULT_SUBNET",
    "GENESIS_FILE_NAME",
    "Network",
    "NetworkTopology",
    "PATTERNS",
    "PortAllocator",
    "bootnodes_by_dialer",
    "chain",
    "full_mesh",
    "launch_waves",
    "star",
]
