"""
Host port allocation for processes sharing the loopback interface.

Provides thread-safe allocation of RPC and P2P ports.
Each process of a run gets its own pair to avoid conflicts.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

BASE_RPC_PORT = 18545
"""Starting port for HTTP JSON-RPC / REST endpoints."""

BASE_P2P_PORT = 30303
"""Starting port for peer-to-peer listeners."""


@dataclass(slots=True)
class PortAllocator:
    """
    Thread-safe port allocator for launched processes.

    Allocates sequential port ranges for RPC and P2P listeners.
    Each process gets a unique pair of ports.
    """

    base_rpc_port: int = BASE_RPC_PORT
    """First RPC port handed out."""

    base_p2p_port: int = BASE_P2P_PORT
    """First P2P port handed out."""

    _counter: int = field(default=0, init=False)
    """Current port offset."""

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    """Thread lock for concurrent access."""

    def allocate_ports(self) -> tuple[int, int]:
        """
        Allocate both RPC and P2P ports for a process.

        Returns:
            Tuple of (rpc_port, p2p_port).
        """
        with self._lock:
            rpc_port = self.base_rpc_port + self._counter
            p2p_port = self.base_p2p_port + self._counter
            self._counter += 1
            return rpc_port, p2p_port

    def reset(self) -> None:
        """Reset the counter to its initial state."""
        with self._lock:
            self._counter = 0
