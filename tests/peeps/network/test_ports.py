"""Tests for host port allocation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from peeps.network import PortAllocator


class TestPortAllocator:
    """Every process gets its own RPC and P2P port."""

    def test_sequential_pairs(self) -> None:
        """Pairs advance together from the configured bases."""
        ports = PortAllocator(base_rpc_port=9000, base_p2p_port=7000)

        assert ports.allocate_ports() == (9000, 7000)
        assert ports.allocate_ports() == (9001, 7001)

    def test_reset(self) -> None:
        """Reset starts over from the bases."""
        ports = PortAllocator()
        ports.allocate_ports()

        ports.reset()

        assert ports.allocate_ports() == (18545, 30303)

    def test_concurrent_allocation_is_unique(self) -> None:
        """Threads never receive the same pair."""
        ports = PortAllocator()

        with ThreadPoolExecutor(max_workers=8) as pool:
            pairs = list(pool.map(lambda _: ports.allocate_ports(), range(100)))

        assert len(set(pairs)) == 100
