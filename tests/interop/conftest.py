"""
Shared pytest fixtures for interop tests.

Networks here launch real subprocesses: the stand-in node and privacy manager
scripts, run with the current interpreter. Addresses come from the loopback
range so every process can bind its own P2P address.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

from peeps.network import Network, NetworkTopology, PortAllocator
from peeps.process import SubprocessLauncher
from peeps.verify import PollingAwaiter


logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

LOOPBACK_SUBNET = "127.0.0.0/24"
"""Every host address of this range routes to the local machine on Linux."""


@pytest.fixture(scope="session")
def port_allocator() -> PortAllocator:
    """
    Provide a shared port allocator across all tests.

    Session-scoped to prevent port conflicts from TIME_WAIT state.
    Each test gets unique ports that don't overlap.
    """
    return PortAllocator(base_rpc_port=28545, base_p2p_port=38303)


@pytest.fixture
def subprocess_launcher() -> SubprocessLauncher:
    """Launcher polling liveness quickly."""
    return SubprocessLauncher(poll_interval=0.05, terminate_grace=5.0)


@pytest.fixture
async def interop_network(
    port_allocator: PortAllocator,
    subprocess_launcher: SubprocessLauncher,
    tmp_path: Path,
) -> AsyncGenerator[Callable[[], Network], None]:
    """Factory for networks of stand-in processes, closed at teardown."""
    networks: list[Network] = []

    def make() -> Network:
        network = Network(
            working_dir=tmp_path,
            launcher=subprocess_launcher,
            topology=NetworkTopology(LOOPBACK_SUBNET),
            ports=port_allocator,
            awaiter=PollingAwaiter(timeout=20.0, poll_interval=0.1),
        )
        networks.append(network)
        return network

    yield make

    for network in networks:
        try:
            await asyncio.wait_for(network.close(), timeout=20.0)
        except TimeoutError:
            logger.warning("Network teardown timed out")
