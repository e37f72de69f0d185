"""
One private network under test: its nodes, privacy managers and shared genesis.

The network owns every resource of a run. It places each process in the
topology, writes the shared genesis, starts the privacy managers and then the
nodes in bootnode order, and tears it all down again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from peeps.genesis import ConsensusMechanism, Genesis, GenesisFile
from peeps.node import NodeConfig, NodeHandle, NodeIdentity
from peeps.privacy import PrivacyGroupExchange, PrivacyManagerConfig, PrivacyManagerHandle
from peeps.process import Launcher, SubprocessLauncher
from peeps.verify import (
    ConsensusConvergenceVerifier,
    PeerConnectivityVerifier,
    PollingAwaiter,
    ReceiptHandle,
    ValueTransitionVerifier,
    gather_or_cancel,
)

from .patterns import bootnodes_by_dialer, full_mesh, launch_waves
from .ports import PortAllocator
from .topology import NetworkTopology

logger = logging.getLogger(__name__)

GENESIS_FILE_NAME = "genesis.json"
"""Name of the shared genesis inside the working directory."""


def _default_genesis() -> Genesis:
    return Genesis.for_consensus(ConsensusMechanism.ETHASH)


@dataclass(slots=True)
class Network:
    """
    Orchestrates the processes of one network.

    Usable as an async context manager: entering starts the network, leaving
    stops every process and releases every address, also when start failed.
    """

    working_dir: Path
    """Directory for the genesis, config files, data and captured output."""

    launcher: Launcher = field(default_factory=SubprocessLauncher)
    """Starts and stops every process of the network."""

    topology: NetworkTopology = field(default_factory=NetworkTopology)
    """Address allocation."""

    ports: PortAllocator = field(default_factory=PortAllocator)
    """Host-side port allocation."""

    genesis: Genesis = field(default_factory=_default_genesis)
    """Genesis shared by every node."""

    pattern: Callable[[int], list[tuple[int, int]]] = full_mesh
    """Bootnode wiring: (dialer, listener) node index pairs for n nodes."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for readiness and verification."""

    nodes: list[NodeHandle] = field(default_factory=list)
    """Nodes in the order they were added."""

    privacy_managers: list[PrivacyManagerHandle] = field(default_factory=list)
    """Privacy managers in the order they were added."""

    @property
    def genesis_file(self) -> Path:
        """Location of the shared genesis."""
        return self.working_dir / GENESIS_FILE_NAME

    def add_privacy_manager(
        self,
        name: str,
        public_key: str,
        *,
        public_key_files: Sequence[Path] = (),
        private_key_files: Sequence[Path] = (),
        **options: Any,
    ) -> PrivacyManagerHandle:
        """
        Place a privacy manager in the network.

        It discovers every manager added before it.

        Args:
            name: Unique name within the network.
            public_key: Base64 public key identifying the manager.
            **options: Further `PrivacyManagerConfig` fields (command, env, ...).

        Raises:
            DuplicateReservationError: If the name is already taken.
            TopologyExhaustedError: If the subnet is full.
        """
        ip_address = self.topology.reserve(name)
        rpc_port, p2p_port = self.ports.allocate_ports()
        config = PrivacyManagerConfig(
            name=name,
            ip_address=ip_address,
            rpc_port=rpc_port,
            p2p_port=p2p_port,
            working_dir=self.working_dir,
            public_key=public_key,
            public_key_files=tuple(public_key_files),
            private_key_files=tuple(private_key_files),
            bootnode_urls=tuple(pm.config.network_url for pm in self.privacy_managers),
            **options,
        )
        manager = PrivacyManagerHandle(config, self.launcher, self.awaiter)
        self.privacy_managers.append(manager)
        logger.debug("Added privacy manager %s at %s", name, ip_address)
        return manager

    def add_node(
        self,
        name: str,
        *,
        privacy_manager: PrivacyManagerHandle | None = None,
        **options: Any,
    ) -> NodeHandle:
        """
        Place a node in the network.

        Args:
            name: Unique name within the network.
            privacy_manager: Manager the node hands private transactions to.
            **options: Further `NodeConfig` fields (command, node_private_key_file, ...).

        Raises:
            DuplicateReservationError: If the name is already taken.
            TopologyExhaustedError: If the subnet is full.
        """
        if privacy_manager is not None:
            key_files = privacy_manager.config.public_key_files
            options.setdefault("privacy_url", privacy_manager.config.rpc_endpoint)
            options.setdefault("privacy_public_key_file", key_files[0] if key_files else None)

        ip_address = self.topology.reserve(name)
        rpc_port, p2p_port = self.ports.allocate_ports()
        config = NodeConfig(
            name=name,
            ip_address=ip_address,
            rpc_port=rpc_port,
            p2p_port=p2p_port,
            working_dir=self.working_dir,
            genesis_file=self.genesis_file,
            **options,
        )
        node = NodeHandle(config, self.launcher, self.awaiter)
        self.nodes.append(node)
        logger.debug("Added node %s at %s", name, ip_address)
        return node

    def node(self, name: str) -> NodeHandle:
        """The node called `name`. Raises KeyError if there is none."""
        for node in self.nodes:
            if node.name == name:
                return node
        raise KeyError(name)

    def privacy_manager(self, name: str) -> PrivacyManagerHandle:
        """The privacy manager called `name`. Raises KeyError if there is none."""
        for manager in self.privacy_managers:
            if manager.name == name:
                return manager
        raise KeyError(name)

    async def start(self) -> None:
        """
        Start every process and wait until each reports ready.

        Privacy managers start first, all at once. Nodes start in waves: a node
        is only launched once the nodes it dials are ready, so their enode
        URLs can go into its bootnodes.

        Raises:
            ConfigDivergenceError: If an existing genesis differs from this network's.
            LaunchFailure: If a process would not start.
            ConvergenceTimeoutError: If a process never became ready.
        """
        self.working_dir.mkdir(parents=True, exist_ok=True)
        GenesisFile(self.genesis_file).ensure_exists(self.genesis)

        if self.privacy_managers:
            await gather_or_cancel(*(pm.start() for pm in self.privacy_managers))

        connections = self.pattern(len(self.nodes))
        listeners = bootnodes_by_dialer(connections)
        for wave in launch_waves(len(self.nodes), connections):
            for index in wave:
                node = self.nodes[index]
                bootnodes = tuple(self.nodes[i].enode for i in listeners.get(index, []))
                node.config = replace(node.config, bootnodes=bootnodes)
            await gather_or_cancel(*(self.nodes[index].start() for index in wave))

        logger.info(
            "Network started: %d nodes, %d privacy managers",
            len(self.nodes),
            len(self.privacy_managers),
        )

    def identities(self) -> dict[str, NodeIdentity]:
        """Identity of every node, by name. Only valid once started."""
        return {node.name: node.identity() for node in self.nodes}

    async def await_connectivity(self) -> None:
        """Wait until every node is connected to every other node."""
        await PeerConnectivityVerifier(self.awaiter).await_mesh(self.nodes)

    async def verify_consensus_on_value(self, handle: ReceiptHandle[Any]) -> Any:
        """Every node resolves `handle` to the same value. Returns it."""
        return await ConsensusConvergenceVerifier(self.awaiter).consensus_on_value(
            self.nodes, handle
        )

    def consensus(self) -> ConsensusConvergenceVerifier:
        """A consensus verifier using this network's polling defaults."""
        return ConsensusConvergenceVerifier(self.awaiter)

    def privacy(self) -> PrivacyGroupExchange:
        """A payload exchange using this network's polling defaults."""
        return PrivacyGroupExchange(self.awaiter)

    def transitions(self) -> ValueTransitionVerifier:
        """A balance transition verifier using this network's polling defaults."""
        return ValueTransitionVerifier(self.awaiter)

    async def stop(self) -> None:
        """
        Stop every process. Nodes go first, as they depend on their managers.

        Every stop runs even when another fails; the first failure is raised
        afterwards. Idempotent. Addresses stay reserved, so the network can be
        started again.
        """
        results = await asyncio.gather(
            *(node.stop() for node in self.nodes), return_exceptions=True
        )
        results += await asyncio.gather(
            *(pm.stop() for pm in self.privacy_managers), return_exceptions=True
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors[1:]:
            logger.error("Stop failed: %r", error)
        if errors:
            raise errors[0]

    async def close(self) -> None:
        """Stop every process and release every address."""
        try:
            await self.stop()
        finally:
            for handle in (*self.nodes, *self.privacy_managers):
                self.topology.release(handle.name)
            self.nodes.clear()
            self.privacy_managers.clear()
            logger.info("Network closed")

    async def __aenter__(self) -> Network:
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
