"""
Lifecycle of one external node process.

The handle follows the shared `ProcessLifecycle` states. It is STARTED once
the process passed its liveness check and an RPC client is bound, and READY
once the node answered `admin_nodeInfo`, so its identity is known.

Handles share nothing with each other, so any number of them can start
concurrently. The only shared resource, the topology allocator, is used by
the network before a handle is created.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from peeps.process import Launcher, NodeState, ProcessLifecycle
from peeps.types import NodeNotStartedError, NotReadyError
from peeps.verify.awaiter import PollingAwaiter

from .config import NodeConfig
from .identity import NodeIdentity
from .rpc import NodeRpcClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NodeHandle:
    """
    Owns one node process and its RPC client.

    Provides convenient access to node identity and lifecycle.
    """

    config: NodeConfig
    """Launch parameters."""

    launcher: Launcher
    """Starts and stops the process."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for readiness."""

    _lifecycle: ProcessLifecycle = field(init=False, repr=False)
    """State and launched process."""

    _rpc: NodeRpcClient | None = field(default=None, init=False, repr=False)
    """RPC binding, present from STARTED until stopped."""

    _identity: NodeIdentity | None = field(default=None, init=False, repr=False)
    """Identity, known once READY."""

    def __post_init__(self) -> None:
        self._lifecycle = ProcessLifecycle(self.config.name, self.launcher)

    @property
    def name(self) -> str:
        """Unique name of the node."""
        return self.config.name

    @property
    def state(self) -> NodeState:
        """Current lifecycle state."""
        return self._lifecycle.state

    @property
    def rpc(self) -> NodeRpcClient:
        """
        RPC client bound to the running node.

        Raises:
            NodeNotStartedError: If the node is not running.
        """
        if self._rpc is None:
            raise NodeNotStartedError(self.name, self.state.value)
        return self._rpc

    def identity(self) -> NodeIdentity:
        """
        The node's self-reported identity.

        Raises:
            NodeNotStartedError: If the node has not become ready.
        """
        if self._identity is None or self.state is not NodeState.READY:
            raise NodeNotStartedError(self.name, self.state.value)
        return self._identity

    @property
    def node_id(self) -> str:
        """Shortcut for `identity().node_id`."""
        return self.identity().node_id

    @property
    def enode(self) -> str:
        """Shortcut for `identity().enode`."""
        return self.identity().enode

    async def start(self, *, await_ready: bool = True) -> None:
        """
        Launch the node and bind its RPC client.

        Args:
            await_ready: Poll the identity until the node answers. When False the
                handle is left STARTED; call `await_ready()` later.

        Raises:
            LaunchFailure: If the process would not start. The handle is FAILED.
            ConvergenceTimeoutError: If the node never reported its identity.
        """
        process = await self._lifecycle.launch(self.config.launch_spec)
        self._identity = None

        self._rpc = NodeRpcClient(name=self.name, endpoint=process.rpc_endpoint)
        logger.info("%s started, RPC at %s", self.name, process.rpc_endpoint)

        if await_ready:
            await self.await_ready()

    async def read_identity(self) -> NodeIdentity:
        """
        Query the node for its identity once.

        Raises:
            NodeNotStartedError: If the node is not running.
            NotReadyError: If the node is running but cannot answer yet.
            RpcError: If the node rejects the query.
        """
        info = await self.rpc.node_info()
        if info is None:
            raise NotReadyError(self.name, "admin_nodeInfo returned no result")

        identity = NodeIdentity.from_node_info(
            info,
            ip_address=self.config.ip_address,
            rpc_endpoint=self.rpc.endpoint,
        )
        if self._identity is None:
            self._identity = identity
            self._lifecycle.mark_ready()
            logger.info("%s is ready: id=%s enode=%s", self.name, identity.node_id, identity.enode)
        return self._identity

    async def await_ready(self, timeout: float | None = None) -> NodeIdentity:
        """Poll `read_identity()` until the node answers."""
        return await self.awaiter.until(
            self.read_identity,
            f"{self.name} did not report its identity",
            timeout=timeout,
        )

    async def stop(self) -> None:
        """
        Release the RPC client and terminate the process.

        Idempotent: safe on a handle that never started or already stopped.
        """
        rpc, self._rpc = self._rpc, None
        self._identity = None
        try:
            if rpc is not None:
                await rpc.close()
        finally:
            await self._lifecycle.terminate()

    def diagnostics(self) -> str:
        """Captured process output: live while running, else from the last run."""
        return self._lifecycle.diagnostics()
