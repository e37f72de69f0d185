"""Lifecycle of one privacy manager process."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from peeps.process import Launcher, LaunchSpec, NodeState, ProcessLifecycle
from peeps.types import NodeNotStartedError, NotReadyError, StrictBaseModel
from peeps.verify.awaiter import PollingAwaiter

from .config import PrivacyManagerConfig
from .rpc import PrivacyRpcClient

logger = logging.getLogger(__name__)


class PrivacyIdentity(StrictBaseModel):
    """Who a privacy manager is and where to reach it."""

    public_key: str
    """Base64 public key senders address payloads to."""

    network_url: str
    """Peer-to-peer URL used by other managers."""

    rpc_endpoint: str
    """Client API URL used by the harness and the paired node."""


@dataclass(slots=True)
class PrivacyManagerHandle:
    """
    Owns one privacy manager process and its REST client.

    Same lifecycle as a node handle. The manager has no self-identity query:
    its identity is its configured public key, confirmed once `/upcheck` answers.
    """

    config: PrivacyManagerConfig
    """Launch parameters."""

    launcher: Launcher
    """Starts and stops the process."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for readiness."""

    _lifecycle: ProcessLifecycle = field(init=False, repr=False)
    _rpc: PrivacyRpcClient | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self._lifecycle = ProcessLifecycle(self.config.name, self.launcher)

    @property
    def name(self) -> str:
        """Unique name of the manager."""
        return self.config.name

    @property
    def state(self) -> NodeState:
        """Current lifecycle state."""
        return self._lifecycle.state

    @property
    def public_key(self) -> str:
        """Configured public key. Known before start."""
        return self.config.public_key

    @property
    def rpc(self) -> PrivacyRpcClient:
        """
        REST client bound to the running manager.

        Raises:
            NodeNotStartedError: If the manager is not running.
        """
        if self._rpc is None:
            raise NodeNotStartedError(self.name, self.state.value)
        return self._rpc

    def identity(self) -> PrivacyIdentity:
        """
        The manager's identity.

        Raises:
            NodeNotStartedError: If the manager has not become ready.
        """
        if self.state is not NodeState.READY:
            raise NodeNotStartedError(self.name, self.state.value)
        return PrivacyIdentity(
            public_key=self.config.public_key,
            network_url=self.config.network_url,
            rpc_endpoint=self.config.rpc_endpoint,
        )

    def _prepare_launch(self) -> LaunchSpec:
        self.config.write_config()
        return self.config.launch_spec()

    async def start(self, *, await_ready: bool = True) -> None:
        """
        Write the config file, launch the manager and bind its REST client.

        Raises:
            LaunchFailure: If the process would not start. The handle is FAILED.
            ConvergenceTimeoutError: If `/upcheck` never answered.
        """
        process = await self._lifecycle.launch(self._prepare_launch)

        self._rpc = PrivacyRpcClient(name=self.name, endpoint=process.rpc_endpoint)
        logger.info("%s started, client API at %s", self.name, process.rpc_endpoint)

        if await_ready:
            await self.await_ready()

    async def check_ready(self) -> PrivacyIdentity:
        """
        Ask the manager once whether it is up.

        Raises:
            NotReadyError: If `/upcheck` does not answer 200.
        """
        if not await self.rpc.upcheck():
            raise NotReadyError(self.name, "/upcheck did not answer 200")
        if self._lifecycle.mark_ready():
            logger.info(
                "%s is ready: key=%s url=%s", self.name, self.public_key, self.config.network_url
            )
        return self.identity()

    async def await_ready(self, timeout: float | None = None) -> PrivacyIdentity:
        """Poll `check_ready()` until the manager is up."""
        return await self.awaiter.until(
            self.check_ready,
            f"{self.name} did not pass its upcheck",
            timeout=timeout,
        )

    async def send_payload(self, recipients: list[str], payload: str) -> str:
        """Store `payload` for `recipients` as this manager. Returns the key."""
        return await self.rpc.send_payload(self.public_key, recipients, payload)

    async def fetch_payload(self, key: str) -> str | None:
        """The payload stored under `key` as decrypted by this manager, or None."""
        return await self.rpc.fetch_payload(key, self.public_key)

    async def stop(self) -> None:
        """Release the REST client and terminate the process. Idempotent."""
        rpc, self._rpc = self._rpc, None
        try:
            if rpc is not None:
                await rpc.close()
        finally:
            await self._lifecycle.terminate()

    def diagnostics(self) -> str:
        """Captured process output: live while running, else from the last run."""
        return self._lifecycle.diagnostics()
