"""
Lifecycle state shared by every process handle.

A handle moves through explicit states:

    UNSTARTED -> STARTED -> READY -> STOPPED
         \\          \\
          +----------+--> FAILED

- STARTED: the process passed its liveness check.
- READY: the process answered its own readiness query (owner specific).
- FAILED: the launch raised; the failure carries the process output.

`ProcessLifecycle` holds the state and the launched process. The node and
privacy manager handles each own one and add their client and readiness query
on top.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from peeps.types import LaunchFailure

from .launcher import Launcher, LaunchSpec, ProcessHandle

logger = logging.getLogger(__name__)


class NodeState(Enum):
    """Lifecycle state of a node or privacy manager handle."""

    UNSTARTED = "unstarted"
    STARTED = "started"
    READY = "ready"
    STOPPED = "stopped"
    FAILED = "failed"


STARTABLE = frozenset({NodeState.UNSTARTED, NodeState.STOPPED, NodeState.FAILED})
"""States from which a handle may be started."""


@dataclass(slots=True)
class ProcessLifecycle:
    """State machine and launched process of one handle."""

    name: str
    """Name of the owning handle."""

    launcher: Launcher
    """Starts and stops the process."""

    state: NodeState = field(default=NodeState.UNSTARTED, init=False)
    """Current lifecycle state."""

    _process: ProcessHandle | None = field(default=None, init=False, repr=False)
    """Launched process, present from STARTED until stopped."""

    _last_diagnostics: str = field(default="", init=False, repr=False)
    """Output captured from the most recent failed or stopped process."""

    @property
    def process(self) -> ProcessHandle | None:
        """The running process, if any."""
        return self._process

    async def launch(self, make_spec: Callable[[], LaunchSpec]) -> ProcessHandle:
        """
        Build the launch spec and start the process.

        `make_spec` runs only once the state allows a start, so it may write
        files the process reads.

        Raises:
            RuntimeError: If the handle is already started or ready.
            LaunchFailure: If the process would not start. The state is FAILED.
        """
        if self.state not in STARTABLE:
            raise RuntimeError(f"{self.name} cannot start while {self.state.value}")

        spec = make_spec()
        try:
            self._process = await self.launcher.launch(spec)
        except LaunchFailure as e:
            self.state = NodeState.FAILED
            self._last_diagnostics = e.diagnostics
            logger.error("%s failed to launch: %s", self.name, e.reason)
            raise

        self.state = NodeState.STARTED
        return self._process

    def mark_ready(self) -> bool:
        """Move STARTED to READY. Returns whether the state changed."""
        if self.state is not NodeState.STARTED:
            return False
        self.state = NodeState.READY
        return True

    async def terminate(self) -> None:
        """Terminate the process, keeping its output. Idempotent."""
        process, self._process = self._process, None
        if process is not None:
            self._last_diagnostics = process.diagnostics()
            await self.launcher.terminate(process)
            logger.info("%s stopped", self.name)

        if self.state is not NodeState.UNSTARTED and self.state is not NodeState.FAILED:
            self.state = NodeState.STOPPED

    def diagnostics(self) -> str:
        """Captured process output: live while running, else from the last run."""
        if self._process is not None:
            return self._process.diagnostics()
        return self._last_diagnostics
