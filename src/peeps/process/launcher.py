"""
External process lifecycle.

A launcher turns a `LaunchSpec` (plain data: command line, endpoint, liveness
path) into a running process, and terminates it again. Node handles only talk
to the `Launcher` protocol, so tests can swap in an in-memory launcher and a
container-based launcher can be added without touching the handles.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import httpx

from peeps.config import POLL_INTERVAL, RPC_TIMEOUT, STARTUP_TIMEOUT
from peeps.types import ConvergenceTimeoutError, LaunchFailure
from peeps.verify.awaiter import await_until

logger = logging.getLogger(__name__)

DIAGNOSTIC_LINES = 200
"""Trailing output lines attached to a launch failure."""

TERMINATE_GRACE = 10.0
"""Seconds between SIGTERM and SIGKILL."""


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """Everything a launcher needs to start one process."""

    name: str
    """Unique name of the process within the run."""

    command: tuple[str, ...]
    """Executable followed by its arguments."""

    rpc_endpoint: str
    """Base URL the harness uses to reach the process, e.g. 'http://127.0.0.1:18545'."""

    liveness_path: str
    """Path that answers 200 once the process is up, e.g. '/liveness'."""

    working_dir: Path
    """Directory for the process's files and captured output."""

    env: Mapping[str, str] = field(default_factory=dict)
    """Extra environment variables."""

    startup_timeout: float = STARTUP_TIMEOUT
    """Seconds the liveness check may take."""

    @property
    def liveness_url(self) -> str:
        """Full URL polled for liveness."""
        return f"{self.rpc_endpoint.rstrip('/')}{self.liveness_path}"


@dataclass(slots=True)
class ProcessHandle:
    """A launched process as seen by its owner."""

    name: str
    """Name from the launch spec."""

    rpc_endpoint: str
    """Base URL of the process's RPC interface."""

    log_path: Path | None = None
    """File holding the process's combined stdout and stderr."""

    pid: int | None = None
    """Operating system process id, if there is one."""

    _process: asyncio.subprocess.Process | None = field(default=None, repr=False)
    """Underlying subprocess."""

    @property
    def running(self) -> bool:
        """Whether the process is still alive."""
        return self._process is not None and self._process.returncode is None

    def diagnostics(self, lines: int = DIAGNOSTIC_LINES) -> str:
        """Last `lines` lines of captured output, or an empty string."""
        if self.log_path is None or not self.log_path.exists():
            return ""
        with self.log_path.open(encoding="utf-8", errors="replace") as f:
            return "".join(deque(f, maxlen=lines)).rstrip()


class Launcher(Protocol):
    """
    Protocol for starting and stopping external processes.

    `launch` returns only once the process is live, or raises `LaunchFailure`
    with whatever output it produced. `terminate` must be idempotent.
    """

    async def launch(self, spec: LaunchSpec) -> ProcessHandle:
        """Start a process and wait for its liveness check."""
        ...

    async def terminate(self, handle: ProcessHandle) -> None:
        """Stop a process. Safe to call on a process that already stopped."""
        ...


@dataclass(slots=True)
class SubprocessLauncher:
    """
    Launches processes as local subprocesses.

    Output goes to `<working_dir>/<name>.log`. Readiness is decided by polling
    the launch spec's liveness URL. A process that exits before becoming live fails
    the launch immediately instead of waiting out the startup timeout.
    """

    poll_interval: float = POLL_INTERVAL
    """Seconds between liveness checks."""

    terminate_grace: float = TERMINATE_GRACE
    """Seconds to wait after SIGTERM before sending SIGKILL."""

    async def launch(self, spec: LaunchSpec) -> ProcessHandle:
        """
        Start the process and wait until its liveness URL answers 200.

        Raises:
            LaunchFailure: If the command cannot be executed, the process exits
                early, or the liveness check does not pass in time.
        """
        if not spec.command:
            raise LaunchFailure(spec.name, "empty command")

        spec.working_dir.mkdir(parents=True, exist_ok=True)
        log_path = spec.working_dir / f"{spec.name}.log"

        logger.info("Launching %s: %s", spec.name, " ".join(spec.command))

        # The child inherits the file descriptor; the parent copy can close at once.
        with log_path.open("wb") as log_file:
            try:
                process = await asyncio.create_subprocess_exec(
                    *spec.command,
                    stdout=log_file,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=spec.working_dir,
                    env={**os.environ, **spec.env},
                    start_new_session=True,
                )
            except OSError as e:
                raise LaunchFailure(spec.name, f"cannot execute {spec.command[0]}: {e}") from e

        handle = ProcessHandle(
            name=spec.name,
            rpc_endpoint=spec.rpc_endpoint,
            log_path=log_path,
            pid=process.pid,
            _process=process,
        )

        async with httpx.AsyncClient(timeout=RPC_TIMEOUT) as client:

            async def is_live() -> bool:
                if process.returncode is not None:
                    raise LaunchFailure(
                        spec.name,
                        "process exited before becoming live",
                        diagnostics=handle.diagnostics(),
                        exit_code=process.returncode,
                    )
                response = await client.get(spec.liveness_url)
                return response.status_code == 200

            try:
                await await_until(
                    is_live,
                    failure_message=f"{spec.name} liveness check at {spec.liveness_url}",
                    timeout=spec.startup_timeout,
                    poll_interval=self.poll_interval,
                )
            except ConvergenceTimeoutError as e:
                await self.terminate(handle)
                failure = LaunchFailure(
                    spec.name,
                    f"liveness check {spec.liveness_url} did not pass "
                    f"within {spec.startup_timeout:.0f}s",
                    diagnostics=handle.diagnostics(),
                )
                logger.error("%s", failure)
                raise failure from e
            except LaunchFailure as e:
                logger.error("%s", e)
                raise
            except BaseException:
                # Cancelled or crashed mid-wait: the handle never reaches the caller.
                logger.warning(
                    "Launch of %s interrupted, terminating pid %d", spec.name, process.pid
                )
                await asyncio.shield(self.terminate(handle))
                raise

        logger.info("%s is live at %s (pid %d)", spec.name, spec.rpc_endpoint, process.pid)
        return handle

    async def terminate(self, handle: ProcessHandle) -> None:
        """Send SIGTERM, then SIGKILL if the process outlives the grace period."""
        process = handle._process
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_grace)
        except TimeoutError:
            logger.warning(
                "%s ignored SIGTERM for %.1fs, sending SIGKILL", handle.name, self.terminate_grace
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

        logger.info("%s stopped (exit code %s)", handle.name, process.returncode)
