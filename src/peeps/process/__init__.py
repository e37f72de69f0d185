"""External process lifecycle: launch, liveness, terminate."""

from .launcher import Launcher, LaunchSpec, ProcessHandle, SubprocessLauncher
from .lifecycle import STARTABLE, NodeState, ProcessLifecycle

__all__ = [
    "STARTABLE",
    "Launcher",
    "LaunchSpec",
    "NodeState",
    "ProcessHandle",
    "ProcessLifecycle",
    "SubprocessLauncher",
]
