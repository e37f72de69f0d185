"""
Small executables answering like the real clients, for launcher tests.

Each module runs as a script. It serves the liveness path and the subset of
the API the harness reads, so the subprocess launcher and the network can be
exercised end to end without Besu or Orion installed.
"""

import sys
from pathlib import Path

STAND_IN_DIR = Path(__file__).parent
"""Directory holding the stand-in scripts."""

NODE_SCRIPT = STAND_IN_DIR / "node.py"
"""Stand-in for an Ethereum node."""

PRIVACY_MANAGER_SCRIPT = STAND_IN_DIR / "privacy_manager.py"
"""Stand-in for a privacy manager."""

NODE_COMMAND: tuple[str, ...] = (
    sys.executable,
    str(NODE_SCRIPT),
    "--rpc-host={rpc_host}",
    "--rpc-port={rpc_port}",
    "--p2p-host={ip_address}",
    "--p2p-port={p2p_port}",
)
"""Command template for the stand-in node."""

NODE_OPTIONS = {"bootnodes": ("--bootnodes={bootnodes}",)}
"""The only optional argument the stand-in node understands."""

PRIVACY_MANAGER_COMMAND: tuple[str, ...] = (
    sys.executable,
    str(PRIVACY_MANAGER_SCRIPT),
    "{config_file}",
)
"""Command template for the stand-in privacy manager."""
