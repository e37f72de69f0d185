"""
Launch parameters for an Ethereum node.

Node types differ only in data: the command template and the optional
arguments below. Supplying another client means supplying other templates,
not subclassing the handle.

Templates use `str.format` placeholders filled from the configuration:
`{ip_address}`, `{rpc_host}`, `{rpc_port}`, `{p2p_port}`, `{data_dir}`,
`{genesis_file}`, `{bootnodes}`, `{node_private_key_file}`, `{privacy_url}`,
`{privacy_public_key_file}`, `{cors}`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from string import Formatter
from types import MappingProxyType
from typing import Any

from peeps.config import STARTUP_TIMEOUT
from peeps.process import LaunchSpec

BESU_COMMAND: tuple[str, ...] = (
    "besu",
    "--data-path={data_dir}",
    "--logging=DEBUG",
    "--miner-enabled",
    "--miner-coinbase=1b23ba34ca45bb56aa67bc78be89ac00ca00da00",
    "--host-allowlist=*",
    "--p2p-host={ip_address}",
    "--p2p-port={p2p_port}",
    "--rpc-http-enabled",
    "--rpc-http-host={rpc_host}",
    "--rpc-http-port={rpc_port}",
    "--rpc-http-apis=ADMIN,ETH,NET,WEB3,EEA,PRIV",
)
"""Besu command line. Liveness is served on the RPC port at /liveness."""

BESU_OPTIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "genesis_file": ("--genesis-file={genesis_file}",),
        "bootnodes": ("--bootnodes={bootnodes}",),
        "node_private_key_file": ("--node-private-key-file={node_private_key_file}",),
        "cors": ("--rpc-http-cors-origins={cors}",),
        "privacy_url": (
            "--privacy-enabled",
            "--privacy-url={privacy_url}",
            "--privacy-public-key-file={privacy_public_key_file}",
        ),
    }
)
"""Arguments added only when the named parameter is set."""

BESU_LIVENESS_PATH = "/liveness"
"""Besu answers 200 here once its RPC server is up."""

_FORMATTER = Formatter()


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """
    Configuration for one Ethereum node.

    The address comes from the network topology and the ports from the port
    allocator; both are fixed before the process starts.
    """

    name: str
    """Unique name within the run."""

    ip_address: str
    """Address reserved in the network topology."""

    rpc_port: int
    """Port of the HTTP JSON-RPC server."""

    p2p_port: int
    """Port of the peer-to-peer listener."""

    working_dir: Path
    """Directory for the node's data and captured output."""

    genesis_file: Path | None = None
    """Shared genesis file."""

    rpc_host: str = "127.0.0.1"
    """Host the harness reaches the RPC server on."""

    bootnodes: tuple[str, ...] = ()
    """Enode URLs to dial at startup."""

    node_private_key_file: Path | None = None
    """Fixed node key, giving the node a predictable id."""

    privacy_url: str | None = None
    """URL of the paired privacy manager; enables privacy when set."""

    privacy_public_key_file: Path | None = None
    """Public key of the paired privacy manager."""

    cors: str | None = None
    """Allowed CORS origins for the RPC server."""

    command: tuple[str, ...] = BESU_COMMAND
    """Command template."""

    options: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: BESU_OPTIONS)
    """Optional argument templates keyed by the parameter that enables them."""

    liveness_path: str = BESU_LIVENESS_PATH
    """Path answering 200 once the node is up."""

    env: Mapping[str, str] = field(default_factory=dict)
    """Extra environment variables."""

    startup_timeout: float = STARTUP_TIMEOUT
    """Seconds the liveness check may take."""

    @property
    def rpc_endpoint(self) -> str:
        """JSON-RPC URL used by the harness."""
        return f"http://{self.rpc_host}:{self.rpc_port}"

    @property
    def data_dir(self) -> Path:
        """Directory holding the node's chain data."""
        return self.working_dir / self.name

    def parameters(self) -> dict[str, Any]:
        """Values available to the command templates. Unset values are None."""
        return {
            "name": self.name,
            "ip_address": self.ip_address,
            "rpc_host": self.rpc_host,
            "rpc_port": self.rpc_port,
            "p2p_port": self.p2p_port,
            "data_dir": self.data_dir,
            "genesis_file": self.genesis_file,
            "bootnodes": ",".join(self.bootnodes) or None,
            "node_private_key_file": self.node_private_key_file,
            "privacy_url": self.privacy_url,
            "privacy_public_key_file": self.privacy_public_key_file,
            "cors": self.cors,
        }

    def launch_spec(self) -> LaunchSpec:
        """
        Render the command templates into a launch spec.

        Raises:
            ValueError: If a template names an unknown or unset parameter.
        """
        return LaunchSpec(
            name=self.name,
            command=render_command(self.command, self.options, self.parameters()),
            rpc_endpoint=self.rpc_endpoint,
            liveness_path=self.liveness_path,
            working_dir=self.working_dir,
            env=dict(self.env),
            startup_timeout=self.startup_timeout,
        )


def render_command(
    command: tuple[str, ...],
    options: Mapping[str, tuple[str, ...]],
    parameters: Mapping[str, Any],
) -> tuple[str, ...]:
    """
    Fill a command template and append the options whose parameter is set.

    Raises:
        ValueError: If a template names an unknown or unset parameter.
    """
    args = list(command)
    for parameter, templates in options.items():
        if parameters.get(parameter) is not None:
            args.extend(templates)

    rendered = []
    for template in args:
        for _, name, _, _ in _FORMATTER.parse(template):
            if name is None:
                continue
            if name not in parameters:
                raise ValueError(f"Unknown parameter {name!r} in argument {template!r}")
            if parameters[name] is None:
                raise ValueError(f"Argument {template!r} needs {name!r}, which is not set")
        rendered.append(template.format_map(parameters))
    return tuple(rendered)
