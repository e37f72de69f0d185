"""
Launch parameters for a privacy manager.

Orion reads its settings from a TOML file passed as its only argument. The
file is written per manager into the run's working directory before launch.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from peeps.config import STARTUP_TIMEOUT
from peeps.node.config import render_command
from peeps.process import LaunchSpec

logger = logging.getLogger(__name__)

ORION_COMMAND: tuple[str, ...] = ("orion", "{config_file}")
"""Orion command line."""

ORION_LIVENESS_PATH = "/upcheck"
"""Orion answers 200 here once its client API is up."""


@dataclass(frozen=True, slots=True)
class PrivacyManagerConfig:
    """Configuration for one privacy manager."""

    name: str
    """Unique name within the run."""

    ip_address: str
    """Address reserved in the network topology."""

    rpc_port: int
    """Port of the client API used by the harness and the paired node."""

    p2p_port: int
    """Port other privacy managers connect to."""

    working_dir: Path
    """Directory for the config file, keys and captured output."""

    public_key: str
    """Base64 public key identifying this manager to senders."""

    public_key_files: tuple[Path, ...] = ()
    """Public key files referenced from the config file."""

    private_key_files: tuple[Path, ...] = ()
    """Private key files referenced from the config file."""

    bootnode_urls: tuple[str, ...] = ()
    """Peer-to-peer URLs of other managers to discover at startup."""

    rpc_host: str = "127.0.0.1"
    """Host the harness reaches the client API on."""

    command: tuple[str, ...] = ORION_COMMAND
    """Command template; `{config_file}` is the written config path."""

    liveness_path: str = ORION_LIVENESS_PATH
    """Path answering 200 once the manager is up."""

    env: Mapping[str, str] = field(default_factory=dict)
    """Extra environment variables."""

    startup_timeout: float = STARTUP_TIMEOUT
    """Seconds the liveness check may take."""

    @property
    def rpc_endpoint(self) -> str:
        """Client API URL used by the harness."""
        return f"http://{self.rpc_host}:{self.rpc_port}"

    @property
    def network_url(self) -> str:
        """Peer-to-peer URL other managers use to reach this one."""
        return f"http://{self.ip_address}:{self.p2p_port}"

    @property
    def config_file(self) -> Path:
        """Location of the written config file."""
        return self.working_dir / f"{self.name}.conf"

    def render_config(self) -> str:
        """Orion TOML configuration for this manager."""
        # JSON string and array literals are valid TOML basic strings and arrays.
        entries = {
            "nodeurl": self.network_url,
            "nodeport": self.p2p_port,
            "nodenetworkinterface": "0.0.0.0",
            "clienturl": self.rpc_endpoint,
            "clientport": self.rpc_port,
            "clientnetworkinterface": "0.0.0.0",
            "workdir": str(self.working_dir / self.name),
            "publickeys": [str(p) for p in self.public_key_files],
            "privatekeys": [str(p) for p in self.private_key_files],
            "othernodes": list(self.bootnode_urls),
            "tls": "off",
        }
        return "".join(f"{key} = {json.dumps(value)}\n" for key, value in entries.items())

    def write_config(self) -> Path:
        """
        Write the config file, replacing any from an earlier run of this manager.

        Raises:
            OSError: If the file cannot be written.
        """
        self.working_dir.mkdir(parents=True, exist_ok=True)
        contents = self.render_config()
        self.config_file.write_text(contents, encoding="utf-8")
        logger.info(
            "Created privacy manager config\n\tLocation: %s\n\tContents: %s",
            self.config_file,
            contents,
        )
        return self.config_file

    def launch_spec(self) -> LaunchSpec:
        """Render the command template into a launch spec."""
        return LaunchSpec(
            name=self.name,
            command=render_command(
                self.command, {}, {"name": self.name, "config_file": self.config_file}
            ),
            rpc_endpoint=self.rpc_endpoint,
            liveness_path=self.liveness_path,
            working_dir=self.working_dir,
            env=dict(self.env),
            startup_timeout=self.startup_timeout,
        )
