"""
Launch a private network described by a YAML file.

Starts every privacy manager and node of the description, waits until the
nodes form a full mesh and logs their identities. With `--hold` the network
keeps running until interrupted; otherwise it is stopped straight away.

Usage::

    python -m peeps --network network.yaml
    python -m peeps --network network.yaml --work-dir ./run --hold --log-level DEBUG

Example description::

    subnet: 10.0.0.0/24
    consensus: clique
    signers: ["0xfe3b557e8fb62b89f4916b721be55ceb828dbd73"]
    pattern: star
    privacy_managers:
      - name: orion-a
        public_key: A1aVtMxLCUHmBVHXoZzzBgPbW/wj5axDpW9X8l91SGo=
    nodes:
      - name: besu-a
        privacy_manager: orion-a
      - name: besu-b

Options:
    --network     Path to the network description (required)
    --work-dir    Directory for genesis, configs, data and logs (default: ./peeps-run)
    --hold        Keep the network running until interrupted
    --log-level   DEBUG, INFO, WARNING or ERROR (default: INFO)
    --no-color    Disable colored logging output
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import yaml
from pydantic import Field, ValidationError, field_validator, model_validator

from peeps.genesis import ConsensusMechanism, Genesis
from peeps.genesis.config import DEFAULT_CHAIN_ID
from peeps.network import DEFAULT_SUBNET, PATTERNS, Network, NetworkTopology, PortAllocator
from peeps.network.ports import BASE_P2P_PORT, BASE_RPC_PORT
from peeps.process import Launcher, SubprocessLauncher
from peeps.types import PeepsError, StrictBaseModel

logger = logging.getLogger(__name__)


class PrivacyManagerDescription(StrictBaseModel):
    """One privacy manager of a network description."""

    name: str
    public_key: str
    public_key_files: tuple[Path, ...] = ()
    private_key_files: tuple[Path, ...] = ()
    command: tuple[str, ...] | None = None
    """Command template replacing the default Orion one."""


class NodeDescription(StrictBaseModel):
    """One node of a network description."""

    name: str
    privacy_manager: str | None = None
    """Name of the privacy manager the node is paired with."""

    node_private_key_file: Path | None = None
    command: tuple[str, ...] | None = None
    """Command template replacing the default Besu one."""

    env: dict[str, str] = Field(default_factory=dict)


class NetworkDescription(StrictBaseModel):
    """Everything needed to build a network, as loaded from YAML."""

    subnet: str = DEFAULT_SUBNET
    consensus: ConsensusMechanism = ConsensusMechanism.ETHASH
    chain_id: int = DEFAULT_CHAIN_ID
    signers: tuple[str, ...] = ()
    alloc: dict[str, int] = Field(default_factory=dict)
    pattern: str = "full_mesh"
    base_rpc_port: int = BASE_RPC_PORT
    base_p2p_port: int = BASE_P2P_PORT
    privacy_managers: tuple[PrivacyManagerDescription, ...] = ()
    nodes: tuple[NodeDescription, ...] = ()

    @field_validator("pattern")
    @classmethod
    def known_pattern(cls, v: str) -> str:
        """Only named bootnode patterns can be described."""
        if v not in PATTERNS:
            raise ValueError(f"Unknown pattern {v!r}, expected one of {sorted(PATTERNS)}")
        return v

    @model_validator(mode="after")
    def consistent_names(self) -> NetworkDescription:
        """Names are unique and every pairing names a described privacy manager."""
        names = [pm.name for pm in self.privacy_managers] + [node.name for node in self.nodes]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate names: {duplicates}")

        managers = {pm.name for pm in self.privacy_managers}
        for node in self.nodes:
            if node.privacy_manager is not None and node.privacy_manager not in managers:
                raise ValueError(
                    f"{node.name} is paired with unknown privacy manager {node.privacy_manager!r}"
                )
        return self

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> NetworkDescription:
        """
        Load a description from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            pydantic.ValidationError: If the data fails validation.
        """
        with Path(path).open(encoding="utf-8") as f:
            return cls.model_validate(yaml.safe_load(f) or {})

    def genesis(self) -> Genesis:
        """The genesis every node of the network starts from."""
        return Genesis.for_consensus(
            self.consensus,
            chain_id=self.chain_id,
            signers=self.signers,
            alloc=self.alloc,
        )

    def build(self, working_dir: Path, launcher: Launcher | None = None) -> Network:
        """
        Create the network with every process placed but none started.

        Raises:
            TopologyExhaustedError: If the subnet cannot hold every process.
        """
        network = Network(
            working_dir=working_dir,
            launcher=launcher or SubprocessLauncher(),
            topology=NetworkTopology(self.subnet),
            ports=PortAllocator(self.base_rpc_port, self.base_p2p_port),
            genesis=self.genesis(),
            pattern=PATTERNS[self.pattern],
        )

        for pm in self.privacy_managers:
            options = {} if pm.command is None else {"command": pm.command}
            network.add_privacy_manager(
                pm.name,
                pm.public_key,
                public_key_files=pm.public_key_files,
                private_key_files=pm.private_key_files,
                **options,
            )

        for node in self.nodes:
            options = {} if node.command is None else {"command": node.command}
            manager = None
            if node.privacy_manager is not None:
                manager = network.privacy_manager(node.privacy_manager)
            network.add_node(
                node.name,
                privacy_manager=manager,
                node_private_key_file=node.node_private_key_file,
                env=node.env,
                **options,
            )
        return network


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    CYAN = "\x1b[38;5;51m"
    BLUE = "\x1b[38;5;39m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[38;5;244m",
        logging.INFO: "\x1b[38;5;40m",
        logging.WARNING: "\x1b[38;5;220m",
        logging.ERROR: "\x1b[38;5;196m",
        logging.CRITICAL: "\x1b[38;5;196;1m",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}[{record.levelname}]{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} {levelname} {name}: {message}"


def setup_logging(level: str = "INFO", no_color: bool = False) -> None:
    """Configure root logging for the CLI."""
    if no_color:
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=level, handlers=[handler])


async def run_network(
    description: NetworkDescription,
    working_dir: Path,
    hold: bool = False,
    launcher: Launcher | None = None,
) -> None:
    """Start the described network, await the full mesh and stop it again."""
    async with description.build(working_dir, launcher) as network:
        await network.await_connectivity()
        for name, identity in network.identities().items():
            logger.info("%s: %s (rpc %s)", name, identity.enode, identity.rpc_endpoint)
        for manager in network.privacy_managers:
            identity = manager.identity()
            logger.info("%s: %s (%s)", manager.name, identity.public_key, identity.network_url)

        if hold:
            logger.info("Network is up, press Ctrl+C to stop")
            await asyncio.Event().wait()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        prog="peeps",
        description="Launch and verify a private Ethereum network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--network",
        required=True,
        type=Path,
        help="Path to the network description YAML file",
    )
    parser.add_argument(
        "--work-dir",
        type=Path,
        default=Path("peeps-run"),
        help="Directory for genesis, configs, data and logs (default: ./peeps-run)",
    )
    parser.add_argument(
        "--hold",
        action="store_true",
        help="Keep the network running until interrupted",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.no_color)

    try:
        description = NetworkDescription.from_yaml_file(args.network)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.error("Cannot load network description %s: %s", args.network, e)
        return 2

    try:
        asyncio.run(run_network(description, args.work_dir.resolve(), args.hold))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except PeepsError as e:
        logger.error("%s", e.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
