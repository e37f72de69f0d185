"""Tests for node launch parameters."""

from __future__ import annotations

from pathlib import Path

import pytest

from peeps.node import BESU_COMMAND, NodeConfig, render_command


def make_config(tmp_path: Path, **overrides: object) -> NodeConfig:
    fields: dict[str, object] = {
        "name": "besu-a",
        "ip_address": "10.0.0.2",
        "rpc_port": 18545,
        "p2p_port": 30303,
        "working_dir": tmp_path,
    }
    return NodeConfig(**(fields | overrides))  # type: ignore[arg-type]


class TestLaunchSpec:
    """Rendering the Besu command line."""

    def test_minimal_command(self, tmp_path: Path) -> None:
        """Without optional parameters only the base template is rendered."""
        spec = make_config(tmp_path).launch_spec()

        assert spec.command[0] == "besu"
        assert len(spec.command) == len(BESU_COMMAND)
        assert f"--data-path={tmp_path / 'besu-a'}" in spec.command
        assert "--p2p-host=10.0.0.2" in spec.command
        assert "--rpc-http-port=18545" in spec.command
        assert spec.rpc_endpoint == "http://127.0.0.1:18545"
        assert spec.liveness_url == "http://127.0.0.1:18545/liveness"

    def test_options_follow_parameters(self, tmp_path: Path) -> None:
        """Set parameters switch their arguments on."""
        config = make_config(
            tmp_path,
            genesis_file=tmp_path / "genesis.json",
            bootnodes=("enode://aa@10.0.0.3:30303", "enode://bb@10.0.0.4:30303"),
        )

        command = config.launch_spec().command

        assert f"--genesis-file={tmp_path / 'genesis.json'}" in command
        assert "--bootnodes=enode://aa@10.0.0.3:30303,enode://bb@10.0.0.4:30303" in command
        assert not any(arg.startswith("--privacy") for arg in command)

    def test_privacy_options(self, tmp_path: Path) -> None:
        """Pairing with a privacy manager adds all three privacy arguments."""
        config = make_config(
            tmp_path,
            privacy_url="http://127.0.0.1:8888",
            privacy_public_key_file=tmp_path / "orion.pub",
        )

        command = config.launch_spec().command

        assert "--privacy-enabled" in command
        assert "--privacy-url=http://127.0.0.1:8888" in command
        assert f"--privacy-public-key-file={tmp_path / 'orion.pub'}" in command

    def test_privacy_without_key_file_is_rejected(self, tmp_path: Path) -> None:
        """An option whose template needs an unset value is a configuration error."""
        config = make_config(tmp_path, privacy_url="http://127.0.0.1:8888")

        with pytest.raises(ValueError, match="privacy_public_key_file"):
            config.launch_spec()

    def test_custom_command_template(self, tmp_path: Path) -> None:
        """Another client is just another template."""
        config = make_config(
            tmp_path, command=("geth", "--port={p2p_port}", "--http.port={rpc_port}"), options={}
        )

        assert config.launch_spec().command == ("geth", "--port=30303", "--http.port=18545")


class TestRenderCommand:
    """Template validation."""

    def test_unknown_parameter(self) -> None:
        """Typos in templates are caught before launch."""
        with pytest.raises(ValueError, match="Unknown parameter 'rpc_prot'"):
            render_command(("besu", "--rpc-http-port={rpc_prot}"), {}, {"rpc_port": 1})

    def test_literal_braces(self) -> None:
        """Escaped braces pass through."""
        assert render_command(("echo", "{{}}", "{x}"), {}, {"x": 1}) == ("echo", "{}", "1")
