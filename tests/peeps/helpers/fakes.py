"""
In-process stand-ins for the external processes.

`FakeNode` serves the JSON-RPC subset a Besu node answers, and
`FakePrivacyManager` the Orion client API. Both run on aiohttp servers bound
to an ephemeral loopback port. `FakeLauncher` replaces process launching: it
records what it was asked to start and points each handle at a fake server.
"""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from peeps.process import LaunchSpec, ProcessHandle
from peeps.types import LaunchFailure, int_to_hex


def _random_node_id() -> str:
    """128 hex characters without prefix, as Besu reports its node id."""
    return secrets.token_hex(64)


async def _serve(app: web.Application) -> tuple[web.AppRunner, str]:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    return runner, f"http://{host}:{port}"


@dataclass(slots=True)
class FakeNode:
    """A JSON-RPC endpoint answering like a Besu node."""

    node_id: str = field(default_factory=_random_node_id)
    """Node id without the 0x prefix."""

    ip_address: str = "10.0.0.2"
    """Address used in the enode URL."""

    unready_calls: int = 0
    """How many `admin_nodeInfo` calls answer null before the node reports itself."""

    peers: set[str] = field(default_factory=set)
    """Ids of the connected peers, as reported by `admin_peers`."""

    transactions: dict[str, dict[str, Any]] = field(default_factory=dict)
    receipts: dict[str, dict[str, Any]] = field(default_factory=dict)
    private_receipts: dict[str, dict[str, Any]] = field(default_factory=dict)
    balances: dict[str, int] = field(default_factory=dict)

    errors: dict[str, tuple[int, str]] = field(default_factory=dict)
    """Methods that answer with a JSON-RPC error object: method -> (code, message)."""

    calls: list[str] = field(default_factory=list)
    """Every method called, in order."""

    sent: list[Any] = field(default_factory=list)
    """Transactions submitted through `eth_sendTransaction` or `eth_sendRawTransaction`."""

    next_tx_hash: str | None = None
    """Hash answered for submissions. A fresh random hash when None."""

    endpoint: str = ""
    _runner: web.AppRunner | None = field(default=None, repr=False)

    @property
    def enode(self) -> str:
        return f"enode://{self.node_id}@{self.ip_address}:30303"

    @property
    def prefixed_id(self) -> str:
        return f"0x{self.node_id}"

    async def start(self) -> str:
        """Serve on an ephemeral port and return the endpoint."""
        app = web.Application()
        app.add_routes([web.post("/", self._handle_rpc), web.get("/liveness", self._handle_live)])
        self._runner, self.endpoint = await _serve(app)
        return self.endpoint

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_live(self, _request: web.Request) -> web.Response:
        return web.json_response({"status": "UP"})

    async def _handle_rpc(self, request: web.Request) -> web.Response:
        body = await request.json()
        method = body["method"]
        params = body.get("params", [])
        self.calls.append(method)

        reply: dict[str, Any] = {"jsonrpc": "2.0", "id": body.get("id")}
        if method in self.errors:
            code, message = self.errors[method]
            reply["error"] = {"code": code, "message": message}
        else:
            reply["result"] = self._dispatch(method, params)
        return web.json_response(reply)

    def _dispatch(self, method: str, params: list[Any]) -> Any:
        match method:
            case "admin_nodeInfo":
                if self.unready_calls > 0:
                    self.unready_calls -= 1
                    return None
                return {
                    "id": self.node_id,
                    "enode": self.enode,
                    "name": "besu/v23.4.0/linux-x86_64/openjdk-java-17",
                    "ip": self.ip_address,
                    "listenAddr": f"{self.ip_address}:30303",
                    "ports": {"discovery": 30303, "listener": 30303},
                }
            case "admin_peers":
                return [{"id": peer, "name": "besu", "enode": None} for peer in sorted(self.peers)]
            case "eth_getTransactionByHash":
                return self.transactions.get(params[0])
            case "eth_getTransactionReceipt":
                return self.receipts.get(params[0])
            case "priv_getTransactionReceipt":
                return self.private_receipts.get(params[0])
            case "eth_getBalance":
                address = params[0]
                return int_to_hex(self.balances[address]) if address in self.balances else None
            case "eth_blockNumber":
                return "0x2a"
            case "eth_sendTransaction" | "eth_sendRawTransaction":
                self.sent.append(params[0])
                if self.next_tx_hash is not None:
                    return self.next_tx_hash
                return "0x" + secrets.token_hex(32)
            case _:
                raise web.HTTPNotFound(reason=f"unknown method {method}")


@dataclass(slots=True)
class PrivacyStore:
    """Payloads shared by every fake privacy manager of one test."""

    payloads: dict[str, dict[str, str]] = field(default_factory=dict)
    """Key -> public key of each holder -> base64 payload."""

    def tamper(self, key: str, holder: str, payload: str) -> None:
        """Make `holder` resolve `key` to `payload`."""
        self.payloads[key][holder] = base64.b64encode(payload.encode()).decode()


@dataclass(slots=True)
class FakePrivacyManager:
    """A REST endpoint answering like the Orion client API."""

    public_key: str
    store: PrivacyStore

    blank_keys: bool = False
    """Answer `/send` with an empty key."""

    hidden_reads: int = 0
    """How many `/receive` calls answer 404 before stored payloads become visible."""

    up: bool = True
    """Whether `/upcheck` answers 200."""

    endpoint: str = ""
    _runner: web.AppRunner | None = field(default=None, repr=False)

    async def start(self) -> str:
        app = web.Application()
        app.add_routes(
            [
                web.get("/upcheck", self._handle_upcheck),
                web.post("/send", self._handle_send),
                web.post("/receive", self._handle_receive),
            ]
        )
        self._runner, self.endpoint = await _serve(app)
        return self.endpoint

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_upcheck(self, _request: web.Request) -> web.Response:
        if not self.up:
            return web.Response(status=503, text="not yet")
        return web.Response(text="I'm up!")

    async def _handle_send(self, request: web.Request) -> web.Response:
        body = await request.json()
        if self.blank_keys:
            return web.json_response({"key": ""})

        key = base64.b64encode(secrets.token_bytes(32)).decode()
        self.store.payloads[key] = {
            holder: body["payload"] for holder in (body["from"], *body["to"])
        }
        return web.json_response({"key": key})

    async def _handle_receive(self, request: web.Request) -> web.Response:
        body = await request.json()
        if self.hidden_reads > 0:
            self.hidden_reads -= 1
            return web.Response(status=404, text="not found")

        held = self.store.payloads.get(body["key"], {})
        if body["to"] not in held:
            return web.Response(status=404, text="not found")
        return web.json_response({"payload": held[body["to"]]})


@dataclass(slots=True)
class FakeLauncher:
    """Launcher that starts nothing and hands out fake endpoints."""

    endpoints: dict[str, str] = field(default_factory=dict)
    """Endpoint to bind per process name. Defaults to the launch spec's own endpoint."""

    failures: dict[str, str] = field(default_factory=dict)
    """Process names whose launch fails, with the reason."""

    terminate_failures: dict[str, str] = field(default_factory=dict)
    """Process names whose termination fails, with the reason."""

    launched: list[LaunchSpec] = field(default_factory=list)
    terminated: list[str] = field(default_factory=list)

    def spec_for(self, name: str) -> LaunchSpec:
        """The most recent launch spec for `name`."""
        return next(spec for spec in reversed(self.launched) if spec.name == name)

    async def launch(self, spec: LaunchSpec) -> ProcessHandle:
        self.launched.append(spec)
        if spec.name in self.failures:
            raise LaunchFailure(
                spec.name,
                self.failures[spec.name],
                diagnostics=f"{spec.name}: Address already in use",
                exit_code=1,
            )
        endpoint = self.endpoints.get(spec.name, spec.rpc_endpoint)
        return ProcessHandle(name=spec.name, rpc_endpoint=endpoint)

    async def terminate(self, handle: ProcessHandle) -> None:
        if handle.name in self.terminate_failures:
            raise OSError(self.terminate_failures[handle.name])
        self.terminated.append(handle.name)
