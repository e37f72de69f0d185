"""
Shared pytest fixtures for the unit tests.

Fake servers are started on ephemeral loopback ports and stopped at teardown.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest

from peeps.node import NodeConfig, NodeHandle
from peeps.privacy import PrivacyManagerConfig, PrivacyManagerHandle
from peeps.verify import PollingAwaiter
from tests.peeps.helpers import FakeLauncher, FakeNode, FakePrivacyManager, PrivacyStore


@pytest.fixture
def awaiter() -> PollingAwaiter:
    """Short deadlines so failing waits end quickly."""
    return PollingAwaiter(timeout=2.0, poll_interval=0.01)


@pytest.fixture
def launcher() -> FakeLauncher:
    """Launcher that records launches instead of starting processes."""
    return FakeLauncher()


@pytest.fixture
async def fake_node() -> AsyncGenerator[Callable[..., Awaitable[FakeNode]], None]:
    """Factory starting fake JSON-RPC nodes."""
    started: list[FakeNode] = []

    async def make(**kwargs: Any) -> FakeNode:
        node = FakeNode(**kwargs)
        await node.start()
        started.append(node)
        return node

    yield make

    for node in started:
        await node.stop()


@pytest.fixture
def privacy_store() -> PrivacyStore:
    """Payload storage shared by the fake privacy managers of one test."""
    return PrivacyStore()


@pytest.fixture
async def fake_privacy_manager(
    privacy_store: PrivacyStore,
) -> AsyncGenerator[Callable[..., Awaitable[FakePrivacyManager]], None]:
    """Factory starting fake privacy managers sharing one payload store."""
    started: list[FakePrivacyManager] = []

    async def make(public_key: str, **kwargs: Any) -> FakePrivacyManager:
        manager = FakePrivacyManager(public_key=public_key, store=privacy_store, **kwargs)
        await manager.start()
        started.append(manager)
        return manager

    yield make

    for manager in started:
        await manager.stop()


@pytest.fixture
async def started_node(
    fake_node: Callable[..., Awaitable[FakeNode]],
    launcher: FakeLauncher,
    awaiter: PollingAwaiter,
    tmp_path: Path,
) -> AsyncGenerator[Callable[..., Awaitable[tuple[NodeHandle, FakeNode]]], None]:
    """Factory returning a READY node handle bound to a fresh fake node."""
    handles: list[NodeHandle] = []

    async def make(name: str, **kwargs: Any) -> tuple[NodeHandle, FakeNode]:
        fake = await fake_node(**kwargs)
        launcher.endpoints[name] = fake.endpoint
        config = NodeConfig(
            name=name,
            ip_address=fake.ip_address,
            rpc_port=8545,
            p2p_port=30303,
            working_dir=tmp_path,
        )
        handle = NodeHandle(config, launcher, awaiter)
        await handle.start()
        handles.append(handle)
        return handle, fake

    yield make

    for handle in handles:
        await handle.stop()


@pytest.fixture
async def started_privacy_manager(
    fake_privacy_manager: Callable[..., Awaitable[FakePrivacyManager]],
    launcher: FakeLauncher,
    awaiter: PollingAwaiter,
    tmp_path: Path,
) -> AsyncGenerator[Callable[..., Awaitable[PrivacyManagerHandle]], None]:
    """Factory returning a READY privacy manager handle bound to a fresh fake."""
    handles: list[PrivacyManagerHandle] = []

    async def make(name: str, public_key: str, **kwargs: Any) -> PrivacyManagerHandle:
        fake = await fake_privacy_manager(public_key, **kwargs)
        launcher.endpoints[name] = fake.endpoint
        config = PrivacyManagerConfig(
            name=name,
            ip_address="10.0.0.10",
            rpc_port=8888,
            p2p_port=8080,
            working_dir=tmp_path,
            public_key=public_key,
        )
        handle = PrivacyManagerHandle(config, launcher, awaiter)
        await handle.start()
        handles.append(handle)
        return handle

    yield make

    for handle in handles:
        await handle.stop()
