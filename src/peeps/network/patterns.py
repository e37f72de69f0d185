"""
Bootnode wiring patterns.

Each pattern returns a list of (dialer_index, listener_index) pairs:
the dialer is launched with the listener's address as a bootnode.
"""

from __future__ import annotations

from collections.abc import Callable


def full_mesh(n: int) -> list[tuple[int, int]]:
    """
    Every node dials every node started before it.

    Creates n*(n-1)/2 connections total.

    Args:
        n: Number of nodes.

    Returns:
        List of (dialer, listener) index pairs.
    """
    return [(j, i) for i in range(n) for j in range(i + 1, n)]


def star(n: int, hub: int = 0) -> list[tuple[int, int]]:
    """
    All nodes dial a central hub node.

    Creates n-1 connections total.

    Args:
        n: Number of nodes.
        hub: Index of the hub node (default 0).

    Returns:
        List of (dialer, listener) index pairs.
    """
    return [(i, hub) for i in range(n) if i != hub]


def chain(n: int) -> list[tuple[int, int]]:
    """
    Linear chain: 1 -> 0, 2 -> 1, ..., n-1 -> n-2.

    Creates n-1 connections total.

    Args:
        n: Number of nodes.

    Returns:
        List of (dialer, listener) index pairs.
    """
    return [(i + 1, i) for i in range(n - 1)]


PATTERNS: dict[str, Callable[[int], list[tuple[int, int]]]] = {
    "full_mesh": full_mesh,
    "star": star,
    "chain": chain,
}
"""Patterns by name, as used in network description files."""


def bootnodes_by_dialer(connections: list[tuple[int, int]]) -> dict[int, list[int]]:
    """
    Group a pattern's pairs by dialer.

    Returns:
        Listener indices for each dialer index, in pattern order.
    """
    grouped: dict[int, list[int]] = {}
    for dialer, listener in connections:
        grouped.setdefault(dialer, []).append(listener)
    return grouped


def launch_waves(n: int, connections: list[tuple[int, int]]) -> list[list[int]]:
    """
    Order node indices into waves that can each be started concurrently.

    A dialer needs its listeners' identities in its launch parameters, so it
    belongs to a later wave than all of them.

    Raises:
        ValueError: If the pattern dials in a cycle or names an unknown index.
    """
    depends = bootnodes_by_dialer(connections)
    for dialer, listeners in depends.items():
        for index in (dialer, *listeners):
            if not 0 <= index < n:
                raise ValueError(f"Connection index {index} outside 0..{n - 1}")

    waves: list[list[int]] = []
    placed: set[int] = set()
    while len(placed) < n:
        wave = [
            i
            for i in range(n)
            if i not in placed and all(dep in placed for dep in depends.get(i, []))
        ]
        if not wave:
            raise ValueError(f"Bootnode pattern has a cycle: {connections}")
        waves.append(wave)
        placed.update(wave)
    return waves
