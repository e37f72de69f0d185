"""Helpers for the hex-encoded quantities used by Ethereum JSON-RPC."""

from __future__ import annotations

HEX_PREFIX = "0x"


def ensure_hex_prefix(value: str) -> str:
    """
    Return `value` with a single lower-case `0x` prefix.

    Node ids are reported with and without the prefix depending on the call
    (`admin_nodeInfo` omits it, `admin_peers` includes it). Normalising both
    sides lets peer sets be compared directly.
    """
    stripped = value.strip().lower()
    if stripped.startswith(HEX_PREFIX):
        return stripped
    return f"{HEX_PREFIX}{stripped}"


def hex_to_int(value: str) -> int:
    """
    Decode a JSON-RPC quantity such as `0x1b4` into an integer.

    Raises:
        ValueError: If the value is not a 0x-prefixed hex string.
    """
    if not value.startswith(HEX_PREFIX):
        raise ValueError(f"Quantity must be 0x-prefixed, got {value!r}")
    digits = value[len(HEX_PREFIX) :]
    return int(digits, 16) if digits else 0


def int_to_hex(value: int) -> str:
    """Encode a non-negative integer as a JSON-RPC quantity."""
    if value < 0:
        raise ValueError(f"Quantity must be non-negative, got {value}")
    return hex(value)
