"""
Sending payloads through privacy managers and checking every party sees them.

A payload sent from one manager to another must be readable, with identical
content, from both: the sender keeps a copy and the recipient receives one.
Each lookup is polled because distribution between managers is asynchronous.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from dataclasses import dataclass, field

from peeps.types import ConsensusDivergenceError, EmptyReceiptError
from peeps.verify import ConsensusConvergenceVerifier, PayloadHandle, PollingAwaiter

from .manager import PrivacyManagerHandle

logger = logging.getLogger(__name__)


def unique_payload(prefix: str = "payload") -> str:
    """A payload no other call will produce, e.g. 'payload-7f3a09c1e2b4d5a6'."""
    return f"{prefix}-{secrets.token_hex(8)}"


@dataclass(frozen=True, slots=True)
class PrivacyGroupExchange:
    """Sends payloads between privacy managers and verifies their delivery."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for each lookup."""

    async def send(
        self,
        sender: PrivacyManagerHandle,
        recipient: PrivacyManagerHandle,
        payload: str | None = None,
    ) -> PayloadHandle:
        """
        Send `payload` from `sender` to `recipient`.

        Executed exactly once: a failure propagates and is never retried.

        Args:
            payload: Cleartext to send. A unique one is generated when omitted.

        Raises:
            EmptyReceiptError: If the sender returned a blank key.
        """
        payload = unique_payload() if payload is None else payload
        key = await sender.send_payload([recipient.public_key], payload)
        if not key or not key.strip():
            raise EmptyReceiptError(sender.name, f"payload for {recipient.name}")

        logger.info("%s sent a payload to %s under key %s", sender.name, recipient.name, key)
        return PayloadHandle(key)

    async def verify_both_resolve(
        self,
        sender: PrivacyManagerHandle,
        recipient: PrivacyManagerHandle,
        handle: PayloadHandle,
        expected_payload: str,
    ) -> None:
        """
        Both parties resolve `handle` to `expected_payload`.

        Raises:
            ConsensusDivergenceError: If either party resolves different content.
            ConvergenceTimeoutError: If either party never resolves the handle.
        """
        verifier = ConsensusConvergenceVerifier(self.awaiter)
        for party in (sender, recipient):
            actual = await verifier.await_resolvable(party, handle)
            if actual != expected_payload:
                raise ConsensusDivergenceError(
                    party.name, handle.describe(), expected_payload, actual
                )

    async def await_group_consensus(
        self, group: Sequence[PrivacyManagerHandle], handle: PayloadHandle
    ) -> str:
        """
        Every member resolves `handle` to the same payload as the first member.

        Returns:
            The agreed payload.
        """
        return await ConsensusConvergenceVerifier(self.awaiter).consensus_on_value(group, handle)
