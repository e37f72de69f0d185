"""
REST client for a privacy manager (Orion).

Payloads travel base64 encoded. `/send` stores a payload for a set of
recipients and returns its key; `/receive` returns the payload for a key as
seen by one recipient, or 404 while that manager does not hold it.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx

from peeps.config import RPC_TIMEOUT
from peeps.types import NodeUnreachableError, RpcError

logger = logging.getLogger(__name__)

UPCHECK_PATH = "/upcheck"
SEND_PATH = "/send"
RECEIVE_PATH = "/receive"


@dataclass(slots=True)
class PrivacyRpcClient:
    """Binding to one privacy manager's client API."""

    name: str
    """Name of the privacy manager, used in error messages."""

    endpoint: str
    """Base URL of the client API, e.g. 'http://127.0.0.1:8888'."""

    timeout: float = RPC_TIMEOUT
    """Per-request timeout in seconds."""

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)
    """Lazily created HTTP client."""

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        return await self._request("POST", path, json=body)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.endpoint, timeout=self.timeout)
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise NodeUnreachableError(
                self.name, f"{self.endpoint}{path}", str(exc) or type(exc).__name__
            ) from exc

    async def close(self) -> None:
        """Release the connection pool. Safe to call more than once."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def upcheck(self) -> bool:
        """Whether the manager reports itself up."""
        response = await self._request("GET", UPCHECK_PATH)
        return response.status_code == 200

    async def send_payload(self, sender: str, recipients: Sequence[str], payload: str) -> str:
        """
        Store `payload` for `recipients` and return its key.

        Never retried: a second call would store a second copy.

        Args:
            sender: Public key of the sending manager.
            recipients: Public keys of the receiving managers.
            payload: Cleartext to send.

        Raises:
            RpcError: If the manager rejects the payload.
        """
        response = await self._post(
            SEND_PATH,
            {
                "payload": base64.b64encode(payload.encode("utf-8")).decode("ascii"),
                "from": sender,
                "to": list(recipients),
            },
        )
        if response.status_code != 200:
            raise RpcError(self.name, SEND_PATH, response.status_code, response.text[:200])

        key = response.json().get("key", "")
        logger.debug("%s: stored payload for %s under key %s", self.name, list(recipients), key)
        return key

    async def fetch_payload(self, key: str, recipient: str) -> str | None:
        """
        The cleartext stored under `key`, as decrypted for `recipient`.

        Returns:
            The payload, or None if this manager does not hold it.

        Raises:
            RpcError: On any status other than 200 or 404.
        """
        response = await self._post(RECEIVE_PATH, {"key": key, "to": recipient})
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RpcError(self.name, RECEIVE_PATH, response.status_code, response.text[:200])

        encoded = response.json().get("payload")
        if encoded is None:
            return None
        return base64.b64decode(encoded).decode("utf-8")
