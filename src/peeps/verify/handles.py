"""
Receipt handles: opaque results of a write, exchangeable for a value by polling.

A handle knows how to look its value up on one target process. `resolve()`
returns None while the target cannot produce it yet, so a handle can be
passed straight to the awaiter or to a consensus check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from peeps.node.handle import NodeHandle
    from peeps.node.models import PrivacyTransactionReceipt, Transaction, TransactionReceipt
    from peeps.privacy.manager import PrivacyManagerHandle

V = TypeVar("V", covariant=True)


class ReceiptHandle(Protocol[V]):
    """Anything that can be resolved against a target process."""

    def describe(self) -> str:
        """Short human description used in error messages."""
        ...

    async def resolve(self, target: Any) -> V | None:
        """The value as seen by `target`, or None while absent."""
        ...


@dataclass(frozen=True, slots=True)
class TransactionHandle:
    """A submitted transaction, looked up by hash."""

    tx_hash: str

    def describe(self) -> str:
        return f"transaction {self.tx_hash}"

    def __str__(self) -> str:
        return self.describe()

    async def resolve(self, target: NodeHandle) -> Transaction | None:
        return await target.rpc.transaction_by_hash(self.tx_hash)


@dataclass(frozen=True, slots=True)
class TransactionReceiptHandle:
    """The receipt of a mined transaction."""

    tx_hash: str

    def describe(self) -> str:
        return f"receipt of {self.tx_hash}"

    def __str__(self) -> str:
        return self.describe()

    async def resolve(self, target: NodeHandle) -> TransactionReceipt | None:
        return await target.rpc.transaction_receipt(self.tx_hash)


@dataclass(frozen=True, slots=True)
class PrivacyReceiptHandle:
    """The private receipt of a privacy marker transaction."""

    tx_hash: str

    def describe(self) -> str:
        return f"private receipt of {self.tx_hash}"

    def __str__(self) -> str:
        return self.describe()

    async def resolve(self, target: NodeHandle) -> PrivacyTransactionReceipt | None:
        return await target.rpc.privacy_transaction_receipt(self.tx_hash)


@dataclass(frozen=True, slots=True)
class BalanceQuery:
    """Balance of an account at a block. Zero is a present value."""

    address: str
    block: str = "latest"

    def describe(self) -> str:
        return f"balance of {self.address} at {self.block}"

    def __str__(self) -> str:
        return self.describe()

    async def resolve(self, target: NodeHandle) -> int | None:
        return await target.rpc.balance_of(self.address, self.block)


@dataclass(frozen=True, slots=True)
class PayloadHandle:
    """
    Key of a payload stored by a privacy manager.

    Resolves to the cleartext as decrypted by the target manager, or None
    while that manager does not hold it.
    """

    key: str

    def describe(self) -> str:
        return f"payload {self.key}"

    def __str__(self) -> str:
        return self.describe()

    async def resolve(self, target: PrivacyManagerHandle) -> str | None:
        return await target.fetch_payload(self.key)
