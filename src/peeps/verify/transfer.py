"""
Value transfers and the balance changes they cause.

A transfer is one submission and is never retried: a second
`eth_sendTransaction` would move the value twice. It returns a receipt handle
for the consensus checks. Once the receipt is agreed on, a transition check
confirms on one node that the sender paid the value plus gas and that the
receiver got the value.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from peeps.types import BalanceTransitionError, EmptyReceiptError, hex_to_int, int_to_hex

from .awaiter import PollingAwaiter
from .consensus import ConsensusConvergenceVerifier
from .handles import BalanceQuery, TransactionHandle, TransactionReceiptHandle

if TYPE_CHECKING:
    from peeps.node.handle import NodeHandle

logger = logging.getLogger(__name__)

TRANSFER_GAS = 21_000
"""Gas limit of a plain value transfer."""


async def transfer(
    node: NodeHandle, sender: str, receiver: str, amount: int, *, gas: int = TRANSFER_GAS
) -> TransactionReceiptHandle:
    """
    Have `node` sign and submit a transfer of `amount` wei from `sender`.

    `sender` must be an account the node holds the key for.

    Raises:
        EmptyReceiptError: If the node returned no transaction hash.
        RpcError: If the node rejected the transaction.
    """
    tx_hash = await node.rpc.send_transaction(
        {"from": sender, "to": receiver, "value": int_to_hex(amount), "gas": int_to_hex(gas)}
    )
    if not tx_hash:
        raise EmptyReceiptError(node.name, f"transfer of {amount} wei to {receiver}")

    logger.info(
        "%s: transfer of %d wei %s -> %s is %s", node.name, amount, sender, receiver, tx_hash
    )
    return TransactionReceiptHandle(tx_hash)


class BalanceChange(Protocol):
    """An expected balance of one account after a transfer."""

    @property
    def address(self) -> str:
        """The account whose balance moved."""
        ...

    async def expected_balance(
        self, node: NodeHandle, resolver: ConsensusConvergenceVerifier
    ) -> int:
        """The balance `node` should now report."""
        ...


@dataclass(frozen=True, slots=True)
class ValueSent:
    """
    The sender paid the transferred value and the gas.

    Value and gas price come from the transaction, gas used from its receipt.
    A receipt carrying `effectiveGasPrice` takes precedence over the
    transaction's `gasPrice`. Without either, gas is taken as free.
    """

    sender: str
    start_balance: int
    receipt: TransactionReceiptHandle

    @property
    def address(self) -> str:
        return self.sender

    async def expected_balance(
        self, node: NodeHandle, resolver: ConsensusConvergenceVerifier
    ) -> int:
        receipt = await resolver.await_resolvable(node, self.receipt)
        transaction = await resolver.await_resolvable(node, TransactionHandle(self.receipt.tx_hash))

        price = receipt.effective_gas_price or transaction.gas_price or "0x0"
        gas_cost = hex_to_int(receipt.gas_used) * hex_to_int(price)
        return self.start_balance - hex_to_int(transaction.value) - gas_cost


@dataclass(frozen=True, slots=True)
class ValueReceived:
    """The receiver got exactly `amount` wei."""

    receiver: str
    start_balance: int
    amount: int

    @property
    def address(self) -> str:
        return self.receiver

    async def expected_balance(
        self, node: NodeHandle, resolver: ConsensusConvergenceVerifier
    ) -> int:
        return self.start_balance + self.amount


@dataclass(frozen=True, slots=True)
class ValueTransitionVerifier:
    """Checks balances on one node against the transfers that should have moved them."""

    awaiter: PollingAwaiter = field(default_factory=PollingAwaiter)
    """Polling defaults for each lookup."""

    async def transition(self, node: NodeHandle, *changes: BalanceChange) -> dict[str, int]:
        """
        Read each account's balance on `node` and compare it with the expected one.

        Returns:
            The balances read, by address.

        Raises:
            BalanceTransitionError: For the first account whose balance is off.
            ConvergenceTimeoutError: If a receipt, transaction or balance never resolved.
        """
        resolver = ConsensusConvergenceVerifier(self.awaiter)
        balances: dict[str, int] = {}

        for change in changes:
            expected = await change.expected_balance(node, resolver)
            actual = await resolver.await_resolvable(node, BalanceQuery(change.address))
            if actual != expected:
                raise BalanceTransitionError(node.name, change.address, expected, actual)
            balances[change.address] = actual

        logger.info("%s: %d balances moved as expected", node.name, len(changes))
        return balances
