"""
Genesis document for the chain under test.

Every node of one chain must start from a byte-identical genesis, so the model
here is the single source for the file written to disk (see `reconciler`).

The JSON layout follows the Besu genesis format:

    {
      "config": {"chainId": 4004, "ethash": {"fixeddifficulty": 100}},
      "gasLimit": "0x1fffffffffffff",
      "difficulty": "0x10000",
      "alloc": {"fe3b557e8fb62b89f4916b721be55ceb828dbd73": {"balance": "0xad78ebc5ac6200000"}}
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator, model_validator

from peeps.types import StrictBaseModel, int_to_hex

DEFAULT_CHAIN_ID = 4004
"""Chain id used when none is given."""

ZERO_HASH = "0x" + "00" * 32
"""32 zero bytes, hex encoded."""

ZERO_ADDRESS = "0x" + "00" * 20
"""20 zero bytes, hex encoded."""

CLIQUE_VANITY_BYTES = 32
"""Leading bytes of clique extra data reserved for arbitrary content."""

CLIQUE_SEAL_BYTES = 65
"""Trailing bytes of clique extra data reserved for the signer's seal."""


class ConsensusMechanism(str, Enum):
    """Consensus sections a genesis can carry."""

    ETHASH = "ethash"
    CLIQUE = "clique"
    IBFT2 = "ibft2"


class EthashConfig(StrictBaseModel):
    """Proof of work. A fixed difficulty keeps block times short in tests."""

    fixed_difficulty: int | None = Field(default=None, alias="fixeddifficulty")


class CliqueConfig(StrictBaseModel):
    """Proof of authority, signer set encoded in the genesis extra data."""

    block_period_seconds: int = Field(default=2, alias="blockperiodseconds")
    epoch_length: int = Field(default=30000, alias="epochlength")


class Ibft2Config(StrictBaseModel):
    """Byzantine fault tolerant proof of authority."""

    block_period_seconds: int = Field(default=2, alias="blockperiodseconds")
    epoch_length: int = Field(default=30000, alias="epochlength")
    request_timeout_seconds: int = Field(default=10, alias="requesttimeoutseconds")


class GenesisConfig(StrictBaseModel):
    """
    The `config` section: chain id plus exactly one consensus section.

    A genesis with zero or several consensus sections would be accepted by
    some clients and rejected by others, so it is refused here.
    """

    chain_id: int = DEFAULT_CHAIN_ID
    ethash: EthashConfig | None = None
    clique: CliqueConfig | None = None
    ibft2: Ibft2Config | None = None

    @model_validator(mode="after")
    def exactly_one_consensus(self) -> GenesisConfig:
        """Verify a single consensus mechanism is configured."""
        present = [m.value for m in ConsensusMechanism if getattr(self, m.value) is not None]
        if len(present) != 1:
            raise ValueError(f"Exactly one consensus section is required, got {present}")
        return self

    @property
    def consensus(self) -> ConsensusMechanism:
        """The configured consensus mechanism."""
        for mechanism in ConsensusMechanism:
            if getattr(self, mechanism.value) is not None:
                return mechanism
        raise AssertionError("unreachable: validated at construction")


class GenesisAccount(StrictBaseModel):
    """Pre-funded account."""

    balance: str
    """Balance in wei as a JSON-RPC quantity."""

    @field_validator("balance", mode="before")
    @classmethod
    def encode_balance(cls, v: object) -> object:
        """Accept plain integers for convenience."""
        if isinstance(v, int):
            return int_to_hex(v)
        return v


class Genesis(StrictBaseModel):
    """A complete genesis document."""

    config: GenesisConfig
    nonce: str = "0x42"
    timestamp: str = "0x0"
    gas_limit: str = "0x1fffffffffffff"
    difficulty: str = "0x10000"
    mix_hash: str = ZERO_HASH
    coinbase: str = ZERO_ADDRESS
    extra_data: str | None = None
    alloc: dict[str, GenesisAccount] = Field(default_factory=dict)

    @field_validator("alloc", mode="before")
    @classmethod
    def normalize_addresses(cls, v: object) -> object:
        """Store account addresses lower-case without the 0x prefix, as Besu writes them."""
        if isinstance(v, Mapping):
            return {str(k).lower().removeprefix("0x"): account for k, account in v.items()}
        return v

    @classmethod
    def for_consensus(
        cls,
        mechanism: ConsensusMechanism,
        *,
        chain_id: int = DEFAULT_CHAIN_ID,
        signers: Iterable[str] = (),
        alloc: Mapping[str, int] | None = None,
        extra_data: str | None = None,
    ) -> Genesis:
        """
        Build a genesis for the given consensus mechanism with default parameters.

        Args:
            mechanism: Consensus section to include.
            chain_id: Chain id.
            signers: Clique signer addresses, encoded into the extra data.
            alloc: Initial balances in wei by address.
            extra_data: Explicit extra data. IBFT2 needs its RLP-encoded validator list here.
        """
        match mechanism:
            case ConsensusMechanism.ETHASH:
                config = GenesisConfig(chain_id=chain_id, ethash=EthashConfig(fixed_difficulty=100))
            case ConsensusMechanism.CLIQUE:
                config = GenesisConfig(chain_id=chain_id, clique=CliqueConfig())
                if extra_data is None:
                    extra_data = clique_extra_data(signers)
            case ConsensusMechanism.IBFT2:
                config = GenesisConfig(chain_id=chain_id, ibft2=Ibft2Config())

        accounts = {address: GenesisAccount(balance=wei) for address, wei in (alloc or {}).items()}
        return cls(config=config, alloc=accounts, extra_data=extra_data)

    @classmethod
    def from_json_file(cls, path: Path | str) -> Genesis:
        """
        Load a genesis from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist.
            json.JSONDecodeError: If the file is not valid JSON.
            pydantic.ValidationError: If the data fails validation.
        """
        with Path(path).open(encoding="utf-8") as f:
            return cls.model_validate(json.load(f))


def clique_extra_data(signers: Iterable[str]) -> str:
    """
    Encode clique extra data: 32 vanity bytes, signer addresses, 65 seal bytes.

    Raises:
        ValueError: If a signer is not a 20 byte hex address.
    """
    encoded = []
    for signer in signers:
        address = signer.lower().removeprefix("0x")
        if len(address) != 40:
            raise ValueError(f"Signer must be a 20 byte address, got {signer!r}")
        bytes.fromhex(address)
        encoded.append(address)
    return "0x" + "00" * CLIQUE_VANITY_BYTES + "".join(encoded) + "00" * CLIQUE_SEAL_BYTES
