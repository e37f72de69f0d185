"""Genesis document model and shared-configuration reconciliation."""

from .config import (
    CliqueConfig,
    ConsensusMechanism,
    EthashConfig,
    Genesis,
    GenesisAccount,
    GenesisConfig,
    Ibft2Config,
    clique_extra_data,
)
from .reconciler import (
    ConfigCodec,
    ConfigReconciler,
    GenesisFile,
    JsonCodec,
    YamlCodec,
    create_atomic,
)

__all__ = [
    "CliqueConfig",
    "ConfigCodec",
    "ConfigReconciler",
    "ConsensusMechanism",
    "EthashConfig",
    "Genesis",
    "GenesisAccount",
    "GenesisConfig",
    "GenesisFile",
    "Ibft2Config",
    "JsonCodec",
    "YamlCodec",
    "clique_extra_data",
    "create_atomic",
]
