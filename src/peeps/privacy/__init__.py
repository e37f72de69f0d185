"""Privacy manager handles, REST client and payload exchange."""

from .config import ORION_COMMAND, PrivacyManagerConfig
from .exchange import PrivacyGroupExchange, unique_payload
from .manager import PrivacyIdentity, PrivacyManagerHandle
from .rpc import PrivacyRpcClient

__all__ = [
    "ORION_COMMAND",
    "PrivacyGroupExchange",
    "PrivacyIdentity",
    "PrivacyManagerConfig",
    "PrivacyManagerHandle",
    "PrivacyRpcClient",
    "unique_payload",
]
