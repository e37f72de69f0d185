"""
Address allocation within one private test network.

Every node and privacy manager of a run gets a fixed IPv4 address before its
process starts. The address is handed to the process as launch parameters and
used by peers to reach it, so it must stay put for the process lifetime and
must never be shared by two running processes.
"""

from __future__ import annotations

import ipaddress
import logging
import threading
from dataclasses import dataclass, field

from peeps.types import DuplicateReservationError, TopologyExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_SUBNET = "10.0.0.0/24"
"""Subnet used when none is configured."""


@dataclass(slots=True)
class NetworkTopology:
    """
    Thread-safe IPv4 allocator for one logical network.

    Nodes are started in parallel, so reservations can race. A single lock
    serializes every reserve and release.

    The network address and the first host (the bridge gateway) are never
    handed out: a /24 yields .2, .3, .4 and so on.
    """

    subnet: str = DEFAULT_SUBNET
    """Subnet in CIDR notation."""

    _network: ipaddress.IPv4Network = field(init=False, repr=False)
    """Parsed subnet."""

    _reserved: dict[str, str] = field(default_factory=dict, init=False)
    """Address held by each name."""

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    """Thread lock for concurrent access."""

    def __post_init__(self) -> None:
        """Parse and validate the subnet."""
        network = ipaddress.ip_network(self.subnet, strict=True)
        if not isinstance(network, ipaddress.IPv4Network):
            raise ValueError(f"Only IPv4 subnets are supported, got {self.subnet}")
        self._network = network

    @property
    def gateway(self) -> str:
        """First host address, kept for the network bridge."""
        return str(self._network.network_address + 1)

    def reserve(self, name: str) -> str:
        """
        Reserve the lowest free host address for `name`.

        Args:
            name: Identifier of the node or privacy manager.

        Returns:
            The reserved address, e.g. "10.0.0.2".

        Raises:
            DuplicateReservationError: If `name` already holds an address.
            TopologyExhaustedError: If every host address is taken.
        """
        with self._lock:
            if name in self._reserved:
                raise DuplicateReservationError(name, self._reserved[name])

            taken = set(self._reserved.values())
            taken.add(self.gateway)
            for host in self._network.hosts():
                address = str(host)
                if address not in taken:
                    self._reserved[name] = address
                    logger.debug("Reserved %s for %s in %s", address, name, self.subnet)
                    return address

        raise TopologyExhaustedError(self.subnet, name)

    def release(self, name: str) -> None:
        """Free the address held by `name`. No-op if it holds none."""
        with self._lock:
            address = self._reserved.pop(name, None)
        if address is not None:
            logger.debug("Released %s held by %s", address, name)

    def address_of(self, name: str) -> str | None:
        """Address held by `name`, if any."""
        with self._lock:
            return self._reserved.get(name)

    def reservations(self) -> dict[str, str]:
        """Snapshot of every current reservation."""
        with self._lock:
            return dict(self._reserved)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._reserved

    def __len__(self) -> int:
        with self._lock:
            return len(self._reserved)
