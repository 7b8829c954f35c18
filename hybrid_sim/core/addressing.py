"""Address pools for network simulation.

Each medium gets its own IPv4 subnet; hosts are numbered from the first usable
address upwards in assignment order.
"""

from ipaddress import IPv4Interface, IPv4Network
from typing import Iterable, Iterator, List

from hybrid_sim.core.errors import TopologyError


class AddressPool:
    """Sequential allocator of host addresses within one subnet.

    Attributes:
        network: Subnet addresses are drawn from.
    """

    def __init__(self, network: str) -> None:
        try:
            self.network = IPv4Network(network)
        except ValueError as exc:
            raise TopologyError(f"Invalid address pool {network!r}: {exc}") from exc
        self._hosts: Iterator = self.network.hosts()
        self.assigned: List[IPv4Interface] = []

    def allocate(self) -> IPv4Interface:
        """Return the next free address with the pool's prefix.

        Raises:
            TopologyError: If the pool is exhausted.
        """
        try:
            address = next(self._hosts)
        except StopIteration:
            raise TopologyError(f"Address pool {self.network} is exhausted") from None
        interface = IPv4Interface(f"{address}/{self.network.prefixlen}")
        self.assigned.append(interface)
        return interface

    @property
    def capacity(self) -> int:
        if self.network.prefixlen >= 31:
            return self.network.num_addresses
        return self.network.num_addresses - 2

    def __repr__(self) -> str:
        return f"AddressPool({self.network}, {len(self.assigned)} assigned)"


def check_disjoint(pools: Iterable[AddressPool]) -> None:
    """Raise TopologyError if any two pools overlap."""
    pools = list(pools)
    for i, first in enumerate(pools):
        for second in pools[i + 1:]:
            if first.network.overlaps(second.network):
                raise TopologyError(
                    f"Address pools {first.network} and {second.network} overlap"
                )
