"""Packet class for network simulation.

This module defines the Packet class, which represents a UDP datagram
traveling through the simulated network.
"""

from dataclasses import dataclass, field
from ipaddress import IPv4Address
from typing import List, Optional, Tuple

# IPv4 (20 bytes) plus UDP (8 bytes) headers
HEADER_SIZE = 28
DEFAULT_TTL = 64


@dataclass
class Packet:
    """Represents a UDP datagram.

    Attributes:
        source: Source address.
        source_port: Source port.
        destination: Destination address.
        destination_port: Destination port.
        size: Payload size in bytes.
        creation_time: Virtual time at which the packet was sent.
        ttl: Remaining hop budget.
        id: Unique identifier for the packet.
        hops: (node id, time) pairs for each node the packet reached.
        arrival_time: Time when the packet reached its destination socket.
    """

    source: IPv4Address
    source_port: int
    destination: IPv4Address
    destination_port: int
    size: int
    creation_time: float = 0.0
    ttl: int = DEFAULT_TTL
    id: int = field(init=False)
    hops: List[Tuple[int, float]] = field(default_factory=list)
    arrival_time: Optional[float] = None

    _id_counter: int = field(default=0, init=False, repr=False)

    def __post_init__(self):
        """Initialize derived attributes after initialization."""
        type(self)._id_counter += 1
        self.id = type(self)._id_counter

    @property
    def wire_size(self) -> int:
        """Size on the wire in bytes, headers included."""
        return self.size + HEADER_SIZE

    def record_hop(self, node: int, time: float) -> None:
        """Record a hop in the packet's journey.

        Args:
            node: Node ID where the packet has arrived.
            time: Current simulation time.
        """
        self.hops.append((node, time))

    def get_total_delay(self) -> Optional[float]:
        """Calculate total delay if packet has arrived.

        Returns:
            Total delay in seconds or None if packet hasn't arrived.
        """
        if self.arrival_time is None:
            return None
        return self.arrival_time - self.creation_time

    def get_hop_count(self) -> int:
        return len(self.hops)
