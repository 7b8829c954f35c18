"""Node and Device classes for network simulation.

This module defines the Node class, which represents a participant in the
simulated network, and the Device class, which attaches a node to a medium.
"""

from ipaddress import IPv4Address, IPv4Interface
import logging
from typing import List, Optional

import numpy as np

from hybrid_sim.core.medium import Medium
from hybrid_sim.core.packet import Packet
from hybrid_sim.core.routing_algorithms import RoutingList
from hybrid_sim.core.scheduler import Scheduler
from hybrid_sim.core.sockets import UdpLayer

logger = logging.getLogger(__name__)


class Device:
    """Binds a node to a medium.

    Attributes:
        node: Owning node.
        medium: Medium the device is attached to.
        index: Index of the device within its node.
        interface: Assigned address and prefix, or None before assignment.
    """

    def __init__(self, node: "Node", medium: Medium, index: int) -> None:
        self.node = node
        self.medium = medium
        self.index = index
        self.interface: Optional[IPv4Interface] = None

    @property
    def address(self) -> Optional[IPv4Address]:
        return self.interface.ip if self.interface is not None else None

    def assign(self, interface: IPv4Interface) -> None:
        self.interface = interface

    def send(self, packet: Packet, next_hop: IPv4Address) -> None:
        self.medium.transmit(self, packet, next_hop)

    def receive(self, packet: Packet) -> None:
        self.node.receive(packet, self)

    def __repr__(self) -> str:
        return f"Device({self.node.id}/{self.index}, {self.medium.name}, {self.interface})"


class Node:
    """Represents a network node.

    Attributes:
        scheduler: Scheduler driving the simulation.
        id: Unique identifier for the node, in creation order.
        position: Coordinates in metres, or None if the node is not placed.
        devices: Attached devices.
        routing: Priority-ordered routing strategies.
        udp: UDP endpoint table.
        packets_forwarded: Packets relayed towards another node.
        packets_dropped: Packets discarded by this node.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        node_id: int,
        position: Optional[np.ndarray] = None,
    ) -> None:
        self.scheduler = scheduler
        self.id = node_id
        self.position = position
        self.devices: List[Device] = []
        self.routing = RoutingList()
        self.udp = UdpLayer(self)
        self.packets_forwarded = 0
        self.packets_dropped = 0

    def add_device(self, medium: Medium) -> Device:
        """Attach the node to a medium through a new device."""
        device = Device(self, medium, len(self.devices))
        self.devices.append(device)
        medium.attach(device)
        return device

    @property
    def addresses(self) -> List[IPv4Address]:
        return [d.address for d in self.devices if d.address is not None]

    def owns_address(self, address: IPv4Address) -> bool:
        return address in self.addresses

    def device_on(self, medium: Medium) -> Optional[Device]:
        for device in self.devices:
            if device.medium is medium:
                return device
        return None

    def send(self, packet: Packet) -> bool:
        """Route a packet originating at, or relayed by, this node.

        Args:
            packet: The packet to send.

        Returns:
            True if the packet was handed to a device or delivered locally,
            False if it was dropped.
        """
        if self.owns_address(packet.destination):
            self.scheduler.schedule_with_context(self.id, 0.0, self.udp.deliver, packet)
            return True

        route = self.routing.resolve(packet.destination)
        if route is None:
            self.packet_dropped(packet, "No route to destination")
            return False

        route.device.send(packet, route.next_hop(packet.destination))
        return True

    def receive(self, packet: Packet, device: Device) -> None:
        """Handle a frame delivered to one of this node's devices."""
        packet.record_hop(self.id, self.scheduler.now)

        if self.owns_address(packet.destination):
            self.udp.deliver(packet)
            return

        packet.ttl -= 1
        if packet.ttl <= 0:
            self.packet_dropped(packet, "TTL expired")
            return

        if self.send(packet):
            self.packets_forwarded += 1

    def packet_dropped(self, packet: Packet, reason: str) -> None:
        self.packets_dropped += 1
        logger.info(
            "t=%.6fs node %d dropped packet %d to %s: %s",
            self.scheduler.now,
            self.id,
            packet.id,
            packet.destination,
            reason,
        )

    def __repr__(self) -> str:
        return f"Node({self.id})"
