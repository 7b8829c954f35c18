"""Receive-side handler that counts delivered packets."""

import logging

from hybrid_sim.core.packet import Packet
from hybrid_sim.core.sockets import UdpSocket
from hybrid_sim.utils.metrics import Counters

logger = logging.getLogger(__name__)


class DeliverySink:
    """Counts every packet delivered to the socket it is registered on.

    Invoked once per delivered packet, so each call is exactly one increment.

    Attributes:
        counters: Counters of the current run.
    """

    def __init__(self, counters: Counters) -> None:
        self.counters = counters

    def __call__(self, socket: UdpSocket, packet: Packet) -> None:
        self.counters.packets_received += 1
        self.counters.bytes_received += packet.size
        logger.info("Received one packet!")
        logger.debug(
            "Node %d port %s: packet %d from %s after %.6fs, %d hops",
            socket.node.id,
            socket.port,
            packet.id,
            packet.source,
            packet.get_total_delay() or 0.0,
            packet.get_hop_count(),
        )
