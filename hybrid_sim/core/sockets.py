"""UDP sockets for network simulation.

Sockets are per-node endpoints bound to a port. Sending is fire-and-forget:
send() returns as soon as the packet is handed to the node, and delivery
happens later through scheduled events. Receive handlers are kept in a
mapping keyed by socket, so registering a new handler replaces the old one.
"""

from ipaddress import IPv4Address
import logging
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from hybrid_sim.core.errors import ConfigurationError
from hybrid_sim.core.packet import Packet

if TYPE_CHECKING:
    from hybrid_sim.core.node import Node

logger = logging.getLogger(__name__)

EPHEMERAL_PORT_START = 49153

ReceiveHandler = Callable[["UdpSocket", Packet], None]


class UdpLayer:
    """UDP endpoint table of a node.

    Attributes:
        node: Owning node.
        bindings: Bound sockets keyed by port.
        handlers: Receive handler of each socket.
        packets_unclaimed: Packets that arrived for a port with no open socket.
    """

    def __init__(self, node: "Node") -> None:
        self.node = node
        self.bindings: Dict[int, "UdpSocket"] = {}
        self.handlers: Dict["UdpSocket", ReceiveHandler] = {}
        self.packets_unclaimed = 0
        self._next_ephemeral = EPHEMERAL_PORT_START

    def allocate_port(self) -> int:
        while self._next_ephemeral in self.bindings:
            self._next_ephemeral += 1
        port = self._next_ephemeral
        self._next_ephemeral += 1
        return port

    def deliver(self, packet: Packet) -> None:
        """Hand a packet that reached this node to the socket bound to its port."""
        socket = self.bindings.get(packet.destination_port)
        if socket is None or socket.closed:
            self.packets_unclaimed += 1
            logger.debug(
                "Node %d: no socket on port %d, packet %d discarded",
                self.node.id,
                packet.destination_port,
                packet.id,
            )
            return

        packet.arrival_time = self.node.scheduler.now
        handler = self.handlers.get(socket)
        if handler is not None:
            handler(socket, packet)


class UdpSocket:
    """UDP socket owned by a node.

    Attributes:
        node: Owning node.
        port: Local port, or None while unbound.
        remote: (address, port) the socket is connected to, or None.
        closed: Whether close() was called.
    """

    def __init__(self, node: "Node") -> None:
        self.node = node
        self.port: Optional[int] = None
        self.remote: Optional[Tuple[IPv4Address, int]] = None
        self.closed = False

    @property
    def udp(self) -> UdpLayer:
        return self.node.udp

    def bind(self, port: int = 0) -> None:
        """Bind to a local port; port 0 picks an ephemeral port.

        Raises:
            ConfigurationError: If the socket is closed, already bound, or the
                port is in use.
        """
        if self.closed:
            raise ConfigurationError("Cannot bind a closed socket")
        if self.port is not None:
            raise ConfigurationError(f"Socket already bound to port {self.port}")
        if port == 0:
            port = self.udp.allocate_port()
        if not 0 < port < 65536:
            raise ConfigurationError(f"Invalid port {port}")
        if port in self.udp.bindings:
            raise ConfigurationError(f"Port {port} already in use on node {self.node.id}")
        self.port = port
        self.udp.bindings[port] = self

    def connect(self, address: IPv4Address, port: int) -> None:
        """Set the default destination, binding an ephemeral port if needed."""
        if self.port is None:
            self.bind()
        self.remote = (IPv4Address(address), port)

    def set_recv_callback(self, handler: ReceiveHandler) -> None:
        """Register the receive handler, replacing any previous one."""
        self.udp.handlers[self] = handler

    def send(self, size: int) -> bool:
        """Send a payload of the given size to the connected peer.

        Returns:
            True if the packet left this node, False if it was dropped locally.
        """
        if self.closed:
            logger.warning("Node %d: send on closed socket ignored", self.node.id)
            return False
        if self.remote is None:
            logger.warning("Node %d: send on unconnected socket ignored", self.node.id)
            return False

        address, port = self.remote
        source = self.node.addresses[0] if self.node.addresses else IPv4Address(0)
        packet = Packet(
            source=source,
            source_port=self.port,
            destination=address,
            destination_port=port,
            size=size,
            creation_time=self.node.scheduler.now,
        )
        return self.node.send(packet)

    def close(self) -> None:
        """Release the port and the receive handler. Closing twice is a no-op."""
        if self.closed:
            return
        self.closed = True
        if self.port is not None and self.udp.bindings.get(self.port) is self:
            del self.udp.bindings[self.port]
        self.udp.handlers.pop(self, None)
        logger.debug("Node %d: socket on port %s closed", self.node.id, self.port)

    def __repr__(self) -> str:
        return f"UdpSocket(node={self.node.id}, port={self.port}, remote={self.remote})"


def create_socket(node: "Node") -> UdpSocket:
    """Create a UDP socket on a node."""
    return UdpSocket(node)
