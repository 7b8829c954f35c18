"""Topology building for the hybrid wireless/wired network.

    W0   W1        wireless channel (OLSR mesh)
    W2   W3   ...
     :
     G  ------  C0 ---- C1      CSMA wire
   (optional gateway)

Wireless nodes are placed on a grid and share one ad hoc channel; wired nodes
share one CSMA channel. An optional gateway is a wireless node that also owns a
device on the wire. Every node runs static routing (priority 0) in front of
the proactive OLSR layer (priority 10).
"""

from dataclasses import dataclass, field
import logging
from typing import List, Optional

import numpy as np

from hybrid_sim.core.addressing import AddressPool, check_disjoint
from hybrid_sim.core.errors import TopologyError
from hybrid_sim.core.medium import CsmaChannel, WiredConfig, WirelessChannel, WirelessConfig
from hybrid_sim.core.node import Node
from hybrid_sim.core.routing_algorithms import (
    OlsrConfig,
    OlsrProtocol,
    OlsrRouting,
    StaticRouting,
)
from hybrid_sim.core.scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass
class TopologyConfig:
    """
    Topology configuration.

    Attributes:
        num_wireless_nodes: Number of nodes on the wireless channel.
        num_wired_nodes: Number of nodes on the CSMA channel.
        wireless: Wireless channel parameters.
        wired: CSMA channel parameters.
        olsr: Proactive routing parameters.
        wireless_network: Address pool for wireless devices.
        wired_network: Address pool for wired devices.
        gateway: Index of a wireless node that also attaches to the wire.
        static_priority: Routing list priority of static routing.
        olsr_priority: Routing list priority of OLSR.
        grid_delta_x: Horizontal spacing of the wireless grid in metres.
        grid_delta_y: Vertical spacing of the wireless grid in metres.
        grid_width: Nodes per grid row.
    """

    num_wireless_nodes: int = 5
    num_wired_nodes: int = 2
    wireless: WirelessConfig = field(default_factory=WirelessConfig)
    wired: WiredConfig = field(default_factory=WiredConfig)
    olsr: OlsrConfig = field(default_factory=OlsrConfig)
    wireless_network: str = "10.1.1.0/24"
    wired_network: str = "10.1.2.0/24"
    gateway: Optional[int] = None
    static_priority: int = 0
    olsr_priority: int = 10
    grid_delta_x: float = 5.0
    grid_delta_y: float = 10.0
    grid_width: int = 2

    def __post_init__(self):
        if self.num_wireless_nodes < 1:
            raise TopologyError(
                f"num_wireless_nodes must be positive, got {self.num_wireless_nodes}"
            )
        if self.num_wired_nodes < 1:
            raise TopologyError(f"num_wired_nodes must be positive, got {self.num_wired_nodes}")
        if self.gateway is not None and not 0 <= self.gateway < self.num_wireless_nodes:
            raise TopologyError(
                f"gateway must index a wireless node (0..{self.num_wireless_nodes - 1}), "
                f"got {self.gateway}"
            )
        if self.grid_width < 1:
            raise TopologyError(f"grid_width must be positive, got {self.grid_width}")


class Topology:
    """A built network.

    Attributes:
        scheduler: Scheduler shared by all nodes and media.
        config: Configuration the topology was built from.
        wireless_nodes: Nodes on the wireless channel, in creation order.
        wired_nodes: Nodes on the CSMA channel, in creation order.
        wireless_channel: The shared wireless channel.
        wired_channel: The shared CSMA channel.
        olsr: Proactive routing protocol instance.
    """

    def __init__(self, scheduler: Scheduler, config: TopologyConfig) -> None:
        self.scheduler = scheduler
        self.config = config
        self.wireless_nodes: List[Node] = []
        self.wired_nodes: List[Node] = []
        self.wireless_channel = WirelessChannel(scheduler, config.wireless)
        self.wired_channel = CsmaChannel(scheduler, config.wired)
        self.olsr = OlsrProtocol(scheduler, config.olsr)

    @property
    def nodes(self) -> List[Node]:
        return self.wireless_nodes + self.wired_nodes

    def get_node(self, node_id: int) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(f"Node {node_id} does not exist")

    def describe(self) -> str:
        lines = [f"Topology: {len(self.wireless_nodes)} wireless, {len(self.wired_nodes)} wired"]
        for node in self.nodes:
            devices = ", ".join(f"{d.medium.name}={d.interface}" for d in node.devices)
            lines.append(f"  {node} [{devices}] routing={node.routing}")
        return "\n".join(lines)


def grid_positions(
    count: int,
    delta_x: float = 5.0,
    delta_y: float = 10.0,
    grid_width: int = 2,
    min_x: float = 0.0,
    min_y: float = 0.0,
) -> np.ndarray:
    """Row-first grid layout.

    Returns:
        Array of shape (count, 2) with x, y coordinates in metres.
    """
    index = np.arange(count)
    x = min_x + (index % grid_width) * delta_x
    y = min_y + (index // grid_width) * delta_y
    return np.column_stack((x, y)).astype(float)


def build_topology(scheduler: Scheduler, config: TopologyConfig) -> Topology:
    """
    Construct nodes, devices, routing stacks and addresses.

    The whole topology is validated before the routing protocol is started,
    so a failing build leaves nothing scheduled.

    Args:
        scheduler: Scheduler the network runs on.
        config: Topology configuration.

    Returns:
        The built topology.

    Raises:
        TopologyError: If the address pools overlap or run out, or a node
            ends up without a device.
    """
    wireless_pool = AddressPool(config.wireless_network)
    wired_pool = AddressPool(config.wired_network)
    check_disjoint([wireless_pool, wired_pool])

    wired_devices = config.num_wired_nodes + (1 if config.gateway is not None else 0)
    if wireless_pool.capacity < config.num_wireless_nodes:
        raise TopologyError(
            f"Address pool {wireless_pool.network} too small for "
            f"{config.num_wireless_nodes} wireless devices"
        )
    if wired_pool.capacity < wired_devices:
        raise TopologyError(
            f"Address pool {wired_pool.network} too small for {wired_devices} wired devices"
        )

    topology = Topology(scheduler, config)

    positions = grid_positions(
        config.num_wireless_nodes,
        delta_x=config.grid_delta_x,
        delta_y=config.grid_delta_y,
        grid_width=config.grid_width,
    )
    for i in range(config.num_wireless_nodes):
        node = Node(scheduler, len(topology.nodes), position=positions[i])
        node.add_device(topology.wireless_channel)
        topology.wireless_nodes.append(node)

    for _ in range(config.num_wired_nodes):
        node = Node(scheduler, len(topology.nodes))
        node.add_device(topology.wired_channel)
        topology.wired_nodes.append(node)

    if config.gateway is not None:
        topology.wireless_nodes[config.gateway].add_device(topology.wired_channel)

    for node in topology.nodes:
        if not node.devices:
            raise TopologyError(f"{node} has no medium attached")

        static = StaticRouting()
        olsr = OlsrRouting(node)
        node.routing.add(static, config.static_priority)
        node.routing.add(olsr, config.olsr_priority)
        topology.olsr.register(olsr)

    # wired pool first, in device attachment order, so the gateway comes last
    for device in topology.wired_channel.devices:
        _assign(device, wired_pool)
    for device in topology.wireless_channel.devices:
        _assign(device, wireless_pool)

    topology.olsr.start()
    logger.info("%s", topology.describe())
    return topology


def _assign(device, pool: AddressPool) -> None:
    interface = pool.allocate()
    device.assign(interface)
    static = device.node.routing.get(StaticRouting)
    static.add_network_route(interface.network, device)
