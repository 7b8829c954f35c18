"""Routing strategies for network simulation.

Each node holds a RoutingList: strategies consulted in priority order (lower
value first), each of which either resolves a route or declines. Nodes use a
static strategy for directly connected networks and a proactive link-state
strategy (OLSR-like) for everything else.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from ipaddress import IPv4Address, IPv4Network
import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import networkx as nx

from hybrid_sim.core.errors import ConfigurationError

if TYPE_CHECKING:
    from hybrid_sim.core.node import Device, Node
    from hybrid_sim.core.scheduler import Scheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """A resolved route.

    Attributes:
        destination: Network the route covers.
        device: Outgoing device.
        gateway: Next-hop address, or None when the destination is on-link.
        metric: Hop count or administrative cost.
    """

    destination: IPv4Network
    device: "Device"
    gateway: Optional[IPv4Address] = None
    metric: int = 0

    def next_hop(self, destination: IPv4Address) -> IPv4Address:
        return self.gateway if self.gateway is not None else destination


class Router(ABC):
    """Abstract base class for routing strategies."""

    def __init__(self) -> None:
        self.name = "Base Router"

    @abstractmethod
    def resolve(self, destination: IPv4Address) -> Optional[Route]:
        """
        Determine the route towards a destination.

        Args:
            destination: Destination address.

        Returns:
            The route, or None to decline and let a lower priority strategy
            answer.
        """
        pass

    def __repr__(self) -> str:
        return self.name


class StaticRouting(Router):
    """Manually configured routes, longest prefix match."""

    def __init__(self) -> None:
        super().__init__()
        self.name = "Static"
        self.routes: List[Route] = []

    def add_network_route(
        self,
        network: IPv4Network,
        device: "Device",
        gateway: Optional[IPv4Address] = None,
        metric: int = 0,
    ) -> None:
        self.routes.append(Route(IPv4Network(network), device, gateway, metric))

    def add_host_route(
        self,
        host: IPv4Address,
        device: "Device",
        gateway: Optional[IPv4Address] = None,
        metric: int = 0,
    ) -> None:
        self.add_network_route(IPv4Network(f"{host}/32"), device, gateway, metric)

    def resolve(self, destination: IPv4Address) -> Optional[Route]:
        best: Optional[Route] = None
        for route in self.routes:
            if destination not in route.destination:
                continue
            if best is None or (
                route.destination.prefixlen,
                -route.metric,
            ) > (best.destination.prefixlen, -best.metric):
                best = route
        return best


class OlsrRouting(Router):
    """Routes computed proactively by an OlsrProtocol instance.

    The table is replaced wholesale on every protocol refresh, so it is empty
    until the first refresh has run.
    """

    def __init__(self, node: "Node") -> None:
        super().__init__()
        self.name = "OLSR"
        self.node = node
        self.table: Dict[IPv4Address, Route] = {}

    def set_table(self, table: Dict[IPv4Address, Route]) -> None:
        self.table = table

    def resolve(self, destination: IPv4Address) -> Optional[Route]:
        return self.table.get(destination)


class RoutingList(Router):
    """Strategies consulted in ascending priority value."""

    def __init__(self) -> None:
        super().__init__()
        self.name = "List"
        self.strategies: List[Tuple[int, Router]] = []

    def add(self, strategy: Router, priority: int) -> None:
        self.strategies.append((priority, strategy))
        # stable: equal priorities keep insertion order
        self.strategies.sort(key=lambda entry: entry[0])

    def get(self, strategy_type: type) -> Optional[Router]:
        for _, strategy in self.strategies:
            if isinstance(strategy, strategy_type):
                return strategy
        return None

    def resolve(self, destination: IPv4Address) -> Optional[Route]:
        for _, strategy in self.strategies:
            route = strategy.resolve(destination)
            if route is not None:
                return route
        return None

    def __repr__(self) -> str:
        return "List(" + ", ".join(f"{s}:{p}" for p, s in self.strategies) + ")"


@dataclass
class OlsrConfig:
    """Proactive routing configuration.

    Attributes:
        hello_interval: Seconds between link-state refreshes.
    """

    hello_interval: float = 2.0

    def __post_init__(self):
        if self.hello_interval <= 0:
            raise ConfigurationError(
                f"hello_interval must be positive, got {self.hello_interval}"
            )


@dataclass
class OlsrProtocol:
    """Link-state database shared by all OLSR participants.

    Every hello_interval the protocol rebuilds the connectivity graph from
    the media the participants share and recomputes each participant's
    shortest-path next hops. The message exchange that would build this view
    in a real network is not modelled.

    Attributes:
        scheduler: Scheduler the periodic refresh runs on.
        config: Protocol configuration.
        participants: Routing strategy of each participating node.
        graph: Connectivity graph from the last refresh.
        refreshes: Number of refreshes performed.
    """

    scheduler: "Scheduler"
    config: OlsrConfig = field(default_factory=OlsrConfig)
    participants: List[OlsrRouting] = field(default_factory=list)
    graph: nx.Graph = field(default_factory=nx.Graph)
    refreshes: int = 0

    def register(self, routing: OlsrRouting) -> None:
        self.participants.append(routing)

    def start(self) -> None:
        self.scheduler.schedule_with_context(None, self.config.hello_interval, self.refresh)

    def refresh(self) -> None:
        self.graph = self.build_graph()
        for routing in self.participants:
            routing.set_table(self.compute_table(routing.node))
        self.refreshes += 1
        logger.debug(
            "t=%.6fs OLSR refresh %d: %d nodes, %d links",
            self.scheduler.now,
            self.refreshes,
            self.graph.number_of_nodes(),
            self.graph.number_of_edges(),
        )
        self.scheduler.schedule(self.config.hello_interval, self.refresh)

    def build_graph(self) -> nx.Graph:
        """Connectivity graph: an edge joins two nodes that hear each other."""
        graph = nx.Graph()
        nodes = [routing.node for routing in self.participants]
        for node in nodes:
            graph.add_node(node.id, node=node)

        for i, node in enumerate(nodes):
            for other in nodes[i + 1:]:
                if self.find_link(node, other) is not None:
                    graph.add_edge(node.id, other.id)
        return graph

    @staticmethod
    def find_link(node: "Node", neighbour: "Node") -> Optional[Tuple["Device", "Device"]]:
        """First pair of devices through which the two nodes hear each other."""
        for device in node.devices:
            other = neighbour.device_on(device.medium)
            if other is None or device.address is None or other.address is None:
                continue
            medium = device.medium
            if medium.can_reach(device, other) and medium.can_reach(other, device):
                return device, other
        return None

    def compute_table(self, node: "Node") -> Dict[IPv4Address, Route]:
        """Host routes from a node to every address reachable through the graph.

        Args:
            node: Node the table is computed for.

        Returns:
            Mapping from destination address to route.
        """
        table: Dict[IPv4Address, Route] = {}
        paths = nx.single_source_shortest_path(self.graph, node.id)
        for destination_id, path in paths.items():
            if destination_id == node.id:
                continue
            hop = self.graph.nodes[path[1]]["node"]
            link = self.find_link(node, hop)
            if link is None:
                continue
            device, hop_device = link
            destination = self.graph.nodes[destination_id]["node"]
            for address in destination.addresses:
                table[address] = Route(
                    destination=IPv4Network(f"{address}/32"),
                    device=device,
                    gateway=hop_device.address,
                    metric=len(path) - 1,
                )
        return table
