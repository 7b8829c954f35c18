"""Tests for the routing strategies."""

from ipaddress import IPv4Address, IPv4Network

from hybrid_sim.core.routing_algorithms import Route, Router, RoutingList, StaticRouting


class FixedRouter(Router):
    """Resolves every destination to the same route, or declines all."""

    def __init__(self, name, route=None):
        super().__init__()
        self.name = name
        self.route = route
        self.calls = 0

    def resolve(self, destination):
        self.calls += 1
        return self.route


def make_route(tag):
    return Route(IPv4Network("0.0.0.0/0"), device=tag)


def test_lower_priority_value_is_consulted_first():
    routing = RoutingList()
    proactive = FixedRouter("proactive", make_route("proactive"))
    static = FixedRouter("static", make_route("static"))
    routing.add(proactive, 10)
    routing.add(static, 0)

    route = routing.resolve(IPv4Address("10.1.2.1"))

    assert route.device == "static"
    assert proactive.calls == 0


def test_declining_strategy_defers_to_next():
    routing = RoutingList()
    static = FixedRouter("static")
    proactive = FixedRouter("proactive", make_route("proactive"))
    routing.add(static, 0)
    routing.add(proactive, 10)

    assert routing.resolve(IPv4Address("10.1.2.1")).device == "proactive"
    assert static.calls == 1


def test_no_strategy_resolves():
    routing = RoutingList()
    routing.add(FixedRouter("a"), 0)
    routing.add(FixedRouter("b"), 10)

    assert routing.resolve(IPv4Address("10.9.9.9")) is None


def test_get_returns_strategy_by_type():
    routing = RoutingList()
    static = StaticRouting()
    routing.add(static, 0)

    assert routing.get(StaticRouting) is static
    assert routing.get(FixedRouter) is None


def test_static_routing_longest_prefix_match():
    static = StaticRouting()
    static.add_network_route(IPv4Network("10.1.0.0/16"), "wide", IPv4Address("10.1.1.254"))
    static.add_network_route(IPv4Network("10.1.2.0/24"), "narrow")
    static.add_host_route(IPv4Address("10.1.2.7"), "host", IPv4Address("10.1.2.1"))

    assert static.resolve(IPv4Address("10.1.3.1")).device == "wide"
    assert static.resolve(IPv4Address("10.1.2.1")).device == "narrow"
    assert static.resolve(IPv4Address("10.1.2.7")).device == "host"
    assert static.resolve(IPv4Address("192.168.0.1")) is None


def test_static_routing_prefers_lower_metric_on_equal_prefix():
    static = StaticRouting()
    static.add_network_route(IPv4Network("10.1.2.0/24"), "slow", metric=5)
    static.add_network_route(IPv4Network("10.1.2.0/24"), "fast", metric=1)

    assert static.resolve(IPv4Address("10.1.2.9")).device == "fast"


def test_route_next_hop():
    on_link = Route(IPv4Network("10.1.2.0/24"), device="d")
    via = Route(IPv4Network("10.1.2.0/24"), device="d", gateway=IPv4Address("10.1.1.3"))
    destination = IPv4Address("10.1.2.1")

    assert on_link.next_hop(destination) == destination
    assert via.next_hop(destination) == IPv4Address("10.1.1.3")
