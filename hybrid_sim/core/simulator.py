"""Network simulator class for the hybrid throughput measurement.

This module defines the NetworkSimulator class, which builds the hybrid
wireless/wired network, sets up one UDP flow from the first wireless node to
a sink on the first wired node, runs the scheduler up to the stop time and
reports the measured throughput.
"""

from dataclasses import dataclass
import logging
import math
from typing import Any, Dict, Optional

from hybrid_sim.core.errors import ConfigurationError
from hybrid_sim.core.medium import PHY_MODES, WiredConfig, WirelessConfig
from hybrid_sim.core.scheduler import Scheduler
from hybrid_sim.core.sockets import UdpSocket, create_socket
from hybrid_sim.core.topology import Topology, TopologyConfig, build_topology
from hybrid_sim.traffic.generators import TrafficGenerator
from hybrid_sim.traffic.sink import DeliverySink
from hybrid_sim.utils.metrics import Counters, calculate_metrics

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """
    Simulation parameters.

    Attributes:
        phy_mode: Wireless modulation profile.
        rss: Received signal strength in dBm.
        packet_size: Application payload size in bytes.
        num_packets: Number of packets generated.
        interval: Seconds between packets.
        num_olsr_nodes: Number of wireless nodes.
        num_csma_nodes: Number of wired nodes.
        gateway: Wireless node index that also attaches to the wire, or None.
        port: UDP port of the sink.
        start_time: Virtual time of the first send.
        stop_time: Virtual time at which the run halts.
    """

    phy_mode: str = "DsssRate1Mbps"
    rss: float = -67.0
    packet_size: int = 967
    num_packets: int = 2
    interval: float = 2.0
    num_olsr_nodes: int = 5
    num_csma_nodes: int = 2
    gateway: Optional[int] = None
    port: int = 80
    start_time: float = 15.0
    stop_time: float = 20.0

    def __post_init__(self):
        """Validate simulation parameters."""
        if self.phy_mode not in PHY_MODES:
            raise ConfigurationError(
                f"Unknown phyMode {self.phy_mode!r}, expected one of {sorted(PHY_MODES)}"
            )
        if not math.isfinite(self.rss):
            raise ConfigurationError(f"rss must be a finite dBm value, got {self.rss}")
        if self.packet_size <= 0:
            raise ConfigurationError(f"packetSize must be positive, got {self.packet_size}")
        if self.num_packets < 0:
            raise ConfigurationError(f"numPackets must be non-negative, got {self.num_packets}")
        if not math.isfinite(self.interval) or self.interval <= 0:
            raise ConfigurationError(f"interval must be positive, got {self.interval}")
        if self.num_olsr_nodes <= 0:
            raise ConfigurationError(
                f"numOlsrNodes must be positive, got {self.num_olsr_nodes}"
            )
        if self.start_time < 0:
            raise ConfigurationError(f"start_time must be non-negative, got {self.start_time}")
        if self.stop_time <= self.start_time:
            raise ConfigurationError(
                f"stop_time ({self.stop_time}) must be after start_time ({self.start_time})"
            )

    @property
    def observation_window(self) -> float:
        return self.stop_time - self.start_time

    def topology_config(self) -> TopologyConfig:
        return TopologyConfig(
            num_wireless_nodes=self.num_olsr_nodes,
            num_wired_nodes=self.num_csma_nodes,
            wireless=WirelessConfig(phy_mode=self.phy_mode, rss=self.rss),
            wired=WiredConfig(),
            gateway=self.gateway,
        )


class NetworkSimulator:
    """Hybrid network simulation environment.

    Attributes:
        config: Simulation parameters.
        scheduler: Event scheduler of the run.
        counters: Packet counters of the run.
        topology: Built network, after setup().
        source: Socket the generator sends on, after setup().
        sink: Socket the delivery sink listens on, after setup().
        generator: Traffic generator, after setup().
        metrics: Metrics of the last run.
    """

    def __init__(self, config: SimulationConfig, scheduler: Optional[Scheduler] = None) -> None:
        self.config = config
        self.scheduler = scheduler or Scheduler()
        self.counters = Counters()
        self.topology: Optional[Topology] = None
        self.source: Optional[UdpSocket] = None
        self.sink: Optional[UdpSocket] = None
        self.generator: Optional[TrafficGenerator] = None
        self.metrics: Dict[str, Any] = {}

    def setup(self) -> None:
        """Build the network and schedule the flow.

        Raises:
            ConfigurationError: If the topology or flow parameters are invalid.
        """
        self.topology = build_topology(self.scheduler, self.config.topology_config())

        sink_node = self.topology.wired_nodes[0]
        self.sink = create_socket(sink_node)
        self.sink.bind(self.config.port)
        self.sink.set_recv_callback(DeliverySink(self.counters))

        source_node = self.topology.wireless_nodes[0]
        self.source = create_socket(source_node)
        self.source.connect(sink_node.addresses[0], self.config.port)

        self.generator = TrafficGenerator(
            self.scheduler,
            self.source,
            self.config.packet_size,
            self.config.num_packets,
            self.config.interval,
            self.counters,
        )
        self.generator.start(self.config.start_time, context=source_node.id)
        logger.info(
            "Flow %s:%d -> %s:%d, %d x %d bytes every %.3fs from t=%.3fs",
            source_node.addresses[0],
            self.source.port,
            sink_node.addresses[0],
            self.config.port,
            self.config.num_packets,
            self.config.packet_size,
            self.config.interval,
            self.config.start_time,
        )

    def run(self) -> Dict[str, Any]:
        """Run the simulation until the stop time and compute its metrics.

        Returns:
            Dictionary of calculated metrics.

        Raises:
            SchedulerFatalError: If a scheduled callback fails.
        """
        if self.topology is None:
            self.setup()

        self.scheduler.run(self.config.stop_time)
        return self.calculate_metrics()

    def calculate_metrics(self) -> Dict[str, Any]:
        self.metrics = calculate_metrics(
            self.counters,
            self.config.packet_size,
            self.config.observation_window,
            final_time=self.scheduler.now,
            events_processed=self.scheduler.events_processed,
        )
        return self.metrics

    def destroy(self) -> None:
        """Discard every pending event and close the flow's sockets."""
        self.scheduler.destroy()
        for socket in (self.source, self.sink):
            if socket is not None:
                socket.close()
