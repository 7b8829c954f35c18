#!/usr/bin/env python3
"""Measure UDP throughput across a hybrid OLSR wireless / CSMA wired network.

Builds the network, sends numPackets packets from the first wireless node to a
sink on the first wired node starting at t=15s, stops the simulation at t=20s
and prints the measured throughput.
"""

import argparse
import logging
import sys
from typing import List, Optional

from hybrid_sim.core.errors import ConfigurationError, SchedulerFatalError
from hybrid_sim.core.simulator import NetworkSimulator, SimulationConfig
from hybrid_sim.utils.metrics import format_throughput, save_metrics_to_json

logger = logging.getLogger("hybrid_sim")


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = argparse.ArgumentParser(
        description="OLSR/CSMA hybrid network throughput simulation",
        allow_abbrev=False,
    )
    parser.add_argument("--phyMode", default="DsssRate1Mbps", help="Wifi Phy mode")
    parser.add_argument("--rss", type=float, default=-67.0, help="received signal strength (dBm)")
    parser.add_argument(
        "--packetSize", type=int, default=967, help="size of application packet sent (bytes)"
    )
    parser.add_argument("--numPackets", type=int, default=2, help="number of packets generated")
    parser.add_argument(
        "--interval", type=float, default=2.0, help="interval (seconds) between packets"
    )
    parser.add_argument("--numOlsrNodes", type=int, default=5, help="Number of OLSR nodes")
    parser.add_argument(
        "--gateway",
        type=int,
        default=None,
        help="index of an OLSR node that is also attached to the CSMA segment",
    )
    parser.add_argument("--output", default=None, help="write metrics to this JSON file")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="-v for info, -vv for debug logs"
    )
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    return SimulationConfig(
        phy_mode=args.phyMode,
        rss=args.rss,
        packet_size=args.packetSize,
        num_packets=args.numPackets,
        interval=args.interval,
        num_olsr_nodes=args.numOlsrNodes,
        gateway=args.gateway,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the simulation"""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = config_from_args(args)
        simulator = NetworkSimulator(config)
        simulator.setup()
    except ConfigurationError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return 1

    try:
        metrics = simulator.run()
    except SchedulerFatalError as exc:
        logger.error("Simulation aborted: %s", exc)
        simulator.destroy()
        return 1

    print(format_throughput(metrics["throughput_mbps"]))
    simulator.destroy()

    if args.output:
        save_metrics_to_json(metrics, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
