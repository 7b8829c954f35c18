"""Traffic generators for network simulation.

This module provides the constant bit rate generator that drives the
measured flow: a bounded number of fixed-size packets sent at a fixed
interval, one scheduled event per packet.
"""

import logging
import math
from typing import Optional

from hybrid_sim.core.enums import GeneratorState
from hybrid_sim.core.errors import ConfigurationError
from hybrid_sim.core.scheduler import EventHandle, Scheduler
from hybrid_sim.core.sockets import UdpSocket
from hybrid_sim.utils.metrics import Counters

logger = logging.getLogger(__name__)


class TrafficGenerator:
    """Self-rescheduling packet source.

    The generator is a two-state machine. While SENDING, each step sends one
    packet and schedules the next step with one fewer packet remaining. The
    step that finds nothing remaining closes the socket and moves to CLOSED,
    after which nothing more is scheduled.

    Attributes:
        scheduler: Scheduler the steps run on.
        socket: Connected socket packets are sent on.
        packet_size: Payload size in bytes.
        remaining: Packets still to be sent.
        interval: Seconds between consecutive steps.
        counters: Counters of the current run.
        state: Current state.
        next_event: Handle of the next scheduled step, if any.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        socket: UdpSocket,
        packet_size: int,
        count: int,
        interval: float,
        counters: Counters,
    ) -> None:
        """Initialize the generator.

        Args:
            scheduler: Scheduler the steps run on.
            socket: Connected socket packets are sent on.
            packet_size: Payload size in bytes.
            count: Number of packets to send.
            interval: Seconds between consecutive packets.
            counters: Counters of the current run.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        if packet_size <= 0:
            raise ConfigurationError(f"packet_size must be positive, got {packet_size}")
        if count < 0:
            raise ConfigurationError(f"count must be non-negative, got {count}")
        if not math.isfinite(interval) or interval < 0:
            raise ConfigurationError(f"interval must be non-negative, got {interval}")

        self.scheduler = scheduler
        self.socket = socket
        self.packet_size = packet_size
        self.remaining = count
        self.interval = interval
        self.counters = counters
        self.state = GeneratorState.SENDING
        self.next_event: Optional[EventHandle] = None

    def start(self, delay: float, context: Optional[int] = None) -> EventHandle:
        """Schedule the first step.

        Args:
            delay: Seconds from now until the first step.
            context: Execution context for the chain, usually the source node id.

        Returns:
            Handle of the first step.
        """
        self.next_event = self.scheduler.schedule_with_context(context, delay, self.step)
        return self.next_event

    def step(self) -> None:
        """Send one packet and reschedule, or close the socket when done."""
        if self.state is GeneratorState.CLOSED:
            return

        if self.remaining > 0:
            self.socket.send(self.packet_size)
            self.counters.packets_sent += 1
            self.remaining -= 1
            logger.debug(
                "t=%.6fs sent packet %d, %d remaining",
                self.scheduler.now,
                self.counters.packets_sent,
                self.remaining,
            )
            self.next_event = self.scheduler.schedule(self.interval, self.step)
        else:
            self.socket.close()
            self.state = GeneratorState.CLOSED
            self.next_event = None
            logger.debug("t=%.6fs generator closed its socket", self.scheduler.now)

    def stop(self) -> None:
        """Cancel the pending step and close the socket."""
        if self.next_event is not None:
            self.scheduler.cancel(self.next_event)
            self.next_event = None
        if self.state is not GeneratorState.CLOSED:
            self.socket.close()
            self.state = GeneratorState.CLOSED

    @property
    def closed(self) -> bool:
        return self.state is GeneratorState.CLOSED


def generate_traffic(
    scheduler: Scheduler,
    socket: UdpSocket,
    packet_size: int,
    count: int,
    interval: float,
    counters: Counters,
) -> TrafficGenerator:
    """Run one generator step now and let it reschedule itself.

    Args:
        scheduler: Scheduler the steps run on.
        socket: Connected socket packets are sent on.
        packet_size: Payload size in bytes.
        count: Number of packets to send.
        interval: Seconds between consecutive packets.
        counters: Counters of the current run.

    Returns:
        The generator driving the chain.
    """
    generator = TrafficGenerator(scheduler, socket, packet_size, count, interval, counters)
    generator.step()
    return generator
