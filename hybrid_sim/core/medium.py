"""Transmission media for network simulation.

This module defines the shared media devices attach to: an ad hoc wireless
channel and a CSMA wire. A medium accepts a frame from a sending device,
returns immediately, and schedules delivery to the next-hop device once the
frame has been serialized and propagated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from ipaddress import IPv4Address
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np

from hybrid_sim.core.enums import MediumKind
from hybrid_sim.core.errors import ConfigurationError
from hybrid_sim.core.packet import Packet
from hybrid_sim.core.scheduler import Scheduler

if TYPE_CHECKING:
    from hybrid_sim.core.node import Device

logger = logging.getLogger(__name__)

SPEED_OF_LIGHT = 299792458.0  # m/s

# 802.11b DSSS/CCK modes, bits per second
PHY_MODES: Dict[str, float] = {
    "DsssRate1Mbps": 1e6,
    "DsssRate2Mbps": 2e6,
    "DsssRate5_5Mbps": 5.5e6,
    "DsssRate11Mbps": 11e6,
}


@dataclass
class WirelessConfig:
    """Wireless channel configuration.

    Attributes:
        phy_mode: 802.11b modulation profile, one of PHY_MODES.
        rss: Fixed received signal strength in dBm for every frame.
        rx_sensitivity: Weakest signal in dBm the receivers can decode.
    """

    phy_mode: str = "DsssRate1Mbps"
    rss: float = -67.0
    rx_sensitivity: float = -101.0

    def __post_init__(self):
        if self.phy_mode not in PHY_MODES:
            raise ConfigurationError(
                f"Unknown phyMode {self.phy_mode!r}, expected one of {sorted(PHY_MODES)}"
            )

    @property
    def data_rate(self) -> float:
        return PHY_MODES[self.phy_mode]


@dataclass
class WiredConfig:
    """CSMA channel configuration.

    Attributes:
        data_rate: Channel capacity in bits per second.
        delay: Propagation delay in seconds.
    """

    data_rate: float = 5e6
    delay: float = 0.002

    def __post_init__(self):
        if self.data_rate <= 0:
            raise ConfigurationError(f"data_rate must be positive, got {self.data_rate}")
        if self.delay < 0:
            raise ConfigurationError(f"delay must be non-negative, got {self.delay}")


class Medium(ABC):
    """Shared transmission context between devices.

    Attributes:
        scheduler: Scheduler delivery events are placed on.
        name: Human readable name.
        devices: Attached devices in attachment order.
        busy_until: Time at which the current transmission ends.
        frames_sent: Frames accepted for transmission.
        frames_delivered: Frames handed to a receiving device.
        frames_lost: Frames that reached no device.
        bytes_sent: Bytes accepted for transmission, headers included.
    """

    kind: MediumKind

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self.scheduler = scheduler
        self.name = name
        self.devices: List["Device"] = []
        self.busy_until = 0.0
        self.frames_sent = 0
        self.frames_delivered = 0
        self.frames_lost = 0
        self.bytes_sent = 0

    @property
    @abstractmethod
    def data_rate(self) -> float:
        """Channel capacity in bits per second."""

    @abstractmethod
    def propagation_delay(self, sender: "Device", receiver: "Device") -> float:
        """Propagation delay in seconds between two attached devices."""

    def can_reach(self, sender: "Device", receiver: "Device") -> bool:
        """Whether frames from sender can be decoded by receiver."""
        return True

    def attach(self, device: "Device") -> None:
        self.devices.append(device)

    def calculate_transmission_delay(self, packet_size: int) -> float:
        """Calculate transmission delay based on frame size and channel rate.

        Args:
            packet_size: Size of the frame in bytes.

        Returns:
            Transmission delay in seconds.
        """
        return (packet_size * 8) / self.data_rate

    def find_device(self, address: IPv4Address) -> Optional["Device"]:
        for device in self.devices:
            if device.address == address:
                return device
        return None

    def transmit(self, sender: "Device", packet: Packet, next_hop: IPv4Address) -> None:
        """Start transmitting a frame towards the next hop.

        Returns immediately. The frame waits for the channel to become idle,
        is serialized at the channel rate and is delivered after the
        propagation delay.

        Args:
            sender: Device transmitting the frame.
            packet: Packet carried by the frame.
            next_hop: Address of the device that should receive the frame.
        """
        now = self.scheduler.now
        start = max(now, self.busy_until)
        transmission_delay = self.calculate_transmission_delay(packet.wire_size)
        self.busy_until = start + transmission_delay
        self.frames_sent += 1
        self.bytes_sent += packet.wire_size

        receiver = self.find_device(next_hop)
        if receiver is None or receiver is sender:
            self.frames_lost += 1
            logger.debug("%s: no device with address %s, frame lost", self.name, next_hop)
            return
        if not self.can_reach(sender, receiver):
            self.frames_lost += 1
            logger.debug("%s: %s cannot decode frame from %s", self.name, receiver, sender)
            return

        delay = (start - now) + transmission_delay + self.propagation_delay(sender, receiver)
        self.scheduler.schedule_with_context(
            receiver.node.id, delay, self._deliver, receiver, packet
        )

    def _deliver(self, receiver: "Device", packet: Packet) -> None:
        self.frames_delivered += 1
        receiver.receive(packet)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name}, {self.data_rate/1000000:.1f}Mbps, {len(self.devices)} devices)"


class WirelessChannel(Medium):
    """Ad hoc wireless channel with a fixed received signal strength.

    Every frame is received at the configured strength regardless of distance;
    propagation delay follows the distance between node positions.
    """

    kind = MediumKind.WIRELESS

    def __init__(self, scheduler: Scheduler, config: WirelessConfig, name: str = "wifi") -> None:
        super().__init__(scheduler, name)
        self.config = config

    @property
    def data_rate(self) -> float:
        return self.config.data_rate

    def can_reach(self, sender: "Device", receiver: "Device") -> bool:
        return self.config.rss >= self.config.rx_sensitivity

    def propagation_delay(self, sender: "Device", receiver: "Device") -> float:
        a, b = sender.node.position, receiver.node.position
        if a is None or b is None:
            return 0.0
        return float(np.linalg.norm(a - b)) / SPEED_OF_LIGHT


class CsmaChannel(Medium):
    """Shared wire with a fixed data rate and propagation delay."""

    kind = MediumKind.WIRED

    def __init__(self, scheduler: Scheduler, config: WiredConfig, name: str = "csma") -> None:
        super().__init__(scheduler, name)
        self.config = config

    @property
    def data_rate(self) -> float:
        return self.config.data_rate

    def propagation_delay(self, sender: "Device", receiver: "Device") -> float:
        return self.config.delay
