"""Metrics utilities for network simulation.

This module provides the per-run packet counters, the throughput computation
performed once the scheduler has returned, and helpers to report and save the
resulting metrics.
"""

from dataclasses import asdict, dataclass
import json
import os
from typing import Any, Dict, Optional

from hybrid_sim.core.errors import ConfigurationError


@dataclass
class Counters:
    """Packet counters of one simulation run.

    Only scheduled callbacks mutate the counters, so they never need locking.

    Attributes:
        packets_sent: Packets handed to the source socket.
        packets_received: Packets delivered to the sink socket.
        bytes_received: Payload bytes delivered to the sink socket.
    """

    packets_sent: int = 0
    packets_received: int = 0
    bytes_received: int = 0

    def snapshot(self) -> Dict[str, int]:
        return asdict(self)


def compute_throughput(
    counters: Counters, packet_size_bytes: int, observation_window_seconds: float
) -> float:
    """Calculate application throughput in Mbps.

    The configured packet size is used rather than the received byte count.

    Args:
        counters: Final counters of the run.
        packet_size_bytes: Configured payload size.
        observation_window_seconds: Length of the measurement window.

    Returns:
        Throughput in megabits per second.

    Raises:
        ConfigurationError: If the window is not positive.
    """
    if observation_window_seconds <= 0:
        raise ConfigurationError(
            f"Observation window must be positive, got {observation_window_seconds}"
        )
    return (counters.packets_received * packet_size_bytes * 8) / (
        observation_window_seconds * 1_000_000
    )


def calculate_metrics(
    counters: Counters,
    packet_size_bytes: int,
    observation_window_seconds: float,
    final_time: Optional[float] = None,
    events_processed: Optional[int] = None,
) -> Dict[str, Any]:
    """Calculate the metrics reported at the end of a run.

    Args:
        counters: Final counters of the run.
        packet_size_bytes: Configured payload size.
        observation_window_seconds: Length of the measurement window.
        final_time: Virtual time at which the run halted.
        events_processed: Number of events the scheduler invoked.

    Returns:
        Dictionary of calculated metrics.
    """
    sent = counters.packets_sent
    metrics: Dict[str, Any] = counters.snapshot()
    metrics["delivery_ratio"] = counters.packets_received / sent if sent > 0 else 0.0
    metrics["packet_size"] = packet_size_bytes
    metrics["observation_window"] = observation_window_seconds
    metrics["throughput_mbps"] = compute_throughput(
        counters, packet_size_bytes, observation_window_seconds
    )
    if final_time is not None:
        metrics["final_time"] = final_time
    if events_processed is not None:
        metrics["events_processed"] = events_processed
    return metrics


def format_throughput(throughput_mbps: float) -> str:
    """Render the single result line printed at the end of a run."""
    return f"Total Throughput: {throughput_mbps:g} Mbps"


def save_metrics_to_json(
    metrics: Dict[str, Any], filename: str = "results/metrics.json"
) -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Dictionary of metrics to save.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filename, "w") as f:
        json.dump(metrics, f, indent=2)
