"""Tests for throughput computation and metrics export."""

import json

import pytest

from hybrid_sim.core.errors import ConfigurationError
from hybrid_sim.utils.metrics import (
    Counters,
    calculate_metrics,
    compute_throughput,
    format_throughput,
    save_metrics_to_json,
)


def test_throughput_of_reference_scenario():
    counters = Counters(packets_sent=2, packets_received=2)

    throughput = compute_throughput(counters, 967, 20.0 - 15.0)

    assert throughput == pytest.approx(2 * 967 * 8 / (5.0 * 1_000_000))
    assert throughput == pytest.approx(0.0031, abs=1e-4)


def test_throughput_uses_configured_packet_size():
    counters = Counters(packets_sent=2, packets_received=2, bytes_received=10)

    assert compute_throughput(counters, 1000, 1.0) == pytest.approx(0.016)


def test_throughput_without_deliveries_is_zero():
    assert compute_throughput(Counters(packets_sent=3), 967, 5.0) == 0.0


@pytest.mark.parametrize("window", [0.0, -1.0])
def test_non_positive_window_is_rejected(window):
    with pytest.raises(ConfigurationError):
        compute_throughput(Counters(), 967, window)


def test_format_throughput():
    assert format_throughput(0.0030944) == "Total Throughput: 0.0030944 Mbps"
    assert format_throughput(0.0) == "Total Throughput: 0 Mbps"


def test_calculate_metrics():
    counters = Counters(packets_sent=4, packets_received=3, bytes_received=3 * 500)

    metrics = calculate_metrics(counters, 500, 2.0, final_time=19.0, events_processed=12)

    assert metrics["packets_sent"] == 4
    assert metrics["packets_received"] == 3
    assert metrics["delivery_ratio"] == pytest.approx(0.75)
    assert metrics["throughput_mbps"] == pytest.approx(3 * 500 * 8 / 2e6)
    assert metrics["final_time"] == 19.0
    assert metrics["events_processed"] == 12


def test_delivery_ratio_without_sends():
    assert calculate_metrics(Counters(), 100, 1.0)["delivery_ratio"] == 0.0


def test_save_metrics_to_json(tmp_path):
    filename = tmp_path / "results" / "metrics.json"
    metrics = calculate_metrics(Counters(packets_sent=1, packets_received=1), 100, 1.0)

    save_metrics_to_json(metrics, str(filename))

    assert json.loads(filename.read_text()) == metrics
