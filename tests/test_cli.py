"""Tests for the command-line entry point."""

import json

import pytest

from main import build_parser, config_from_args, main


def test_default_run_prints_single_throughput_line(capsys):
    assert main([]) == 0

    out = capsys.readouterr().out
    assert out.splitlines() == ["Total Throughput: 0 Mbps"]


def test_bridged_run_reports_measured_throughput(capsys):
    assert main(["--gateway", "1"]) == 0

    assert capsys.readouterr().out.strip() == "Total Throughput: 0.0030944 Mbps"


def test_equals_syntax_is_accepted(capsys):
    assert main(["--numPackets=0", "--packetSize=500", "--interval=1.5"]) == 0

    assert capsys.readouterr().out.strip() == "Total Throughput: 0 Mbps"


def test_options_map_onto_config():
    args = build_parser().parse_args(
        [
            "--phyMode", "DsssRate2Mbps",
            "--rss", "-80",
            "--packetSize", "512",
            "--numPackets", "7",
            "--interval", "0.25",
            "--numOlsrNodes", "9",
        ]
    )

    config = config_from_args(args)

    assert config.phy_mode == "DsssRate2Mbps"
    assert config.rss == -80.0
    assert config.packet_size == 512
    assert config.num_packets == 7
    assert config.interval == 0.25
    assert config.num_olsr_nodes == 9
    assert config.gateway is None


def test_unknown_flag_is_a_usage_error(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--bogus", "1"])

    assert excinfo.value.code != 0
    assert "usage" in capsys.readouterr().err


def test_abbreviated_flag_is_rejected():
    with pytest.raises(SystemExit) as excinfo:
        main(["--numP", "3"])

    assert excinfo.value.code != 0


def test_non_numeric_value_is_a_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["--packetSize", "big"])

    assert excinfo.value.code != 0


@pytest.mark.parametrize(
    "argv",
    [
        ["--packetSize", "0"],
        ["--numPackets", "-1"],
        ["--interval", "0"],
        ["--interval", "nan"],
        ["--interval", "inf", "--gateway", "1"],
        ["--rss", "nan"],
        ["--numOlsrNodes", "0"],
        ["--phyMode", "Unknown"],
        ["--gateway", "7"],
    ],
)
def test_invalid_values_exit_before_running(argv, capsys):
    assert main(argv) == 1

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error" in captured.err


def test_metrics_written_to_json(tmp_path, capsys):
    output = tmp_path / "out" / "metrics.json"

    assert main(["--gateway", "1", "--output", str(output)]) == 0

    metrics = json.loads(output.read_text())
    assert metrics["packets_sent"] == 2
    assert metrics["packets_received"] == 2
