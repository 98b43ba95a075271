"""Command-line interface tests."""

import json

import pytest

from prototester import cli
from prototester.errors import ResolutionError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    # Keep any real prototester.yaml out of the tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_parser_common_flags():
    args = cli.build_parser().parse_args([
        "dns", "-4", "1.1.1.1", "-p", "853", "-c", "5", "-i", "250ms", "--timeout", "2s",
        "--dns-protocol", "dot", "--dns-query", "example.com", "--4only", "--json",
    ])

    assert args.command == "dns"
    assert args.target4 == "1.1.1.1"
    assert args.port == 853
    assert args.count == 5
    assert args.interval == pytest.approx(0.25)
    assert args.timeout == 2.0
    assert args.dns_protocol == "dot"
    assert args.ipv4_only is True
    assert args.json is True


def test_parser_compare():
    args = cli.build_parser().parse_args(["compare", "dual.example", "--protocol", "icmp"])
    assert args.hostname == "dual.example"
    assert args.protocol == "icmp"
    assert cli.build_parser().parse_args(["compare", "dual.example"]).protocol == "tcp"


def test_parser_rejects_bad_duration():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["tcp", "-i", "soon"])


def test_tcp_run_writes_json_report(tcp_listener, tmp_path):
    output = tmp_path / "out" / "report.json"
    (tmp_path / "out").mkdir()

    code = cli.main([
        "tcp", "-4", "127.0.0.1", "-p", str(tcp_listener), "-c", "2", "-i", "0",
        "--json", "-o", str(output),
    ])

    assert code == 0
    data = json.loads(output.read_text())
    assert data["mode"] == "single"
    assert data["protocol"] == "TCP"
    assert data["targets"] == {"ipv4": "127.0.0.1"}
    assert data["ipv4_results"]["received"] == 2
    assert "ipv6_results" not in data


def test_output_directory_gets_timestamped_file(tcp_listener, tmp_path):
    code = cli.main(["tcp", "-4", "127.0.0.1", "-p", str(tcp_listener), "-c", "1", "-o", str(tmp_path)])
    assert code == 0
    assert len(list(tmp_path.glob("single_*.json"))) == 1


def test_no_command_prints_help():
    assert cli.main([]) == 2


def test_invalid_count_is_config_error():
    assert cli.main(["tcp", "-c", "0"]) == 2


def test_missing_config_file_is_config_error(tmp_path):
    assert cli.main(["tcp", "--config", str(tmp_path / "nope.yaml")]) == 2


def test_compare_resolution_failure(monkeypatch):
    class FailingTester:
        def __init__(self, config, reporter=None):
            pass

        def run_compare(self, kind):
            raise ResolutionError("no IPv6 address found for v4only.example - cannot perform comparison")

    monkeypatch.setattr(cli, "LatencyTester", FailingTester)
    assert cli.main(["compare", "v4only.example"]) == 1


def config_for(argv):
    args = cli.build_parser().parse_args(argv)
    return cli.build_test_config(args, cli.ProtoTesterConfig(), getattr(args, "hostname", ""))


def test_single_custom_target_restricts_family():
    assert config_for(["tcp", "-6", "::1"]).ipv6_only
    assert config_for(["tcp", "-4", "127.0.0.1"]).ipv4_only

    both = config_for(["tcp", "-4", "127.0.0.1", "-6", "::1"])
    assert not both.ipv4_only and not both.ipv6_only

    default = config_for(["tcp", "-4", "8.8.8.8"])
    assert not default.ipv4_only


def test_compare_keeps_both_families():
    config = config_for(["compare", "dual.example", "-4", "127.0.0.1"])
    assert config.hostname == "dual.example"
    assert not config.ipv4_only
