"""Orchestration and comparison tests with scripted probes."""

import socket

import pytest

from prototester.errors import ConfigError, ResolutionError
from prototester.models.protocol import AddressFamily, Protocol
from prototester.models.result import ProbeResult
from prototester.models.run_config import TestConfig
from prototester.probes import Probe
from prototester.tester import LatencyTester, Reporter, execute, resolve_dual_stack
from prototester.transport import UnixTransport


class FakeProbe(Probe):
    """Returns a fixed latency per family and records every call."""

    def __init__(self, protocol, calls, latencies=None):
        super().__init__(UnixTransport())
        self.protocol = protocol
        self.calls = calls
        self.latencies = latencies or {}

    def probe(self, phase, sequence):
        self.calls.append((phase.protocol, phase.family, phase.target, sequence))
        latency = self.latencies.get(phase.family, 0.010)
        if latency is None:
            return ProbeResult(success=False, error="timeout")
        return ProbeResult.ok(latency)


def dual_stack(ipv4="192.0.2.10", ipv6="2001:db8::10"):
    def resolver(host, port, family, type_):
        return [
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", (ipv6, 0, 0, 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", (ipv4, 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.99", 0)),
        ]
    return resolver


def ipv4_only_resolver(host, port, family, type_):
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("192.0.2.10", 0))]


def make_tester(config, latencies=None, resolver=None, reporter=None):
    calls, sleeps = [], []
    probes = {p: FakeProbe(p, calls, latencies) for p in Protocol}
    tester = LatencyTester(
        config,
        transport=UnixTransport(),
        reporter=reporter,
        probes=probes,
        resolver=resolver or dual_stack(),
        sleep=sleeps.append,
    )
    return tester, calls, sleeps


def test_single_mode_probes_ipv6_first():
    config = TestConfig(target4="192.0.2.1", target6="2001:db8::1", count=3, interval=0.5)
    tester, calls, sleeps = make_tester(config)

    result = tester.run(Protocol.TCP)

    assert [c[1] for c in calls] == [AddressFamily.IPV6] * 3 + [AddressFamily.IPV4] * 3
    assert [c[3] for c in calls[:3]] == [1, 2, 3]
    assert sleeps == [0.5, 0.5, 0.5, 0.5]
    assert result.mode == "single"
    assert result.protocol == "TCP"
    assert result.ipv4.sent == result.ipv6.sent == 3
    assert result.targets == {"ipv4": "192.0.2.1", "ipv6": "2001:db8::1"}


def test_single_probe_does_not_sleep():
    tester, calls, sleeps = make_tester(TestConfig(count=1, ipv4_only=True))
    tester.run("udp")
    assert len(calls) == 1
    assert sleeps == []


def test_family_selection():
    tester, calls, _ = make_tester(TestConfig(count=2, ipv4_only=True))
    result = tester.run(Protocol.ICMP)
    assert {c[1] for c in calls} == {AddressFamily.IPV4}
    assert result.ipv6 is None

    tester, calls, _ = make_tester(TestConfig(count=2, target6=""))
    tester.run(Protocol.ICMP)
    assert {c[1] for c in calls} == {AddressFamily.IPV4}

    tester, calls, _ = make_tester(TestConfig(count=2, ipv6_only=True))
    assert tester.families() == [AddressFamily.IPV6]


def test_protocol_shortcuts_and_labels():
    tester, _, _ = make_tester(TestConfig(count=1, dns_protocol="doh"))
    assert tester.run_dns().protocol == "DNS-DOH"
    assert tester.run_http().protocol == "HTTP/HTTPS"
    assert tester.run_tcp().protocol == "TCP"
    assert tester.run_udp().protocol == "UDP"
    assert tester.run_icmp().protocol == "ICMP"


class SnapshotReporter(Reporter):
    def __init__(self):
        self.tester = None
        self.sizes = []
        self.phases = []

    def phase_started(self, phase, count):
        self.phases.append((phase.protocol, phase.family))
        self.sizes.append(len(self.tester.snapshot(phase.family)))

    def probe_finished(self, phase, sequence, result):
        self.sizes.append(len(self.tester.snapshot(phase.family)))


def test_results_grow_during_phase_and_reset_between_phases():
    reporter = SnapshotReporter()
    tester, _, _ = make_tester(TestConfig(count=3, ipv4_only=True), reporter=reporter)
    reporter.tester = tester

    tester.run(Protocol.TCP)
    tester.run(Protocol.TCP)

    assert reporter.sizes == [0, 1, 2, 3, 0, 1, 2, 3]


def test_compare_requires_hostname_before_probing():
    tester, calls, _ = make_tester(TestConfig(count=2))
    with pytest.raises(ConfigError, match="hostname"):
        tester.run_compare()
    assert calls == []


def test_compare_requires_dual_stack_before_probing():
    tester, calls, _ = make_tester(TestConfig(hostname="v4only.example", count=2), resolver=ipv4_only_resolver)
    with pytest.raises(ResolutionError, match="no IPv6 address found for v4only.example"):
        tester.run_compare()
    assert calls == []


def test_compare_unknown_kind():
    tester, _, _ = make_tester(TestConfig(hostname="dual.example"))
    with pytest.raises(ConfigError, match="unknown comparison"):
        tester.run_compare("SCTP")


def test_tcp_udp_comparison():
    config = TestConfig(hostname="dual.example", count=2, interval=0)
    latencies = {AddressFamily.IPV4: 0.020, AddressFamily.IPV6: 0.010}
    tester, calls, _ = make_tester(config, latencies=latencies)

    result = tester.run_compare("tcp/udp")

    phases = []
    for protocol, family, target, _seq in calls:
        if (protocol, family, target) not in phases:
            phases.append((protocol, family, target))
    assert phases == [
        (Protocol.TCP, AddressFamily.IPV6, "2001:db8::10"),
        (Protocol.TCP, AddressFamily.IPV4, "192.0.2.10"),
        (Protocol.UDP, AddressFamily.IPV6, "2001:db8::10"),
        (Protocol.UDP, AddressFamily.IPV4, "192.0.2.10"),
    ]

    comparison = result.comparison
    assert result.mode == "compare"
    assert result.targets == {"hostname": "dual.example", "ipv4": "192.0.2.10", "ipv6": "2001:db8::10"}
    assert comparison.protocol == "TCP/UDP"
    assert set(comparison.stats) == {Protocol.TCP, Protocol.UDP}
    assert comparison.ipv6_score == pytest.approx(100.0)
    assert comparison.ipv4_score == pytest.approx(50.0)
    assert comparison.winner == "IPv6"
    assert comparison.percent_better == pytest.approx(100.0)


def test_compare_uses_configured_count():
    tester, calls, _ = make_tester(TestConfig(hostname="dual.example", count=4))
    tester.run_compare("ICMP")
    assert len(calls) == 8


def test_dns_comparison_label_and_query():
    config = TestConfig(hostname="dual.example", count=1, dns_query="example.org")
    tester, _, _ = make_tester(config)

    comparison = tester.run_compare("DNS").comparison

    assert comparison.protocol == "DNS-UDP"
    assert comparison.dns_query == "example.org"
    assert comparison.winner == "Tie"


def test_comparison_with_failing_family():
    latencies = {AddressFamily.IPV4: 0.010, AddressFamily.IPV6: None}
    tester, _, _ = make_tester(TestConfig(hostname="dual.example", count=2), latencies=latencies)

    comparison = tester.run_compare("HTTP").comparison

    assert comparison.ipv6_score == 0.0
    assert comparison.winner == "IPv4"
    assert comparison.stats[Protocol.HTTP].ipv6.received == 0


def test_refused_tcp_phase_gives_zeroed_statistics(closed_port):
    config = TestConfig(target4="127.0.0.1", port=closed_port, count=10, interval=0, timeout=1, ipv4_only=True)
    tester = LatencyTester(config, transport=UnixTransport(), sleep=lambda seconds: None)

    stats = tester.run(Protocol.TCP).ipv4

    assert (stats.sent, stats.received, stats.lost) == (10, 0, 10)
    assert stats.success_rate == 0.0
    assert stats.min == stats.avg == stats.max == stats.stddev == stats.jitter == 0.0


def test_invalid_config_rejected_on_construction():
    with pytest.raises(ConfigError):
        LatencyTester(TestConfig(count=0))


def test_execute_reports_errors_on_result():
    result = execute(TestConfig(count=1), Protocol.TCP, compare=True)
    assert result.mode == "compare"
    assert not result.ok
    assert "hostname" in result.error

    result = execute(
        TestConfig(hostname="v4only.example", count=1),
        "icmp",
        compare=True,
        resolver=ipv4_only_resolver,
    )
    assert "no IPv6 address" in result.error


def test_execute_runs_single_mode():
    calls = []
    probes = {Protocol.TCP: FakeProbe(Protocol.TCP, calls)}
    result = execute(TestConfig(count=2, interval=0), "tcp", probes=probes, sleep=lambda s: None)

    assert result.ok
    assert len(calls) == 4


def test_resolve_dual_stack_picks_first_of_each_family():
    assert resolve_dual_stack("dual.example", dual_stack()) == ("192.0.2.10", "2001:db8::10")


def test_resolve_dual_stack_errors():
    with pytest.raises(ResolutionError, match="no IPv6"):
        resolve_dual_stack("a.example", ipv4_only_resolver)

    def ipv6_only(host, port, family, type_):
        return [(socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:db8::1", 0, 0, 0))]

    with pytest.raises(ResolutionError, match="no IPv4"):
        resolve_dual_stack("b.example", ipv6_only)

    with pytest.raises(ResolutionError, match="no A or AAAA"):
        resolve_dual_stack("c.example", lambda *args: [])

    def failing(*args):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    with pytest.raises(ResolutionError, match="error resolving hostname"):
        resolve_dual_stack("d.example", failing)


@pytest.mark.parametrize("hostname", ["a..com", "a" * 70 + ".com"])
def test_resolve_dual_stack_rejects_malformed_hostname(hostname):
    with pytest.raises(ResolutionError, match="error resolving hostname"):
        resolve_dual_stack(hostname)
