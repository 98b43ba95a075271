"""Sequential probe orchestration and IPv4/IPv6 comparison."""

import logging
import socket
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple, Union

from .analysis.comparator import FamilyComparator, COMPARISON_PROTOCOLS, comparison_kind
from .analysis.statistics import calculate_statistics
from .errors import ConfigError, ResolutionError
from .models.protocol import Protocol, AddressFamily, protocol_label
from .models.result import ProbeResult, Statistics, FamilyPair, ComparisonResult, TestResult
from .models.run_config import TestConfig
from .probes import Probe, PhaseConfig, SessionFactory, get_probe
from .transport.platform_adapter import SocketTransport


logger = logging.getLogger(__name__)

# IPv6 is probed before IPv4 in every phase
FAMILY_ORDER = (AddressFamily.IPV6, AddressFamily.IPV4)

Resolver = Callable[..., list]


class Reporter:
    """
    Progress sink for a test run. The default implementation ignores
    every event; the CLI passes a console-backed one.
    """

    def resolved(self, hostname: str, ipv4: str, ipv6: str) -> None:
        pass

    def phase_started(self, phase: PhaseConfig, count: int) -> None:
        pass

    def probe_finished(self, phase: PhaseConfig, sequence: int, result: ProbeResult) -> None:
        pass

    def phase_finished(self, phase: PhaseConfig, stats: Statistics) -> None:
        pass


class NullReporter(Reporter):
    """Reporter that discards all progress."""


def resolve_dual_stack(hostname: str, resolver: Resolver = socket.getaddrinfo) -> Tuple[str, str]:
    """
    Resolve hostname to its first-seen IPv4 and IPv6 addresses.

    Both families are required; a missing one raises ResolutionError.
    """
    try:
        infos = resolver(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"error resolving hostname {hostname}: {e}") from e

    ipv4 = ipv6 = ""
    for family, _type, _proto, _canonname, sockaddr in infos:
        if family == socket.AF_INET and not ipv4:
            ipv4 = sockaddr[0]
        elif family == socket.AF_INET6 and not ipv6:
            ipv6 = sockaddr[0]
        if ipv4 and ipv6:
            break

    if not ipv4 and not ipv6:
        raise ResolutionError(f"no A or AAAA records found for {hostname}")
    if not ipv4:
        raise ResolutionError(f"no IPv4 address found for {hostname} - cannot perform comparison")
    if not ipv6:
        raise ResolutionError(f"no IPv6 address found for {hostname} - cannot perform comparison")
    return ipv4, ipv6


class LatencyTester:
    """
    Runs probes one at a time and reduces them to statistics.

    Each (protocol, family) phase gets its own immutable PhaseConfig and a
    freshly cleared result list. The lists are guarded by a lock so a
    reporter may read them while a phase is running.
    """

    def __init__(
        self,
        config: TestConfig,
        transport: Optional[SocketTransport] = None,
        reporter: Optional[Reporter] = None,
        probes: Optional[Dict[Protocol, Probe]] = None,
        session_factory: Optional[SessionFactory] = None,
        resolver: Resolver = socket.getaddrinfo,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config.validate()
        self.transport = transport
        self.reporter = reporter or NullReporter()
        self.session_factory = session_factory
        self.resolver = resolver
        self.comparator = FamilyComparator()
        self._sleep = sleep

        self._probes: Dict[Protocol, Probe] = dict(probes or {})
        self._results: Dict[AddressFamily, List[ProbeResult]] = {
            AddressFamily.IPV4: [],
            AddressFamily.IPV6: [],
        }
        self._lock = threading.Lock()

    def probe_for(self, protocol: Protocol) -> Probe:
        if protocol not in self._probes:
            self._probes[protocol] = get_probe(protocol, self.transport, self.session_factory)
        return self._probes[protocol]

    def snapshot(self, family: AddressFamily) -> List[ProbeResult]:
        """Copy of the results recorded so far for a family."""
        with self._lock:
            return list(self._results[family])

    def run_phase(self, phase: PhaseConfig) -> Statistics:
        """Run count probes for one (protocol, family) pair."""
        probe = self.probe_for(phase.protocol)
        count = self.config.count

        with self._lock:
            self._results[phase.family] = []

        self.reporter.phase_started(phase, count)
        for i in range(count):
            sequence = i + 1
            result = probe.run(phase, sequence)

            with self._lock:
                self._results[phase.family].append(result)

            self.reporter.probe_finished(phase, sequence, result)

            if i < count - 1:
                self._sleep(self.config.interval)

        stats = calculate_statistics(self.snapshot(phase.family))
        logger.debug(
            "%s %s to %s: %d/%d received",
            phase.protocol.value, phase.family.label, phase.target, stats.received, stats.sent,
        )
        self.reporter.phase_finished(phase, stats)
        return stats

    def families(self) -> List[AddressFamily]:
        """Families a single-mode run covers, in probing order."""
        selected = []
        for family in FAMILY_ORDER:
            if family is AddressFamily.IPV4 and (self.config.ipv6_only or not self.config.target4):
                continue
            if family is AddressFamily.IPV6 and (self.config.ipv4_only or not self.config.target6):
                continue
            selected.append(family)
        return selected

    def run(self, protocol: Union[Protocol, str]) -> TestResult:
        """Single mode: probe the configured target of each selected family."""
        if isinstance(protocol, str):
            protocol = Protocol.from_name(protocol)

        stats: Dict[AddressFamily, Statistics] = {}
        targets: Dict[str, str] = {}
        for family in self.families():
            phase = PhaseConfig.from_test_config(self.config, protocol, family)
            targets[family.value] = phase.target
            stats[family] = self.run_phase(phase)

        return TestResult(
            mode="single",
            protocol=protocol_label(protocol, self.config.dns_protocol),
            config=self.config,
            targets=targets,
            ipv4=stats.get(AddressFamily.IPV4),
            ipv6=stats.get(AddressFamily.IPV6),
        )

    def run_tcp(self) -> TestResult:
        return self.run(Protocol.TCP)

    def run_udp(self) -> TestResult:
        return self.run(Protocol.UDP)

    def run_icmp(self) -> TestResult:
        return self.run(Protocol.ICMP)

    def run_http(self) -> TestResult:
        return self.run(Protocol.HTTP)

    def run_dns(self) -> TestResult:
        return self.run(Protocol.DNS)

    def run_compare(self, kind: str = "TCP/UDP") -> TestResult:
        """
        Comparison mode: resolve the hostname to one address per family,
        probe every protocol of the comparison kind on both, and score them.

        Raises ConfigError without a hostname and ResolutionError when the
        hostname is not dual-stack; in both cases no probe is sent.
        """
        kind = kind.upper()
        if kind not in COMPARISON_PROTOCOLS:
            valid = ", ".join(COMPARISON_PROTOCOLS)
            raise ConfigError(f"unknown comparison '{kind}'. Must be one of: {valid}")
        if not self.config.hostname:
            raise ConfigError("comparison mode requires a hostname")

        ipv4, ipv6 = resolve_dual_stack(self.config.hostname, self.resolver)
        self.reporter.resolved(self.config.hostname, ipv4, ipv6)
        addresses = {AddressFamily.IPV4: ipv4, AddressFamily.IPV6: ipv6}

        per_family: Dict[AddressFamily, Dict[Protocol, Statistics]] = {
            AddressFamily.IPV4: {},
            AddressFamily.IPV6: {},
        }
        for protocol in COMPARISON_PROTOCOLS[kind]:
            for family in FAMILY_ORDER:
                phase = PhaseConfig.from_test_config(self.config, protocol, family, target=addresses[family])
                per_family[family][protocol] = self.run_phase(phase)

        ipv4_score, ipv6_score, winner = self.comparator.compare(
            kind, per_family[AddressFamily.IPV4], per_family[AddressFamily.IPV6]
        )

        is_dns = kind == Protocol.DNS.value
        comparison = ComparisonResult(
            hostname=self.config.hostname,
            port=self.config.port,
            protocol=protocol_label(Protocol.DNS, self.config.dns_protocol) if is_dns else kind,
            resolved_ipv4=ipv4,
            resolved_ipv6=ipv6,
            stats={
                protocol: FamilyPair(
                    ipv4=per_family[AddressFamily.IPV4][protocol],
                    ipv6=per_family[AddressFamily.IPV6][protocol],
                )
                for protocol in COMPARISON_PROTOCOLS[kind]
            },
            ipv4_score=ipv4_score,
            ipv6_score=ipv6_score,
            winner=winner,
            dns_query=self.config.dns_query if is_dns else "",
        )
        logger.info(
            "Comparison %s for %s: IPv4=%.2f IPv6=%.2f winner=%s",
            kind, self.config.hostname, ipv4_score, ipv6_score, winner,
        )

        return TestResult(
            mode="compare",
            protocol=comparison.protocol,
            config=self.config,
            targets={"hostname": self.config.hostname, "ipv4": ipv4, "ipv6": ipv6},
            comparison=comparison,
        )


def execute(
    config: TestConfig,
    protocol: Union[Protocol, str] = Protocol.TCP,
    compare: bool = False,
    **kwargs,
) -> TestResult:
    """
    Run a test and always return a TestResult.

    Configuration-level failures (invalid settings, missing hostname,
    resolution failure) are logged and reported on TestResult.error.
    """
    if isinstance(protocol, str):
        protocol = Protocol.from_name(protocol)

    try:
        tester = LatencyTester(config, **kwargs)
        if compare:
            return tester.run_compare(comparison_kind(protocol))
        return tester.run(protocol)
    except (ConfigError, ResolutionError) as e:
        logger.error("Test failed: %s", e)
        return TestResult(
            mode="compare" if compare else "single",
            protocol=protocol_label(protocol, config.dns_protocol),
            config=config,
            error=str(e),
        )
