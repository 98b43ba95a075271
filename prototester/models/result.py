"""Probe results, statistics and test output structures."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any

from ..errors import ErrorKind
from .protocol import Protocol
from .run_config import TestConfig


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single timed round trip."""
    success: bool
    latency: float = 0.0  # seconds
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    error_kind: Optional[ErrorKind] = None
    fallback: Optional[str] = None  # "tcp" when ICMP fell back to a TCP connect

    @property
    def latency_ms(self) -> float:
        return self.latency * 1000

    @classmethod
    def ok(cls, latency: float, timestamp: Optional[datetime] = None, **kwargs) -> "ProbeResult":
        return cls(success=True, latency=latency, timestamp=timestamp or datetime.now(), **kwargs)

    @classmethod
    def failed(cls, error: BaseException, timestamp: Optional[datetime] = None) -> "ProbeResult":
        kind = getattr(error, "kind", ErrorKind.NETWORK)
        return cls(
            success=False,
            error=str(error) or error.__class__.__name__,
            timestamp=timestamp or datetime.now(),
            error_kind=kind,
        )


@dataclass
class Statistics:
    """Aggregated statistics for a sequence of probe results."""
    sent: int = 0
    received: int = 0
    lost: int = 0

    # Durations (seconds)
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0
    stddev: float = 0.0
    jitter: float = 0.0

    latencies: List[float] = field(default_factory=list)  # sorted ascending
    success_rate: float = 0.0  # percent

    @property
    def min_ms(self) -> float:
        return self.min * 1000

    @property
    def max_ms(self) -> float:
        return self.max * 1000

    @property
    def avg_ms(self) -> float:
        return self.avg * 1000

    @property
    def stddev_ms(self) -> float:
        return self.stddev * 1000

    @property
    def jitter_ms(self) -> float:
        return self.jitter * 1000

    @property
    def loss_rate(self) -> float:
        """Lost probes as a percentage of sent."""
        if self.sent == 0:
            return 0.0
        return self.lost / self.sent * 100

    def percentile(self, p: float) -> float:
        """Latency percentile in seconds (e.g., p=95)."""
        from ..analysis.statistics import percentile
        return percentile(p, self.latencies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sent": self.sent,
            "received": self.received,
            "lost": self.lost,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "avg_ms": self.avg_ms,
            "stddev_ms": self.stddev_ms,
            "jitter_ms": self.jitter_ms,
            "p50_ms": self.percentile(50) * 1000,
            "p95_ms": self.percentile(95) * 1000,
            "p99_ms": self.percentile(99) * 1000,
            "success_rate": self.success_rate,
        }


@dataclass
class FamilyPair:
    """IPv4 and IPv6 statistics for one protocol."""
    ipv4: Statistics
    ipv6: Statistics


@dataclass
class ComparisonResult:
    """IPv4 vs IPv6 comparison for a dual-stack hostname."""
    hostname: str
    port: int
    protocol: str
    resolved_ipv4: str
    resolved_ipv6: str
    stats: Dict[Protocol, FamilyPair] = field(default_factory=dict)
    ipv4_score: float = 0.0
    ipv6_score: float = 0.0
    winner: str = "Tie"
    dns_query: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def percent_better(self) -> float:
        """How much better the winner scored, relative to the loser."""
        from ..analysis.comparator import percent_better
        return percent_better(self.ipv4_score, self.ipv6_score)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "hostname": self.hostname,
            "port": self.port,
            "protocol": self.protocol,
            "resolved_ipv4": self.resolved_ipv4,
            "resolved_ipv6": self.resolved_ipv6,
            "ipv4_score": self.ipv4_score,
            "ipv6_score": self.ipv6_score,
            "winner": self.winner,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.dns_query:
            data["dns_query"] = self.dns_query
        for protocol, pair in self.stats.items():
            name = protocol.value.lower()
            data[f"{name}_v4_stats"] = pair.ipv4.to_dict()
            data[f"{name}_v6_stats"] = pair.ipv6.to_dict()
        return data


@dataclass
class TestResult:
    """Complete output of a test run."""
    __test__ = False  # not a pytest test class

    mode: str
    protocol: str
    config: TestConfig
    targets: Dict[str, str] = field(default_factory=dict)
    ipv4: Optional[Statistics] = None
    ipv6: Optional[Statistics] = None
    comparison: Optional[ComparisonResult] = None
    timestamp: datetime = field(default_factory=datetime.now)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mode": self.mode,
            "protocol": self.protocol,
            "targets": dict(self.targets),
            "test_config": self.config.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.ipv4 is not None:
            data["ipv4_results"] = self.ipv4.to_dict()
        if self.ipv6 is not None:
            data["ipv6_results"] = self.ipv6.to_dict()
        if self.comparison is not None:
            data["comparison"] = self.comparison.to_dict()
        if self.error:
            data["error"] = self.error
        return data
