"""Test configuration value object."""

from dataclasses import dataclass, asdict
from typing import Dict, Any

from ..errors import ConfigError, DNSBuildError
from .protocol import DNSTransport


DEFAULT_TARGET4 = "8.8.8.8"
DEFAULT_TARGET6 = "2001:4860:4860::8888"
DEFAULT_DNS_QUERY = "dns-query.qosbox.com"


@dataclass(frozen=True)
class TestConfig:
    """
    Immutable input to a test run.

    Durations (interval, timeout) are in seconds. The engine never mutates
    a TestConfig; derived configurations are produced with
    dataclasses.replace().
    """
    __test__ = False  # not a pytest test class

    target4: str = DEFAULT_TARGET4
    target6: str = DEFAULT_TARGET6
    hostname: str = ""
    port: int = 53
    count: int = 10
    interval: float = 1.0
    timeout: float = 3.0
    icmp_size: int = 64
    dns_protocol: str = "udp"
    dns_query: str = DEFAULT_DNS_QUERY
    ipv4_only: bool = False
    ipv6_only: bool = False
    verbose: bool = False

    def validate(self) -> "TestConfig":
        """Check value ranges. Raises ConfigError, returns self when valid."""
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be in 1-65535, got {self.port}")
        if self.count < 1:
            raise ConfigError(f"count must be >= 1, got {self.count}")
        if self.interval < 0:
            raise ConfigError(f"interval must be >= 0, got {self.interval}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be > 0, got {self.timeout}")
        if self.icmp_size < 0:
            raise ConfigError(f"icmp size must be >= 0, got {self.icmp_size}")
        if self.ipv4_only and self.ipv6_only:
            raise ConfigError("ipv4_only and ipv6_only are mutually exclusive")

        try:
            DNSTransport.from_name(self.dns_protocol)
        except ValueError as e:
            raise ConfigError(str(e)) from None

        if not self.dns_query:
            raise ConfigError("dns query must not be empty")

        from ..codec.dns import encode_qname
        try:
            encode_qname(self.dns_query)
        except DNSBuildError as e:
            raise ConfigError(str(e)) from None

        return self

    @property
    def dns_transport(self) -> DNSTransport:
        return DNSTransport.from_name(self.dns_protocol)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["interval_ms"] = data.pop("interval") * 1000
        data["timeout_ms"] = data.pop("timeout") * 1000
        return data
