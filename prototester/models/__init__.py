"""Data models for the latency tester."""

from .protocol import Protocol, AddressFamily, DNSTransport, protocol_label, format_address
from .run_config import TestConfig, DEFAULT_TARGET4, DEFAULT_TARGET6, DEFAULT_DNS_QUERY
from .result import ProbeResult, Statistics, FamilyPair, ComparisonResult, TestResult

__all__ = [
    "Protocol",
    "AddressFamily",
    "DNSTransport",
    "protocol_label",
    "format_address",
    "TestConfig",
    "DEFAULT_TARGET4",
    "DEFAULT_TARGET6",
    "DEFAULT_DNS_QUERY",
    "ProbeResult",
    "Statistics",
    "FamilyPair",
    "ComparisonResult",
    "TestResult",
]
