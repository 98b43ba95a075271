"""Protocol and address family definitions."""

import socket
from enum import Enum


class Protocol(Enum):
    """Wire protocols a probe can exercise."""
    TCP = "TCP"
    UDP = "UDP"
    ICMP = "ICMP"
    HTTP = "HTTP"
    DNS = "DNS"

    @classmethod
    def from_name(cls, name: str) -> "Protocol":
        """Look up a protocol by case-insensitive name."""
        try:
            return cls(name.upper())
        except ValueError:
            raise ValueError(f"Unknown protocol: {name}") from None


class AddressFamily(Enum):
    """IP address families under test."""
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def label(self) -> str:
        return "IPv4" if self is AddressFamily.IPV4 else "IPv6"

    @property
    def socket_family(self) -> int:
        return socket.AF_INET if self is AddressFamily.IPV4 else socket.AF_INET6

    @property
    def icmp_proto(self) -> int:
        # IPPROTO_ICMPV6 is missing from the socket module on some Windows builds
        if self is AddressFamily.IPV4:
            return socket.IPPROTO_ICMP
        return getattr(socket, "IPPROTO_ICMPV6", 58)


class DNSTransport(Enum):
    """Transports for DNS probes."""
    UDP = "udp"
    TCP = "tcp"
    DOT = "dot"
    DOH = "doh"

    @classmethod
    def from_name(cls, name: str) -> "DNSTransport":
        try:
            return cls(name.lower())
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(f"Invalid DNS protocol '{name}'. Must be one of: {valid}") from None


def protocol_label(protocol: Protocol, dns_protocol: str = "udp") -> str:
    """Human-readable protocol label used on results."""
    if protocol is Protocol.DNS:
        return f"DNS-{dns_protocol.upper()}"
    if protocol is Protocol.HTTP:
        return "HTTP/HTTPS"
    return protocol.value


def format_address(host: str, port: int) -> str:
    """Format host:port, bracketing IPv6 literals."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"
