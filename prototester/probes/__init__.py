"""Protocol probes: one timed round trip per call."""

from typing import Dict, Optional, Type

from ..models.protocol import Protocol
from ..transport.platform_adapter import SocketTransport
from .base import Probe, PhaseConfig, resolve_sockaddr
from .tcp import TCPProbe
from .udp import UDPProbe
from .icmp import ICMPProbe
from .http import HTTPProbe, SessionFactory
from .dns import DNSProbe


PROBES: Dict[Protocol, Type[Probe]] = {
    Protocol.TCP: TCPProbe,
    Protocol.UDP: UDPProbe,
    Protocol.ICMP: ICMPProbe,
    Protocol.HTTP: HTTPProbe,
    Protocol.DNS: DNSProbe,
}


def get_probe(
    protocol: Protocol,
    transport: Optional[SocketTransport] = None,
    session_factory: Optional[SessionFactory] = None,
) -> Probe:
    """Instantiate the probe for a protocol."""
    probe_class = PROBES[protocol]
    if protocol in (Protocol.HTTP, Protocol.DNS):
        return probe_class(transport, session_factory=session_factory)
    return probe_class(transport)


__all__ = [
    "Probe",
    "PhaseConfig",
    "resolve_sockaddr",
    "TCPProbe",
    "UDPProbe",
    "ICMPProbe",
    "HTTPProbe",
    "DNSProbe",
    "SessionFactory",
    "PROBES",
    "get_probe",
]
