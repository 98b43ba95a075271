"""Probe interface and per-phase configuration."""

import logging
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple

from ..errors import ProtoTesterError, ResolutionError, classify_os_error
from ..models.protocol import Protocol, AddressFamily, DNSTransport
from ..models.run_config import TestConfig, DEFAULT_DNS_QUERY
from ..models.result import ProbeResult
from ..transport.platform_adapter import SocketTransport, get_transport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseConfig:
    """
    Everything one probing phase needs: protocol, family, target and the
    per-probe knobs. Built fresh for each phase and never mutated.
    """
    protocol: Protocol
    family: AddressFamily
    target: str
    port: int
    timeout: float
    icmp_size: int = 64
    dns_transport: DNSTransport = DNSTransport.UDP
    dns_query: str = DEFAULT_DNS_QUERY

    @classmethod
    def from_test_config(
        cls,
        config: TestConfig,
        protocol: Protocol,
        family: AddressFamily,
        target: Optional[str] = None,
    ) -> "PhaseConfig":
        if target is None:
            target = config.target4 if family is AddressFamily.IPV4 else config.target6
        return cls(
            protocol=protocol,
            family=family,
            target=target,
            port=config.port,
            timeout=config.timeout,
            icmp_size=config.icmp_size,
            dns_transport=config.dns_transport,
            dns_query=config.dns_query,
        )


def resolve_sockaddr(
    family: AddressFamily, host: str, port: int, type_: int = socket.SOCK_STREAM
) -> Tuple[Any, ...]:
    """Resolve host to a socket address of the given family."""
    try:
        infos = socket.getaddrinfo(host, port, family.socket_family, type_)
    except (socket.gaierror, UnicodeError) as e:
        # Empty or oversized labels fail in the idna codec, not the resolver
        raise ResolutionError(f"error resolving {family.label} address for {host}: {e}") from e
    if not infos:
        raise ResolutionError(f"no {family.label} address for {host}")
    return infos[0][4]


class Probe(ABC):
    """
    One timed round trip of a protocol.

    run() never raises for probe-level failures: every ProtoTesterError
    and OSError is turned into a failed ProbeResult.
    """

    protocol: Protocol

    def __init__(self, transport: Optional[SocketTransport] = None):
        self.transport = transport or get_transport()

    def run(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        started = datetime.now()
        try:
            return self.probe(phase, sequence)
        except ProtoTesterError as e:
            error = e
        except OSError as e:
            error = classify_os_error(e)

        logger.debug(
            "%s %s probe #%d to %s failed: %s",
            self.protocol.value, phase.family.label, sequence, phase.target, error,
        )
        return ProbeResult.failed(error, started)

    @abstractmethod
    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        """Perform the round trip; may raise ProtoTesterError or OSError."""
