"""ICMP echo probe with the unprivileged -> raw -> TCP escalation chain."""

import logging
import os
import socket
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional, Tuple

from ..codec.icmp import MAX_PACKET_SIZE, encode_echo_request, decode_echo_reply, embedded_timestamp
from ..errors import PermissionDenied, SocketUnsupported
from ..models.protocol import Protocol, AddressFamily
from ..models.result import ProbeResult
from ..transport.platform_adapter import SocketTransport
from .base import Probe, PhaseConfig, resolve_sockaddr
from .tcp import TCPProbe


logger = logging.getLogger(__name__)

# Errors that move the chain to the next, more privileged mechanism
_ESCALATE = (PermissionDenied, SocketUnsupported)


class ICMPProbe(Probe):
    """
    ICMP echo round trip.

    Each probe walks the privilege chain from the start:

    1. datagram ICMP socket (no privilege needed on Linux/macOS), connect
       and write the request;
    2. raw ICMP socket with an explicit destination and, for IPv4, a
       checksum computed here;
    3. a TCP connect to the same target and port, marked fallback="tcp".

    Only permission-class failures while opening or sending escalate. A
    timeout or a bad reply is the probe's result.
    """

    protocol = Protocol.ICMP

    def __init__(
        self,
        transport: Optional[SocketTransport] = None,
        fallback_probe: Optional[Probe] = None,
    ):
        super().__init__(transport)
        self.fallback_probe = fallback_probe or TCPProbe(self.transport)
        self.identifier = os.getpid() & 0xFFFF
        self._fallback_warned = False

    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        sockaddr = resolve_sockaddr(phase.family, phase.target, 0, socket.SOCK_DGRAM)

        try:
            return self._echo_unprivileged(phase, sockaddr, sequence)
        except _ESCALATE as e:
            logger.debug("Unprivileged ICMP unavailable (%s), trying raw socket", e)

        try:
            return self._echo_raw(phase, sockaddr, sequence)
        except _ESCALATE as e:
            self._log_fallback(phase, e)

        result = self.fallback_probe.probe(replace(phase, protocol=Protocol.TCP), sequence)
        return replace(result, fallback="tcp")

    def _log_fallback(self, phase: PhaseConfig, error: Exception) -> None:
        message = "ICMP not permitted (%s); falling back to TCP connect on %s port %d"
        if self._fallback_warned:
            logger.debug(message, error, phase.target, phase.port)
        else:
            logger.warning(message, error, phase.target, phase.port)
            self._fallback_warned = True

    def _echo_unprivileged(self, phase: PhaseConfig, sockaddr: Tuple[Any, ...], sequence: int) -> ProbeResult:
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_DGRAM, phase.family.icmp_proto)
        try:
            self.transport.connect(sock, sockaddr)

            started = datetime.now()
            sent_ns = time.time_ns()
            packet = encode_echo_request(
                self.identifier, sequence, phase.icmp_size,
                ipv6=phase.family is AddressFamily.IPV6,
                timestamp_ns=sent_ns,
            )
            self.transport.send(sock, packet)

            return self._await_reply(
                sock, phase, sequence, started, sent_ns,
                has_ip_header=self.transport.dgram_icmp_has_ip_header(phase.family),
                check_identifier=self.transport.preserves_icmp_identifier,
            )
        finally:
            self.transport.close(sock)

    def _echo_raw(self, phase: PhaseConfig, sockaddr: Tuple[Any, ...], sequence: int) -> ProbeResult:
        ipv6 = phase.family is AddressFamily.IPV6
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_RAW, phase.family.icmp_proto)
        try:
            started = datetime.now()
            sent_ns = time.time_ns()
            # The kernel fills in the ICMPv6 checksum (it covers a pseudo-header)
            packet = encode_echo_request(
                self.identifier, sequence, phase.icmp_size,
                ipv6=ipv6, with_checksum=not ipv6, timestamp_ns=sent_ns,
            )
            self.transport.sendto(sock, packet, sockaddr)

            # Raw IPv4 sockets deliver the IP header, raw IPv6 sockets do not
            return self._await_reply(
                sock, phase, sequence, started, sent_ns,
                has_ip_header=not ipv6,
                check_identifier=True,
            )
        finally:
            self.transport.close(sock)

    def _await_reply(
        self,
        sock: socket.socket,
        phase: PhaseConfig,
        sequence: int,
        started: datetime,
        sent_ns: int,
        has_ip_header: bool,
        check_identifier: bool,
    ) -> ProbeResult:
        """Read until the matching echo reply arrives or the timeout passes."""
        ipv6 = phase.family is AddressFamily.IPV6
        deadline = time.monotonic() + phase.timeout

        while True:
            data = self.transport.recv_until(sock, deadline, MAX_PACKET_SIZE)
            received_ns = time.time_ns()

            reply = decode_echo_reply(
                data, self.identifier, sequence,
                ipv6=ipv6,
                has_ip_header=has_ip_header,
                check_identifier=check_identifier,
            )
            if reply is None:
                logger.debug("Discarding unrelated ICMP packet (%d bytes) from %s", len(data), phase.target)
                continue

            # Payloads shorter than the timestamp fall back to the local send time
            echoed_ns = embedded_timestamp(reply)
            if echoed_ns is None:
                echoed_ns = sent_ns
            latency = max(received_ns - echoed_ns, 0) / 1e9
            return ProbeResult.ok(latency, started)
