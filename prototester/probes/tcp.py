"""TCP connect probe."""

import socket
import time
from datetime import datetime

from ..models.protocol import Protocol
from ..models.result import ProbeResult
from .base import Probe, PhaseConfig, resolve_sockaddr


class TCPProbe(Probe):
    """Latency of the TCP three-way handshake."""

    protocol = Protocol.TCP

    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        started = datetime.now()
        start = time.perf_counter()

        sockaddr = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_STREAM)
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_STREAM)
        try:
            sock.settimeout(phase.timeout)
            self.transport.connect(sock, sockaddr)
            latency = time.perf_counter() - start
        finally:
            self.transport.close(sock)

        return ProbeResult.ok(latency, started)
