"""UDP write probe."""

import socket
import time
from datetime import datetime

from ..errors import ProtoTesterError
from ..models.protocol import Protocol
from ..models.result import ProbeResult
from .base import Probe, PhaseConfig, resolve_sockaddr


UDP_PAYLOAD = b"test"
UDP_READ_WINDOW = 0.1  # seconds


class UDPProbe(Probe):
    """
    UDP reachability check.

    UDP has no connection signal, so a probe succeeds when the write
    succeeds. A short read is attempted afterwards in case the target
    answers; its outcome does not affect success.
    """

    protocol = Protocol.UDP

    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        started = datetime.now()
        start = time.perf_counter()

        sockaddr = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_DGRAM)
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_DGRAM)
        try:
            sock.settimeout(phase.timeout)
            self.transport.connect(sock, sockaddr)
            self.transport.send(sock, UDP_PAYLOAD)

            sock.settimeout(UDP_READ_WINDOW)
            try:
                self.transport.recv(sock, 1024)
            except ProtoTesterError:
                # No reply (or an ICMP port unreachable) is the normal case
                pass

            latency = time.perf_counter() - start
        finally:
            self.transport.close(sock)

        return ProbeResult.ok(latency, started)
