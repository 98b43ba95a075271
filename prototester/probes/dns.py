"""DNS query probe over UDP, TCP, TLS and HTTPS."""

import logging
import socket
import ssl
import time
from datetime import datetime
from typing import Optional

import requests

from ..codec.dns import (
    DOH_CONTENT_TYPE,
    DOH_PATH,
    UDP_BUFFER_SIZE,
    build_query,
    frame_stream,
    read_stream_response,
    recv_exactly,
    validate_response,
)
from ..errors import HTTPStatusError, classify_os_error
from ..models.protocol import Protocol, DNSTransport, format_address
from ..models.result import ProbeResult
from ..transport.platform_adapter import SocketTransport
from .base import Probe, PhaseConfig, resolve_sockaddr
from .http import SessionFactory, perform_request


logger = logging.getLogger(__name__)


def insecure_tls_context() -> ssl.SSLContext:
    """Client TLS context with certificate and hostname checks disabled."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class DNSProbe(Probe):
    """
    One DNS query/response transaction.

    The latency covers the whole exchange, including the TCP and TLS
    handshakes for stream transports.
    """

    protocol = Protocol.DNS

    def __init__(
        self,
        transport: Optional[SocketTransport] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        super().__init__(transport)
        self.session_factory = session_factory or requests.Session
        self._exchanges = {
            DNSTransport.UDP: self._exchange_udp,
            DNSTransport.TCP: self._exchange_tcp,
            DNSTransport.DOT: self._exchange_dot,
            DNSTransport.DOH: self._exchange_doh,
        }

    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        started = datetime.now()
        start = time.perf_counter()

        query, query_id = build_query(phase.dns_query)
        response = self._exchanges[phase.dns_transport](phase, query)
        validate_response(response, query_id)

        latency = time.perf_counter() - start
        return ProbeResult.ok(latency, started)

    def _exchange_udp(self, phase: PhaseConfig, query: bytes) -> bytes:
        sockaddr = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_DGRAM)
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_DGRAM)
        try:
            sock.settimeout(phase.timeout)
            self.transport.connect(sock, sockaddr)
            self.transport.send(sock, query)
            return self.transport.recv(sock, UDP_BUFFER_SIZE)
        finally:
            self.transport.close(sock)

    def _exchange_tcp(self, phase: PhaseConfig, query: bytes) -> bytes:
        sockaddr = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_STREAM)
        sock = self.transport.create(phase.family.socket_family, socket.SOCK_STREAM)
        try:
            sock.settimeout(phase.timeout)
            self.transport.connect(sock, sockaddr)
            return self._stream_exchange(sock, query)
        finally:
            self.transport.close(sock)

    def _exchange_dot(self, phase: PhaseConfig, query: bytes) -> bytes:
        sockaddr = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_STREAM)
        raw = self.transport.create(phase.family.socket_family, socket.SOCK_STREAM)
        try:
            raw.settimeout(phase.timeout)
            self.transport.connect(raw, sockaddr)
            try:
                tls = insecure_tls_context().wrap_socket(raw, server_hostname=phase.target)
            except OSError as e:
                raise classify_os_error(e, "TLS handshake failed") from e
            try:
                return self._stream_exchange(tls, query)
            finally:
                self.transport.close(tls)
        finally:
            self.transport.close(raw)

    def _stream_exchange(self, sock: socket.socket, query: bytes) -> bytes:
        try:
            sock.sendall(frame_stream(query))
            return read_stream_response(lambda size: recv_exactly(sock, size))
        except OSError as e:
            raise classify_os_error(e, "DNS stream exchange failed") from e

    def _exchange_doh(self, phase: PhaseConfig, query: bytes) -> bytes:
        url = f"https://{format_address(phase.target, phase.port)}{DOH_PATH}"
        response = perform_request(
            self.session_factory,
            "POST",
            url,
            phase.timeout,
            data=query,
            headers={"Content-Type": DOH_CONTENT_TYPE, "Accept": DOH_CONTENT_TYPE},
        )
        if response.status_code != 200:
            raise HTTPStatusError(response.status_code, response.reason or "")
        return response.content
