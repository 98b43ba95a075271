"""Test doubles for transports and HTTP sessions."""

import socket
import struct

from prototester.errors import PermissionDenied, ProbeTimeout
from prototester.transport.platform_adapter import UnixTransport


class DummySocket:
    def close(self):
        pass


class ScriptedICMPTransport(UnixTransport):
    """
    Transport that never touches the network: ICMP requests are captured
    and replies are produced by callables applied to the last request.
    """

    def __init__(self, replies=(), deny=(), preserves_identifier=True, ip_header=False):
        self.replies = list(replies)
        self.deny = dict(deny)  # socket type -> exception
        self.preserves_icmp_identifier = preserves_identifier
        self.ip_header = ip_header
        self.created = []
        self.sent = []

    def create(self, family, type_, proto=0):
        self.created.append(type_)
        if type_ in self.deny:
            raise self.deny[type_]
        return DummySocket()

    def connect(self, sock, address):
        pass

    def send(self, sock, data):
        self.sent.append(data)
        return len(data)

    def sendto(self, sock, data, address):
        self.sent.append(data)
        return len(data)

    def recv_until(self, sock, deadline, size):
        if not self.replies:
            raise ProbeTimeout("timeout")
        return self.replies.pop(0)(self.sent[-1])

    def dgram_icmp_has_ip_header(self, family):
        return self.ip_header


class DenyingICMPTransport(UnixTransport):
    """Real sockets, except that every ICMP socket is refused."""

    def __init__(self):
        self.created = []

    def create(self, family, type_, proto=0):
        self.created.append(type_)
        if type_ in (socket.SOCK_DGRAM, socket.SOCK_RAW) and proto in (socket.IPPROTO_ICMP, 58):
            raise PermissionDenied("operation not permitted")
        return super().create(family, type_, proto)


class FakeResponse:
    def __init__(self, status_code=200, content=b"", reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class FakeSession:
    """Stands in for requests.Session; records every request."""

    def __init__(self, respond):
        self.respond = respond
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.respond(method, url, kwargs)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False


def dns_reply(query: bytes, id_xor: int = 0) -> bytes:
    """A minimal DNS response: the query with QR set and, optionally, a different ID."""
    (query_id,) = struct.unpack("!H", query[:2])
    return struct.pack("!HH", query_id ^ id_xor, 0x8180) + query[4:]
