"""DNS query construction, response validation and stream framing."""

import secrets
import struct
from dataclasses import dataclass
from typing import Tuple, Callable

from ..errors import DNSBuildError, DNSFramingError, DNSIDMismatchError


QTYPE_A = 1
QTYPE_AAAA = 28
QCLASS_IN = 1

FLAGS_STANDARD_QUERY_RD = 0x0100

HEADER_SIZE = 12
MAX_LABEL_LENGTH = 63
UDP_BUFFER_SIZE = 512
MAX_STREAM_RESPONSE = 4096

DOH_CONTENT_TYPE = "application/dns-message"
DOH_PATH = "/dns-query"

_HEADER = struct.Struct("!HHHHHH")
_LENGTH = struct.Struct("!H")


@dataclass(frozen=True)
class DNSHeader:
    """DNS message header."""
    id: int
    flags: int = FLAGS_STANDARD_QUERY_RD
    qdcount: int = 1
    ancount: int = 0
    nscount: int = 0
    arcount: int = 0

    def pack(self) -> bytes:
        return _HEADER.pack(
            self.id, self.flags, self.qdcount, self.ancount, self.nscount, self.arcount
        )

    @classmethod
    def unpack(cls, data: bytes) -> "DNSHeader":
        if len(data) < HEADER_SIZE:
            raise DNSFramingError(f"DNS response too short: {len(data)} bytes")
        return cls(*_HEADER.unpack_from(data))


@dataclass(frozen=True)
class DNSQuestion:
    """DNS question section entry."""
    name: str
    qtype: int = QTYPE_A
    qclass: int = QCLASS_IN

    def pack(self) -> bytes:
        return encode_qname(self.name) + struct.pack("!HH", self.qtype, self.qclass)


@dataclass(frozen=True)
class DNSMessage:
    """A query message: header plus a single question."""
    header: DNSHeader
    question: DNSQuestion

    def pack(self) -> bytes:
        return self.header.pack() + self.question.pack()


def encode_qname(domain: str) -> bytes:
    """Encode a domain as length-prefixed labels terminated by a zero byte."""
    name = domain[:-1] if domain.endswith(".") else domain
    if not name:
        raise DNSBuildError("domain name must not be empty")

    encoded = bytearray()
    for label in name.split("."):
        if not label:
            raise DNSBuildError(f"empty label in domain name: {domain}")
        try:
            raw = label.encode("idna") if not label.isascii() else label.encode("ascii")
        except UnicodeError as e:
            raise DNSBuildError(f"invalid domain label: {label}") from e
        if len(raw) > MAX_LABEL_LENGTH:
            raise DNSBuildError(f"domain label too long: {label}")
        encoded.append(len(raw))
        encoded.extend(raw)
    encoded.append(0)
    return bytes(encoded)


def build_query(domain: str, qtype: int = QTYPE_A, qclass: int = QCLASS_IN) -> Tuple[bytes, int]:
    """
    Build a standard recursive query.

    Returns the wire bytes and the random 16-bit query ID.
    """
    query_id = secrets.randbits(16)
    message = DNSMessage(
        header=DNSHeader(id=query_id),
        question=DNSQuestion(name=domain, qtype=qtype, qclass=qclass),
    )
    return message.pack(), query_id


def validate_response(buffer: bytes, query_id: int) -> DNSHeader:
    """
    Check a response against the query it answers.

    Raises DNSFramingError for responses shorter than a header and
    DNSIDMismatchError when the ID is not echoed.
    """
    header = DNSHeader.unpack(buffer)
    if header.id != query_id:
        raise DNSIDMismatchError(got=header.id, expected=query_id)
    return header


def frame_stream(query: bytes) -> bytes:
    """Prefix a query with its 2-byte big-endian length (TCP and DoT)."""
    return _LENGTH.pack(len(query)) + query


def read_stream_response(recv_exactly: Callable[[int], bytes]) -> bytes:
    """
    Read one length-prefixed response using recv_exactly(n).

    recv_exactly must return exactly n bytes or fewer on EOF.
    """
    prefix = recv_exactly(_LENGTH.size)
    if len(prefix) < _LENGTH.size:
        raise DNSFramingError("connection closed before DNS length prefix")

    (length,) = _LENGTH.unpack(prefix)
    if length > MAX_STREAM_RESPONSE:
        raise DNSFramingError(f"DNS response too large: {length} bytes")

    body = recv_exactly(length)
    if len(body) < length:
        raise DNSFramingError(f"DNS response truncated: {len(body)} of {length} bytes")
    return body


def recv_exactly(sock, size: int) -> bytes:
    """Read size bytes from a stream socket, stopping early on EOF."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = sock.recv(size - len(chunks))
        if not chunk:
            break
        chunks.extend(chunk)
    return bytes(chunks)
