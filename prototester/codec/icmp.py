"""ICMP Echo Request/Reply encoding and decoding."""

import struct
import time
from dataclasses import dataclass
from typing import Optional


ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129

HEADER_SIZE = 8
TIMESTAMP_SIZE = 8
MAX_PACKET_SIZE = 1500

_HEADER = struct.Struct("!BBHHH")  # type, code, checksum, identifier, sequence
_TIMESTAMP = struct.Struct("!Q")


@dataclass(frozen=True)
class EchoReply:
    """A matched ICMP echo reply."""
    type: int
    code: int
    identifier: int
    sequence: int
    payload: bytes

    @property
    def sent_ns(self) -> Optional[int]:
        """Send timestamp embedded in the payload, if the payload carries one."""
        if len(self.payload) < TIMESTAMP_SIZE:
            return None
        return _TIMESTAMP.unpack_from(self.payload)[0]


def internet_checksum(data: bytes) -> int:
    """
    RFC 1071 Internet checksum.

    Sums 16-bit big-endian words (an odd trailing byte is padded with a
    zero low byte), folds the carries back into the low 16 bits and
    returns the one's complement.
    """
    if len(data) % 2:
        data = bytes(data) + b"\x00"

    total = 0
    for (word,) in struct.iter_unpack("!H", data):
        total += word

    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)

    return ~total & 0xFFFF


def echo_request_type(ipv6: bool) -> int:
    return ICMPV6_ECHO_REQUEST if ipv6 else ICMP_ECHO_REQUEST


def echo_reply_type(ipv6: bool) -> int:
    return ICMPV6_ECHO_REPLY if ipv6 else ICMP_ECHO_REPLY


def encode_echo_request(
    identifier: int,
    sequence: int,
    payload_size: int,
    ipv6: bool = False,
    with_checksum: bool = False,
    timestamp_ns: Optional[int] = None,
) -> bytes:
    """
    Build an ICMP Echo Request.

    The first 8 payload bytes hold the send timestamp in nanoseconds since
    the epoch (truncated if payload_size < 8). The checksum is only filled
    in when with_checksum is set; datagram ICMP sockets and all IPv6 paths
    leave it to the kernel.
    """
    if payload_size < 0:
        raise ValueError(f"payload size must be >= 0, got {payload_size}")

    if timestamp_ns is None:
        timestamp_ns = time.time_ns()

    payload = bytearray(payload_size)
    stamp = _TIMESTAMP.pack(timestamp_ns & 0xFFFFFFFFFFFFFFFF)
    payload[:TIMESTAMP_SIZE] = stamp[:payload_size]

    header = _HEADER.pack(
        echo_request_type(ipv6), 0, 0, identifier & 0xFFFF, sequence & 0xFFFF
    )
    packet = bytearray(header + payload)

    if with_checksum:
        struct.pack_into("!H", packet, 2, internet_checksum(packet))

    return bytes(packet)


def decode_echo_reply(
    buffer: bytes,
    expected_identifier: int,
    expected_sequence: int,
    ipv6: bool = False,
    has_ip_header: bool = False,
    check_identifier: bool = True,
) -> Optional[EchoReply]:
    """
    Match a received buffer against the outstanding echo request.

    Returns the parsed reply, or None when the buffer is not the reply we
    are waiting for (too short, wrong type, or a stray/delayed reply with a
    different sequence or identifier). Callers keep reading on None.
    """
    data = memoryview(buffer)

    if has_ip_header:
        if len(data) < 1:
            return None
        ip_header_len = (data[0] & 0x0F) * 4
        data = data[ip_header_len:]

    if len(data) < HEADER_SIZE:
        return None

    icmp_type, code, _checksum, identifier, sequence = _HEADER.unpack_from(data)

    if icmp_type != echo_reply_type(ipv6):
        return None
    if sequence != expected_sequence & 0xFFFF:
        return None
    if check_identifier and identifier != expected_identifier & 0xFFFF:
        return None

    return EchoReply(
        type=icmp_type,
        code=code,
        identifier=identifier,
        sequence=sequence,
        payload=bytes(data[HEADER_SIZE:]),
    )


def embedded_timestamp(reply: EchoReply) -> Optional[int]:
    """Nanosecond send timestamp carried in a reply's payload."""
    return reply.sent_ns
