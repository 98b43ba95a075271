"""Wire format codecs for ICMP echo and DNS messages."""

from .icmp import (
    internet_checksum, encode_echo_request, decode_echo_reply, embedded_timestamp, EchoReply,
)
from .dns import build_query, validate_response, frame_stream, read_stream_response, encode_qname

__all__ = [
    "internet_checksum",
    "encode_echo_request",
    "decode_echo_reply",
    "embedded_timestamp",
    "EchoReply",
    "build_query",
    "validate_response",
    "frame_stream",
    "read_stream_response",
    "encode_qname",
]
