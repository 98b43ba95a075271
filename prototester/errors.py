"""Error hierarchy for the probing engine."""

import errno
import socket
import ssl
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of a failed probe."""
    PERMISSION = "permission"
    RESOLUTION = "resolution"
    TIMEOUT = "timeout"
    PROTOCOL = "protocol"
    NETWORK = "network"
    CONFIG = "config"


class ProtoTesterError(Exception):
    """Base class for all errors raised by prototester."""
    kind: ErrorKind = ErrorKind.NETWORK


class ConfigError(ProtoTesterError):
    """Invalid test configuration."""
    kind = ErrorKind.CONFIG


class ResolutionError(ProtoTesterError):
    """A hostname has no usable A/AAAA record."""
    kind = ErrorKind.RESOLUTION


class DNSBuildError(ProtoTesterError):
    """A DNS query could not be encoded."""
    kind = ErrorKind.CONFIG


class ProbeError(ProtoTesterError):
    """Failure inside a single probe. Captured on ProbeResult, never propagated."""


class PermissionDenied(ProbeError):
    """Socket creation or connect was refused for lack of privilege."""
    kind = ErrorKind.PERMISSION


class SocketUnsupported(ProbeError):
    """The requested socket type or protocol is not available on this host."""
    kind = ErrorKind.PERMISSION


class ProbeTimeout(ProbeError):
    """No response arrived inside the configured timeout."""
    kind = ErrorKind.TIMEOUT


class NetworkError(ProbeError):
    """Unreachable network, refused connection and other socket failures."""
    kind = ErrorKind.NETWORK


class ProtocolError(ProbeError):
    """Malformed or mismatched reply."""
    kind = ErrorKind.PROTOCOL


class DNSFramingError(ProtocolError):
    """DNS response too short, too long or truncated."""


class DNSIDMismatchError(ProtocolError):
    """DNS response does not echo the query ID."""

    def __init__(self, got: int, expected: int):
        super().__init__(f"DNS response ID mismatch: got {got}, expected {expected}")
        self.got = got
        self.expected = expected


class HTTPStatusError(ProtocolError):
    """Unexpected HTTP status on a DoH exchange."""

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(f"HTTP status {status_code}: {reason}".rstrip(": "))
        self.status_code = status_code


def _errnos(*names: str) -> set:
    # Winsock codes only exist in the errno module on Windows
    return {getattr(errno, name) for name in names if hasattr(errno, name)}


_PERMISSION_ERRNOS = _errnos("EPERM", "EACCES", "WSAEACCES")
_TIMEOUT_ERRNOS = _errnos("ETIMEDOUT", "EAGAIN", "EWOULDBLOCK", "WSAETIMEDOUT", "WSAEWOULDBLOCK")
_UNSUPPORTED_ERRNOS = _errnos(
    "EPROTONOSUPPORT", "ESOCKTNOSUPPORT", "EOPNOTSUPP",
    "WSAEPROTONOSUPPORT", "WSAESOCKTNOSUPPORT", "WSAEOPNOTSUPP",
)


def classify_os_error(exc: BaseException, context: Optional[str] = None) -> ProtoTesterError:
    """
    Translate an OSError (or subclass) into the typed hierarchy.

    Classification uses exception classes and errno values only, so the
    result does not depend on platform-specific message wording.
    """
    if isinstance(exc, ProtoTesterError):
        return exc

    message = str(exc) or exc.__class__.__name__
    if context:
        message = f"{context}: {message}"

    if isinstance(exc, socket.gaierror):
        error: ProtoTesterError = ResolutionError(message)
    elif isinstance(exc, PermissionError):
        error = PermissionDenied(message)
    elif isinstance(exc, (socket.timeout, TimeoutError)):
        error = ProbeTimeout(message)
    elif isinstance(exc, ssl.SSLError):
        # errno holds an OpenSSL error code here, not a system errno
        error = NetworkError(message)
    elif isinstance(exc, OSError) and exc.errno in _PERMISSION_ERRNOS:
        error = PermissionDenied(message)
    elif isinstance(exc, OSError) and exc.errno in _TIMEOUT_ERRNOS:
        error = ProbeTimeout(message)
    elif isinstance(exc, OSError) and exc.errno in _UNSUPPORTED_ERRNOS:
        error = SocketUnsupported(message)
    else:
        error = NetworkError(message)

    error.__cause__ = exc
    return error
