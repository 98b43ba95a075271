"""Platform-specific socket primitives behind one interface."""

import logging
import platform
import select
import socket
import struct
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..errors import ProbeTimeout, classify_os_error
from ..models.protocol import AddressFamily
from .fdset import FdSet


logger = logging.getLogger(__name__)


class SocketTransport(ABC):
    """
    Abstract socket transport.

    Every OSError raised by the underlying socket calls is translated into
    the typed error hierarchy (PermissionDenied, ProbeTimeout,
    NetworkError, ResolutionError), so callers can decide on fallbacks by
    type rather than by message text.
    """

    name = "generic"

    # Whether datagram ICMP sockets deliver the echo identifier we sent.
    # Linux rewrites it to the socket's local "port".
    preserves_icmp_identifier = True

    # Whether datagram (unprivileged) ICMP sockets are worth trying first.
    supports_unprivileged_icmp = False

    def create(self, family: int, type_: int, proto: int = 0) -> socket.socket:
        """Create a blocking socket."""
        try:
            sock = socket.socket(family, type_, proto)
        except OSError as e:
            raise classify_os_error(e, "error creating socket") from e
        sock.settimeout(None)
        return sock

    def connect(self, sock: socket.socket, address: Any) -> None:
        try:
            sock.connect(address)
        except OSError as e:
            raise classify_os_error(e, "error connecting socket") from e

    def send(self, sock: socket.socket, data: bytes) -> int:
        """Write on a connected socket."""
        try:
            return sock.send(data)
        except OSError as e:
            raise classify_os_error(e, "error sending") from e

    def sendto(self, sock: socket.socket, data: bytes, address: Any) -> int:
        try:
            return sock.sendto(data, address)
        except OSError as e:
            raise classify_os_error(e, "error sending") from e

    def recv(self, sock: socket.socket, size: int) -> bytes:
        try:
            return sock.recv(size)
        except OSError as e:
            raise classify_os_error(e, "error receiving") from e

    def close(self, sock: Optional[socket.socket]) -> None:
        if sock is None:
            return
        try:
            sock.close()
        except OSError as e:
            logger.debug("Error closing socket: %s", e)

    @abstractmethod
    def set_receive_timeout(self, sock: socket.socket, seconds: float) -> None:
        """Set SO_RCVTIMEO on a blocking socket."""

    @abstractmethod
    def select_readable(self, sock: socket.socket, timeout: float) -> bool:
        """Wait until sock is readable or timeout elapses."""

    def recv_until(self, sock: socket.socket, deadline: float, size: int) -> bytes:
        """
        Receive one datagram before a time.monotonic() deadline.

        The remaining time is recomputed on every iteration; interrupted
        waits are retried. Raises ProbeTimeout once the deadline passes.
        """
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ProbeTimeout("timeout")

            try:
                ready = self.select_readable(sock, remaining)
            except InterruptedError:
                continue

            if not ready:
                raise ProbeTimeout("timeout")

            return self.recv(sock, size)

    def dgram_icmp_has_ip_header(self, family: AddressFamily) -> bool:
        """Whether datagram ICMP sockets return the IP header with each reply."""
        return False

    def get_platform_info(self) -> Dict[str, str]:
        """Get platform information."""
        return {
            "transport": self.name,
            "unprivileged_icmp": str(self.supports_unprivileged_icmp).lower(),
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "python_version": platform.python_version(),
        }


class UnixTransport(SocketTransport):
    """Generic POSIX transport using select(2)."""

    name = "unix"

    def set_receive_timeout(self, sock: socket.socket, seconds: float) -> None:
        sec = int(seconds)
        usec = int((seconds - sec) * 1_000_000)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, struct.pack("ll", sec, usec))
        except OSError as e:
            raise classify_os_error(e, "error setting receive timeout") from e

    def select_readable(self, sock: socket.socket, timeout: float) -> bool:
        fd = sock.fileno()
        wanted = FdSet([fd])
        try:
            readable, _, _ = select.select(wanted.fds(), [], [], max(timeout, 0))
        except InterruptedError:
            raise
        except OSError as e:
            raise classify_os_error(e, "select failed") from e
        return FdSet(readable).is_set(fd)


class LinuxTransport(UnixTransport):
    """
    Linux transport.

    Unprivileged ICMP datagram sockets are available when the caller's
    group is inside net.ipv4.ping_group_range. The kernel owns the echo
    identifier on those sockets, so replies are matched by sequence.
    """

    name = "linux"
    supports_unprivileged_icmp = True
    preserves_icmp_identifier = False


class DarwinTransport(UnixTransport):
    """
    macOS transport.

    Datagram ICMP sockets work without privilege, keep our identifier, and
    deliver IPv4 replies with the IP header attached.
    """

    name = "darwin"
    supports_unprivileged_icmp = True

    def dgram_icmp_has_ip_header(self, family: AddressFamily) -> bool:
        return family is AddressFamily.IPV4


class WindowsTransport(SocketTransport):
    """
    Windows transport.

    Sockets are opaque handles and no select-based readiness check is
    wired up. select_readable() instead sets SO_RCVTIMEO and reports the
    socket as ready, leaving the following blocking receive to fail on
    timeout. Timeout precision is therefore coarser than on Unix: the
    whole remaining window is spent in one receive, and the OS rounds the
    option to milliseconds.
    """

    name = "windows"

    def set_receive_timeout(self, sock: socket.socket, seconds: float) -> None:
        timeout_ms = max(int(seconds * 1000), 1)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, timeout_ms)
        except OSError as e:
            raise classify_os_error(e, "error setting receive timeout") from e

    def select_readable(self, sock: socket.socket, timeout: float) -> bool:
        self.set_receive_timeout(sock, timeout)
        return True


def get_transport(system: Optional[str] = None) -> SocketTransport:
    """Factory function to get the transport for this platform."""
    system = (system or platform.system()).lower()
    if system == "linux":
        return LinuxTransport()
    elif system == "darwin":
        return DarwinTransport()
    elif system == "windows":
        return WindowsTransport()
    elif system in ("freebsd", "openbsd", "netbsd", "sunos", "aix"):
        return UnixTransport()
    else:
        raise RuntimeError(f"Unsupported platform: {system}")
