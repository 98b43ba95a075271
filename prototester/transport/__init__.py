"""Socket transport layer."""

from .fdset import FdSet
from .platform_adapter import (
    SocketTransport,
    UnixTransport,
    LinuxTransport,
    DarwinTransport,
    WindowsTransport,
    get_transport,
)

__all__ = [
    "FdSet",
    "SocketTransport",
    "UnixTransport",
    "LinuxTransport",
    "DarwinTransport",
    "WindowsTransport",
    "get_transport",
]
