"""HTTP HEAD probe and the shared insecure request helper."""

import logging
import socket
import time
import warnings
from datetime import datetime
from typing import Callable, Optional

import requests
import urllib3

from ..errors import NetworkError, ProbeTimeout
from ..models.protocol import Protocol, format_address
from ..models.result import ProbeResult
from ..transport.platform_adapter import SocketTransport
from .base import Probe, PhaseConfig, resolve_sockaddr


logger = logging.getLogger(__name__)

HTTPS_PORTS = (443, 8443)

SessionFactory = Callable[[], requests.Session]


def scheme_for_port(port: int) -> str:
    return "https" if port in HTTPS_PORTS else "http"


def perform_request(
    session_factory: SessionFactory,
    method: str,
    url: str,
    timeout: float,
    **kwargs,
) -> requests.Response:
    """
    Issue one request on a fresh session with keep-alive disabled and
    certificate verification off.

    requests exceptions are translated to ProbeTimeout / NetworkError.
    """
    headers = {"Connection": "close"}
    headers.update(kwargs.pop("headers", {}))

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", urllib3.exceptions.InsecureRequestWarning)
        with session_factory() as session:
            try:
                return session.request(
                    method,
                    url,
                    headers=headers,
                    timeout=timeout,
                    verify=False,
                    allow_redirects=False,
                    **kwargs,
                )
            except requests.exceptions.Timeout as e:
                raise ProbeTimeout(f"request to {url} timed out") from e
            except requests.exceptions.ConnectionError as e:
                raise NetworkError(f"connection to {url} failed: {e}") from e
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"request to {url} failed: {e}") from e


class HTTPProbe(Probe):
    """
    HTTP HEAD round trip.

    The target is resolved to an address of the phase's family before the
    URL is built, so the request cannot drift to the other family. The
    original name is kept in the Host header.
    """

    protocol = Protocol.HTTP

    def __init__(
        self,
        transport: Optional[SocketTransport] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        super().__init__(transport)
        self.session_factory = session_factory or requests.Session

    def build_url(self, phase: PhaseConfig) -> str:
        address = resolve_sockaddr(phase.family, phase.target, phase.port, socket.SOCK_STREAM)[0]
        return f"{scheme_for_port(phase.port)}://{format_address(address, phase.port)}/"

    def probe(self, phase: PhaseConfig, sequence: int) -> ProbeResult:
        started = datetime.now()
        start = time.perf_counter()

        url = self.build_url(phase)
        response = perform_request(
            self.session_factory,
            "HEAD",
            url,
            phase.timeout,
            headers={"Host": format_address(phase.target, phase.port)},
        )
        latency = time.perf_counter() - start

        logger.debug("HEAD %s -> %d", url, response.status_code)
        return ProbeResult.ok(latency, started)
