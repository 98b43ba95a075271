"""Shared fixtures: loopback TCP, UDP, DNS and DNS-over-TLS servers."""

import shutil
import socket
import ssl
import struct
import subprocess
import threading

import pytest

from helpers import dns_reply


@pytest.fixture
def tcp_listener():
    """A listening TCP socket on 127.0.0.1; yields its port."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(64)
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def closed_port():
    """A loopback TCP port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def udp_dns_server():
    """Start a UDP responder; call with id_xor to corrupt the echoed ID."""
    servers = []

    def start(id_xor: int = 0, requests: int = 1) -> int:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("127.0.0.1", 0))
        sock.settimeout(5)
        servers.append(sock)

        def serve():
            for _ in range(requests):
                try:
                    data, addr = sock.recvfrom(512)
                except OSError:
                    return
                sock.sendto(dns_reply(data, id_xor), addr)

        threading.Thread(target=serve, daemon=True).start()
        return sock.getsockname()[1]

    yield start
    for sock in servers:
        sock.close()


def _stream_dns_server(servers, wrap=None, declared_length=None, id_xor=0) -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    sock.settimeout(5)
    servers.append(sock)

    def serve():
        try:
            conn, _ = sock.accept()
            conn.settimeout(5)
            if wrap is not None:
                conn = wrap(conn)
        except OSError:
            return
        with conn:
            (length,) = struct.unpack("!H", conn.recv(2))
            query = b""
            while len(query) < length:
                query += conn.recv(length - len(query))
            body = dns_reply(query, id_xor)
            prefix = declared_length if declared_length is not None else len(body)
            conn.sendall(struct.pack("!H", prefix) + body)

    threading.Thread(target=serve, daemon=True).start()
    return sock.getsockname()[1]


@pytest.fixture
def tcp_dns_server():
    """Start a length-prefixed DNS responder; declared_length overrides the prefix."""
    servers = []

    def start(declared_length=None) -> int:
        return _stream_dns_server(servers, declared_length=declared_length)

    yield start
    for sock in servers:
        sock.close()


@pytest.fixture(scope="session")
def server_certificate(tmp_path_factory):
    """A throwaway self-signed certificate; returns (certfile, keyfile)."""
    openssl = shutil.which("openssl")
    if openssl is None:
        pytest.skip("openssl command not available")

    directory = tmp_path_factory.mktemp("tls")
    certfile, keyfile = directory / "cert.pem", directory / "key.pem"
    subprocess.run(
        [
            openssl, "req", "-x509", "-newkey", "rsa:2048", "-nodes",
            "-keyout", str(keyfile), "-out", str(certfile),
            "-days", "1", "-subj", "/CN=localhost",
        ],
        check=True,
        capture_output=True,
    )
    return str(certfile), str(keyfile)


@pytest.fixture
def tls_dns_server(server_certificate):
    """Start a DNS-over-TLS responder; call with id_xor to corrupt the echoed ID."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(*server_certificate)
    servers = []

    def start(id_xor: int = 0) -> int:
        wrap = lambda conn: context.wrap_socket(conn, server_side=True)  # noqa: E731
        return _stream_dns_server(servers, wrap=wrap, id_xor=id_xor)

    yield start
    for sock in servers:
        sock.close()


@pytest.fixture
def non_tls_server():
    """A TCP peer that answers a TLS client hello with plain text; yields its port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    sock.settimeout(5)

    def serve():
        try:
            conn, _ = sock.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            try:
                conn.recv(4096)
                conn.sendall(b"HTTP/1.0 400 Bad Request\r\n\r\n")
            except OSError:
                return

    threading.Thread(target=serve, daemon=True).start()
    yield sock.getsockname()[1]
    sock.close()
