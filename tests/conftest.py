"""
Shared fixtures for service monitor tests.

Provides a throwaway self-signed certificate and a factory for loopback
servers (TLS or plain TCP) driven by a per-test connection handler.
"""

import asyncio
import ssl
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Tuple
from unittest.mock import AsyncMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from service_monitor.config import CheckConfig
from service_monitor.reporter import Reporter


Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


@pytest.fixture(scope="session")
def tls_cert_files(tmp_path_factory):
    """Generate a self-signed certificate for CN=localhost."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.now(timezone.utc)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(1000)
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )

    directory = tmp_path_factory.mktemp("tls")
    cert_path = directory / "cert.pem"
    key_path = directory / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption()
    ))
    return str(cert_path), str(key_path)


@pytest.fixture
def server_ssl_context(tls_cert_files):
    """Server-side TLS context using the self-signed certificate."""
    cert_path, key_path = tls_cert_files
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(cert_path, key_path)
    return context


@pytest.fixture
def start_server(server_ssl_context):
    """
    Factory starting a loopback server.

    Usage inside a test:
        server, port = await start_server(handler)            # TLS
        server, port = await start_server(handler, tls=False) # plain TCP
        async with server:
            ...
    """
    async def start(handler: Handler, tls: bool = True) -> Tuple[asyncio.AbstractServer, int]:
        server = await asyncio.start_server(
            handler,
            '127.0.0.1',
            0,
            ssl=server_ssl_context if tls else None
        )
        port = server.sockets[0].getsockname()[1]
        return server, port

    return start


def greeting_handler(*payloads: bytes, close: bool = False, pause: float = 0.0) -> Handler:
    """
    Build a handler that writes payloads, then waits for the client to leave.

    Args:
        payloads: Chunks to send, in order
        close: Close the connection right after sending instead of waiting
        pause: Seconds to sleep between chunks
    """
    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            for index, payload in enumerate(payloads):
                if index and pause:
                    await asyncio.sleep(pause)
                writer.write(payload)
                await writer.drain()
            if not close:
                await reader.read()
        except (ConnectionError, ssl.SSLError):
            pass
        finally:
            writer.close()

    return handle


@pytest.fixture
def notifier():
    """Notifier double that records published messages."""
    mock = AsyncMock()
    mock.publish.return_value = True
    return mock


@pytest.fixture
def reporter(notifier):
    """Fresh run-scoped reporter wired to the recording notifier."""
    return Reporter(notifier)


@pytest.fixture
def make_config():
    """Factory for CheckConfig with test-friendly defaults."""
    def make(port: int = 7000, **overrides) -> CheckConfig:
        values = {
            'hostname': 'localhost',
            'port': port,
            'check_certificates': False,
            'timeout_ms': 2000,
            'greeting': b'NOTICE AUTH',
            'verbose': True,
        }
        values.update(overrides)
        return CheckConfig(**values)

    return make


@pytest.fixture
def make_handler():
    """Expose greeting_handler to tests."""
    return greeting_handler
