"""
Address checker for TLS services that greet on connect.

Drives one TCP connection, TLS handshake and greeting wait against a single
resolved address, and reports the address as down on any failure.
"""

import asyncio
import logging
import socket
import ssl
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID
from OpenSSL import crypto

from ..config import CheckConfig
from ..reporter import Reporter
from .base_checker import BaseChecker, CheckResult
from .greeting import GreetingMatcher, MatchVerdict

logger = logging.getLogger(__name__)


class AddressState(Enum):
    """Connection states of an AddressChecker. MATCHED and DOWN are terminal."""
    CONNECTING = "connecting"
    TLS_HANDSHAKING = "tls_handshaking"
    AWAITING_GREETING = "awaiting_greeting"
    MATCHED = "matched"
    DOWN = "down"


REASON_TIMEOUT = "timeout"
REASON_UNEXPECTED_GREETING = "unexpected greeting"
REASON_GREETING_NOT_FOUND = "greeting not found"


class AddressChecker(BaseChecker):
    """
    Checker for a single IP address of a TLS service.

    Connects over TCP, negotiates TLS and waits for the expected greeting.
    Every suspension point (connect, handshake, each read) is bounded by the
    configured timeout. Failures are sent to the run's Reporter keyed on the
    IP address; a connection that closes without a confirmed greeting is
    reported as "greeting not found", which the Reporter suppresses when an
    earlier failure for the same address was already reported.
    """

    READ_CHUNK_SIZE = 4096

    def __init__(self, config: CheckConfig, reporter: Reporter):
        """
        Initialize the checker.

        Args:
            config: Service settings (port, certificate policy, timeout, greeting, verbose)
            reporter: Run-scoped reporter that receives down reports
        """
        super().__init__(timeout=config.timeout)
        self.config = config
        self.reporter = reporter

    async def check(self, target: str, **kwargs) -> CheckResult:
        """
        Check one resolved address.

        Args:
            target: IPv4 address to connect to
            **kwargs: Additional parameters (unused)

        Returns:
            CheckResult with status UP when the greeting matched, DOWN otherwise
        """
        start_time = time.time()
        state = AddressState.CONNECTING
        matcher = GreetingMatcher(self.config.greeting)
        writer: Optional[asyncio.StreamWriter] = None
        certificate: Dict[str, Any] = {}
        reason: Optional[str] = None

        logger.debug(f"Connecting to {target}:{self.config.port}")

        loop = asyncio.get_running_loop()
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setblocking(False)

        try:
            await asyncio.wait_for(
                loop.sock_connect(sock, (target, self.config.port)),
                timeout=self.timeout
            )

            # No stream is attached before TLS, so bytes a plaintext server
            # sends first reach the handshake and fail it
            state = AddressState.TLS_HANDSHAKING
            logger.debug(f"{target}: TCP connected, starting TLS handshake")
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(
                    sock=sock,
                    ssl=self._create_ssl_context(),
                    server_hostname=self.config.hostname
                ),
                timeout=self.timeout
            )
            certificate = self._peer_certificate_info(writer)

            state = AddressState.AWAITING_GREETING
            logger.debug(f"{target}: TLS established, waiting for greeting")

            while True:
                data = await asyncio.wait_for(
                    reader.read(self.READ_CHUNK_SIZE),
                    timeout=self.timeout
                )
                if not data:
                    logger.debug(f"{target}: connection closed after {len(matcher.buffered)} byte(s)")
                    break

                verdict = matcher.feed(data)
                if verdict is MatchVerdict.MATCHED:
                    state = AddressState.MATCHED
                    break
                if verdict is MatchVerdict.MISMATCHED:
                    reason = REASON_UNEXPECTED_GREETING
                    logger.debug(f"{target}: received {matcher.buffered!r}, expected {self.config.greeting!r}")
                    break

        except asyncio.TimeoutError:
            logger.debug(f"{target}: timed out while {state.value} after {self.timeout}s")
            reason = REASON_TIMEOUT
        except (ssl.SSLError, OSError, asyncio.IncompleteReadError) as e:
            logger.debug(f"{target}: {type(e).__name__} while {state.value}: {str(e)}")
            reason = self._describe_failure(state, e)

        if state is AddressState.MATCHED:
            if self.config.verbose:
                logger.info(f"{target}: received greeting")
                if certificate:
                    logger.debug(
                        f"{target}: certificate subject={certificate.get('subject')} "
                        f"issuer={certificate.get('issuer')} expires={certificate.get('expiration_date')}"
                    )
            await self._close_gracefully(target, writer)
        else:
            if reason is not None:
                self.reporter.report_down(target, reason)
            if writer is not None:
                writer.transport.abort()
            else:
                sock.close()
            state = AddressState.DOWN

        # Closing without a confirmed greeting is itself a failure
        if state is not AddressState.MATCHED:
            self.reporter.report_down(target, REASON_GREETING_NOT_FOUND)

        details = {
            'port': self.config.port,
            'state': state.value,
            'elapsed': time.time() - start_time,
        }
        if certificate:
            details['certificate'] = certificate

        if state is AddressState.MATCHED:
            return self._create_result(target, CheckResult.UP, "received greeting", details)
        return self._create_result(target, CheckResult.DOWN, reason or REASON_GREETING_NOT_FOUND, details)

    def _create_ssl_context(self) -> ssl.SSLContext:
        """
        Build the client TLS context.

        With certificate checks enabled the standard trust chain and hostname
        verification apply. Otherwise all peer verification is disabled.
        """
        context = ssl.create_default_context()
        if not self.config.check_certificates:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    @staticmethod
    def _describe_failure(state: AddressState, error: BaseException) -> str:
        """Turn an exception into a down reason based on where it happened."""
        message = str(error) or type(error).__name__
        if state is AddressState.CONNECTING:
            return f"error: {message}"
        return f"TLS error: {message}"

    async def _close_gracefully(self, target: str, writer: Optional[asyncio.StreamWriter]) -> None:
        """Close a matched session. Errors while closing are expected and not failures."""
        if writer is None:
            return

        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{target}: TLS shutdown timed out, aborting connection")
            writer.transport.abort()
        except (ssl.SSLError, OSError) as e:
            logger.debug(f"{target}: error while closing after greeting: {str(e)}")

    def _peer_certificate_info(self, writer: asyncio.StreamWriter) -> Dict[str, Any]:
        """Extract subject, issuer and expiry of the peer certificate."""
        ssl_object = writer.get_extra_info('ssl_object')
        if ssl_object is None:
            return {}

        cert_der = ssl_object.getpeercert(binary_form=True)
        if not cert_der:
            return {}
        return parse_certificate(cert_der)


def _common_name(name: x509.Name) -> Optional[str]:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attributes[0].value) if attributes else None


def parse_certificate(cert_der: bytes) -> Dict[str, Any]:
    """
    Summarize a DER encoded certificate.

    Args:
        cert_der: Certificate as sent by the peer

    Returns:
        Dictionary with subject and issuer common names, expiration date
        (ISO 8601, UTC) and whether the certificate has expired. Empty if the
        certificate cannot be parsed.
    """
    try:
        cert = crypto.load_certificate(crypto.FILETYPE_ASN1, cert_der).to_cryptography()
    except crypto.Error as e:
        logger.debug(f"Could not parse peer certificate: {str(e)}")
        return {}

    not_after = cert.not_valid_after_utc
    return {
        'subject': _common_name(cert.subject),
        'issuer': _common_name(cert.issuer),
        'expiration_date': not_after.isoformat(),
        'expired': not_after < datetime.now(timezone.utc),
    }
