"""
Host monitor for TLS services behind DNS round robin.

Resolves a hostname to its IPv4 addresses and checks every address
concurrently with an AddressChecker.
"""

import asyncio
import ipaddress
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Set

import dns.exception
import dns.resolver

from ..config import CheckConfig
from ..reporter import Reporter
from .address import AddressChecker
from .base_checker import BaseChecker, CheckResult

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """Raised when a hostname cannot be resolved to any IPv4 address."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass
class HostResult:
    """
    Outcome of checking one hostname.

    Attributes:
        hostname: The hostname that was checked
        addresses: Addresses an AddressChecker was launched for
        results: One CheckResult per address, or a single hostname-level
            result when resolution failed
        resolution_error: DNS error code when resolution failed
    """
    hostname: str
    addresses: Set[str] = field(default_factory=set)
    results: List[CheckResult] = field(default_factory=list)
    resolution_error: str = ""


class HostMonitor(BaseChecker):
    """
    Checker that fans out over every A record of a hostname.

    Resolution failures (including an empty answer) are reported against the
    hostname and no address checks are started. Otherwise one AddressChecker
    per address runs concurrently and reports on its own.
    """

    def __init__(self, config: CheckConfig, reporter: Reporter):
        """
        Initialize the host monitor.

        Args:
            config: Service settings passed on to every AddressChecker
            reporter: Run-scoped reporter shared by all checkers of this run
        """
        super().__init__(timeout=config.timeout)
        self.config = config
        self.reporter = reporter

    async def check(self, target: str, **kwargs) -> CheckResult:
        """
        Check a hostname and summarize it as a single result.

        Args:
            target: Hostname to check
            **kwargs: Additional parameters (unused)

        Returns:
            CheckResult that is UP only if every address is UP
        """
        host_result = await self.check_host(target)
        down = [r for r in host_result.results if not r.is_up]

        details = {
            'addresses': sorted(host_result.addresses),
            'down': [r.target for r in down],
        }
        if host_result.resolution_error:
            return self._create_result(
                target, CheckResult.DOWN, f"DNS error: {host_result.resolution_error}", details
            )
        if down:
            return self._create_result(
                target, CheckResult.DOWN, f"{len(down)} of {len(host_result.addresses)} address(es) down", details
            )
        return self._create_result(
            target, CheckResult.UP, f"all {len(host_result.addresses)} address(es) up", details
        )

    async def check_host(self, hostname: Optional[str] = None) -> HostResult:
        """
        Resolve the hostname and check all of its addresses.

        Args:
            hostname: Hostname to check (default: the configured hostname)

        Returns:
            HostResult with the set of addresses attempted
        """
        hostname = hostname or self.config.hostname
        start_time = time.time()
        logger.debug(f"Resolving {hostname}")

        try:
            addresses = await self._resolve(hostname)
        except ResolutionError as e:
            reason = f"DNS error: {e.code}"
            self.reporter.report_down(hostname, reason)
            return HostResult(
                hostname=hostname,
                results=[self._create_result(hostname, CheckResult.DOWN, reason, {'error_code': e.code})],
                resolution_error=e.code
            )

        logger.debug(f"{hostname} resolved to {sorted(addresses)} in {time.time() - start_time:.3f}s")

        ordered = sorted(addresses)
        tasks = [self._check_address(address) for address in ordered]
        check_results = await asyncio.gather(*tasks, return_exceptions=True)

        results = []
        for address, result in zip(ordered, check_results):
            if isinstance(result, Exception):
                error_msg = str(result) if str(result) else f"{type(result).__name__} occurred"
                logger.error(f"Address check for {address} failed: {error_msg}", exc_info=result)
                reason = f"error: {error_msg}"
                self.reporter.report_down(address, reason)
                results.append(self._create_result(
                    address, CheckResult.DOWN, reason, {'error_type': type(result).__name__}
                ))
            else:
                results.append(result)

        logger.debug(f"Completed {len(ordered)} address check(s) for {hostname} in {time.time() - start_time:.2f}s")

        return HostResult(hostname=hostname, addresses=set(addresses), results=results)

    async def _check_address(self, address: str) -> CheckResult:
        checker = AddressChecker(self.config, self.reporter)
        return await checker.check(address)

    async def _resolve(self, hostname: str) -> Set[str]:
        """
        Resolve a hostname to its IPv4 addresses.

        Args:
            hostname: Hostname (or IPv4 literal) to resolve

        Returns:
            Non-empty set of IPv4 address strings

        Raises:
            ResolutionError: If the lookup fails or returns no addresses
        """
        try:
            return {str(ipaddress.IPv4Address(hostname))}
        except ValueError:
            pass

        try:
            loop = asyncio.get_running_loop()
            addresses = await loop.run_in_executor(None, self._resolve_sync, hostname)
        except dns.exception.DNSException as e:
            logger.debug(f"DNS lookup for {hostname} failed: {type(e).__name__}: {str(e)}")
            raise ResolutionError(type(e).__name__)

        if not addresses:
            raise ResolutionError("no addresses")
        return addresses

    def _resolve_sync(self, hostname: str) -> Set[str]:
        """Synchronous A record lookup (runs in thread pool)."""
        resolver = dns.resolver.Resolver()
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout

        answers = resolver.resolve(hostname, 'A')
        return {answer.to_text() for answer in answers}
