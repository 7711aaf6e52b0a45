"""
Executor layer for service monitoring.

Runs one liveliness check per configured service, each with its own
run-scoped Reporter, and aggregates the results.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Set, TYPE_CHECKING

from .checkers.base_checker import CheckResult
from .checkers.host import HostMonitor
from .config import CheckConfig, ManifestConfig
from .notifier import BaseNotifier, create_notifier
from .reporter import DownEvent, Reporter

if TYPE_CHECKING:
    from .console.output import ConsoleManager


logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """
    Result of one run against a single service.

    Attributes:
        hostname: The configured hostname
        port: The configured port
        addresses: Addresses that were checked
        results: Per-address (or hostname-level) CheckResult objects
        down_events: Down reports emitted during the run
        execution_time: Time taken in seconds
        timestamp: When the run finished
    """
    hostname: str
    port: int
    addresses: Set[str]
    results: List[CheckResult]
    down_events: List[DownEvent]
    execution_time: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> str:
        return CheckResult.DOWN if self.down_events else CheckResult.UP


class ServiceExecutor:
    """
    Executor for running service checks in parallel.

    Creates a fresh Reporter per service and run, so identifiers reported in
    one run never suppress reports in the next.
    """

    def __init__(
        self,
        config: ManifestConfig,
        notifier: Optional[BaseNotifier] = None,
        console_manager: Optional['ConsoleManager'] = None
    ):
        """
        Initialize the executor with manifest configuration.

        Args:
            config: ManifestConfig containing services and notification settings
            notifier: Channel for down reports (default: built from config.notification)
            console_manager: Optional ConsoleManager for status output
        """
        self.config = config
        self.notifier = notifier or create_notifier(config.notification)
        self.console_manager = console_manager

    async def execute_all(self) -> List[RunResult]:
        """
        Run the check for every configured service concurrently.

        Returns:
            List of RunResult objects, one per service, in manifest order
        """
        logger.info(f"Starting checks for {len(self.config.services)} service(s)")
        start_time = time.time()

        tasks = [self.execute_service(service) for service in self.config.services]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        run_results = []
        for service, result in zip(self.config.services, results):
            if isinstance(result, Exception):
                error_msg = str(result) if str(result) else f"{type(result).__name__} occurred"
                logger.error(f"Failed to execute check for {service.hostname}: {error_msg}", exc_info=result)
                if self.console_manager:
                    self.console_manager.print_error(
                        f"Check for {service.hostname} failed: {error_msg}",
                        details={'error_type': type(result).__name__, 'port': service.port},
                        exception=result
                    )
                run_results.append(RunResult(
                    hostname=service.hostname,
                    port=service.port,
                    addresses=set(),
                    results=[],
                    down_events=[DownEvent(service.hostname, f"error: {error_msg}")],
                    execution_time=0.0
                ))
            else:
                run_results.append(result)

        total_time = time.time() - start_time
        logger.info(f"Completed all checks in {total_time:.2f}s")

        return run_results

    async def execute_service(self, service: CheckConfig) -> RunResult:
        """
        Run a single check for one service.

        Args:
            service: CheckConfig for the service

        Returns:
            RunResult with the addresses attempted and any down reports
        """
        logger.debug(f"Starting check for {service.hostname}:{service.port}")
        start_time = time.time()

        reporter = Reporter(self.notifier)
        monitor = HostMonitor(service, reporter)
        try:
            host_result = await monitor.check_host()
        finally:
            await reporter.flush()

        execution_time = time.time() - start_time
        logger.info(
            f"{service.hostname}:{service.port}: {len(host_result.addresses)} address(es) checked, "
            f"{len(reporter.events)} down report(s) in {execution_time:.2f}s"
        )
        if reporter.failed_deliveries:
            logger.warning(f"{service.hostname}: {reporter.failed_deliveries} notification(s) could not be delivered")

        return RunResult(
            hostname=service.hostname,
            port=service.port,
            addresses=host_result.addresses,
            results=host_result.results,
            down_events=list(reporter.events),
            execution_time=execution_time
        )
