"""Periodic scheduler that triggers one liveliness run per tick."""

import asyncio
import signal
import time
import logging
from typing import Callable, Dict, List, Optional

from .executor import RunResult, ServiceExecutor

logger = logging.getLogger(__name__)


class RunScheduler:
    """Invokes the executor once per interval until stopped. Nothing carries over between runs."""

    def __init__(
        self,
        executor_factory: Callable[[], ServiceExecutor],
        interval: float = 300.0,
        on_results: Optional[Callable[[List[RunResult]], None]] = None,
        max_runs: Optional[int] = None
    ):
        """Initialize the scheduler.

        Args:
            executor_factory: Builds the executor for each run
            interval: Seconds between run starts (default: 300)
            on_results: Optional callback receiving each run's results
            max_runs: Stop after this many runs (default: run until signalled)
        """
        self.executor_factory = executor_factory
        self.interval = interval
        self.on_results = on_results
        self.max_runs = max_runs
        self.run_count = 0

        self._running = False
        self._shutdown_requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._previous_handlers: Dict[int, object] = {}

    def _setup_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown."""
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.signal(signum, self._handle_shutdown)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _handle_shutdown(self, signum, frame) -> None:
        """Handle CTRL+C gracefully.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        if not self._shutdown_requested:
            logger.info(f"Received signal {signum}, stopping after the current run")
            self._shutdown_requested = True
            self._running = False
            self._wake()

    def _wake(self) -> None:
        """Interrupt the wait between runs. Safe to call from a signal handler."""
        if self._loop is not None and self._stop_event is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._stop_event.set)

    async def start(self, install_signal_handlers: bool = True) -> None:
        """Start the scheduling loop."""
        if self._running:
            return

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        if install_signal_handlers:
            self._setup_signal_handlers()

        self._running = True
        self._shutdown_requested = False

        try:
            await self._run_loop()
        finally:
            self.stop()
            self._restore_signal_handlers()

    def stop(self) -> None:
        """Stop scheduling further runs."""
        if self._running:
            logger.info(f"Scheduler stopped after {self.run_count} run(s)")
        self._running = False
        self._wake()

    async def run_once(self) -> List[RunResult]:
        """Execute a single run with a freshly built executor."""
        executor = self.executor_factory()
        results = await executor.execute_all()
        self.run_count += 1

        down = [event for result in results for event in result.down_events]
        logger.info(f"Run {self.run_count} finished: {len(results)} service(s), {len(down)} down report(s)")

        if self.on_results:
            self.on_results(results)
        return results

    async def _run_loop(self) -> None:
        """Main loop that starts a run every interval."""
        while self._running and not self._shutdown_requested:
            loop_start = time.time()

            await self.run_once()

            if self.max_runs is not None and self.run_count >= self.max_runs:
                break

            elapsed = time.time() - loop_start
            sleep_time = max(0, self.interval - elapsed)

            if sleep_time > 0 and self._running and not self._shutdown_requested:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_time)
                except asyncio.TimeoutError:
                    pass
                except asyncio.CancelledError:
                    break
