"""
Reporter layer for service monitoring.

Deduplicates down reports within a run, logs them, and forwards them to the
notification channel. Also exports run results to JSON.
"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from .notifier import BaseNotifier, LogNotifier

if TYPE_CHECKING:
    from .executor import RunResult


logger = logging.getLogger(__name__)


@dataclass
class DownEvent:
    """
    A single emitted down report.

    Attributes:
        identifier: Hostname or IP address reported as down
        reason: Human-readable reason, trimmed of surrounding whitespace
        timestamp: When the report was emitted
    """
    identifier: str
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def message(self) -> str:
        return f"{self.identifier}: {self.reason}"


class Reporter:
    """
    Run-scoped down reporter.

    Emits at most one report per identifier for the lifetime of the instance.
    A new Reporter is created at the start of every run and dropped at its end.
    Delivery to the notifier happens in the background; call flush() before
    discarding the reporter to wait for outstanding deliveries.
    """

    def __init__(self, notifier: Optional[BaseNotifier] = None):
        """
        Initialize the reporter.

        Args:
            notifier: Channel that receives each down message (default: LogNotifier)
        """
        self.notifier = notifier or LogNotifier()
        self.events: List[DownEvent] = []
        self.failed_deliveries = 0
        self._reported: Set[str] = set()
        self._lock = threading.Lock()
        self._pending: Set[asyncio.Task] = set()

    @property
    def reported(self) -> Set[str]:
        """Identifiers reported so far in this run."""
        with self._lock:
            return set(self._reported)

    def has_reported(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._reported

    def report_down(self, identifier: str, reason: str) -> bool:
        """
        Report that a hostname or IP is down.

        The first call for an identifier logs "<identifier>: <reason>" and
        publishes the same message to the notifier. Later calls for the same
        identifier are no-ops.

        Args:
            identifier: Hostname or IP address
            reason: Why it is considered down

        Returns:
            True if a report was emitted, False if it was suppressed
        """
        with self._lock:
            if identifier in self._reported:
                return False
            self._reported.add(identifier)
            event = DownEvent(identifier=identifier, reason=reason.strip())
            self.events.append(event)

        logger.warning(event.message)
        self._dispatch(event.message)
        return True

    def _dispatch(self, message: str) -> None:
        """Schedule delivery of a message without waiting for it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside of an event loop (e.g. from a worker thread)
            asyncio.run(self._deliver(message))
            return

        task = loop.create_task(self._deliver(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, message: str) -> None:
        try:
            delivered = await self.notifier.publish(message)
        except Exception as e:
            logger.error(f"Notification delivery raised {type(e).__name__}: {str(e)}", exc_info=True)
            delivered = False

        if not delivered:
            self.failed_deliveries += 1
            logger.error(f"Failed to deliver notification: {message}")

    async def flush(self) -> None:
        """Wait for all scheduled notification deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _results_to_dict(results: List['RunResult']) -> Dict[str, Any]:
    """Convert run results to a JSON-serializable structure."""
    services = []
    for run in results:
        services.append({
            'hostname': run.hostname,
            'port': run.port,
            'addresses': sorted(run.addresses),
            'status': run.status,
            'execution_time': run.execution_time,
            'timestamp': run.timestamp.isoformat(),
            'checks': [
                {
                    'target': result.target,
                    'status': result.status,
                    'message': result.message,
                    'details': result.details,
                }
                for result in run.results
            ],
            'down_events': [
                {
                    'identifier': event.identifier,
                    'reason': event.reason,
                    'timestamp': event.timestamp.isoformat(),
                }
                for event in run.down_events
            ],
        })

    return {
        'generated_at': datetime.now().isoformat(),
        'total_services': len(results),
        'services_down': sum(1 for run in results if run.down_events),
        'services': services,
    }


def export_json(results: List['RunResult'], file_path: str) -> None:
    """
    Export run results to a JSON file.

    Args:
        results: RunResult objects from the executor
        file_path: Path where the JSON file should be created

    Raises:
        OSError: If the file cannot be written
    """
    data = _results_to_dict(results)

    output_path = Path(file_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, default=str)

    logger.info(f"Results exported to JSON: {file_path}")
