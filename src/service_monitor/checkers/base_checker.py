"""
Base checker infrastructure for service monitoring.

Provides abstract base class and result dataclass for all checker implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class CheckResult:
    """
    Result of a liveliness check against a single target.

    Attributes:
        target: The IP address or hostname that was checked
        check_type: Type of check performed (e.g., 'address', 'host')
        status: Status of the check (UP or DOWN)
        message: Human-readable message describing the result
        details: Additional structured data about the check result
        timestamp: When the check was performed
    """
    target: str
    check_type: str
    status: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    # Status constants
    UP = "UP"
    DOWN = "DOWN"

    @property
    def is_up(self) -> bool:
        return self.status == self.UP


class BaseChecker(ABC):
    """
    Abstract base class for all liveliness checkers.

    All checker implementations must inherit from this class and implement
    the check() method. Provides the shared timeout and result creation.
    """

    def __init__(self, timeout: float = 10.0):
        """
        Initialize the checker.

        Args:
            timeout: Maximum time in seconds to wait at any suspension point (default: 10)
        """
        self.timeout = timeout

    @abstractmethod
    async def check(self, target: str, **kwargs) -> CheckResult:
        """
        Execute the check for the specified target.

        Args:
            target: The IP address or hostname to check
            **kwargs: Additional parameters specific to the check type

        Returns:
            CheckResult object containing the check results
        """
        pass

    def _create_result(
        self,
        target: str,
        status: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> CheckResult:
        """
        Helper method to create CheckResult objects.

        Args:
            target: The IP address or hostname that was checked
            status: Status of the check (use CheckResult constants)
            message: Human-readable message describing the result
            details: Optional additional structured data

        Returns:
            CheckResult object with the specified parameters
        """
        return CheckResult(
            target=target,
            check_type=self.__class__.__name__.replace('Checker', '').replace('Monitor', '').lower(),
            status=status,
            message=message,
            details=details or {},
            timestamp=datetime.now()
        )
