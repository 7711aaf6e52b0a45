"""
Checker modules for service monitoring.

Each checker module implements one layer of the liveliness check.
"""

from .base_checker import BaseChecker, CheckResult
from .greeting import GreetingMatcher, MatchVerdict
from .address import AddressChecker, AddressState
from .host import HostMonitor, HostResult, ResolutionError

__all__ = [
    'BaseChecker',
    'CheckResult',
    'GreetingMatcher',
    'MatchVerdict',
    'AddressChecker',
    'AddressState',
    'HostMonitor',
    'HostResult',
    'ResolutionError',
]
