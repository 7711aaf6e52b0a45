"""
TLS Service Liveliness Monitor

Checks that every address behind a hostname accepts TLS connections and
announces itself with the expected greeting banner, reporting failures
once per run to a notification channel.
"""

__version__ = "0.1.0"
__author__ = "Service Monitor Team"

from .config import CheckConfig, ManifestConfig, NotificationConfig, load_manifest, validate_manifest, get_default_manifest_path
from .checkers.base_checker import BaseChecker, CheckResult
from .checkers.greeting import GreetingMatcher, MatchVerdict
from .checkers.address import AddressChecker, AddressState
from .checkers.host import HostMonitor, HostResult
from .reporter import Reporter, DownEvent
from .notifier import BaseNotifier, WebhookNotifier, LogNotifier, create_notifier
from .executor import ServiceExecutor, RunResult
from .main import main

__all__ = [
    'CheckConfig',
    'ManifestConfig',
    'NotificationConfig',
    'load_manifest',
    'validate_manifest',
    'get_default_manifest_path',
    'BaseChecker',
    'CheckResult',
    'GreetingMatcher',
    'MatchVerdict',
    'AddressChecker',
    'AddressState',
    'HostMonitor',
    'HostResult',
    'Reporter',
    'DownEvent',
    'BaseNotifier',
    'WebhookNotifier',
    'LogNotifier',
    'create_notifier',
    'ServiceExecutor',
    'RunResult',
    'main',
]
