"""
Rich console output package for the TLS Service Liveliness Monitor.

This package provides themed console output using the Rich library.
"""

from .output import ConsoleManager
from .themes import get_theme, STATUS_COLORS, ICONS

__all__ = [
    'ConsoleManager',
    'get_theme',
    'STATUS_COLORS',
    'ICONS',
]
