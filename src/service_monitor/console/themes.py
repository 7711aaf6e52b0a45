"""Theme configuration for Rich console output.

This module defines color schemes, icons, and Rich themes for consistent
visual presentation throughout the application.
"""

from rich.theme import Theme

# Status color mappings
STATUS_COLORS = {
    'UP': 'green',
    'DOWN': 'bold red',
}

# Unicode icons for various status indicators
ICONS = {
    'success': '✓',
    'error': '✗',
    'warning': '⚠',
    'info': 'ℹ',
    'host': '🌐',
}


def get_theme() -> Theme:
    """Get the Rich theme with custom styles.

    Returns:
        Theme: Rich Theme object with custom style definitions
    """
    return Theme({
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "host": "bold cyan",
        "address": "magenta",
        "timestamp": "dim",
        "metric": "blue"
    })
