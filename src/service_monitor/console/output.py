"""Central console output manager for Rich-formatted output.

This module provides the ConsoleManager class that coordinates all Rich console
output throughout the application, ensuring consistent formatting and handling
debug mode appropriately.
"""

from typing import Optional, Dict, List, Any, TYPE_CHECKING
import traceback
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text
from rich.table import Table
from .themes import get_theme, ICONS, STATUS_COLORS

if TYPE_CHECKING:
    from ..executor import RunResult


class ConsoleManager:
    """Central console output manager.

    Attributes:
        console: Rich Console instance
        debug_mode: Whether debug mode is enabled
        theme: Rich Theme for consistent styling
    """

    def __init__(self, debug_mode: bool = False, console: Optional[Console] = None):
        """Initialize the ConsoleManager.

        Args:
            debug_mode: If True, display info and debug messages to console
            console: Optional Console to write to (default: a themed stdout console)
        """
        self.debug_mode = debug_mode
        self.theme = get_theme()
        self.console = console or Console(theme=self.theme)

    def print_banner(
        self,
        version: str,
        manifest_path: str,
        services: List[str],
        notification: str
    ) -> None:
        """Display application startup banner.

        Args:
            version: Application version string
            manifest_path: Path to the manifest file being used
            services: "host:port" strings of the services to be checked
            notification: Description of the notification channel
        """
        banner_text = Text()
        banner_text.append("TLS Service Liveliness Monitor\n", style="bold cyan")
        banner_text.append(f"Version: {version}\n\n", style="dim")

        banner_text.append(f"{ICONS['info']} Manifest: ", style="info")
        banner_text.append(f"{manifest_path}\n", style="white")

        banner_text.append(f"{ICONS['host']} Services: ", style="info")
        banner_text.append(", ".join(services), style="host")
        banner_text.append("\n")

        banner_text.append(f"{ICONS['info']} Notifications: ", style="info")
        banner_text.append(notification, style="white")

        if self.debug_mode:
            banner_text.append("\n\n", style="white")
            banner_text.append(f"{ICONS['warning']} Debug Mode: ", style="warning")
            banner_text.append("ENABLED", style="bold yellow")

        panel = Panel(
            banner_text,
            title="[bold]Application Startup[/bold]",
            border_style="cyan",
            padding=(1, 2)
        )

        self.console.print(panel)
        self.console.print()

    def print_results(self, results: List['RunResult']) -> None:
        """Display run results as a table, one row per checked address.

        Args:
            results: RunResult objects from the executor
        """
        table = Table(
            title="[bold magenta]Service Liveliness Results[/bold magenta]",
            show_header=True,
            header_style="bold cyan",
            border_style="dim"
        )
        table.add_column("Service", style="host", no_wrap=True)
        table.add_column("Address", style="address", no_wrap=True)
        table.add_column("Status", justify="center")
        table.add_column("Reason", style="white")
        table.add_column("Time", justify="right", style="metric")

        for run in results:
            service = f"{run.hostname}:{run.port}"
            if not run.results:
                reason = "; ".join(event.reason for event in run.down_events) or "no result"
                table.add_row(service, "-", self._format_status(run.status), reason, f"{run.execution_time:.2f}s")
                continue

            for check in run.results:
                elapsed = check.details.get('elapsed')
                table.add_row(
                    service,
                    check.target,
                    self._format_status(check.status),
                    check.message,
                    f"{elapsed:.2f}s" if elapsed is not None else "-"
                )
                service = ""

        self.console.print()
        self.console.print(table)

        down = sum(1 for run in results if run.down_events)
        if down:
            self.print_warning(f"{down} of {len(results)} service(s) reported down")
        else:
            self.print_success(f"All {len(results)} service(s) greeted as expected")

    def _format_status(self, status: str) -> Text:
        icon = ICONS['success'] if status == 'UP' else ICONS['error']
        return Text(f"{icon} {status}", style=STATUS_COLORS.get(status, "white"))

    def print_error(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        show_traceback: bool = False
    ) -> None:
        """Display error message in Rich Panel format.

        Args:
            message: Error message to display
            details: Optional dictionary with additional context
            exception: Optional exception object for extracting traceback
            show_traceback: Force showing traceback even in non-debug mode
        """
        error_text = Text()
        error_text.append(f"{ICONS['error']} ", style="error")
        error_text.append(message, style="error")

        if details:
            error_text.append("\n\n", style="white")
            error_text.append("Context:\n", style="bold dim")
            for key, value in details.items():
                error_text.append(f"  {key.replace('_', ' ').title()}: ", style="dim")
                error_text.append(f"{value}\n", style="white")

        suggestion = self._get_error_suggestion(message)
        if suggestion:
            error_text.append("\n", style="white")
            error_text.append(f"{ICONS['info']} Suggestion: ", style="info")
            error_text.append(suggestion, style="cyan")

        panel = Panel(
            error_text,
            title="[bold red]Error[/bold red]",
            border_style="red",
            padding=(1, 2)
        )

        self.console.print(panel)

        if (self.debug_mode or show_traceback) and exception:
            self._print_traceback(exception)

    def _get_error_suggestion(self, message: str) -> Optional[str]:
        """Get actionable suggestion for common errors.

        Args:
            message: Error message

        Returns:
            Suggestion string or None if no suggestion available
        """
        message_lower = message.lower()

        if 'file not found' in message_lower or 'no such file' in message_lower:
            return "Check that the file path is correct and the file exists. Use absolute paths if needed."

        if 'port' in message_lower:
            return "Ports must be integers between 1 and 65535."

        if 'greeting' in message_lower:
            return "Set 'greeting' to the exact text the server sends first, e.g. \"NOTICE AUTH\"."

        if 'webhook' in message_lower:
            return "The notification webhook URL must start with http:// or https://."

        if 'yaml' in message_lower or 'json' in message_lower:
            return "Check the manifest syntax. A 'services' list with hostname and port entries is required."

        return None

    def _print_traceback(self, exception: BaseException) -> None:
        """Print exception traceback with syntax highlighting.

        Args:
            exception: Exception object to display traceback for
        """
        if not hasattr(exception, '__traceback__'):
            return

        tb_lines = traceback.format_exception(
            type(exception),
            exception,
            exception.__traceback__
        )
        tb_text = ''.join(tb_lines)

        syntax = Syntax(
            tb_text,
            "python",
            theme="monokai",
            line_numbers=True,
            word_wrap=True
        )

        self.console.print()
        self.console.print(Panel(
            syntax,
            title="[bold red]Stack Trace[/bold red]",
            border_style="red",
            padding=(1, 2)
        ))

    def print_success(self, message: str) -> None:
        """Display success message."""
        self.console.print(f"{ICONS['success']} {message}", style="success")

    def print_warning(self, message: str) -> None:
        """Display warning message."""
        self.console.print(f"{ICONS['warning']} {message}", style="warning")

    def print_info(self, message: str) -> None:
        """Display info message (only in debug mode)."""
        if self.debug_mode:
            self.console.print(f"{ICONS['info']} {message}", style="info")
