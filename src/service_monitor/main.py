"""
CLI entry point for the TLS service liveliness monitor.

Provides command-line interface for running a single liveliness run or
periodic runs, with manifest file or ad-hoc service selection, JSON export,
and logging configuration.
"""

import asyncio
import dataclasses
import logging
import sys
from typing import Optional

import click

from . import __version__
from .config import (
    CheckConfig,
    DEFAULT_GREETING,
    DEFAULT_TIMEOUT_MS,
    ManifestConfig,
    NotificationConfig,
    get_default_manifest_path,
    load_manifest,
    validate_manifest,
)
from .executor import ServiceExecutor
from .reporter import export_json
from .scheduler import RunScheduler
from .console.output import ConsoleManager


logger = logging.getLogger(__name__)

LOG_FILE = 'service-monitor.log'


def setup_logging(log_level: str, debug_mode: bool = False) -> None:
    """
    Configure logging with specified level and debug mode.

    Everything at the requested level goes to the log file. The console only
    receives log records in debug mode.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug_mode: If True, display all logs to console
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    if debug_mode:
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
    else:
        console_handler.setLevel(logging.CRITICAL + 1)  # Suppress all logs

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Logging initialized at {log_level} level (debug_mode={debug_mode})")


def resolve_manifest_file(file_path: Optional[str]) -> str:
    """
    Resolve manifest file path.

    Args:
        file_path: Optional path to manifest file

    Returns:
        Path to manifest file

    Raises:
        click.ClickException: If no manifest file found
    """
    if file_path:
        return file_path

    default_path = get_default_manifest_path()

    if default_path is None:
        raise click.ClickException(
            "No manifest file found. Please either:\n"
            "  1. Create a 'services.yaml' or 'services.json' file in the current directory,\n"
            "  2. Specify a manifest file using the -f/--file option, or\n"
            "  3. Check a single service with -H/--host and -p/--port\n\n"
            "Example: service-monitor check -H irc.example.org -p 6697"
        )

    return default_path


def create_adhoc_manifest(
    host: str,
    port: int,
    greeting: str,
    timeout_ms: int,
    insecure: bool,
    verbose: bool,
    webhook_url: Optional[str] = None
) -> ManifestConfig:
    """
    Create manifest for an ad-hoc single service check.

    Raises:
        ValueError: If the resulting configuration is invalid
    """
    manifest = ManifestConfig(
        services=[CheckConfig(
            hostname=host,
            port=port,
            check_certificates=not insecure,
            timeout_ms=timeout_ms,
            greeting=greeting.encode('utf-8'),
            verbose=verbose
        )],
        notification=NotificationConfig(webhook_url=webhook_url)
    )
    validate_manifest(manifest)
    return manifest


def load_run_manifest(
    file: Optional[str],
    host: Optional[str],
    port: Optional[int],
    greeting: str,
    timeout_ms: int,
    insecure: bool,
    verbose: bool,
    webhook_url: Optional[str]
) -> tuple:
    """
    Build the manifest from either a file or the ad-hoc options.

    Returns:
        (ManifestConfig, description of its source)
    """
    if file and host:
        raise click.ClickException(
            "Cannot use both -f/--file and -H/--host options together. "
            "Please specify only one."
        )

    if host:
        if port is None:
            raise click.ClickException("-p/--port is required together with -H/--host")
        manifest = create_adhoc_manifest(host, port, greeting, timeout_ms, insecure, verbose, webhook_url)
        return manifest, f"ad-hoc: {host}:{port}"

    manifest_path = resolve_manifest_file(file)
    logger.info(f"Loading manifest from: {manifest_path}")
    manifest = load_manifest(manifest_path)

    if verbose:
        manifest.services = [dataclasses.replace(s, verbose=True) for s in manifest.services]
    if webhook_url:
        manifest.notification = dataclasses.replace(manifest.notification, webhook_url=webhook_url)
        validate_manifest(manifest)

    return manifest, manifest_path


def _describe_notification(manifest: ManifestConfig) -> str:
    if manifest.notification.webhook_url:
        return f"webhook {manifest.notification.webhook_url}"
    return "log only"


@click.group()
@click.version_option(__version__, prog_name='service-monitor')
def cli() -> None:
    """
    TLS Service Liveliness Monitor

    Resolve a hostname, connect to every address over TLS and verify that the
    expected greeting banner arrives. Addresses that fail are reported once per run.
    """
    pass


@cli.command(name='check')
@click.option('-f', '--file', type=click.Path(exists=True), help='Path to manifest file (YAML/JSON)')
@click.option('-H', '--host', type=str, help='Single hostname to check (ad-hoc mode)')
@click.option('-p', '--port', type=click.IntRange(1, 65535), help='Port for ad-hoc mode')
@click.option('--greeting', type=str, default=DEFAULT_GREETING, show_default=True,
              help='Expected greeting prefix for ad-hoc mode')
@click.option('--timeout-ms', type=click.IntRange(min=1), default=DEFAULT_TIMEOUT_MS, show_default=True,
              help='Connect/idle timeout in milliseconds for ad-hoc mode')
@click.option('--insecure', is_flag=True, default=False,
              help='Do not verify TLS certificates (ad-hoc mode)')
@click.option('--verbose', is_flag=True, default=False, help='Log successful greetings as well')
@click.option('--webhook-url', type=str, help='Webhook URL that receives down reports')
@click.option('-o', '--output', type=click.Path(), help='Output file path (.json)')
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Logging level (default: INFO)'
)
@click.option('--debug', is_flag=True, default=False, help='Enable debug mode with verbose console output')
def check_command(
    file: Optional[str],
    host: Optional[str],
    port: Optional[int],
    greeting: str,
    timeout_ms: int,
    insecure: bool,
    verbose: bool,
    webhook_url: Optional[str],
    output: Optional[str],
    log_level: str,
    debug: bool
) -> None:
    """
    Run one liveliness check and display results.

    Services reported down do not make the command fail; only configuration
    problems do.

    Examples:

        # Use default manifest file (services.yaml or services.json)
        service-monitor check

        # Check a single service with a self-signed certificate
        service-monitor check -H irc.example.org -p 7000 --insecure

        # Export results to JSON
        service-monitor check -f services.yaml -o report.json
    """
    setup_logging(log_level, debug_mode=debug)
    console_manager = ConsoleManager(debug_mode=debug)

    if output and not output.lower().endswith('.json'):
        raise click.ClickException("Unsupported output format. Please use a .json extension.")

    try:
        manifest, source = load_run_manifest(
            file, host, port, greeting, timeout_ms, insecure, verbose, webhook_url
        )

        console_manager.print_banner(
            version=__version__,
            manifest_path=source,
            services=[f"{s.hostname}:{s.port}" for s in manifest.services],
            notification=_describe_notification(manifest)
        )
        console_manager.print_info(f"Loaded {len(manifest.services)} service(s) from {source}")

        executor = ServiceExecutor(manifest, console_manager=console_manager)
        results = asyncio.run(executor.execute_all())

        console_manager.print_results(results)

        if output:
            export_json(results, output)
            console_manager.print_success(f"Results exported to: {output}")

        logger.info("Liveliness run completed")

    except click.ClickException:
        raise

    except FileNotFoundError as e:
        logger.error(f"File not found: {str(e)}", exc_info=True)
        console_manager.print_error(
            f"File not found: {str(e)}",
            details={'error_type': 'FileNotFoundError'},
            exception=e
        )
        sys.exit(1)

    except (ValueError, OSError) as e:
        error_msg = str(e) if str(e) else f"{type(e).__name__} occurred"
        logger.error(f"Configuration error: {error_msg}", exc_info=True)
        console_manager.print_error(
            error_msg,
            details={'error_type': type(e).__name__, 'log_file': LOG_FILE},
            exception=e
        )
        sys.exit(1)


@cli.command(name='watch')
@click.option('-f', '--file', type=click.Path(exists=True), help='Path to manifest file (YAML/JSON)')
@click.option('--interval', type=float, default=300.0, show_default=True,
              help='Seconds between runs')
@click.option('--max-runs', type=click.IntRange(min=1), default=None,
              help='Stop after this many runs (default: run until CTRL+C)')
@click.option('--verbose', is_flag=True, default=False, help='Log successful greetings as well')
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Logging level (default: INFO)'
)
@click.option('--debug', is_flag=True, default=False, help='Enable debug mode with verbose console output')
def watch_command(
    file: Optional[str],
    interval: float,
    max_runs: Optional[int],
    verbose: bool,
    log_level: str,
    debug: bool
) -> None:
    """
    Scheduled mode - run the liveliness check every interval.

    Each run starts with a clean slate: an address that is still down is
    reported again in the next run.
    """
    if interval <= 0:
        raise click.ClickException(
            f"Invalid interval: {interval}. Interval must be greater than 0."
        )

    setup_logging(log_level, debug_mode=debug)
    console_manager = ConsoleManager(debug_mode=debug)

    try:
        manifest, source = load_run_manifest(
            file, None, None, DEFAULT_GREETING, DEFAULT_TIMEOUT_MS, False, verbose, None
        )
    except FileNotFoundError as e:
        logger.error(f"File not found: {str(e)}", exc_info=True)
        raise click.ClickException(f"Manifest file not found: {str(e)}")
    except ValueError as e:
        logger.error(f"Configuration error: {str(e)}", exc_info=True)
        raise click.ClickException(f"Manifest configuration error: {str(e)}")

    console_manager.print_banner(
        version=__version__,
        manifest_path=source,
        services=[f"{s.hostname}:{s.port}" for s in manifest.services],
        notification=_describe_notification(manifest)
    )
    click.echo(f"Run interval: {interval}s")
    click.echo("\nPress CTRL+C to stop monitoring\n")

    scheduler = RunScheduler(
        executor_factory=lambda: ServiceExecutor(manifest, console_manager=console_manager),
        interval=interval,
        on_results=console_manager.print_results,
        max_runs=max_runs
    )

    try:
        asyncio.run(scheduler.start())
    except KeyboardInterrupt:
        pass

    click.echo(f"\nMonitoring stopped after {scheduler.run_count} run(s).")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
