"""Configuration management for service monitoring."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_GREETING = "NOTICE AUTH"
DEFAULT_TIMEOUT_MS = 10000
DEFAULT_SUBJECT = "Service liveliness"

# Built-in values for optional service keys
SERVICE_DEFAULTS: Dict[str, Any] = {
    'check_certificates': True,
    'timeout_ms': DEFAULT_TIMEOUT_MS,
    'greeting': DEFAULT_GREETING,
    'verbose': False,
}

SERVICE_KEYS = {'hostname', 'port', 'check_certificates', 'timeout_ms', 'greeting', 'verbose'}


@dataclass(frozen=True)
class CheckConfig:
    """Settings for checking one TLS service. Immutable for the duration of a run."""

    hostname: str
    port: int
    check_certificates: bool = True
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    greeting: bytes = DEFAULT_GREETING.encode('utf-8')
    verbose: bool = False

    @property
    def timeout(self) -> float:
        """Connect/idle timeout in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def greeting_text(self) -> str:
        return self.greeting.decode('utf-8', errors='replace')


@dataclass
class NotificationConfig:
    """Notification channel settings."""

    webhook_url: Optional[str] = None
    subject: str = DEFAULT_SUBJECT
    timeout: float = 10.0


@dataclass
class ManifestConfig:
    """Complete manifest configuration."""

    services: List[CheckConfig]
    notification: NotificationConfig = field(default_factory=NotificationConfig)


def get_default_manifest_path() -> Optional[str]:
    """
    Find default manifest file in current directory.

    Looks for services.yaml first, then services.json.

    Returns:
        Path to manifest file if found, None otherwise.
    """
    yaml_path = Path('services.yaml')
    if yaml_path.exists():
        return str(yaml_path)

    json_path = Path('services.json')
    if json_path.exists():
        return str(json_path)

    return None


def load_manifest(file_path: str) -> ManifestConfig:
    """
    Load and parse manifest file (YAML or JSON).

    Args:
        file_path: Path to manifest file

    Returns:
        Parsed ManifestConfig object

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is invalid or parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Manifest file not found: {file_path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()

        if path.suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(content)
        elif path.suffix == '.json':
            data = json.loads(content)
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}. Use .yaml, .yml, or .json")

        if data is None:
            raise ValueError("Manifest file is empty")

        manifest = parse_manifest(data)
        validate_manifest(manifest)
        return manifest

    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax: {str(e)}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON syntax at line {e.lineno}, column {e.colno}: {e.msg}")
    except Exception as e:
        if isinstance(e, (FileNotFoundError, ValueError)):
            raise
        raise ValueError(f"Failed to parse manifest file: {str(e)}")


def parse_manifest(data: Any) -> ManifestConfig:
    """
    Build a ManifestConfig from already-decoded YAML/JSON data.

    Args:
        data: Top-level mapping from the manifest file

    Returns:
        ManifestConfig (not yet validated)

    Raises:
        ValueError: If the structure is wrong
    """
    if not isinstance(data, dict):
        raise ValueError("Manifest must be an object/dictionary")

    defaults = data.get('defaults', {}) or {}
    if not isinstance(defaults, dict):
        raise ValueError("'defaults' must be an object/dictionary")

    unknown = set(defaults) - (SERVICE_KEYS - {'hostname'})
    if unknown:
        raise ValueError(f"Unknown key(s) in defaults: {', '.join(sorted(unknown))}")

    services_data = data.get('services')
    if services_data is None:
        raise ValueError("Manifest is missing required 'services' list")
    if not isinstance(services_data, list):
        raise ValueError("'services' must be a list")
    if not services_data:
        raise ValueError("No services defined in manifest")

    services = []
    for idx, service_data in enumerate(services_data):
        try:
            services.append(_parse_service(service_data, defaults))
        except ValueError as e:
            raise ValueError(f"Service at index {idx}: {str(e)}")

    notification = _parse_notification(data.get('notification'))

    return ManifestConfig(services=services, notification=notification)


def _parse_service(service_data: Any, defaults: Dict[str, Any]) -> CheckConfig:
    """
    Parse a single service entry, filling gaps from defaults.

    Raises:
        ValueError: If the entry is invalid
    """
    if not isinstance(service_data, dict):
        raise ValueError("must be an object/dictionary")

    unknown = set(service_data) - SERVICE_KEYS
    if unknown:
        raise ValueError(f"unknown key(s): {', '.join(sorted(unknown))}")

    merged = dict(SERVICE_DEFAULTS)
    merged.update(defaults)
    merged.update(service_data)

    hostname = merged.get('hostname')
    if not isinstance(hostname, str) or not hostname.strip():
        raise ValueError("missing required 'hostname' field")

    port = merged.get('port')
    if port is None:
        raise ValueError(f"'{hostname}': missing required 'port' field")

    greeting = merged['greeting']
    if not isinstance(greeting, str):
        raise ValueError(f"'{hostname}': 'greeting' must be a string")

    for flag in ('check_certificates', 'verbose'):
        if not isinstance(merged[flag], bool):
            raise ValueError(f"'{hostname}': '{flag}' must be true or false")

    timeout_ms = merged['timeout_ms']
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
        raise ValueError(f"'{hostname}': 'timeout_ms' must be an integer")

    if isinstance(port, bool) or not isinstance(port, int):
        raise ValueError(f"'{hostname}': 'port' must be an integer")

    return CheckConfig(
        hostname=hostname.strip(),
        port=port,
        check_certificates=merged['check_certificates'],
        timeout_ms=timeout_ms,
        greeting=greeting.encode('utf-8'),
        verbose=merged['verbose'],
    )


def _parse_notification(notification_data: Any) -> NotificationConfig:
    if notification_data is None:
        return NotificationConfig()

    if not isinstance(notification_data, dict):
        raise ValueError("'notification' must be an object/dictionary")

    webhook_url = notification_data.get('webhook_url')
    if webhook_url is not None and not isinstance(webhook_url, str):
        raise ValueError("'notification.webhook_url' must be a string")

    subject = notification_data.get('subject', DEFAULT_SUBJECT)
    if not isinstance(subject, str):
        raise ValueError("'notification.subject' must be a string")

    timeout = notification_data.get('timeout', 10.0)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValueError("'notification.timeout' must be a number")

    return NotificationConfig(
        webhook_url=webhook_url.strip() if webhook_url else None,
        subject=subject,
        timeout=float(timeout),
    )


def validate_manifest(manifest: ManifestConfig) -> None:
    """
    Validate manifest configuration.

    Args:
        manifest: ManifestConfig to validate

    Raises:
        ValueError: If validation fails with descriptive error message
    """
    if not manifest.services:
        raise ValueError("No services defined in manifest")

    for service in manifest.services:
        validate_check_config(service)

    notification = manifest.notification
    if notification.webhook_url and not notification.webhook_url.startswith(('http://', 'https://')):
        raise ValueError(
            f"Invalid webhook URL '{notification.webhook_url}'. Must start with http:// or https://"
        )
    if notification.timeout <= 0:
        raise ValueError(f"Notification timeout must be positive, got {notification.timeout}")


def validate_check_config(service: CheckConfig) -> None:
    """
    Validate a single service configuration.

    Raises:
        ValueError: If any field is out of range
    """
    if not service.hostname or not service.hostname.strip():
        raise ValueError("Service hostname cannot be empty")

    if not 1 <= service.port <= 65535:
        raise ValueError(f"Invalid port for '{service.hostname}': {service.port}. Must be 1-65535")

    if service.timeout_ms <= 0:
        raise ValueError(f"Invalid timeout_ms for '{service.hostname}': {service.timeout_ms}. Must be positive")

    if not service.greeting:
        raise ValueError(f"Greeting for '{service.hostname}' cannot be empty")
