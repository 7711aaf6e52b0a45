"""
Notification channels for down reports.

A notifier publishes a plain text message to an external channel and tells
the caller whether delivery worked. Delivery problems never raise.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import aiohttp

if TYPE_CHECKING:
    from .config import NotificationConfig

logger = logging.getLogger(__name__)


class BaseNotifier(ABC):
    """Abstract notification channel."""

    @abstractmethod
    async def publish(self, message: str) -> bool:
        """
        Publish a message to the channel.

        Args:
            message: Text to deliver

        Returns:
            True if the message was delivered, False otherwise
        """
        pass


class LogNotifier(BaseNotifier):
    """Channel used when no external endpoint is configured; writes to the log only."""

    async def publish(self, message: str) -> bool:
        logger.warning(f"Notification: {message}")
        return True


class WebhookNotifier(BaseNotifier):
    """
    Publishes messages to an HTTP webhook.

    Each message is POSTed as JSON with a subject and message field.
    Any 2xx response counts as delivered.
    """

    def __init__(self, url: str, subject: str = "Service liveliness", timeout: float = 10.0):
        """
        Initialize the webhook notifier.

        Args:
            url: Webhook URL (http or https)
            subject: Subject sent along with every message
            timeout: Total request timeout in seconds
        """
        self.url = url
        self.subject = subject
        self.timeout = timeout

    async def publish(self, message: str) -> bool:
        payload = {"subject": self.subject, "message": message}
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(timeout=client_timeout) as session:
                async with session.post(self.url, json=payload) as response:
                    if 200 <= response.status < 300:
                        logger.debug(f"Notification delivered to {self.url} (HTTP {response.status})")
                        return True
                    body = await response.text()
                    logger.error(
                        f"Notification rejected by {self.url}: HTTP {response.status} {body[:200]}"
                    )
                    return False
        except asyncio.TimeoutError:
            logger.error(f"Notification to {self.url} timed out after {self.timeout}s")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"Notification to {self.url} failed: {str(e)}")
            return False


def create_notifier(config: Optional['NotificationConfig']) -> BaseNotifier:
    """
    Build the notifier described by the notification configuration.

    Args:
        config: NotificationConfig, or None for a log-only channel

    Returns:
        WebhookNotifier when a webhook URL is configured, LogNotifier otherwise
    """
    if config is None or not config.webhook_url:
        return LogNotifier()
    return WebhookNotifier(config.webhook_url, subject=config.subject, timeout=config.timeout)
