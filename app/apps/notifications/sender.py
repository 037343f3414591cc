"""Push senders: the boundary to the out-of-process delivery worker."""

import logging
from typing import Protocol

from redis.asyncio.client import Redis

from utils.queue_manager import enqueue

from .schemas import Platform, PushMessage

logger = logging.getLogger(__name__)


class PushSender(Protocol):
    """Fire-and-forget push sender; failures are never raised."""

    async def send(self, message: PushMessage, platform: Platform) -> None: ...


class QueuePushSender:
    """Hands push messages to the delivery worker through a Redis list."""

    def __init__(self, client: Redis | None, queue_name: str | None = None) -> None:
        """
        Initialize the sender.

        Args:
            client: Async Redis client (None disables sending)
            queue_name: Redis list the delivery worker consumes

        """
        self._client = client
        self.queue_name = queue_name

    async def send(self, message: PushMessage, platform: Platform) -> None:
        """Enqueue a message, logging (not raising) any failure."""
        payload = {
            "platform": platform,
            "message": message.to_provider_message(platform),
        }
        try:
            await enqueue(self._client, payload, self.queue_name)
        except Exception:
            logger.exception("Failed to enqueue %s push message", platform)
