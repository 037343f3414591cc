"""Redis queue producer (LPUSH) for out-of-process workers."""

import json
import logging

from redis.asyncio.client import Redis

from server import config

logger = logging.getLogger(__name__)


def _get_queue_name(queue_name: str | None = None) -> str:
    settings = config.Settings()
    return queue_name or getattr(settings, "push_queue_name", "default:queue")


async def enqueue(
    client: Redis | None,
    payload: dict[str, object],
    queue_name: str | None = None,
) -> int:
    """Push a JSON payload to Redis list (LPUSH)."""
    if client is None:
        raise RuntimeError("Redis is not configured; cannot enqueue")

    target_queue = _get_queue_name(queue_name)
    index = await client.lpush(
        target_queue, json.dumps(payload, ensure_ascii=False, default=str)
    )
    logger.info("Enqueued %s message to %s", payload.get("platform"), target_queue)
    return index
