"""SurrealDB, Redis and tenant service instances of the process."""

import logging

from redis.asyncio.client import Redis

from apps.activity.tracker import ActivityTracker
from apps.directory.services import DomainDirectory
from apps.notifications.dispatch import NotificationDispatcher
from apps.notifications.sender import QueuePushSender
from db.manager import DatabaseManager
from db.model_cache import ModelCache

from . import config
from .tenant import TenantResolver, product_hostname_policy

logger = logging.getLogger(__name__)


def init_redis(settings: config.Settings | None = None) -> Redis | None:
    """
    Initialize the Redis connection.

    Args:
        settings: The settings for the Redis connection.

    Returns:
        The async Redis client, or None when no Redis URI is configured.
    """
    if settings is None:
        settings = config.Settings()

    redis_uri = getattr(settings, "redis_uri", None)
    if redis_uri:
        return Redis.from_url(redis_uri)
    return None


# Global database manager instance
db_manager = DatabaseManager(
    config.Settings().surrealdb_uri,
    config.Settings().surrealdb_username,
    config.Settings().surrealdb_password,
    config.Settings().surrealdb_namespace,
    config.Settings().surrealdb_database,
)

redis = init_redis()

directory = DomainDirectory(db_manager, config.Settings().surrealdb_database)
model_cache = ModelCache(db_manager, directory)
tenant_resolver = TenantResolver(product_hostname_policy(config.Settings().preview_domain))
activity_tracker = ActivityTracker()
dispatcher = NotificationDispatcher(
    activity_tracker, QueuePushSender(redis, config.Settings().push_queue_name)
)
