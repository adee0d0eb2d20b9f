"""Redis client configuration and the outbound notification queue."""

import json
from typing import Any, cast

import redis
import structlog

from telemed.config import settings

logger = structlog.get_logger(__name__)

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class NotificationQueue:
    """Redis list the external notification dispatcher consumes from."""

    def __init__(self, redis_client: redis.Redis, key: str | None = None):
        """Initialize queue with Redis client and list key."""
        self.redis = redis_client
        self.key = key or settings.notification_queue_key

    def publish(self, event: dict[str, Any]) -> bool:
        """
        Serialize and push an event onto the queue.

        Args:
            event: JSON-serializable event payload

        Returns:
            True if the event was queued, False otherwise
        """
        try:
            self.redis.lpush(self.key, json.dumps(event, default=str))
            return True
        except Exception as e:
            logger.warning("notification_queue_publish_failed", key=self.key, error=str(e))
            return False

    def size(self) -> int:
        """Number of events waiting to be dispatched."""
        try:
            return cast(int, self.redis.llen(self.key))
        except Exception:
            return 0


def get_notification_queue() -> NotificationQueue:
    """Dependency returning the queue bound to the shared Redis client."""
    return NotificationQueue(get_redis_client())
