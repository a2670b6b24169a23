"""
Redis client utilities for relaycore.

Provides lazy-initialized Redis client to avoid import-time connections.
"""

import functools
import logging

import redis

from relaycore.settings import get_settings

logger = logging.getLogger(__name__)


def create_redis_client(url: str) -> redis.Redis:
    """Create a new Redis client that returns str values."""
    return redis.from_url(url, decode_responses=True)


@functools.lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Get Redis client (cached).

    This function lazily initializes the Redis client to avoid import-time connections.
    """
    return create_redis_client(get_settings().REDIS_URL)


def ensure_stream_group(
    client: redis.Redis,
    stream_name: str,
    group_name: str,
    start_id: str = "0",
) -> bool:
    """
    Ensure a consumer group exists for a stream.

    Creates the group if it doesn't exist. Safe to call multiple times.

    Args:
        client: Redis client
        stream_name: Name of the Redis stream
        group_name: Name of the consumer group
        start_id: ID from which to start reading ("0" = all, "$" = new only)

    Returns:
        True if group was created, False if it already existed
    """
    try:
        client.xgroup_create(stream_name, group_name, id=start_id, mkstream=True)
        logger.info(f"Created consumer group '{group_name}' for stream '{stream_name}'")
        return True
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            logger.debug(f"Consumer group '{group_name}' already exists for '{stream_name}'")
            return False
        raise


def get_pending_count(client: redis.Redis, stream_name: str, group_name: str) -> int:
    """
    Count messages delivered to a group and not yet acknowledged.

    A missing stream or group counts as nothing pending.
    """
    try:
        summary = client.xpending(stream_name, group_name)
    except redis.ResponseError as e:
        logger.debug(f"No pending summary for {stream_name}/{group_name}: {e}")
        return 0
    return int(summary.get("pending") or 0) if summary else 0
