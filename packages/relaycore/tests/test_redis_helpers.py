"""Tests for Redis client helpers."""

import fakeredis
import pytest

from relaycore.redis import create_redis_client, ensure_stream_group, get_pending_count


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


class TestStreamGroups:
    """Test consumer group helpers."""

    def test_create_group_once(self, redis_client):
        assert ensure_stream_group(redis_client, "s", "g") is True
        assert ensure_stream_group(redis_client, "s", "g") is False

    def test_pending_count(self, redis_client):
        ensure_stream_group(redis_client, "s", "g")
        redis_client.xadd("s", {"a": "1"})
        redis_client.xreadgroup("g", "c", {"s": ">"}, count=10)

        assert get_pending_count(redis_client, "s", "g") == 1

    def test_pending_count_without_group(self, redis_client):
        assert get_pending_count(redis_client, "missing", "g") == 0


def test_client_decodes_responses():
    client = create_redis_client("redis://localhost:6379/0")

    assert client.get_connection_kwargs()["decode_responses"] is True
