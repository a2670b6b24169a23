"""Tests for dispatch channels."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import redis

from correlation.channels.memory import MemoryChannel
from correlation.channels.pubsub import RedisPubSubChannel
from correlation.channels.stream import RedisStreamChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchDecodeError


def make_message(request_id: str = "req-1", payload: str = "x") -> DispatchMessage:
    return DispatchMessage(
        request_id=request_id,
        payload=payload,
        created_at=1000,
        dispatched_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


class TestDispatchMessage:
    """Test the dispatch message contract."""

    def test_json_round_trip(self):
        message = make_message()

        assert DispatchMessage.from_json(message.to_json()) == message

    def test_stream_data_is_all_strings(self):
        data = make_message().to_stream_data()

        assert all(isinstance(v, str) for v in data.values())

    def test_from_stream_message_records_id(self):
        message = DispatchMessage.from_stream_message("1-0", make_message().to_stream_data())

        assert message.request_id == "req-1"
        assert message.created_at == 1000
        assert message.metadata["stream_msg_id"] == "1-0"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            json.dumps([1]),
            json.dumps({"payload": "x"}),
            json.dumps({"request_id": "", "payload": "x"}),
            json.dumps({"request_id": "req-1", "payload": 5}),
            json.dumps({"request_id": "req-1", "payload": "x", "created_at": "soon"}),
        ],
    )
    def test_malformed_messages(self, raw):
        with pytest.raises(DispatchDecodeError):
            DispatchMessage.from_json(raw)


class TestMemoryChannel:
    """Test the in-process channel."""

    def test_publish_and_read_in_order(self, channel):
        channel.publish(make_message("req-1"))
        channel.publish(make_message("req-2"))

        deliveries = channel.read(count=10, block_ms=None)

        assert [d.request_id for d in deliveries] == ["req-1", "req-2"]

    def test_read_respects_count(self, channel):
        for i in range(3):
            channel.publish(make_message(f"req-{i}"))

        assert len(channel.read(count=2, block_ms=None)) == 2
        assert len(channel.read(count=2, block_ms=None)) == 1

    def test_read_empty(self, channel):
        assert channel.read(block_ms=None) == []
        assert channel.read(block_ms=10) == []

    def test_malformed_message_is_a_delivery_error(self, channel):
        channel.publish_raw("garbage")

        (delivery,) = channel.read(block_ms=None)

        assert delivery.message is None
        assert isinstance(delivery.error, DispatchDecodeError)
        assert delivery.request_id is None

    def test_ack_is_recorded(self, channel):
        channel.publish(make_message())
        (delivery,) = channel.read(block_ms=None)

        channel.ack(delivery)

        assert channel.acked == [delivery.delivery_id]


class TestRedisPubSubChannel:
    """Test pub/sub dispatch against fakeredis."""

    def test_subscriber_receives_message(self, redis_client):
        channel = RedisPubSubChannel(redis_client, "test:dispatch")
        channel.start()

        channel.publish(make_message("req-1"))
        deliveries = channel.read(count=10, block_ms=500)

        assert [d.request_id for d in deliveries] == ["req-1"]
        channel.close()

    def test_broadcast_to_every_subscriber(self, redis_client):
        """Test that each subscribed worker gets its own copy."""
        first = RedisPubSubChannel(redis_client, "test:dispatch")
        second = RedisPubSubChannel(redis_client, "test:dispatch")
        first.start()
        second.start()

        first.publish(make_message("req-1"))

        assert [d.request_id for d in first.read(block_ms=500)] == ["req-1"]
        assert [d.request_id for d in second.read(block_ms=500)] == ["req-1"]
        first.close()
        second.close()

    def test_publish_without_subscriber_is_lost(self, redis_client):
        """Test that pub/sub does not buffer for late subscribers."""
        publisher = RedisPubSubChannel(redis_client, "test:dispatch")
        publisher.publish(make_message("req-1"))

        late = RedisPubSubChannel(redis_client, "test:dispatch")
        late.start()

        assert late.read(block_ms=100) == []
        late.close()

    def test_malformed_message(self, redis_client):
        channel = RedisPubSubChannel(redis_client, "test:dispatch")
        channel.start()

        redis_client.publish("test:dispatch", "garbage")
        (delivery,) = channel.read(block_ms=500)

        assert isinstance(delivery.error, DispatchDecodeError)
        channel.close()


class TestRedisStreamChannel:
    """Test consumer-group dispatch against fakeredis."""

    @pytest.fixture
    def stream_channel(self, redis_client):
        channel = RedisStreamChannel(
            redis_client,
            "test:dispatch",
            "test-workers",
            "consumer-1",
            max_len=1000,
        )
        channel.start()
        return channel

    def test_publish_and_read(self, stream_channel):
        msg_id = stream_channel.publish(make_message("req-1"))

        (delivery,) = stream_channel.read(count=10, block_ms=None)

        assert delivery.delivery_id == msg_id
        assert delivery.request_id == "req-1"
        assert delivery.message.metadata["stream_msg_id"] == msg_id

    def test_each_message_goes_to_one_consumer(self, redis_client, stream_channel):
        other = RedisStreamChannel(redis_client, "test:dispatch", "test-workers", "consumer-2")
        stream_channel.publish(make_message("req-1"))

        first = stream_channel.read(block_ms=None)
        second = other.read(block_ms=None)

        assert len(first) + len(second) == 1

    def test_ack_clears_pending(self, stream_channel):
        stream_channel.publish(make_message("req-1"))
        (delivery,) = stream_channel.read(block_ms=None)

        assert stream_channel.pending_count() == 1
        stream_channel.ack(delivery)
        assert stream_channel.pending_count() == 0

    def test_pending_count_without_group(self, redis_client):
        channel = RedisStreamChannel(redis_client, "missing:dispatch", "g", "c")

        assert channel.pending_count() == 0

    def test_reclaim_unacked_message(self, redis_client, stream_channel):
        """Test that another consumer can claim an orphaned delivery."""
        stream_channel.publish(make_message("req-1"))
        stream_channel.read(block_ms=None)

        rescuer = RedisStreamChannel(redis_client, "test:dispatch", "test-workers", "consumer-2")
        reclaimed = rescuer.reclaim(min_idle_ms=0, count=10)

        assert [d.request_id for d in reclaimed] == ["req-1"]
        assert reclaimed[0].message.metadata["delivery_count"] >= 1

    def test_reclaim_with_nothing_pending(self, stream_channel):
        assert stream_channel.reclaim(min_idle_ms=0) == []

    def test_reclaim_skips_recent_messages(self, stream_channel):
        stream_channel.publish(make_message("req-1"))
        stream_channel.read(block_ms=None)

        assert stream_channel.reclaim(min_idle_ms=60000) == []

    def test_read_recreates_missing_group(self, stream_channel):
        """Test that a NOGROUP error recreates the group instead of failing."""
        stream_channel.redis = MagicMock(spec=redis.Redis)
        stream_channel.redis.xreadgroup.side_effect = redis.ResponseError("NOGROUP No such key")

        assert stream_channel.read(block_ms=None) == []
        stream_channel.redis.xgroup_create.assert_called_once_with(
            "test:dispatch", "test-workers", id="0", mkstream=True
        )

    def test_entry_without_data(self, stream_channel):
        delivery = stream_channel._to_delivery("1-0", None)

        assert delivery.message is None
        assert isinstance(delivery.error, DispatchDecodeError)
