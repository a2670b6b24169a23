"""
Redis Streams Dispatch Channel

Consumer-group delivery: each message goes to one worker of the group and
stays in the group's pending entries list (PEL) until acknowledged. Messages
left pending by a crashed worker are reclaimed by the others.
"""

import logging

import redis

from relaycore.redis import ensure_stream_group, get_pending_count

from correlation.channels.base import Delivery, DispatchChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchDecodeError

logger = logging.getLogger(__name__)


class RedisStreamChannel(DispatchChannel):
    """
    Dispatch over XADD / XREADGROUP / XACK.

    Uses a consumer group for horizontal scaling and reliable delivery.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        stream_name: str,
        group_name: str,
        consumer_name: str,
        max_len: int = 100000,
    ):
        self.redis = redis_client
        self.name = stream_name
        self.group_name = group_name
        self.consumer_name = consumer_name
        self.max_len = max_len

    def start(self) -> None:
        ensure_stream_group(self.redis, self.name, self.group_name, start_id="0")

    def publish(self, message: DispatchMessage) -> str | None:
        msg_id = self.redis.xadd(
            self.name,
            message.to_stream_data(),
            maxlen=self.max_len,
            approximate=True,
        )

        logger.debug(
            f"Published to {self.name}",
            extra={
                "stream": self.name,
                "request_id": message.request_id,
                "msg_id": msg_id,
            },
        )

        return msg_id

    def read(self, count: int = 10, block_ms: int | None = 1000) -> list[Delivery]:
        try:
            result = self.redis.xreadgroup(
                self.group_name,
                self.consumer_name,
                {self.name: ">"},
                count=count,
                # BLOCK 0 would wait forever
                block=block_ms or None,
            )
        except redis.ResponseError as e:
            if "NOGROUP" in str(e):
                logger.error(f"Consumer group {self.group_name} does not exist for {self.name}, recreating")
                self.start()
                return []
            raise

        if not result:
            return []

        deliveries = []
        for _stream, entries in result:
            for msg_id, data in entries:
                deliveries.append(self._to_delivery(msg_id, data))

        return deliveries

    def ack(self, delivery: Delivery) -> None:
        self.redis.xack(self.name, self.group_name, delivery.delivery_id)

    def pending_count(self) -> int:
        """Number of messages read by the group and not yet acknowledged."""
        return get_pending_count(self.redis, self.name, self.group_name)

    def get_pending(self, min_idle_ms: int = 60000, count: int = 100) -> list[dict]:
        """
        Get pending messages that have been idle too long.

        Args:
            min_idle_ms: Minimum idle time in milliseconds
            count: Maximum messages to return

        Returns:
            List of pending message info dicts
        """
        try:
            pending_info = self.redis.xpending(self.name, self.group_name)
            if not pending_info or pending_info.get("pending", 0) == 0:
                return []

            pending_range = self.redis.xpending_range(
                self.name,
                self.group_name,
                min="-",
                max="+",
                count=count,
            )
        except redis.ResponseError:
            return []

        idle_messages = []
        for entry in pending_range:
            if entry.get("time_since_delivered", 0) >= min_idle_ms:
                idle_messages.append({
                    "message_id": entry["message_id"],
                    "consumer": entry["consumer"],
                    "idle_ms": entry["time_since_delivered"],
                    "delivery_count": entry["times_delivered"],
                })

        return idle_messages

    def reclaim(self, min_idle_ms: int = 60000, count: int = 100) -> list[Delivery]:
        pending = self.get_pending(min_idle_ms, count)
        if not pending:
            return []

        message_ids = [p["message_id"] for p in pending]
        try:
            result = self.redis.xclaim(
                self.name,
                self.group_name,
                self.consumer_name,
                min_idle_ms,
                message_ids,
            )
        except redis.ResponseError as e:
            logger.error(f"Failed to claim messages: {e}")
            return []

        delivery_counts = {p["message_id"]: p["delivery_count"] for p in pending}
        deliveries = []
        for msg_id, data in result:
            delivery = self._to_delivery(msg_id, data)
            if delivery.message is not None:
                delivery.message.metadata["delivery_count"] = delivery_counts.get(msg_id)
            deliveries.append(delivery)

        if deliveries:
            logger.info(f"Reclaimed {len(deliveries)} pending messages from {self.name}")

        return deliveries

    def _to_delivery(self, msg_id: str, data: dict[str, str] | None) -> Delivery:
        try:
            if not data:
                # Entry trimmed from the stream while pending
                raise DispatchDecodeError(f"Stream message {msg_id} has no data")
            return Delivery(msg_id, message=DispatchMessage.from_stream_message(msg_id, data))
        except DispatchDecodeError as e:
            logger.error(f"Failed to parse message {msg_id}: {e}")
            return Delivery(msg_id, error=e)
