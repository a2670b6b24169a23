"""
Redis Pub/Sub Dispatch Channel

Broadcast delivery: every subscribed worker receives every message. Nothing
is buffered for workers that are not subscribed at publish time, so a
message published with no subscriber is lost and its record stays Pending
until the TTL expires.
"""

import itertools
import logging
import time

import redis

from correlation.channels.base import Delivery, DispatchChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchDecodeError

logger = logging.getLogger(__name__)


class RedisPubSubChannel(DispatchChannel):
    """Dispatch over Redis PUBLISH / SUBSCRIBE."""

    def __init__(self, redis_client: redis.Redis, channel_name: str):
        self.redis = redis_client
        self.name = channel_name
        self._pubsub: redis.client.PubSub | None = None
        self._sequence = itertools.count(1)

    def start(self) -> None:
        if self._pubsub is None:
            self._pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
            self._pubsub.subscribe(self.name)
            logger.info(f"Subscribed to channel '{self.name}'")

    def publish(self, message: DispatchMessage) -> str | None:
        receivers = self.redis.publish(self.name, message.to_json())

        if receivers == 0:
            logger.warning(
                f"No worker subscribed to '{self.name}'",
                extra={"channel": self.name, "request_id": message.request_id},
            )
        else:
            logger.debug(
                f"Published to {self.name}",
                extra={
                    "channel": self.name,
                    "request_id": message.request_id,
                    "receivers": receivers,
                },
            )

        return None

    def read(self, count: int = 10, block_ms: int | None = 1000) -> list[Delivery]:
        if self._pubsub is None:
            self.start()

        deliveries: list[Delivery] = []
        deadline = time.monotonic() + (block_ms or 0) / 1000

        while len(deliveries) < count:
            # Only the first message is waited for; the rest are drained
            remaining = deadline - time.monotonic() if not deliveries else 0
            msg = self._pubsub.get_message(timeout=max(remaining, 0))

            if msg is None:
                if remaining <= 0:
                    break
                continue
            if msg.get("type") != "message":
                continue

            deliveries.append(self._to_delivery(msg.get("data")))

        return deliveries

    def close(self) -> None:
        if self._pubsub is not None:
            try:
                self._pubsub.unsubscribe(self.name)
                self._pubsub.close()
            except redis.RedisError as e:
                logger.warning(f"Error closing subscription to '{self.name}': {e}")
            self._pubsub = None

    def _to_delivery(self, data: str | bytes | None) -> Delivery:
        delivery_id = f"{self.name}:{next(self._sequence)}"
        try:
            if data is None:
                raise DispatchDecodeError("Empty pub/sub message")
            return Delivery(delivery_id, message=DispatchMessage.from_json(data))
        except DispatchDecodeError as e:
            logger.error(f"Failed to parse message {delivery_id}: {e}")
            return Delivery(delivery_id, error=e)
