"""In-memory dispatch channel for local dev and tests. Single process: each message goes to one reader."""

import itertools
import logging
import queue

from correlation.channels.base import Delivery, DispatchChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchDecodeError

logger = logging.getLogger(__name__)


class MemoryChannel(DispatchChannel):
    """FIFO queue of JSON-encoded dispatch messages."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self._queue: queue.Queue[tuple[str, str]] = queue.Queue()
        self._sequence = itertools.count(1)
        self.acked: list[str] = []

    def publish(self, message: DispatchMessage) -> str | None:
        return self.publish_raw(message.to_json())

    def publish_raw(self, data: str) -> str:
        """Enqueue a message body as-is."""
        delivery_id = f"{self.name}:{next(self._sequence)}"
        self._queue.put((delivery_id, data))
        return delivery_id

    def read(self, count: int = 10, block_ms: int | None = 1000) -> list[Delivery]:
        deliveries: list[Delivery] = []
        try:
            if block_ms:
                item = self._queue.get(timeout=block_ms / 1000)
            else:
                item = self._queue.get_nowait()
            deliveries.append(self._to_delivery(*item))
            while len(deliveries) < count:
                deliveries.append(self._to_delivery(*self._queue.get_nowait()))
        except queue.Empty:
            pass
        return deliveries

    def ack(self, delivery: Delivery) -> None:
        self.acked.append(delivery.delivery_id)

    def pending_count(self) -> int:
        return self._queue.qsize()

    def _to_delivery(self, delivery_id: str, data: str) -> Delivery:
        try:
            return Delivery(delivery_id, message=DispatchMessage.from_json(data))
        except DispatchDecodeError as e:
            logger.error(f"Failed to parse message {delivery_id}: {e}")
            return Delivery(delivery_id, error=e)
