"""
Dispatch Channel Base

A dispatch channel carries DispatchMessages from submitters to workers.
Implementations: Redis pub/sub (broadcast), Redis Streams (consumer group),
Memory (single process).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchDecodeError


@dataclass
class Delivery:
    """
    One message read from a channel.

    Exactly one of message and error is set: error holds the decode failure
    of a malformed message. Malformed deliveries are still acknowledged so
    they never block the channel.
    """

    delivery_id: str
    message: DispatchMessage | None = None
    error: DispatchDecodeError | None = None

    @property
    def request_id(self) -> str | None:
        return self.message.request_id if self.message else None


class DispatchChannel(ABC):
    """
    Abstract dispatch channel.

    Workers call start() once before the first read(), then read() in a loop
    and ack() each delivery after it has been executed.
    """

    name: str

    def start(self) -> None:
        """Prepare the consumer side (subscribe, create groups)."""

    @abstractmethod
    def publish(self, message: DispatchMessage) -> str | None:
        """
        Publish a message.

        Returns:
            Transport message ID, or None if the transport assigns none
        """
        ...

    @abstractmethod
    def read(self, count: int = 10, block_ms: int | None = 1000) -> list[Delivery]:
        """
        Read up to count deliveries, waiting at most block_ms for the first.

        Args:
            count: Maximum deliveries to return
            block_ms: Milliseconds to wait; None returns immediately

        Returns:
            Deliveries in arrival order, possibly empty
        """
        ...

    def ack(self, delivery: Delivery) -> None:
        """Acknowledge a delivery as handled."""

    def reclaim(self, min_idle_ms: int = 60000, count: int = 100) -> list[Delivery]:
        """Claim deliveries left unacknowledged by other consumers."""
        return []

    def close(self) -> None:
        """Release transport resources."""
