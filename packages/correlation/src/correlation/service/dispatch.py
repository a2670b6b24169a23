"""
Dispatchers

Hand a registered request to processing without waiting for it.

- InlineDispatcher: runs the request on a bounded thread pool in this process
- ChannelDispatcher: publishes it on a channel for a separate worker process
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor

import redis

from correlation.channels.base import DispatchChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.exceptions import DispatchError
from correlation.service.observer import FailureStage, LoggingObserver, OperationalObserver
from correlation.service.worker import RequestExecutor

logger = logging.getLogger(__name__)


class Dispatcher(ABC):
    """Abstract fire-and-forget dispatch."""

    @abstractmethod
    def dispatch(self, message: DispatchMessage) -> None:
        """
        Trigger processing of a request. Must not wait for processing.

        Raises:
            DispatchError: If the request could not be handed off
        """
        ...

    def shutdown(self, wait: bool = True) -> None:
        """Release resources; optionally wait for in-flight work."""


class InlineDispatcher(Dispatcher):
    """
    Runs requests on a bounded in-process thread pool.

    In-flight work is enumerable through in_flight() and drained by
    shutdown(wait=True).
    """

    def __init__(
        self,
        executor: RequestExecutor,
        concurrency: int = 4,
        observer: OperationalObserver | None = None,
    ):
        self.executor = executor
        self.observer = observer or LoggingObserver()
        self._pool = ThreadPoolExecutor(
            max_workers=concurrency,
            thread_name_prefix="correlation-inline",
        )
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()
        self._closed = False

    def dispatch(self, message: DispatchMessage) -> None:
        with self._lock:
            if self._closed:
                raise DispatchError(f"Dispatcher is shut down, cannot dispatch {message.request_id}")
            try:
                future = self._pool.submit(self.executor.execute, message)
            except RuntimeError as e:
                raise DispatchError(str(e)) from e
            self._in_flight[message.request_id] = future

        future.add_done_callback(lambda f: self._on_done(message.request_id, f))

    def in_flight(self) -> list[str]:
        """Request ids submitted and not yet completed."""
        with self._lock:
            return [rid for rid, f in self._in_flight.items() if not f.done()]

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        logger.info(f"Shutting down inline dispatcher (in_flight={len(self.in_flight())}, wait={wait})")
        self._pool.shutdown(wait=wait)

    def _on_done(self, request_id: str, future: Future) -> None:
        with self._lock:
            self._in_flight.pop(request_id, None)

        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.observer.on_error(FailureStage.PROCESS, request_id, error)


class ChannelDispatcher(Dispatcher):
    """Publishes requests on a dispatch channel for worker processes."""

    def __init__(self, channel: DispatchChannel):
        self.channel = channel

    def dispatch(self, message: DispatchMessage) -> None:
        try:
            msg_id = self.channel.publish(message)
        except redis.RedisError as e:
            raise DispatchError(f"Failed to publish {message.request_id} to {self.channel.name}: {e}") from e

        logger.debug(
            f"Dispatched {message.request_id}",
            extra={"request_id": message.request_id, "channel": self.channel.name, "msg_id": msg_id},
        )

    def shutdown(self, wait: bool = True) -> None:
        self.channel.close()
