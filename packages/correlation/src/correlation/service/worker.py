"""
Request Worker

Processes dispatched requests and writes their outcome back:
1. Runs the processor against the dispatched payload
2. Reads the Pending record back from the store
3. Builds the Finished record from it (request fields copied verbatim)
4. Overwrites the record, only if it still exists

Failures are reported to the observer and never retried: a request whose
finalization fails stays Pending until its TTL expires.
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable
from concurrent.futures import ThreadPoolExecutor

from correlation.channels.base import Delivery, DispatchChannel
from correlation.contracts.dispatch import DispatchMessage
from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import ProcessingError, StoreError
from correlation.processors.base import ProcessingOutcome, ProcessingRequest, Processor
from correlation.service.observer import FailureStage, LoggingObserver, OperationalObserver
from correlation.store.base import RecordStore

logger = logging.getLogger(__name__)


async def _await(awaitable: Awaitable[ProcessingOutcome]) -> ProcessingOutcome:
    return await awaitable


def _normalize_outcome(outcome: ProcessingOutcome) -> ProcessingOutcome:
    """
    Coerce an outcome into storable form.

    bytes payloads are decoded as UTF-8.

    Raises:
        TypeError: Payload is not str/bytes, or is_error is not a bool
        UnicodeDecodeError: bytes payload is not valid UTF-8
    """
    payload = outcome.response_payload
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    if not isinstance(payload, str):
        raise TypeError(f"response payload must be str or bytes, got {type(payload).__name__}")
    if not isinstance(outcome.is_error, bool):
        raise TypeError(f"is_error must be bool, got {type(outcome.is_error).__name__}")

    if payload is outcome.response_payload:
        return outcome
    return ProcessingOutcome(response_payload=payload, is_error=outcome.is_error)


class Finalizer:
    """Writes a processing outcome into the stored record by read-merge-write."""

    def __init__(
        self,
        store: RecordStore,
        ttl_seconds: int,
        observer: OperationalObserver | None = None,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.observer = observer or LoggingObserver()

    def complete(self, request_id: str, outcome: ProcessingOutcome) -> CorrelationRecord | None:
        """
        Finalize a request.

        Args:
            request_id: Correlation identifier
            outcome: Processing outcome to store

        Returns:
            The Finished record, or None if finalization was abandoned
        """
        try:
            record = self.store.get(request_id)
        except StoreError as e:
            self.observer.on_error(FailureStage.READ_BACK, request_id, e)
            return None

        try:
            finished = record.finish(outcome.response_payload, is_error=outcome.is_error)
        except ValueError as e:
            # Another worker got there first (broadcast or redelivery)
            self.observer.on_error(FailureStage.READ_BACK, request_id, e)
            return None

        try:
            self.store.put(request_id, finished, self.ttl_seconds, must_exist=True)
        except StoreError as e:
            # RecordNotFoundError here: expired between read-back and write
            self.observer.on_error(FailureStage.FINALIZE, request_id, e)
            return None

        self.observer.on_finalized(finished)
        return finished


class RequestExecutor:
    """Runs the processor for one dispatched request, then finalizes it."""

    def __init__(
        self,
        processor: Processor,
        finalizer: Finalizer,
        observer: OperationalObserver | None = None,
    ):
        self.processor = processor
        self.finalizer = finalizer
        self.observer = observer or finalizer.observer

    def execute(self, message: DispatchMessage) -> CorrelationRecord | None:
        """
        Process and finalize a dispatched request.

        Args:
            message: The dispatch message

        Returns:
            The Finished record, or None if finalization was abandoned
        """
        request = ProcessingRequest(
            request_id=message.request_id,
            payload=message.payload,
            created_at=message.created_at,
        )

        outcome = self._run_processor(request)

        logger.debug(
            f"Processed {request.request_id}",
            extra={"request_id": request.request_id, "is_error": outcome.is_error},
        )

        return self.finalizer.complete(request.request_id, outcome)

    def _run_processor(self, request: ProcessingRequest) -> ProcessingOutcome:
        try:
            result = self.processor.process(request)
            if inspect.isawaitable(result):
                result = asyncio.run(_await(result))
            if isinstance(result, (str, bytes)):
                result = ProcessingOutcome.success(result)
            if not isinstance(result, ProcessingOutcome):
                raise TypeError(
                    f"processor returned {type(result).__name__}, expected ProcessingOutcome"
                )
            return _normalize_outcome(result)
        except ProcessingError as e:
            return ProcessingOutcome.failure(str(e))
        except Exception as e:
            self.observer.on_error(FailureStage.PROCESS, request.request_id, e)
            return ProcessingOutcome.failure(f"processing failed: {e}")


class RequestWorker:
    """
    Long-lived consumer of a dispatch channel.

    Deliveries are executed on a thread pool; at most `concurrency` are in
    flight at once. Each delivery is acknowledged after its execution
    completes, including malformed ones, so nothing blocks the channel.
    """

    def __init__(
        self,
        channel: DispatchChannel,
        executor: RequestExecutor,
        concurrency: int = 4,
        block_ms: int | None = 1000,
        observer: OperationalObserver | None = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.channel = channel
        self.executor = executor
        self.concurrency = concurrency
        self.block_ms = block_ms
        self.observer = observer or executor.observer

        self.processed = 0
        self._slots = threading.BoundedSemaphore(concurrency)
        self._stop_event = threading.Event()
        self._finished = threading.Event()
        self._drain = True
        self._running = False
        self._counter_lock = threading.Lock()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self, stop_event: threading.Event | None = None) -> None:
        """
        Consume deliveries until stopped.

        Args:
            stop_event: Event that ends the loop when set; stop() sets it too
        """
        if stop_event is not None:
            self._stop_event = stop_event
        self._finished.clear()
        self._running = True

        self.channel.start()
        pool = ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix="correlation-worker",
        )

        logger.info(
            f"Worker started (channel={self.channel.name}, concurrency={self.concurrency})"
        )

        try:
            while not self._stop_event.is_set():
                try:
                    deliveries = self.channel.read(count=self.concurrency, block_ms=self.block_ms)
                except Exception as e:
                    logger.error(f"Error reading from {self.channel.name}: {e}", exc_info=True)
                    self._stop_event.wait(1)
                    continue

                for delivery in deliveries:
                    if delivery.error is not None:
                        self._reject(delivery)
                        continue
                    # Read messages are always run; the stop signal only ends reading
                    self._slots.acquire()
                    pool.submit(self._handle_slot, delivery)
        finally:
            pool.shutdown(wait=self._drain, cancel_futures=not self._drain)
            self.channel.close()
            self._running = False
            self._finished.set()
            logger.info(f"Worker stopped (processed={self.processed})")

    def stop(self, drain: bool = True, timeout: float | None = None) -> bool:
        """
        Stop accepting deliveries.

        Args:
            drain: Wait for in-flight executions to finish
            timeout: Seconds to wait for the loop to exit when draining

        Returns:
            True if the loop has exited
        """
        self._drain = drain
        self._stop_event.set()
        if drain and self._running:
            return self._finished.wait(timeout)
        return not self._running

    def process_available(self, block_ms: int | None = None) -> int:
        """
        Read one batch and execute it on the calling thread.

        Returns:
            Number of deliveries handled
        """
        deliveries = self.channel.read(count=self.concurrency, block_ms=block_ms)
        for delivery in deliveries:
            if delivery.error is not None:
                self._reject(delivery)
            else:
                self._handle(delivery)
        return len(deliveries)

    def reclaim_pending(self, min_idle_ms: int = 60000, count: int = 100) -> int:
        """
        Re-execute deliveries left unacknowledged by a dead consumer.

        Only meaningful for channels that keep a pending list.

        Returns:
            Number of deliveries reclaimed
        """
        deliveries = self.channel.reclaim(min_idle_ms=min_idle_ms, count=count)
        for delivery in deliveries:
            if delivery.error is not None:
                self._reject(delivery)
            else:
                self._handle(delivery)
        return len(deliveries)

    def _handle_slot(self, delivery: Delivery) -> None:
        try:
            self._handle(delivery)
        finally:
            self._slots.release()

    def _handle(self, delivery: Delivery) -> None:
        try:
            self.executor.execute(delivery.message)
        except Exception as e:
            logger.error(
                f"Failed to execute delivery {delivery.delivery_id}: {e}",
                extra={"delivery_id": delivery.delivery_id, "request_id": delivery.request_id},
                exc_info=True,
            )
        finally:
            self._ack(delivery)
            with self._counter_lock:
                self.processed += 1

    def _reject(self, delivery: Delivery) -> None:
        self.observer.on_error(FailureStage.DECODE, None, delivery.error)
        self._ack(delivery)

    def _ack(self, delivery: Delivery) -> None:
        try:
            self.channel.ack(delivery)
        except Exception as e:
            logger.error(f"Failed to ack {delivery.delivery_id}: {e}")
