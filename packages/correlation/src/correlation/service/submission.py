"""
Submission Handler

Registers a request and hands it to processing:
1. Generates a fresh correlation id
2. Writes a Pending record with TTL
3. Triggers dispatch (fire-and-forget)
4. Returns the id to the caller

The record write happens strictly before dispatch, so a worker that reads
the record back always finds it. Under an eventually consistent store this
ordering is best-effort only.
"""

import logging
from collections.abc import Callable
from uuid import uuid4

from correlation.contracts.api import SubmissionResult, SubmitRequest
from correlation.contracts.dispatch import DispatchMessage
from correlation.contracts.record import CorrelationRecord, now_ms
from correlation.exceptions import DispatchError, StoreError
from correlation.service.dispatch import Dispatcher
from correlation.service.observer import FailureStage, LoggingObserver, OperationalObserver
from correlation.store.base import RecordStore

logger = logging.getLogger(__name__)


class SubmissionHandler:
    """
    Accepts requests for asynchronous processing.

    Never blocks on processing: submit() returns as soon as the Pending
    record is stored and dispatch has been triggered.
    """

    def __init__(
        self,
        store: RecordStore,
        dispatcher: Dispatcher,
        ttl_seconds: int,
        observer: OperationalObserver | None = None,
        id_factory: Callable[[], object] = uuid4,
        clock: Callable[[], int] = now_ms,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.store = store
        self.dispatcher = dispatcher
        self.ttl_seconds = ttl_seconds
        self.observer = observer or LoggingObserver()
        self.id_factory = id_factory
        self.clock = clock

    def submit(self, request: SubmitRequest) -> SubmissionResult:
        """
        Register a request and trigger its processing.

        Args:
            request: The request to submit

        Returns:
            SubmissionResult; is_error is set when the record could not be stored
        """
        request_id = str(self.id_factory())
        record = CorrelationRecord.pending(request_id, request.payload, created_at=self.clock())

        try:
            self.store.put(request_id, record, self.ttl_seconds)
        except StoreError as e:
            self.observer.on_error(FailureStage.SUBMIT, request_id, e)
            return SubmissionResult(is_error=True, error_message=str(e), request_id=request_id)

        self.observer.on_submitted(request_id)

        try:
            self.dispatcher.dispatch(DispatchMessage.for_record(record))
        except DispatchError as e:
            # The Pending record exists; it stays Pending until the TTL expires
            self.observer.on_error(FailureStage.DISPATCH, request_id, e)

        logger.debug(f"Accepted request {request_id}", extra={"request_id": request_id})

        return SubmissionResult(is_error=False, error_message="", request_id=request_id)
