"""
Poll Handler

Reports whether a request has finished. Polling never writes: it is
idempotent and safe to repeat at any rate.
"""

import logging

from correlation.contracts.api import PollRequest, PollResult
from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import RecordNotFoundError
from correlation.store.base import RecordStore

logger = logging.getLogger(__name__)


class PollHandler:
    """Looks up correlation records on behalf of callers."""

    def __init__(self, store: RecordStore):
        self.store = store

    def poll(self, request: PollRequest | str) -> PollResult:
        """
        Get the current state of a request.

        Args:
            request: PollRequest, or the bare correlation id returned at submission

        Returns:
            PollResult; response fields are only populated once finished

        Raises:
            RecordNotFoundError: Unknown or expired id
            StoreTransportError: Store unreachable
            RecordSerializationError: Stored record is corrupt
        """
        request_id = request.request_id if isinstance(request, PollRequest) else request
        record = self.inspect(request_id)

        if not record.is_response_finished:
            return PollResult(is_request_finished=False, response_payload="")

        return PollResult(
            is_request_finished=True,
            response_payload=record.response_payload,
            is_response_error=record.is_response_error,
        )

    def inspect(self, request_id: str) -> CorrelationRecord:
        """Get the full stored record. Raises the same errors as poll()."""
        if not request_id:
            raise RecordNotFoundError("Empty request id", request_id=request_id)
        return self.store.get(request_id)
