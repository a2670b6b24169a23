"""
Correlation Errors

Every error raised by the correlation package derives from CorrelationError.
Store errors carry the request id they were raised for.
"""


class CorrelationError(Exception):
    """Base error for the correlation protocol."""


class StoreError(CorrelationError):
    """Error from the record store."""

    def __init__(self, message: str, request_id: str | None = None):
        super().__init__(message)
        self.request_id = request_id


class RecordNotFoundError(StoreError):
    """No live record for the id: never submitted, or expired."""


class StoreTransportError(StoreError):
    """The store could not be reached or rejected the command."""


class RecordSerializationError(StoreError):
    """A record could not be encoded, or stored bytes could not be decoded."""


class DispatchError(CorrelationError):
    """A request could not be handed to processing."""


class DispatchDecodeError(CorrelationError):
    """A dispatch message read from a channel is malformed."""


class ProcessingError(CorrelationError):
    """
    Raised by processors to report an error outcome.

    The message becomes the response payload of the finished record.
    """
