"""
Processor Base

Abstract interface for the business logic run against a request.
Implementations: built-in demo processors, or any class loaded by import path.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessingRequest:
    """
    What a processor sees of a submitted request.

    Attributes:
        request_id: Correlation identifier
        payload: Opaque request payload
        created_at: Submission time (millisecond epoch)
    """

    request_id: str
    payload: str
    created_at: int


@dataclass(frozen=True)
class ProcessingOutcome:
    """
    Terminal outcome of processing. An error outcome is a valid final state.

    A bytes payload is decoded as UTF-8 before it is stored.
    """

    response_payload: str | bytes
    is_error: bool = False

    @classmethod
    def success(cls, response_payload: str | bytes) -> "ProcessingOutcome":
        return cls(response_payload=response_payload, is_error=False)

    @classmethod
    def failure(cls, message: str) -> "ProcessingOutcome":
        return cls(response_payload=message, is_error=True)


class Processor(ABC):
    """
    Abstract processor.

    process() may be a plain method or a coroutine function; the worker runs
    awaitables to completion. Raise ProcessingError to report an error
    outcome with the exception message as payload.
    """

    name: str = "processor"

    @abstractmethod
    def process(
        self, request: ProcessingRequest
    ) -> ProcessingOutcome | Awaitable[ProcessingOutcome]:
        """
        Process a request.

        Args:
            request: The request to process

        Returns:
            The processing outcome (or an awaitable resolving to it)
        """
        ...
