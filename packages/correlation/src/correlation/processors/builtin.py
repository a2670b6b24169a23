"""
Built-in Processors

Development processors that need no external service. Useful for local
runs, smoke tests and exercising the error path.
"""

import logging

from correlation.exceptions import ProcessingError
from correlation.processors.base import ProcessingOutcome, ProcessingRequest, Processor

logger = logging.getLogger(__name__)


class EchoProcessor(Processor):
    """Returns the request payload unchanged."""

    name = "echo"

    def process(self, request: ProcessingRequest) -> ProcessingOutcome:
        logger.debug(f"[ECHO] {request.request_id}", extra={"request_id": request.request_id})
        return ProcessingOutcome.success(request.payload)


class UppercaseProcessor(Processor):
    """Returns the request payload upper-cased."""

    name = "uppercase"

    def process(self, request: ProcessingRequest) -> ProcessingOutcome:
        return ProcessingOutcome.success(request.payload.upper())


class FailingProcessor(Processor):
    """Always reports an error outcome."""

    name = "failing"

    def __init__(self, message: str = "request rejected"):
        self.message = message

    def process(self, request: ProcessingRequest) -> ProcessingOutcome:
        raise ProcessingError(self.message)
