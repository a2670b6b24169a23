"""
Submission and Poll Models

Pydantic models for the caller-facing shapes of the protocol. The HTTP app
and the CLI both speak these.
"""

from pydantic import BaseModel, Field


class SubmitRequest(BaseModel):
    """A request to be processed asynchronously."""

    payload: str = Field(..., description="Opaque request payload")


class SubmissionResult(BaseModel):
    """
    Outcome of a submission.

    When is_error is true the request_id is unusable: no record was stored.
    """

    is_error: bool = Field(..., description="True if the request was not registered")
    error_message: str = Field(default="", description="Failure detail when is_error is true")
    request_id: str = Field(..., description="Correlation identifier to poll with")


class PollRequest(BaseModel):
    """Lookup of a previously submitted request."""

    request_id: str = Field(..., description="Correlation identifier from submission")


class PollResult(BaseModel):
    """
    Current state of a request.

    Lookup failures (unknown or expired id, store errors) are raised as
    exceptions and never encoded in this shape.
    """

    is_request_finished: bool = Field(..., description="True once processing reached a terminal outcome")
    response_payload: str = Field(default="", description="Processing result, empty while pending")
    is_response_error: bool = Field(default=False, description="True if the finished outcome is an error")
