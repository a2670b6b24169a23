"""
Correlation API Service

FastAPI app exposing submission and polling over HTTP.

Responsibilities:
- Register requests and return their correlation id immediately
- Report request state to pollers
- Map store failures to HTTP status codes
"""

import logging

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from relaycore.logging import setup_logging
from relaycore.settings import get_settings

from correlation.contracts.api import PollRequest, PollResult, SubmissionResult, SubmitRequest
from correlation.exceptions import (
    RecordNotFoundError,
    RecordSerializationError,
    StoreError,
    StoreTransportError,
)
from correlation.factory import Services, build_services

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    """Services wired for this app."""
    return request.app.state.services


def create_app(services: Services | None = None) -> FastAPI:
    """
    Create the API app.

    Args:
        services: Pre-built services (default: built from settings at startup)
    """
    app = FastAPI(
        title="Correlation API",
        description="Submits requests for asynchronous processing and reports their results",
        version="1.0.0",
    )
    app.state.services = services

    @app.on_event("startup")
    async def startup():
        if app.state.services is None:
            app.state.services = build_services()
        logger.info("Correlation API started")

    @app.on_event("shutdown")
    async def shutdown():
        # Inline mode: wait for in-flight requests to be finalized
        if app.state.services is not None:
            app.state.services.close(wait=True)
        logger.info("Correlation API stopped")

    @app.get("/health")
    async def health(services: Services = Depends(get_services)):
        """Health check endpoint."""
        if not services.store.ping():
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "service": "correlation-api", "store": "unreachable"},
            )
        return {"status": "healthy", "service": "correlation-api", "store": "ok"}

    @app.post("/requests", response_model=SubmissionResult, status_code=202)
    def submit_request(body: SubmitRequest, services: Services = Depends(get_services)):
        """
        Submit a request for asynchronous processing.

        Returns 202 with the correlation id, or 503 if the request could not be
        registered.
        """
        result = services.submission.submit(body)

        if result.is_error:
            logger.warning(
                f"Submission failed: {result.error_message}",
                extra={"request_id": result.request_id},
            )
            return JSONResponse(status_code=503, content=result.model_dump())

        return result

    @app.get("/requests/{request_id}", response_model=PollResult)
    def poll_request(request_id: str, services: Services = Depends(get_services)):
        """Get the current state of a request."""
        try:
            return services.poll.poll(PollRequest(request_id=request_id))
        except RecordNotFoundError:
            raise HTTPException(status_code=404, detail="Request not found or expired")
        except StoreTransportError as e:
            logger.error(f"Store unavailable polling {request_id}: {e}")
            raise HTTPException(status_code=503, detail="Record store unavailable")
        except RecordSerializationError as e:
            logger.error(f"Corrupt record {request_id}: {e}")
            raise HTTPException(status_code=500, detail="Stored record is corrupt")
        except StoreError as e:
            logger.error(f"Failed to poll {request_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Failed to read request")

    return app


app = create_app()


def main():
    """Run the API with uvicorn."""
    setup_logging()
    settings = get_settings()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_config=None)


if __name__ == "__main__":
    main()
