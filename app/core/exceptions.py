"""
Domain errors raised by the hiring pipeline engine.

Services raise these; the API layer maps them to HTTP responses in one
place (see ``register_exception_handlers``). None of them are retried by the
engine except ``ConcurrentModification`` inside cascades.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base class for every error the pipeline engine surfaces to callers."""

    code = "pipeline_error"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(PipelineError):
    """Requested status is not reachable from the current status."""
    code = "invalid_transition"
    http_status = 409


class InvalidSchedule(PipelineError):
    """Interview time is in the past, unchanged, or otherwise unusable."""
    code = "invalid_schedule"
    http_status = 422


class MissingRequiredField(PipelineError):
    """Location / meeting link does not match the interview type."""
    code = "missing_required_field"
    http_status = 422


class InvalidRating(PipelineError):
    code = "invalid_rating"
    http_status = 422


class NotWithdrawable(PipelineError):
    code = "not_withdrawable"
    http_status = 409


class ConcurrentModification(PipelineError):
    """Stored status changed between read and write."""
    code = "concurrent_modification"
    http_status = 409


class NotFound(PipelineError):
    code = "not_found"
    http_status = 404


class Unauthorized(PipelineError):
    code = "unauthorized"
    http_status = 403


class PartialSuccess(PipelineError):
    """
    A multi-step operation committed its first step but a cascade failed.

    Attributes:
        completed: description (or entity) of the step that was persisted
        failed: the sub-operation that did not go through
        error: the underlying PipelineError of the failed step
    """
    code = "partial_success"
    http_status = 207

    def __init__(self, message: str, completed: Any, failed: str, error: Optional[PipelineError] = None):
        super().__init__(message)
        self.completed = completed
        self.failed = failed
        self.error = error


def _completed_summary(completed: Any) -> Any:
    # ORM rows are not JSON serializable; expose their id
    return getattr(completed, "id", completed)


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    logger.warning(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.code}
    )
    body = {"detail": exc.message, "error": exc.code}
    if isinstance(exc, PartialSuccess):
        body["completed"] = _completed_summary(exc.completed)
        body["failed"] = exc.failed
        if exc.error is not None:
            body["failed_error"] = exc.error.code
    return JSONResponse(status_code=exc.http_status, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the PipelineError -> JSON response mapping to the app."""
    app.add_exception_handler(PipelineError, pipeline_error_handler)
