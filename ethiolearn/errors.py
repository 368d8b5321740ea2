"""Error taxonomy shared by the workflow services and the HTTP layer.

Every error carries a human-readable ``detail`` and an HTTP status code;
``main`` registers a single handler that turns them into JSON responses.
"""

from contextlib import contextmanager

from fastapi import Request, status
from fastapi.responses import JSONResponse

from .logging_config import get_logger

logger = get_logger("ethiolearn.errors")

GENERIC_FAILURE = "Something went wrong. Please try again later."


class WorkflowError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class WorkflowValidationError(WorkflowError):
    """A required field or file is missing or malformed."""


class PermissionDeniedError(WorkflowError):
    """The caller's role or ownership does not allow the action."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(WorkflowError):
    """A referenced row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class TransitionError(WorkflowError):
    """The row is not in a state that allows the requested change."""

    status_code = status.HTTP_409_CONFLICT


class StoreError(WorkflowError):
    """The record store or blob store call failed."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, detail: str = GENERIC_FAILURE):
        super().__init__(detail)


@contextmanager
def store_call(action: str):
    """Wrap a Supabase call: log any failure and re-raise it as StoreError.

    Workflow errors raised inside the block pass through untouched.
    """
    try:
        yield
    except WorkflowError:
        raise
    except Exception as e:
        logger.error(f"{action} failed: {e}", exc_info=True)
        raise StoreError() from e


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """FastAPI exception handler for WorkflowError."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
