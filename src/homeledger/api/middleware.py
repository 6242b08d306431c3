"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware — injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware — catches domain exceptions -> structured JSON errors
    3. CORSMiddleware — handles browser clients
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from homeledger.domain.exceptions import (
    DuplicateInvitationError,
    EmailMismatchError,
    ForbiddenOperationError,
    HomeAlreadyClaimedError,
    HomeLedgerError,
    InvalidStateTransitionError,
    InvitationExpiredError,
    NotFoundError,
    StorageConflictError,
    ValidationError,
)
from homeledger.logging_config import bind_request_context, get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = get_logger(__name__)

# Checked in order, so subclasses come before their bases.
ERROR_STATUS_CODES: list[tuple[type[HomeLedgerError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ForbiddenOperationError, 403),
    (EmailMismatchError, 403),
    (InvitationExpiredError, 410),
    (InvalidStateTransitionError, 409),
    (HomeAlreadyClaimedError, 409),
    (DuplicateInvitationError, 409),
    (StorageConflictError, 409),
]


def status_code_for(exc: HomeLedgerError) -> int:
    for exc_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 400


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Use client-provided ID or generate one
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        bind_request_context(request_id, user_id=request.headers.get("X-User-Id"))

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except InvalidStateTransitionError as exc:
            logger.warning(
                "state_machine.invalid_transition",
                code=exc.code,
                current=exc.current_state,
                attempted=exc.attempted_state,
            )
            return _error_response(exc)
        except StorageConflictError as exc:
            logger.warning("storage.conflict", error=exc.message)
            return _error_response(exc)
        except HomeLedgerError as exc:
            logger.info("domain.error", error=exc.message, code=exc.code)
            return _error_response(exc)
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )


def _error_response(exc: HomeLedgerError) -> JSONResponse:
    content = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=status_code_for(exc), content=content)


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register all middleware on the FastAPI application.

    Order matters — middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    # CORS (runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Tighten in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error handling (runs second)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID (runs last = outermost)
    app.add_middleware(RequestIDMiddleware)
