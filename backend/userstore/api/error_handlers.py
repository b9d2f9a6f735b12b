"""Error Handlers — map client errors and framework errors to the {"Error": ...} envelope.

Invariants:
    - ValidationError → 400, ResourceNotFoundError → 404 (the only domain errors routes raise)
    - 401 and 429 are produced by pipeline stages as responses and never reach these handlers
    - RequestValidationError (malformed body, non-integer id) → 400
    - Framework HTTP errors (unknown route, wrong method) keep their status, envelope body
    - StoreFailureError and every other exception are NOT handled here; they propagate
      to the error-containment stage, which owns 500s

Design Decisions:
    - Client errors logged at INFO at most: they are expected, caller-recoverable outcomes
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userstore.core.errors import ResourceNotFoundError, UserStoreError, ValidationError

logger = logging.getLogger(__name__)

CLIENT_ERRORS = (ValidationError, ResourceNotFoundError)


def register_error_handlers(app: FastAPI) -> None:
    """Register all client-facing error handlers on the FastAPI app."""
    for exc_class in CLIENT_ERRORS:
        app.add_exception_handler(exc_class, client_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)


async def client_error_handler(request: Request, exc: UserStoreError):
    """Handle caller-recoverable domain errors."""
    logger.info(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic request validation errors."""
    logger.info(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"Error": _describe_validation_error(exc)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"Error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request data."
    first = errors[0]
    field = ".".join(str(loc) for loc in first.get("loc", ()) if loc != "body")
    if field:
        return f"Invalid request data: {field}: {first.get('msg', 'invalid')}."
    return f"Invalid request data: {first.get('msg', 'invalid')}."
