"""Error Containment — outermost stage; converts any downstream failure into a 500.

Invariants:
    - No exception escapes this stage
    - Response body is always the generic envelope; backend detail only goes to logs
    - Client errors that slip past the route exception handlers keep their own status
    - Logged faults carry an error category: the error's own, or INTERNAL for anything
      outside the UserStoreError hierarchy
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from userstore.core.errors import GENERIC_ERROR_MESSAGE, ErrorCategory, UserStoreError
from userstore.middleware.pipeline import Continuation, Stage

logger = logging.getLogger(__name__)


class ErrorContainmentStage(Stage):

    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        try:
            return await call_next(request)
        except UserStoreError as exc:
            if exc.is_client_error:
                return JSONResponse(exc.to_response(), status_code=exc.http_status)
            logger.error(
                f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
                exc_info=True,
                extra=_log_extra(request, exc.code, exc.category),
            )
        except Exception as exc:
            logger.error(
                f"Unhandled exception on {request.method} {request.url.path}: {exc}",
                exc_info=True,
                extra=_log_extra(request, "INTERNAL_ERROR", ErrorCategory.INTERNAL),
            )
        return JSONResponse({"Error": GENERIC_ERROR_MESSAGE}, status_code=500)


def _log_extra(request: Request, error_code: str, category: ErrorCategory) -> dict:
    return {
        "error_code": error_code,
        "category": category.value,
        "path": request.url.path,
        "correlation_id": getattr(request.state, "correlation_id", None),
    }
