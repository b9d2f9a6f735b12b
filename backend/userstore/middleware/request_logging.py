"""Request Logging — one line in, one line out, with the final status code.

Invariants:
    - The outgoing line is written after the downstream call completes, so it carries
      the status of whatever response actually came back (including 401 short-circuits)
    - A downstream exception is logged as status 500 and re-raised untouched for
      error containment to convert
"""

import logging
import time

from fastapi import Request
from fastapi.responses import Response

from userstore.middleware.pipeline import Continuation, Stage

logger = logging.getLogger(__name__)


class RequestLoggingStage(Stage):

    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        method, path = request.method, request.url.path
        correlation_id = getattr(request.state, "correlation_id", None)
        logger.info(
            f"Incoming request: {method} {path}",
            extra={"method": method, "path": path, "correlation_id": correlation_id},
        )
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            logger.info(
                f"Outgoing response: {status_code}",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "correlation_id": correlation_id,
                },
            )
