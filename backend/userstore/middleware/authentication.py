"""Authentication — shared-secret bearer token check before any routed operation.

Invariants:
    - Protected routes require "Authorization: Bearer <secret>" (scheme case-insensitive)
    - Missing header or wrong token short-circuits with 401; nothing downstream runs
    - Token comparison is constant-time
    - Public paths (health check) pass through without a credential
"""

import logging
import secrets
from typing import Iterable

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from userstore.core.errors import UnauthorizedError
from userstore.middleware.pipeline import Continuation, Stage

logger = logging.getLogger(__name__)


def check_bearer(header: str | None, secret: str) -> None:
    """Raise UnauthorizedError unless header is a bearer credential matching secret."""
    if header is None:
        raise UnauthorizedError("Missing Authorization header.")
    parts = header.split(" ")
    if (
        len(parts) < 2
        or parts[0].lower() != "bearer"
        or not secrets.compare_digest(parts[1].encode(), secret.encode())
    ):
        raise UnauthorizedError("Invalid token.")


class AuthenticationStage(Stage):

    def __init__(self, shared_secret: str, public_paths: Iterable[str] = ()):
        self._secret = shared_secret
        self.public_paths = frozenset(public_paths)

    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        if request.url.path in self.public_paths:
            return await call_next(request)
        try:
            check_bearer(request.headers.get("Authorization"), self._secret)
        except UnauthorizedError as exc:
            logger.warning(
                f"Rejected {request.method} {request.url.path}: {exc.message}",
                extra={
                    "path": request.url.path,
                    "status_code": exc.http_status,
                    "correlation_id": getattr(request.state, "correlation_id", None),
                },
            )
            return JSONResponse(exc.to_response(), status_code=exc.http_status)
        return await call_next(request)
