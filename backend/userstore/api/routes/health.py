"""Health Check — reports whether the record store is reachable.

Invariants:
    - GET /health returns 200 when the store answers PING, 503 otherwise
    - Exempt from authentication and rate limiting (listed in settings.public_paths)
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """Readiness check, including record store connectivity."""
    store = getattr(request.app.state, "record_store", None)
    store_ok = await store.health_check() if store else False
    if not store_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "reason": "store_unavailable"},
        )
    return {"status": "healthy", "checks": {"store": "healthy"}}
