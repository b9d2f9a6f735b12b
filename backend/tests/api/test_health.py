"""Health Check — store reachability, lifespan-owned store handle, and app composition."""

from httpx import ASGITransport, AsyncClient

from userstore.core.errors import (
    RateLimitExceededError, ResourceNotFoundError, StoreFailureError,
    UnauthorizedError, ValidationError,
)
from userstore.main import build_pipeline, create_app
from userstore.middleware.authentication import AuthenticationStage
from userstore.middleware.correlation import (
    CorrelationHeaderMiddleware, CorrelationIdStage,
)
from userstore.middleware.error_containment import ErrorContainmentStage
from userstore.middleware.rate_limit import RateLimitStage
from userstore.middleware.request_logging import RequestLoggingStage


async def test_health_ok_when_store_reachable(client):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_health_503_when_store_unreachable(client, store):
    store.available = False
    res = await client.get("/health")
    assert res.status_code == 503
    assert res.json() == {"status": "unhealthy", "reason": "store_unavailable"}


def test_pipeline_order(settings):
    stages = build_pipeline(settings).stages
    assert [type(s) for s in stages] == [
        ErrorContainmentStage,
        CorrelationIdStage,
        RateLimitStage,
        RequestLoggingStage,
        AuthenticationStage,
    ]


def test_handlers_registered_only_for_route_raised_errors(app):
    handled = set(app.exception_handlers)
    assert {ValidationError, ResourceNotFoundError} <= handled
    assert not handled & {UnauthorizedError, RateLimitExceededError, StoreFailureError}


def test_correlation_header_middleware_wraps_cors(app):
    assert app.user_middleware[0].cls is CorrelationHeaderMiddleware

async def test_lifespan_keeps_injected_store_open(settings, store):
    app = create_app(settings, record_store=store)
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test",
        ) as c:
            assert (await c.get("/health")).status_code == 200
    assert store.closed is False
