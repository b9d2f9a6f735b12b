"""Correlation ID — tags every request and echoes the same id on the response.

Invariants:
    - A non-blank caller-supplied X-Correlation-ID is reused as-is (outer whitespace trimmed)
    - Otherwise a fresh uuid4 is minted
    - The id is stored on request.state.correlation_id for downstream stages and logs
    - The response header is attached via on_response(), i.e. as late as possible, so it
      survives responses replaced downstream (including 500s from error containment)
    - Responses answered before the pipeline runs (CORS preflights) get the header from
      CorrelationHeaderMiddleware, which never overwrites a header already set
"""

import uuid

from fastapi import Request
from fastapi.responses import Response
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from userstore.middleware.pipeline import Continuation, Stage, on_response

CORRELATION_HEADER = "X-Correlation-ID"


def resolve_correlation_id(supplied: str | None) -> str:
    """Caller's id if non-blank, else a fresh uuid4."""
    correlation_id = (supplied or "").strip()
    return correlation_id or str(uuid.uuid4())


class CorrelationIdStage(Stage):

    def __init__(self, header_name: str = CORRELATION_HEADER):
        self.header_name = header_name

    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        correlation_id = resolve_correlation_id(request.headers.get(self.header_name))
        request.state.correlation_id = correlation_id

        def stamp(response: Response) -> None:
            response.headers[self.header_name] = correlation_id

        on_response(request, stamp)
        return await call_next(request)


class CorrelationHeaderMiddleware:
    """Outermost ASGI wrapper: adds the header to responses that bypassed the pipeline."""

    def __init__(self, app: ASGIApp, header_name: str = CORRELATION_HEADER):
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if self.header_name not in headers:
                    supplied = Headers(scope=scope).get(self.header_name)
                    headers[self.header_name] = resolve_correlation_id(supplied)
            await send(message)

        await self.app(scope, receive, send_with_header)
