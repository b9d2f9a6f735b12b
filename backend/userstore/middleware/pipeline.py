"""Pipeline — folds an ordered list of stages into a single request handler.

Invariants:
    - Stages are stored as an immutable tuple; first stage is outermost
    - A stage either short-circuits (returns without calling call_next) or calls it once
    - Response hooks registered via on_response() run on the final response, after the
      outermost stage returns, so they apply even to responses produced by error
      containment or any other stage that replaced the downstream response
    - Pipeline instances are stateless per request; all per-request data lives on request.state

Design Decisions:
    - Stage.intercept(request, call_next) mirrors Starlette's dispatch signature, so the whole
      pipeline installs as one BaseHTTPMiddleware (ADR: one middleware, ordering owned here,
      not by add_middleware call order)
    - Fold from last to first with functools.partial: no closures over loop variables
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Awaitable, Callable, Iterable

from fastapi import Request
from fastapi.responses import Response

Continuation = Callable[[Request], Awaitable[Response]]
ResponseHook = Callable[[Response], None]


class Stage(ABC):
    """A single request interceptor."""

    @abstractmethod
    async def intercept(
        self, request: Request, call_next: Continuation,
    ) -> Response: ...


def on_response(request: Request, hook: ResponseHook) -> None:
    """Run hook on the outgoing response immediately before it leaves the pipeline."""
    hooks = getattr(request.state, "response_hooks", None)
    if hooks is None:
        hooks = []
        request.state.response_hooks = hooks
    hooks.append(hook)


class Pipeline:
    """Immutable, ordered sequence of stages."""

    def __init__(self, stages: Iterable[Stage]):
        self.stages: tuple[Stage, ...] = tuple(stages)

    def compose(self, endpoint: Continuation) -> Continuation:
        handler = endpoint
        for stage in reversed(self.stages):
            handler = partial(stage.intercept, call_next=handler)
        return handler

    async def __call__(
        self, request: Request, call_next: Continuation,
    ) -> Response:
        response = await self.compose(call_next)(request)
        for hook in getattr(request.state, "response_hooks", ()):
            hook(response)
        return response
