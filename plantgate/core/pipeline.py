"""
PlantGate Middleware Pipeline
=============================

Composes an ordered middleware list around a terminal handler using the
"onion" pattern:

    middleware1(middleware2(middleware3(handler)))

Each middleware receives ``(request, response, next)``. Calling
``next(request, response)`` continues the chain; returning without calling
it short-circuits and nothing further inward runs.

Example:
    pipeline = Pipeline([CORSMiddleware(config), AuthMiddleware(admin)])
    response = await pipeline.run(request, response, handler)
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Coroutine,
    List,
)

if TYPE_CHECKING:
    from plantgate.core.middleware import Middleware
    from plantgate.core.request import Request
    from plantgate.core.response import Response


Next = Callable[["Request", "Response"], Coroutine[Any, Any, "Response"]]


class Pipeline:
    """
    Middleware chain executor.

    Middleware runs in list order on the way in and in reverse on the way
    out; the chain is rebuilt for each ``run`` so instances are not shared
    between dispatches.
    """

    __slots__ = ("_middleware",)

    def __init__(self, middleware: List["Middleware"]) -> None:
        self._middleware = list(middleware)

    def _build_chain(self, handler: Next) -> Next:
        chain = handler

        # Wrap from the inside out
        for middleware in reversed(self._middleware):
            chain = self._wrap_middleware(middleware, chain)

        return chain

    def _wrap_middleware(self, middleware: "Middleware", next_handler: Next) -> Next:
        async def wrapped(request: "Request", response: "Response") -> "Response":
            return await middleware.handle(request, response, next_handler)
        return wrapped

    async def run(self, request: "Request", response: "Response", handler: Next) -> "Response":
        """
        Run the request through the chain.

        Args:
            request: Incoming request
            response: Response under construction
            handler: Terminal ``handler(request, response)``

        Returns:
            Whatever the outermost middleware returns
        """
        chain = self._build_chain(handler)
        return await chain(request, response)

    def __len__(self) -> int:
        return len(self._middleware)
