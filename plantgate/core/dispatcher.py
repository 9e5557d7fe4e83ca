"""
PlantGate Dispatcher
====================

Turns one request into one response:

1. Normalize the path against the router's base path
2. Answer OPTIONS from the route table
3. Find the first route for the method; captures become ``request.params``
4. 405 when only other methods match, 404 when nothing matches
5. Run global + route middleware around the handler

Example:
    dispatcher = Dispatcher(router, registry, global_middleware=["security"])
    response = await dispatcher.dispatch(request)
"""

from __future__ import annotations

import inspect
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Optional,
    Union,
)

from plantgate.core.middleware import CORSMiddleware, MiddlewareRef, MiddlewareRegistry
from plantgate.core.pipeline import Pipeline
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import Route, Router
from plantgate.utils.logger import get_logger


logger = get_logger("plantgate.dispatcher")

FallbackHandler = Callable[..., Union[Response, Awaitable[Response]]]


async def _call(handler: Callable[..., Any], *args: Any) -> Any:
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def default_not_found(request: Request, response: Response) -> Response:
    return response.not_found(f"Route not found: {request.path}")


def default_method_not_allowed(request: Request, response: Response, allowed: List[str]) -> Response:
    return response.method_not_allowed(f"Method not allowed: {request.method}", allowed)


class Dispatcher:
    """
    Route lookup plus middleware execution.

    Attributes:
        router: Route table, read-only during dispatch
        registry: Resolves middleware names to fresh instances
        global_middleware: Runs before route middleware on every matched route
        cors: When set, OPTIONS replies carry its preflight headers
    """

    def __init__(
        self,
        router: Router,
        registry: Optional[MiddlewareRegistry] = None,
        global_middleware: Optional[List[MiddlewareRef]] = None,
        cors: Optional[CORSMiddleware] = None,
        expose_errors: bool = False,
    ) -> None:
        self.router = router
        self.registry = registry or MiddlewareRegistry()
        self.global_middleware: List[MiddlewareRef] = list(global_middleware or [])
        self.cors = cors
        self.expose_errors = expose_errors
        self._not_found: FallbackHandler = default_not_found
        self._method_not_allowed: FallbackHandler = default_method_not_allowed

    def use(self, middleware: MiddlewareRef) -> "Dispatcher":
        """Append global middleware."""
        self.global_middleware.append(middleware)
        return self

    def set_not_found_handler(self, handler: FallbackHandler) -> "Dispatcher":
        """``handler(request, response)`` renders unmatched paths."""
        self._not_found = handler
        return self

    def set_method_not_allowed_handler(self, handler: FallbackHandler) -> "Dispatcher":
        """``handler(request, response, allowed)`` renders 405 replies."""
        self._method_not_allowed = handler
        return self

    def new_response(self) -> Response:
        return Response(expose_errors=self.expose_errors)

    async def dispatch(self, request: Request) -> Response:
        response = self.new_response()
        path = self.router.normalize(request.path)
        request.path = path

        if request.method == "OPTIONS":
            return await self._handle_options(request, response, path)

        found = self.router.find(request.method, path)
        if found is None:
            allowed = self.router.allowed_methods(path)
            if allowed:
                logger.debug("Method not allowed", method=request.method, path=path, allowed=allowed)
                return await _call(self._method_not_allowed, request, response, allowed)

            logger.debug("Route not found", method=request.method, path=path)
            return await _call(self._not_found, request, response)

        route, params = found
        request.set_params(params)
        request.route = route

        return await self._run_route(route, request, response)

    async def _handle_options(self, request: Request, response: Response, path: str) -> Response:
        # An explicit OPTIONS route takes precedence
        found = self.router.find("OPTIONS", path)
        if found is not None:
            route, params = found
            request.set_params(params)
            request.route = route
            return await self._run_route(route, request, response)

        allowed = self.router.allowed_methods(path)
        if not allowed:
            return await _call(self._not_found, request, response)

        allowed.append("OPTIONS")
        response.set_header("Allow", ", ".join(allowed))

        if self.cors is not None:
            self.cors.apply(response, request.get_header("origin", "*") or "*")

        return response.no_content()

    async def _run_route(self, route: Route, request: Request, response: Response) -> Response:
        middleware = self.registry.resolve(self.global_middleware + route.middleware)

        async def terminal(request: Request, response: Response) -> Response:
            result = await _call(route.handler, request, response)
            return self._to_response(result, response)

        return await Pipeline(middleware).run(request, response, terminal)

    def _to_response(self, result: Any, response: Response) -> Response:
        if result is None:
            return response
        if isinstance(result, Response):
            return result
        if isinstance(result, (dict, list)):
            return response.json(result)
        return response.set_content(result)
