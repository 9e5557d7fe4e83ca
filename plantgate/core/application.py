"""
PlantGate Application Core
==========================

The ASGI application. PlantGateApp wires together:
- Configuration and logging
- The administration client and the database connection registry
- Controllers, the route table and named middleware
- The dispatcher, behind an error boundary

Architecture:
    ASGI scope → Request → Dispatcher (route lookup, middleware, handler)
    → Response → send

    Exceptions that escape the dispatcher are rendered here as JSON
    envelopes, so every request gets exactly one response.

Example:
    from plantgate import PlantGateApp

    app = PlantGateApp()

    if __name__ == "__main__":
        app.run()
"""

from __future__ import annotations

import time
import traceback
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Coroutine,
    Dict,
    List,
    Optional,
    Union,
)

import httpx

from plantgate.audit.middleware import RequestLoggerMiddleware
from plantgate.auth.middleware import (
    AuthMiddleware,
    BasicAuthMiddleware,
    PublicKeyAuthMiddleware,
    VerifySecondaryPasswordMiddleware,
)
from plantgate.controllers import build_handlers
from plantgate.core.config import Config
from plantgate.core.dispatcher import Dispatcher
from plantgate.core.exceptions import HTTPException, MethodNotAllowed
from plantgate.core.middleware import (
    AccessLogMiddleware,
    CORSMiddleware,
    MiddlewareRegistry,
    RequestIdMiddleware,
    SecurityHeadersMiddleware,
)
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import Router
from plantgate.orm.connection import ConnectionRegistry
from plantgate.routes import not_found, register_routes
from plantgate.services.administration import AdministrationClient
from plantgate.utils.logger import configure_logging, get_logger

GENERIC_ERROR = "An error occurred while processing your request."

Hook = Callable[[], Coroutine[Any, Any, None]]


@dataclass
class AppState:
    """Application runtime state container."""

    is_running: bool = False
    startup_time: float = 0.0
    request_count: int = 0
    active_requests: int = 0


class PlantGateApp:
    """
    PlantGate Application Container.

    Attributes:
        config: Application configuration
        admin: Administration service client
        connections: Named database connections
        router: Route table
        middleware: Named middleware factories
        dispatcher: Route lookup and middleware execution
        state: Runtime state

    Args:
        config: Configuration; loaded from ``config_path`` and the
            environment when omitted
        config_path: Directory holding ``app.py`` and ``<env>.py``
        admin: Administration client to use instead of one built from config
        connections: Connection registry to use instead of one built from config
        transport: httpx transport for the administration client
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        config_path: Optional[Union[str, Path]] = None,
        admin: Optional[AdministrationClient] = None,
        connections: Optional[ConnectionRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or Config.load(config_path)
        self.debug = self.config.get_bool("app.debug")
        self.timezone: Optional[str] = self.config.get("app.timezone")

        configure_logging(
            level=self.config.get("logging.level", "INFO"),
            format=self.config.get("logging.format", "text"),
            log_file=self.config.get("logging.file"),
        )
        self.logger = get_logger("plantgate.app")

        self.admin = admin or AdministrationClient.from_config(self.config, transport=transport)
        self.connections = connections or ConnectionRegistry.from_config(self.config)

        self.router = Router(
            base_path=self.config.get("app.base_path", ""),
            handlers=build_handlers(self.admin, self.connections, self.timezone),
        )
        self.middleware = MiddlewareRegistry()
        self._register_middleware()

        cors = CORSMiddleware.from_config(self.config) if self.config.get_bool("cors.enabled", True) else None
        self.dispatcher = Dispatcher(
            self.router,
            self.middleware,
            global_middleware=self.config.get_list("app.middleware", []),
            cors=cors,
            expose_errors=not self.config.is_production,
        )
        self.dispatcher.set_not_found_handler(not_found)

        register_routes(self.router)

        self.state = AppState()
        self._on_startup: List[Hook] = []
        self._on_shutdown: List[Hook] = []

    def _register_middleware(self) -> None:
        """Register the named middleware routes refer to."""
        admin, connections = self.admin, self.connections

        self.middleware.register("auth", partial(AuthMiddleware, admin, connections))
        self.middleware.register("basic", partial(BasicAuthMiddleware, admin, connections))
        self.middleware.register("verifyPw", partial(VerifySecondaryPasswordMiddleware, admin, connections))
        self.middleware.register("publicKey", partial(PublicKeyAuthMiddleware, admin, connections))
        self.middleware.register("log", partial(RequestLoggerMiddleware, connections, self.timezone))
        self.middleware.register("security", SecurityHeadersMiddleware)
        self.middleware.register("access", AccessLogMiddleware)
        self.middleware.register("request_id", RequestIdMiddleware)
        self.middleware.register("cors", partial(CORSMiddleware.from_config, self.config))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def on_startup(self, func: Hook) -> Hook:
        self._on_startup.append(func)
        return func

    def on_shutdown(self, func: Hook) -> Hook:
        self._on_shutdown.append(func)
        return func

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator["PlantGateApp"]:
        """
        Application lifespan context manager.

        Connects the default database on startup; closes the administration
        client and every database on shutdown.
        """
        start_time = time.perf_counter()

        try:
            await self.connections.default()
            for hook in self._on_startup:
                await hook()

            self.state.is_running = True
            self.state.startup_time = time.perf_counter() - start_time
            self.logger.info(
                f"{self.config.get('app.name')} started in {self.state.startup_time:.3f}s",
                routes=len(self.router.routes()),
            )

            yield self

        finally:
            self.state.is_running = False
            for hook in self._on_shutdown:
                await hook()
            await self.admin.close()
            await self.connections.close()
            self.logger.info("Shutdown complete")

    # -------------------------------------------------------------------------
    # ASGI
    # -------------------------------------------------------------------------

    async def __call__(
        self,
        scope: Dict[str, Any],
        receive: Callable[[], Coroutine[Any, Any, Dict[str, Any]]],
        send: Callable[[Dict[str, Any]], Coroutine[Any, Any, None]],
    ) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
        elif scope["type"] == "http":
            await self._handle_http(scope, receive, send)
        else:
            raise ValueError(f"Unknown scope type: {scope['type']}")

    async def _handle_lifespan(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        message = await receive()
        if message["type"] != "lifespan.startup":
            return

        try:
            context = self.lifespan()
            await context.__aenter__()
        except Exception as e:
            self.logger.error("Startup failed", exception=e)
            await send({"type": "lifespan.startup.failed", "message": str(e)})
            return

        await send({"type": "lifespan.startup.complete"})

        while True:
            message = await receive()
            if message["type"] == "lifespan.shutdown":
                await context.__aexit__(None, None, None)
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(self, scope: Dict[str, Any], receive: Callable, send: Callable) -> None:
        self.state.request_count += 1
        self.state.active_requests += 1

        try:
            request = await Request.from_scope(scope, receive)
            response = await self.handle(request)
            await response.send(send)
        finally:
            self.state.active_requests -= 1

    async def handle(self, request: Request) -> Response:
        """Dispatch one request; exceptions become error envelopes."""
        try:
            return await self.dispatcher.dispatch(request)
        except HTTPException as e:
            return self.render_exception(request, e)
        except Exception as e:
            self.logger.error(
                "Request handling error",
                exception=e,
                method=request.method,
                path=request.path,
            )
            return self.render_error(e)

    def render_exception(self, request: Request, error: HTTPException) -> Response:
        if error.status_code >= 500:
            self.logger.error(error.message, exception=error, method=request.method, path=request.path)
        else:
            self.logger.debug(error.message, method=request.method, path=request.path)

        response = self.dispatcher.new_response()
        if isinstance(error, MethodNotAllowed):
            return response.method_not_allowed(error.message, error.allowed)
        return response.error(error.message, error.status_code)

    def render_error(self, error: Exception) -> Response:
        envelope: Dict[str, Any] = {"status_code": 500, "message": GENERIC_ERROR}
        if self.debug:
            envelope["debug"] = {
                "type": type(error).__name__,
                "message": str(error),
                "trace": traceback.format_tb(error.__traceback__),
            }
        return self.dispatcher.new_response().json(envelope, 500)

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------

    def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        log_level: str = "info",
    ) -> None:
        """
        Run the application with uvicorn.

        For several workers or reload, point uvicorn at the factory:
            uvicorn plantgate.core.application:create_app --factory --workers 4
        """
        import uvicorn

        uvicorn.run(
            self,
            host=host or self.config.get("server.host", "127.0.0.1"),
            port=port or self.config.get_int("server.port", 8000),
            log_level=log_level,
            lifespan="on",
        )


def create_app(config_path: Optional[Union[str, Path]] = None, **kwargs: Any) -> PlantGateApp:
    """
    Factory function for creating PlantGateApp instances.

    Useful for uvicorn's ``--factory`` mode and for testing.
    """
    return PlantGateApp(config_path=config_path or Path.cwd() / "config", **kwargs)
