"""
PlantGate Middleware System
===========================

Middleware wraps route handlers to:
- Inspect or reject requests before the handler runs
- Decorate responses after it returns
- Short-circuit by returning a response without calling ``next``

Every middleware exposes ``async handle(request, response, next)``.
Subclasses usually override ``before``/``after``; overriding ``handle``
gives full control over the flow.

Architecture:
    Request → Middleware1.before → Middleware2.before → Handler
                                                            ↓
    Response ← Middleware1.after ← Middleware2.after ← Response

Middleware referenced by name on routes is looked up in a
``MiddlewareRegistry`` and constructed fresh for each dispatch.

Example:
    class TimingMiddleware(Middleware):
        async def before(self, request, response):
            request.state["start"] = time.perf_counter()
            return None

        async def after(self, request, response):
            response.set_header("X-Elapsed", time.perf_counter() - request.state["start"])
            return response

    registry = MiddlewareRegistry()
    registry.register("timing", TimingMiddleware)
"""

from __future__ import annotations

import time
import uuid
from abc import ABC
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Coroutine,
    Dict,
    Iterable,
    List,
    Optional,
    Type,
    Union,
)

from plantgate.core.exceptions import ConfigurationError
from plantgate.utils.logger import get_logger, redact

if TYPE_CHECKING:
    from plantgate.core.config import Config
    from plantgate.core.request import Request
    from plantgate.core.response import Response


Next = Callable[["Request", "Response"], Coroutine[Any, Any, "Response"]]


class Middleware(ABC):
    """
    Base middleware class.

    Lifecycle:
        1. ``before()`` runs; returning a Response stops processing
        2. ``next`` runs the rest of the chain
        3. ``after()`` receives the response the chain produced
    """

    async def before(self, request: "Request", response: "Response") -> Optional["Response"]:
        """
        Called before the rest of the chain.

        Returns:
            None to continue processing, or Response to short-circuit
        """
        return None

    async def after(self, request: "Request", response: "Response") -> "Response":
        return response

    async def handle(self, request: "Request", response: "Response", next: Next) -> "Response":
        early_response = await self.before(request, response)
        if early_response is not None:
            return early_response

        response = await next(request, response)

        return await self.after(request, response)


class FunctionMiddleware(Middleware):
    """
    Middleware wrapper for plain coroutine functions.

    Example:
        async def stamp(request, response, next):
            response = await next(request, response)
            response.set_header("X-Served-By", "plantgate")
            return response

        registry.register("stamp", lambda: FunctionMiddleware(stamp))
    """

    def __init__(self, func: Callable[["Request", "Response", Next], Coroutine[Any, Any, "Response"]]) -> None:
        self._func = func

    async def handle(self, request: "Request", response: "Response", next: Next) -> "Response":
        return await self._func(request, response, next)


MiddlewareFactory = Callable[[], Middleware]
MiddlewareRef = Union[str, Type[Middleware], Callable[..., Any]]


class MiddlewareRegistry:
    """
    Name → factory map for middleware referenced from routes.

    A factory is anything that returns a fresh middleware when called with
    no arguments: a class, a ``functools.partial`` or a lambda.

    Example:
        registry = MiddlewareRegistry()
        registry.register("auth", partial(AuthMiddleware, admin, connections))
        registry.resolve(["auth", SecurityHeadersMiddleware])
    """

    def __init__(self) -> None:
        self._factories: Dict[str, MiddlewareFactory] = {}

    def register(self, name: str, factory: MiddlewareFactory) -> "MiddlewareRegistry":
        self._factories[name] = factory
        return self

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> List[str]:
        return list(self._factories)

    def create(self, reference: MiddlewareRef) -> Middleware:
        """
        Build one middleware instance from a name, class or function.

        Instances are rejected; every dispatch builds its own middleware.

        Raises:
            ConfigurationError: If a name is not registered, or for an instance
        """
        if isinstance(reference, str):
            factory = self._factories.get(reference)
            if factory is None:
                raise ConfigurationError(f"Middleware not found: {reference}")
            return factory()

        if isinstance(reference, Middleware):
            raise ConfigurationError(
                f"Middleware instance {reference!r} given; register a factory or pass its class"
            )

        if isinstance(reference, type) and issubclass(reference, Middleware):
            return reference()

        if callable(reference):
            return FunctionMiddleware(reference)

        raise ConfigurationError(f"Invalid middleware: {reference!r}")

    def resolve(self, references: Iterable[MiddlewareRef]) -> List[Middleware]:
        return [self.create(reference) for reference in references]


# Built-in middleware implementations

class CORSMiddleware(Middleware):
    """
    Adds Cross-Origin Resource Sharing headers from the ``cors.*`` settings.

    Example:
        registry.register("cors", partial(CORSMiddleware.from_config, config))
    """

    def __init__(
        self,
        allow_origins: Optional[List[str]] = None,
        allow_methods: Optional[List[str]] = None,
        allow_headers: Optional[List[str]] = None,
        allow_credentials: bool = False,
        max_age: int = 3600,
    ) -> None:
        self.allow_origins = allow_origins or ["*"]
        self.allow_methods = allow_methods or ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
        self.allow_headers = allow_headers or ["Origin", "Content-Type", "X-Auth-Token"]
        self.allow_credentials = allow_credentials
        self.max_age = max_age

    @classmethod
    def from_config(cls, config: "Config") -> "CORSMiddleware":
        return cls(
            allow_origins=config.get_list("cors.allow_origins"),
            allow_methods=config.get_list("cors.allow_methods"),
            allow_headers=config.get_list("cors.allow_headers"),
            allow_credentials=config.get_bool("cors.allow_credentials"),
            max_age=config.get_int("cors.max_age", 3600),
        )

    def allowed_origin(self, origin: str) -> Optional[str]:
        if "*" in self.allow_origins:
            return "*"
        if origin in self.allow_origins:
            return origin
        return None

    def apply(self, response: "Response", origin: str) -> "Response":
        allowed = self.allowed_origin(origin)
        if allowed is None:
            return response

        response.enable_cors(
            origin=allowed,
            methods=self.allow_methods,
            headers=self.allow_headers,
            max_age=self.max_age,
            credentials=self.allow_credentials,
        )
        if allowed != "*":
            response.set_header("Vary", "Origin")
        return response

    async def after(self, request: "Request", response: "Response") -> "Response":
        return self.apply(response, request.get_header("origin", ""))


CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "script-src 'self' 'unsafe-inline' 'unsafe-eval'",
    "style-src 'self' 'unsafe-inline'",
    "img-src 'self' data:",
    "font-src 'self'",
    "connect-src 'self'",
    "media-src 'self'",
    "object-src 'none'",
    "frame-src 'self'",
    "base-uri 'self'",
    "form-action 'self'",
])

SECURITY_HEADERS = {
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Feature-Policy": "geolocation 'self'; microphone 'none'; camera 'none'",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(self)",
}


class SecurityHeadersMiddleware(Middleware):
    """Adds browser hardening headers after the handler ran."""

    def __init__(self, hsts: bool = False) -> None:
        self.hsts = hsts

    async def after(self, request: "Request", response: "Response") -> "Response":
        response.set_headers(SECURITY_HEADERS)
        if self.hsts:
            response.set_header("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def module_from_path(path: str) -> str:
    """First path segment after an ``api/v1`` prefix, e.g. ``auth``."""
    parts = path.strip("/").split("/")
    start = 2 if len(parts) > 2 and parts[0] == "api" and parts[1] == "v1" else 0
    return parts[start] if start < len(parts) and parts[start] else "unknown"


def subject_from_request(method: str, path: str) -> str:
    """``"POST notification-center create"`` for CRUD-style paths, else method and path."""
    parts = path.strip("/").split("/")
    action = parts[-1]
    if action in ("create", "update", "delete", "list", "get-by-code"):
        resource = parts[-2] if len(parts) >= 2 else ""
        return f"{method.capitalize()} {resource} {action}"
    return f"{method.capitalize()} {path}"


class AccessLogMiddleware(Middleware):
    """
    Logs successful (2xx) requests with their duration.

    Request input is redacted before it is logged.
    """

    def __init__(self, logger_name: str = "plantgate.access") -> None:
        self.logger = get_logger(logger_name)

    async def handle(self, request: "Request", response: "Response", next: Next) -> "Response":
        start = time.perf_counter()
        response = await next(request, response)
        duration = time.perf_counter() - start

        if 200 <= response.status_code < 300:
            user = request.user
            self.logger.info(
                subject_from_request(request.method, request.path),
                module=module_from_path(request.path),
                method=request.method,
                path=request.path,
                status=response.status_code,
                duration=f"{round(duration * 1000, 2)}ms",
                ip=request.client_ip,
                user_agent=request.user_agent,
                user=user.get("username", "anonymous") if isinstance(user, dict) else "anonymous",
                body=redact(request.all()),
            )

        return response


class RequestIdMiddleware(Middleware):
    """
    Tags each request with an id, taken from the request header when present.

    The id is stored as ``request.state["request_id"]`` and echoed back.
    """

    def __init__(self, header_name: str = "X-Request-ID") -> None:
        self.header_name = header_name

    async def before(self, request: "Request", response: "Response") -> Optional["Response"]:
        request.state["request_id"] = request.get_header(self.header_name) or str(uuid.uuid4())
        return None

    async def after(self, request: "Request", response: "Response") -> "Response":
        response.set_header(self.header_name, request.state.get("request_id", ""))
        return response
