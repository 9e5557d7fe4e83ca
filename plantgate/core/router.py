"""
PlantGate Router
================

Route table with pattern-compiled paths, groups and reverse lookup.

Route Patterns:
    /users                  - Static path
    /users/:id              - Named parameter (":id" means digits only)
    /users/:name            - Unregistered name, one or more non-slash chars
    /posts/:slug[/:page]    - Optional bracketed segment
    /files/:token           - Custom pattern registered via ``router.pattern``

Named patterns:
    :any            [^/]+
    :id             [0-9]+
    :slug           [a-z0-9-]+
    :uuid           8-4-4-4-12 hex
    :alpha          [a-zA-Z]+
    :alphanumeric   [a-zA-Z0-9]+
    :number         [0-9]+(\\.[0-9]+)?

Routes are tried per method in registration order; the first match wins.

Example:
    router = Router(handlers=registry)

    router.get("/health", "HealthController@check")

    with router.group(prefix="/api/v1", middleware=["auth"]):
        router.post("/system-log/list", "SystemLogController@list")
        router.post("/notification-center/create", "NotificationCenterController@create")
        router.with_middleware(["log"])

    router.url("users.show", {"id": 42})
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Pattern,
    Sequence,
    Tuple,
    Union,
)

from plantgate.core.exceptions import ConfigurationError, RouteNotFound


class HTTPMethod(str, Enum):
    """HTTP methods known to the route table, in Allow-header order."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"


DEFAULT_PATTERNS: Dict[str, str] = {
    "any": r"[^/]+",
    "id": r"[0-9]+",
    "slug": r"[a-z0-9-]+",
    "uuid": r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}",
    "alpha": r"[a-zA-Z]+",
    "alphanumeric": r"[a-zA-Z0-9]+",
    "number": r"[0-9]+(?:\.[0-9]+)?",
}

DEFAULT_SEGMENT = r"[^/]+"

_PARAM = re.compile(r":([A-Za-z_]\w*)")

Handler = Callable[..., Any]
MiddlewareRef = Any


def normalize_path(path: str, base_path: str = "") -> str:
    """
    Canonical form used for matching.

    Strips the base path and any query string, forces one leading slash
    and no trailing slash; the root stays ``/``.
    """
    if base_path and path.startswith(base_path):
        path = path[len(base_path):]

    path = path.split("?", 1)[0]
    path = "/" + path.lstrip("/")
    path = path.rstrip("/")

    return path or "/"


class PatternRegistry:
    """Named parameter patterns shared by every compilation of a router."""

    def __init__(self, patterns: Optional[Mapping[str, str]] = None) -> None:
        self._patterns: Dict[str, str] = dict(DEFAULT_PATTERNS)
        if patterns:
            for name, regex in patterns.items():
                self.register(name, regex)

    def register(self, name: str, regex: str) -> None:
        """Register a pattern; ``":token"`` and ``"token"`` are the same name."""
        try:
            re.compile(regex)
        except re.error as e:
            raise ConfigurationError(f"Invalid pattern for ':{name.lstrip(':')}': {e}") from e
        self._patterns[name.lstrip(":")] = regex

    def get(self, name: str) -> str:
        return self._patterns.get(name, DEFAULT_SEGMENT)

    def __contains__(self, name: str) -> bool:
        return name in self._patterns


@dataclass(frozen=True)
class PathPattern:
    """
    Compiled route template.

    Attributes:
        template: Original template, e.g. ``/users/:id[/:tab]``
        regex: Anchored regex with one named group per parameter
        param_names: Parameter names in template order
    """
    template: str
    regex: Pattern[str]
    param_names: Tuple[str, ...]

    @classmethod
    def compile(cls, template: str, patterns: Optional[PatternRegistry] = None) -> "PathPattern":
        """
        Compile a template.

        Raises:
            ConfigurationError: On unbalanced brackets, bad or repeated
                parameter names, or an invalid parameter pattern
        """
        patterns = patterns or PatternRegistry()
        parts: List[str] = []
        names: List[str] = []
        depth = 0
        i = 0

        while i < len(template):
            char = template[i]

            if char == "[":
                depth += 1
                parts.append("(?:")
                i += 1
                continue

            if char == "]":
                if depth == 0:
                    raise ConfigurationError(f"Unbalanced ']' in route '{template}'")
                depth -= 1
                parts.append(")?")
                i += 1
                continue

            param = _PARAM.match(template, i)
            if param:
                name = param.group(1)
                if name in names:
                    raise ConfigurationError(f"Parameter ':{name}' repeated in route '{template}'")
                names.append(name)
                parts.append(f"(?P<{name}>{patterns.get(name)})")
                i = param.end()
                continue

            if char == ":" and template[i + 1:i + 2].isalnum():
                raise ConfigurationError(f"Invalid parameter name in route '{template}'")

            parts.append(re.escape(char))
            i += 1

        if depth:
            raise ConfigurationError(f"Unbalanced '[' in route '{template}'")

        try:
            regex = re.compile("".join(parts))
        except re.error as e:
            raise ConfigurationError(f"Invalid pattern in route '{template}': {e}") from e

        return cls(template=template, regex=regex, param_names=tuple(names))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """Captured parameters, or None; absent optional parameters are left out."""
        match = self.regex.fullmatch(path)
        if match is None:
            return None
        return {name: value for name, value in match.groupdict().items() if value is not None}

    def build(self, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Fill the template.

        Optional segments whose parameters are missing are dropped.
        """
        params = params or {}

        def fill(text: str) -> Optional[str]:
            missing = False

            def replace(match: re.Match) -> str:
                nonlocal missing
                name = match.group(1)
                if name not in params or params[name] is None:
                    missing = True
                    return ""
                return str(params[name])

            filled = _PARAM.sub(replace, text)
            return None if missing else filled

        # Innermost optional segments first
        template = self.template
        optional = re.compile(r"\[([^\[\]]*)\]")
        while True:
            template, count = optional.subn(lambda m: fill(m.group(1)) or "", template)
            if not count:
                break

        return _PARAM.sub(lambda m: str(params.get(m.group(1), "")), template)


@dataclass
class Route:
    """
    Registered route.

    Attributes:
        method: HTTP method
        template: Full template including group prefixes
        pattern: Compiled matcher
        handler: Resolved callable ``handler(request, response)``
        middleware: Middleware names or classes, group-inherited first
        name: Optional unique label for ``Router.url``
        reference: Original "Controller@action" string, when one was used
    """
    method: str
    template: str
    pattern: PathPattern
    handler: Handler
    middleware: List[MiddlewareRef] = field(default_factory=list)
    name: Optional[str] = None
    reference: Optional[str] = None

    def match(self, path: str) -> Optional[Dict[str, str]]:
        return self.pattern.match(path)


class HandlerRegistry:
    """
    Maps controller names to instances so "Controller@action" strings
    become bound methods when a route is registered.

    Example:
        handlers = HandlerRegistry()
        handlers.register("UserController", UserController(admin, config))

        handlers.resolve("UserController@login")  # bound coroutine method
    """

    def __init__(self, controllers: Optional[Mapping[str, Any]] = None) -> None:
        self._controllers: Dict[str, Any] = dict(controllers or {})

    def register(self, name: str, controller: Any) -> "HandlerRegistry":
        self._controllers[name] = controller
        return self

    def __contains__(self, name: str) -> bool:
        return name in self._controllers

    def resolve(self, reference: str) -> Handler:
        """
        Resolve ``"Controller@action"``.

        Raises:
            ConfigurationError: If the controller or action is unknown
        """
        controller_name, sep, action = reference.partition("@")
        if not sep or not controller_name or not action:
            raise ConfigurationError(f"Invalid handler reference: {reference}")

        controller = self._controllers.get(controller_name)
        if controller is None:
            raise ConfigurationError(f"Controller not found: {controller_name}")

        handler = getattr(controller, action, None)
        if action.startswith("_") or not callable(handler):
            raise ConfigurationError(f"Action not found: {action} in {controller_name}")

        return handler


class Router:
    """
    Per-method ordered route table.

    Example:
        router = Router()

        @router.get("/health")
        async def health(request, response):
            return response.json({"status": "ok"})

        router.group(prefix="/api/v1", callback=lambda r: r.post("/login", login))
    """

    def __init__(
        self,
        base_path: str = "",
        handlers: Optional[HandlerRegistry] = None,
        patterns: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._routes: Dict[str, List[Route]] = {method.value: [] for method in HTTPMethod}
        self._named_routes: Dict[str, Route] = {}
        self._patterns = PatternRegistry(patterns)
        self._group_prefix = ""
        self._group_middleware: List[MiddlewareRef] = []
        self._last_route: Optional[Route] = None
        self.handlers = handlers
        self.base_path = ""
        self.set_base_path(base_path)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_base_path(self, base_path: str) -> "Router":
        self.base_path = "/" + base_path.strip("/") if base_path and base_path.strip("/") else ""
        return self

    def pattern(self, name: str, regex: str) -> "Router":
        """Register a named pattern for routes added after this call."""
        self._patterns.register(name, regex)
        return self

    def patterns(self, patterns: Mapping[str, str]) -> "Router":
        for name, regex in patterns.items():
            self._patterns.register(name, regex)
        return self

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add_route(
        self,
        method: str,
        template: str,
        handler: Union[str, Handler],
        name: Optional[str] = None,
    ) -> "Router":
        """
        Append a route under the current group prefix and middleware.

        Raises:
            ConfigurationError: If the handler cannot be resolved
        """
        method = method.upper()
        if method not in self._routes:
            raise ConfigurationError(f"Unsupported HTTP method: {method}")

        full_template = normalize_path(self._group_prefix + "/" + template.strip("/"))
        route = Route(
            method=method,
            template=full_template,
            pattern=PathPattern.compile(full_template, self._patterns),
            handler=self._resolve_handler(handler),
            middleware=list(self._group_middleware),
            name=name,
            reference=handler if isinstance(handler, str) else None,
        )

        self._routes[method].append(route)
        self._last_route = route

        if name is not None:
            self._named_routes[name] = route

        return self

    def _resolve_handler(self, handler: Union[str, Handler]) -> Handler:
        if isinstance(handler, str):
            if self.handlers is None:
                raise ConfigurationError(f"No handler registry to resolve '{handler}'")
            return self.handlers.resolve(handler)

        if not callable(handler):
            raise ConfigurationError(f"Invalid route handler: {handler!r}")

        return handler

    def _register(self, methods: Sequence[str], template: str, handler: Optional[Union[str, Handler]], name: Optional[str]) -> Any:
        if handler is not None:
            for method in methods:
                self.add_route(method, template, handler, name)
            return self

        def decorator(func: Handler) -> Handler:
            for method in methods:
                self.add_route(method, template, func, name)
            return func

        return decorator

    def get(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        """Register a GET route; without a handler, acts as a decorator."""
        return self._register(["GET"], template, handler, name)

    def post(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        return self._register(["POST"], template, handler, name)

    def put(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        return self._register(["PUT"], template, handler, name)

    def patch(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        return self._register(["PATCH"], template, handler, name)

    def delete(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        return self._register(["DELETE"], template, handler, name)

    def options(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        return self._register(["OPTIONS"], template, handler, name)

    def map(self, methods: Sequence[str], template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        """Register one handler under several methods."""
        return self._register([m.upper() for m in methods], template, handler, name)

    def any(self, template: str, handler: Optional[Union[str, Handler]] = None, name: Optional[str] = None) -> Any:
        """Register under GET, POST, PUT, PATCH, DELETE and OPTIONS."""
        methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
        return self._register(methods, template, handler, name)

    @contextmanager
    def _group_scope(self, prefix: str, middleware: Sequence[MiddlewareRef]) -> Iterator["Router"]:
        previous_prefix = self._group_prefix
        previous_middleware = self._group_middleware

        if prefix.strip("/"):
            self._group_prefix = previous_prefix + "/" + prefix.strip("/")
        self._group_middleware = previous_middleware + list(middleware)

        try:
            yield self
        finally:
            self._group_prefix = previous_prefix
            self._group_middleware = previous_middleware

    def group(
        self,
        prefix: str = "",
        middleware: Union[MiddlewareRef, Sequence[MiddlewareRef], None] = None,
        callback: Optional[Callable[["Router"], Any]] = None,
    ) -> Any:
        """
        Open a group that prefixes paths and prepends middleware.

        Nested groups concatenate with the enclosing one. Used as a context
        manager, or with ``callback`` which receives the router.
        """
        if middleware is None:
            middleware = []
        elif isinstance(middleware, (str, type)) or not isinstance(middleware, Sequence):
            middleware = [middleware]

        scope = self._group_scope(prefix, middleware)
        if callback is None:
            return scope

        with scope:
            callback(self)
        return self

    def with_middleware(self, middleware: Union[MiddlewareRef, Sequence[MiddlewareRef]]) -> "Router":
        """Append middleware to the most recently registered route only."""
        if isinstance(middleware, (str, type)) or not isinstance(middleware, Sequence):
            middleware = [middleware]
        if self._last_route is not None:
            self._last_route.middleware.extend(middleware)
        return self

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def normalize(self, path: str) -> str:
        return normalize_path(path, self.base_path)

    def find(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        """First route for ``method`` matching a normalized path."""
        for route in self._routes.get(method.upper(), []):
            params = route.match(path)
            if params is not None:
                return route, params
        return None

    def allowed_methods(self, path: str) -> List[str]:
        """Methods other than OPTIONS with at least one route matching the path."""
        return [
            method
            for method, routes in self._routes.items()
            if method != "OPTIONS" and any(route.match(path) is not None for route in routes)
        ]

    def url(self, name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Reverse a named route.

        Raises:
            RouteNotFound: If no route carries the name
        """
        route = self._named_routes.get(name)
        if route is None:
            raise RouteNotFound(f"Route not found: {name}")
        return self.base_path + route.pattern.build(params)

    def routes(self, method: Optional[str] = None) -> List[Route]:
        if method is not None:
            return list(self._routes.get(method.upper(), []))
        return [route for routes in self._routes.values() for route in routes]

    def named_routes(self) -> Dict[str, Route]:
        return dict(self._named_routes)
