"""
PlantGate Core Module
=====================

The framework building blocks:
- Router: path patterns, route groups and the handler registry
- Dispatcher: route lookup, 404/405/OPTIONS and middleware execution
- Pipeline: middleware chain executor
- Request/Response: HTTP message abstractions
- Config: Configuration management

The application container lives in ``plantgate.core.application``.
"""

from plantgate.core.config import Config
from plantgate.core.dispatcher import Dispatcher
from plantgate.core.exceptions import (
    CollaboratorError,
    ConfigurationError,
    HTTPException,
    MethodNotAllowed,
    RouteNotFound,
)
from plantgate.core.middleware import FunctionMiddleware, Middleware, MiddlewareRegistry
from plantgate.core.pipeline import Pipeline
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import HandlerRegistry, PathPattern, Route, Router

__all__ = [
    "Config",
    "Dispatcher",
    "Pipeline",
    "Router",
    "Route",
    "PathPattern",
    "HandlerRegistry",
    "Request",
    "Response",
    "Middleware",
    "FunctionMiddleware",
    "MiddlewareRegistry",
    "HTTPException",
    "RouteNotFound",
    "MethodNotAllowed",
    "ConfigurationError",
    "CollaboratorError",
]
