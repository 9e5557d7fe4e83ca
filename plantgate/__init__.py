"""
PlantGate - Plant Operations API Gateway
========================================

A small async HTTP API framework and the service built on it: pattern
routes with groups, named middleware chains, a request/response model,
and controllers that delegate identity to a remote administration
service.

Features:
---------
- Path patterns with named and optional segments
- Route groups with prefix and middleware inheritance
- 404 / 405 / OPTIONS handling from the route table
- Middleware chains that can short-circuit
- Content-type aware body parsing
- Request-scoped database connections (SQLite, MySQL)

Quick Start:
    $ python -m plantgate migrate
    $ python -m plantgate serve
"""

from __future__ import annotations

__version__ = "1.0.0"

from plantgate.core.application import PlantGateApp, create_app
from plantgate.core.config import Config
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.core.router import Router

__all__ = [
    "__version__",
    "PlantGateApp",
    "create_app",
    "Config",
    "Request",
    "Response",
    "Router",
]
