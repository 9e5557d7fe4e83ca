"""
PlantGate Errors
================

Exceptions that reach the ASGI boundary carry the status code and
message used to render the error envelope.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class HTTPException(Exception):
    """Base error rendered as an envelope with its own status code."""

    status_code = 500
    default_message = "An error occurred while processing your request."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class RouteNotFound(HTTPException):
    """No route matches the path, or a route name is unknown."""

    status_code = 404
    default_message = "Route not found"


class MethodNotAllowed(HTTPException):
    """The path matches, but only under other methods."""

    status_code = 405

    def __init__(self, method: str, allowed: Iterable[str]) -> None:
        self.allowed: List[str] = list(allowed)
        super().__init__(f"Method not allowed: {method}")


class ConfigurationError(HTTPException):
    """Route table or middleware registry is wired incorrectly."""

    status_code = 500


class CollaboratorError(HTTPException):
    """A remote service could not be reached or answered garbage."""

    status_code = 502
    default_message = "Upstream service unavailable"
