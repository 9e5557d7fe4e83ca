"""
Base Controller
===============

Shared plumbing for controllers: the administration client, the
connection registry and the envelope a forwarded administration call
produces.

Actions are coroutine methods taking ``(request, response)`` and
returning the response.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.orm.connection import ConnectionRegistry, Database
from plantgate.services.administration import AdministrationClient, is_ok, message_of, status_of


class Controller:
    """
    Base controller class.

    Args:
        admin: Administration service client
        connections: Named database connections
        timezone: Zone for audit and login timestamps
    """

    def __init__(
        self,
        admin: AdministrationClient,
        connections: ConnectionRegistry,
        timezone: Optional[str] = None,
    ) -> None:
        self.admin = admin
        self.connections = connections
        self.timezone = timezone

    async def database(self, request: Request, username: Optional[str] = None) -> Database:
        """The database bound by auth middleware, or the caller's selection."""
        if request.db is None:
            request.db = await self.connections.for_user(username or request.get_data("accessUsername"))
        return request.db

    def credentials(self, request: Request) -> Dict[str, Any]:
        return {
            "accessUsername": request.get_data("accessUsername"),
            "accessToken": request.get_data("accessToken"),
        }

    def forward(self, response: Response, result: Mapping[str, Any], message: str) -> Response:
        """``success(data, message)`` for a 200 envelope, else its error verbatim."""
        if not is_ok(result):
            return response.error(message_of(result), status_of(result))
        return response.success(result.get("data"), message)

    def created_by(self, request: Request) -> str:
        user = request.user
        if isinstance(user, dict) and user.get("lu_name"):
            return user["lu_name"]
        return "system"


def page_count(total: int, limit: int) -> int:
    return -(-total // limit) if limit else 0
