"""
PlantGate Audit Middleware
==========================

Writes a ``system_log_history`` row for every request whose response
envelope reports ``status_code`` 200. The row records who did what:

- created_by: ``username`` on login, the username the administration
  service returned on platform-token verification, else ``accessUsername``
- module: first known path segment (``user``, ``notification-center``)
- subject: action name looked up under that module
- content: the response message

Audit failures are logged and never change the response.

Example:
    registry.register("log", lambda: RequestLoggerMiddleware(connections))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from plantgate.core.middleware import Middleware, Next
from plantgate.models.system_log_history import SystemLogHistory
from plantgate.utils.helpers import get_nested, now_string
from plantgate.utils.logger import get_logger

if TYPE_CHECKING:
    from plantgate.core.request import Request
    from plantgate.core.response import Response
    from plantgate.orm.connection import ConnectionRegistry


logger = get_logger("plantgate.audit")

MODULES: Dict[str, str] = {
    "user": "user",
    "notification-center": "notification_center",
    "qa-inspection": "qa_inspection",
}

SUBJECTS: Dict[str, Dict[str, str]] = {
    "user": {
        "logout": "Logout",
    },
    "notification-center": {
        "create": "Create Notification",
        "update": "Update Notification",
        "delete": "Delete Notification",
    },
    "qa-inspection": {
        "reserve": "Reserve Inspection",
        "update-item-list": "Update Inspection Items",
        "update-item-serial-list": "Complete Inspection",
        "update-result": "Update Inspection Result",
    },
}

DEFAULT_MODULE = "general"
DEFAULT_SUBJECT = "General Action"
DEFAULT_CONTENT = "No message provided"


def _segments(path: str) -> List[str]:
    return path.strip("/").split("/")


def determine_module(path: str) -> str:
    for segment in _segments(path):
        if segment in MODULES:
            return MODULES[segment]
    return DEFAULT_MODULE


def determine_subject(path: str) -> str:
    """
    Walk ``SUBJECTS`` from the first segment naming a module.

    Every remaining segment must be found; any miss is a general action.

    Example:
        >>> determine_subject("/api/v1/notification-center/create")
        'Create Notification'
    """
    segments = _segments(path)
    start = next((i for i, segment in enumerate(segments) if segment in SUBJECTS), 0)

    current: Union[Dict[str, Any], str] = SUBJECTS
    for segment in segments[start:]:
        if not isinstance(current, dict) or segment not in current:
            return DEFAULT_SUBJECT
        current = current[segment]

    return current if isinstance(current, str) else DEFAULT_SUBJECT


def determine_username(request: "Request", envelope: Dict[str, Any]) -> Optional[str]:
    if "auth/login" in request.path:
        return request.get_data("username")
    if "auth/verify-platform-access-token" in request.path:
        return get_nested(envelope, "data.username")
    return request.get_data("accessUsername")


class RequestLoggerMiddleware(Middleware):
    """
    Persists an audit row after successful requests.

    Args:
        connections: Used when no earlier middleware bound ``request.db``
        timezone: Zone for ``slh_created_datetime``
    """

    def __init__(self, connections: "ConnectionRegistry", timezone: Optional[str] = None) -> None:
        self.connections = connections
        self.timezone = timezone

    async def handle(self, request: "Request", response: "Response", next: Next) -> "Response":
        response = await next(request, response)

        envelope = response.data
        if envelope is not None and str(envelope.get("status_code")) == "200":
            await self.record(request, envelope)

        return response

    async def record(self, request: "Request", envelope: Dict[str, Any]) -> None:
        try:
            username = determine_username(request, envelope)
            database = request.db or await self.connections.for_user(username)

            await SystemLogHistory(database).create({
                "slh_lp_plant_db_code": request.get_data("globalPlantDbCode"),
                "slh_ip_address": request.client_ip,
                "slh_subject": determine_subject(request.path),
                "slh_content": envelope.get("message") or DEFAULT_CONTENT,
                "slh_module": determine_module(request.path),
                "slh_created_datetime": now_string(self.timezone),
                "slh_created_by": username,
            })
        except Exception as e:
            logger.error("Error logging request", exception=e, path=request.path)
