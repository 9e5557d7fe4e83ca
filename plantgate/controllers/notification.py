"""
The signed-in user's notification inbox. Opening a notification marks it
read for that user.
"""

from __future__ import annotations

from typing import Any, Dict

from plantgate.controllers.base import Controller
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.notification import NotificationReadStatus
from plantgate.utils.helpers import as_int, format_datetime

MAX_LIMIT = 100
COUNT_LIMIT = 99999


def user_code(user: Any) -> str:
    """The administration user code of the principal."""
    if not isinstance(user, dict):
        return ""
    return user.get("lu_db_code") or user.get("db_code") or ""


class NotificationController(Controller):
    async def _inbox(self, request: Request, page: int, limit: int) -> Dict[str, Any]:
        user = request.user if isinstance(request.user, dict) else {}
        return await NotificationReadStatus(await self.database(request)).inbox(
            user_code(user),
            plant=request.get_data("globalPlantDbCode", ""),
            department=user.get("user_department") or "",
            page=page,
            limit=limit,
        )

    async def list(self, request: Request, response: Response) -> Response:
        page = as_int(request.get_data("page"))
        limit = as_int(request.get_data("limit"))

        if page < 1:
            return response.error("Page must be ≥ 1", 400)
        if limit < 1 or limit > MAX_LIMIT:
            return response.error(f"Limit must be between 1-{MAX_LIMIT}", 400)

        result = await self._inbox(request, page, limit)
        for notification in result["data"]:
            notification["timestamp"] = format_datetime(notification.get("created_datetime"))

        return response.success({
            "notifications": result["data"],
            "total": result["total"],
            "unread_count": result["unread_count"],
            "page": result["page"],
            "limit": result["limit"],
        }, "Notification records retrieved successfully")

    async def count(self, request: Request, response: Response) -> Response:
        result = await self._inbox(request, 1, COUNT_LIMIT)
        return response.success(
            {"unread_count": result["unread_count"]},
            "Notification unread records have been retrieved successfully.",
        )

    async def show(self, request: Request, response: Response) -> Response:
        inbox = NotificationReadStatus(await self.database(request))

        notification = await inbox.find_notification(request.get_data("code"))
        if not notification:
            return response.not_found("Notification record not found")

        await inbox.mark_as_read(notification["db_code"], user_code(request.user), self.timezone)
        notification["time_ago"] = format_datetime(notification.get("created_datetime"))

        return response.success({"notification": notification}, "Notification record found")
