"""
Notification Center Controller
==============================

CRUD over notification center records, addressed by their ``code``.
Reads need ``user_access.notification_center.read``; changes need
``user_access.notification_center.write``.
"""

from __future__ import annotations

from plantgate.auth.guards import require_permission
from plantgate.controllers.base import Controller, page_count
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.notification_center import NotificationCenter
from plantgate.utils.helpers import as_int, generate_db_code, now_string

READ = "user_access.notification_center.read"
WRITE = "user_access.notification_center.write"

MAX_LIMIT = 100

NOT_FOUND = "Notification center record not found"

# Request field -> column, copied on update only when present
UPDATABLE_FIELDS = {
    "type": "nc_type",
    "title": "nc_title",
    "content": "nc_content",
    "recipientList": "nc_recipient_list",
    "luDepartment": "nc_lu_department",
    "lpPlantDbCode": "nc_lp_plant_db_code",
    "status": "nc_status",
}


class NotificationCenterController(Controller):
    """Handle notification center requests."""

    @require_permission(READ)
    async def list(self, request: Request, response: Response) -> Response:
        page = as_int(request.get_data("page"))
        limit = as_int(request.get_data("limit"))

        if page < 1:
            return response.error("Page must be ≥ 1", 400)
        if limit < 1 or limit > MAX_LIMIT:
            return response.error(f"Limit must be between 1-{MAX_LIMIT}", 400)

        result = await NotificationCenter(await self.database(request)).find_all_with_pagination(
            page,
            limit,
            order_by="nc_created_datetime",
            order_direction="DESC",
            status=request.get_data("status", "*"),
            type=request.get_data("type"),
            search=request.get_data("search"),
        )

        return response.success({
            "notificationCenter": result["data"],
            "total": result["total"],
            "page": result["page"],
            "limit": result["limit"],
            "pages": page_count(result["total"], result["limit"]),
        }, "Notification center records retrieved successfully")

    @require_permission(WRITE)
    async def create(self, request: Request, response: Response) -> Response:
        errors = request.validate({
            "type": "required|length:2,20",
            "title": "required",
            "content": "required",
            "recipientList": "required",
            "luDepartment": [],
            "lpPlantDbCode": [],
        })
        if errors:
            return response.validation_error(errors)

        record_id = await NotificationCenter(await self.database(request)).create({
            "nc_db_code": generate_db_code(),
            "nc_type": request.get_data("type"),
            "nc_title": request.get_data("title"),
            "nc_content": request.get_data("content"),
            "nc_recipient_list": request.get_data("recipientList"),
            "nc_lu_department": request.get_data("luDepartment"),
            "nc_lp_plant_db_code": request.get_data("lpPlantDbCode"),
            "nc_status": 1,
            "nc_created_datetime": now_string(self.timezone),
            "nc_created_by": self.created_by(request),
        })
        if not record_id:
            return response.error("Failed to create notification center record", 500)

        return response.created(None, "Notification center record created successfully")

    @require_permission(READ)
    async def show(self, request: Request, response: Response) -> Response:
        record = await NotificationCenter(await self.database(request)).find_by_code(request.get_data("code"))
        if not record:
            return response.not_found(NOT_FOUND)
        return response.success({"notificationCenter": record}, "Notification center record found")

    @require_permission(WRITE)
    async def update(self, request: Request, response: Response) -> Response:
        records = NotificationCenter(await self.database(request))
        code = request.get_data("code")

        if not await records.find_by_code(code):
            return response.not_found(NOT_FOUND)

        # Clients send the new status as ncStatus alongside status
        if request.has("status"):
            request.set_data("status", as_int(request.get_data("ncStatus")))

        errors = request.validate({
            "type": "required|length:2,20",
            "title": "required",
            "content": "required",
            "recipientList": [],
            "luDepartment": [],
            "lpPlantDbCode": [],
            "status": "required|numeric",
        })
        if errors:
            return response.validation_error(errors)

        values = {
            column: request.get_data(field)
            for field, column in UPDATABLE_FIELDS.items()
            if request.has(field)
        }
        if not await records.update(code, values):
            return response.error("Failed to update notification center record", 500)

        return response.success(None, "Notification center record updated successfully")

    @require_permission(WRITE)
    async def delete(self, request: Request, response: Response) -> Response:
        records = NotificationCenter(await self.database(request))
        code = request.get_data("code")

        if not await records.find_by_code(code):
            return response.not_found(NOT_FOUND)

        if not await records.delete(code):
            return response.error("Failed to delete notification center record", 500)

        return response.success(None, "Notification center record deleted successfully")
