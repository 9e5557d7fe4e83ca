"""
System log browsing and manual log entries.
"""

from __future__ import annotations

from plantgate.auth.guards import require_permission
from plantgate.controllers.base import Controller, page_count
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.system_log_history import SystemLogHistory
from plantgate.services.administration import is_ok
from plantgate.utils.helpers import as_int, now_string

MAX_LIMIT = 999999


class SystemLogController(Controller):
    @require_permission("user_access.mes_system_log.read")
    async def list(self, request: Request, response: Response) -> Response:
        page = as_int(request.get_data("page")) or 1
        limit = as_int(request.get_data("limit")) or 10

        if page < 1:
            return response.error("Page must be ≥ 1", 400)
        if limit < 1 or limit > MAX_LIMIT:
            return response.error(f"Limit must be between 1-{MAX_LIMIT}", 400)

        filters = {
            "plant_id": request.get_data("plantId"),
            "module": request.get_data("module"),
            "created_by": request.get_data("userId"),
            "date_from": request.get_data("dateFrom"),
            "date_to": request.get_data("dateTo"),
            "search": request.get_data("search"),
            "ip_address": request.get_data("ipAddress"),
        }

        plants = await self.admin.plant_list_to_select(self.credentials(request))
        plant_data = plants.get("data") if is_ok(plants) and isinstance(plants.get("data"), list) else []

        result = await SystemLogHistory(await self.database(request)).find_all_with_pagination(
            page, limit, filters, plant_data
        )

        return response.success({
            "logs": result["data"],
            "total": result["total"],
            "page": result["page"],
            "limit": result["limit"],
            "pages": page_count(result["total"], result["limit"]),
        }, "System logs retrieved successfully")

    async def create(self, request: Request, response: Response) -> Response:
        errors = request.validate({
            "plantId": "required|length:1,2",
            "ipAddress": "required|length:7,100",
            "subject": "required|length:3,100",
            "content": "required",
            "module": "required|length:3,30",
        })
        if errors:
            return response.validation_error(errors)

        logs = SystemLogHistory(await self.database(request))
        log_id = await logs.create({
            "slh_lp_plant_db_code": request.get_data("plantId"),
            "slh_ip_address": request.get_data("ipAddress"),
            "slh_subject": request.get_data("subject"),
            "slh_content": request.get_data("content"),
            "slh_module": request.get_data("module"),
            "slh_created_datetime": now_string(self.timezone),
            "slh_created_by": self.created_by(request),
        })
        if not log_id:
            return response.error("Failed to create log entry", 500)

        return response.created({"log": await logs.find_by_id(log_id)}, "Log entry created successfully")

    async def show(self, request: Request, response: Response) -> Response:
        log = await SystemLogHistory(await self.database(request)).find_by_id(request.get_data("id"))
        if not log:
            return response.not_found("Log entry not found")
        return response.success({"log": log}, "Log entry found")

    async def modules(self, request: Request, response: Response) -> Response:
        modules = await SystemLogHistory(await self.database(request)).unique_modules()
        return response.success({"modules": modules}, "Modules retrieved successfully")

    async def users(self, request: Request, response: Response) -> Response:
        users = await SystemLogHistory(await self.database(request)).unique_users()
        return response.success({"users": users}, "Users retrieved successfully")
