"""
QA Inspection Controller
========================

Inspection of received goods: listing open inspections, reserving one,
recording line results and serial numbers, and closing it with a result.
Every action needs ``user_access.master_data_setting.write``.

List fields (``qaItemList``, ``qaItemSerialList``) arrive as JSON strings
in the form body, or as lists when the body itself is JSON.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import orjson

from plantgate.auth.guards import require_permission
from plantgate.controllers.base import Controller
from plantgate.core.request import Request
from plantgate.core.response import Response
from plantgate.models.qa_inspection import COMPLETED, FAILED, RESERVED, STATUS_LABELS, QaInspection
from plantgate.services.administration import is_ok
from plantgate.utils.helpers import as_int, generate_db_code, now_string
from plantgate.utils.logger import get_logger

logger = get_logger("plantgate.controllers.qa_inspection")

WRITE = "user_access.master_data_setting.write"

NOT_FOUND = "Record not found"


def decode_list(value: Any) -> Optional[List[Dict[str, Any]]]:
    """A list of objects from a JSON string or an already decoded list; else None."""
    if isinstance(value, (str, bytes)):
        try:
            value = orjson.loads(value)
        except orjson.JSONDecodeError:
            return None
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        return None
    return value


def item_names(reply: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Item code and name per item id from the warehouse service reply."""
    data = reply.get("data") if is_ok(reply) else None
    if isinstance(data, dict):
        return {str(key): value for key, value in data.items() if isinstance(value, dict)}
    if isinstance(data, list):
        return {str(row.get("li_id")): row for row in data if isinstance(row, dict)}
    return {}


class QaInspectionController(Controller):
    """Handle QA inspection requests."""

    @require_permission(WRITE)
    async def list(self, request: Request, response: Response) -> Response:
        inspections = await QaInspection(await self.database(request)).find_open()
        for inspection in inspections:
            status = as_int(inspection.get("status"))
            inspection["status"] = STATUS_LABELS.get(status, inspection.get("status"))

        return response.success({"inspections": inspections}, "Qa inspection list retrieved successfully")

    @require_permission(WRITE)
    async def show(self, request: Request, response: Response) -> Response:
        inspection = await QaInspection(await self.database(request)).find_by_code(request.get_data("code"), RESERVED)
        if not inspection:
            return response.not_found(NOT_FOUND)
        return response.success({"inspection": inspection}, "Qa inspection info retrieved successfully")

    @require_permission(WRITE)
    async def item_list(self, request: Request, response: Response) -> Response:
        inspections = QaInspection(await self.database(request))

        inspection = await inspections.find_by_code(request.get_data("code"), RESERVED)
        if not inspection:
            return response.not_found(NOT_FOUND)

        items = await inspections.items(inspection["id"])

        names: Dict[str, Dict[str, Any]] = {}
        if items:
            payload = self.credentials(request)
            payload["itemIdList"] = orjson.dumps([item.get("li_id") for item in items]).decode()
            names = item_names(await self.admin.item_info_by_id_list(payload))

        for item in items:
            info = names.get(str(item.get("li_id")), {})
            item["li_code"] = info.get("li_item_code", "")
            item["li_name"] = info.get("li_item_name", "")

        return response.success({"items": items}, "Qa inspection item list retrieved successfully")

    @require_permission(WRITE)
    async def reserve(self, request: Request, response: Response) -> Response:
        inspections = QaInspection(await self.database(request))
        code = request.get_data("code")

        if not await inspections.find_by_code(code):
            return response.not_found(NOT_FOUND)

        by = self.created_by(request)
        updated = await inspections.update(code, {
            "qi_status": RESERVED,
            "qi_reserved_by": by,
            "qi_updated_by": by,
            "qi_updated_datetime": now_string(self.timezone),
        })
        if not updated:
            return response.error("Failed to update", 500)

        return response.success(None, "Reserved successfully")

    @require_permission(WRITE)
    async def update_item_list(self, request: Request, response: Response) -> Response:
        inspections = QaInspection(await self.database(request))

        if not await inspections.find_by_code(request.get_data("code"), RESERVED):
            return response.not_found(NOT_FOUND)

        errors = request.validate({"qaItemList": "required"})
        if errors:
            return response.validation_error(errors)

        items = decode_list(request.get_data("qaItemList"))
        if not items or not all("id" in item for item in items):
            return response.error("Failed to update QA item list", 500)

        try:
            await inspections.update_item_results(items, self.created_by(request), now_string(self.timezone))
        except Exception as e:
            logger.error("QA item list update failed", exception=e)
            return response.error("Failed to update QA item list", 500)

        return response.success(None, "Qa item list updated successfully")

    @require_permission(WRITE)
    async def update_item_serial_list(self, request: Request, response: Response) -> Response:
        inspections = QaInspection(await self.database(request))
        code = request.get_data("code")

        if not await inspections.find_by_code(code, RESERVED):
            return response.not_found(NOT_FOUND)

        errors = request.validate({"qaItemSerialList": "required"})
        if errors:
            return response.validation_error(errors)

        serials = decode_list(request.get_data("qaItemSerialList"))
        if not serials:
            return response.error("Failed to update QA item serial list", 500)

        by = self.created_by(request)
        at = now_string(self.timezone)
        rows = [
            {
                "qisl_db_code": generate_db_code(),
                "qisl_qi_id": serial.get("qa_inspection_id"),
                "qisl_qiil_id": serial.get("qa_inspection_item_list_id"),
                "qisl_qiil_li_id": serial.get("item_id"),
                "qisl_serial_number": serial.get("serial_number"),
                "qisl_batch_number": serial.get("batch_number"),
                "qisl_created_by": by,
                "qisl_created_datetime": at,
            }
            for serial in serials
        ]

        try:
            await inspections.complete_with_serials(code, rows, by, at)
        except Exception as e:
            logger.error("QA serial list update failed", exception=e, code=code)
            return response.error(f"Failed to update QA: {e}", 500)

        return response.success(None, "Qa item serial list updated successfully")

    @require_permission(WRITE)
    async def update_result(self, request: Request, response: Response) -> Response:
        inspections = QaInspection(await self.database(request))
        code = request.get_data("code")

        if not await inspections.find_by_code(code, RESERVED):
            return response.not_found(NOT_FOUND)

        errors = request.validate({"status": f"required|in:{COMPLETED},{FAILED}"})
        if errors:
            return response.validation_error(errors)

        updated = await inspections.update(code, {
            "qi_status": as_int(request.get_data("status")),
            "qi_updated_by": self.created_by(request),
            "qi_updated_datetime": now_string(self.timezone),
        })
        if not updated:
            return response.error("Failed to update QA result", 500)

        return response.success(None, "Qa inspection result updated successfully")
