"""
Notification center records. Deleting sets ``nc_status`` to -1; every
read hides such rows unless a status is asked for explicitly.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from plantgate.orm.query import QueryBuilder
from plantgate.orm.repository import Repository
from plantgate.utils.helpers import as_int, remove_first_prefix, remove_prefix_from_keys


ORDERABLE_COLUMNS = ("nc_id", "nc_title", "nc_status", "nc_created_datetime", "nc_created_by")

DELETED = -1


class NotificationCenter(Repository):
    table = "notification_center"
    prefix = "nc_"
    primary_key = "nc_id"
    schema = """
        CREATE TABLE IF NOT EXISTS notification_center (
            nc_id INTEGER PRIMARY KEY AUTOINCREMENT,
            nc_db_code VARCHAR(50) NOT NULL,
            nc_type VARCHAR(20),
            nc_title VARCHAR(255),
            nc_content TEXT,
            nc_recipient_list TEXT,
            nc_lu_department VARCHAR(100),
            nc_lp_plant_db_code VARCHAR(50),
            nc_status INTEGER DEFAULT 1,
            nc_created_datetime VARCHAR(19),
            nc_created_by VARCHAR(100)
        )
    """

    def _filtered(self, status: Any = "*", type: Optional[str] = None, search: Optional[str] = None) -> QueryBuilder:
        query = self.query()

        if status != "*":
            query.where("nc_status", "=", as_int(status))
        else:
            query.where("nc_status", ">", DELETED)

        if type:
            query.where("nc_type", "=", type)
        if search:
            query.where("nc_title", "LIKE", f"%{search}%")

        return query

    async def find_all_with_pagination(
        self,
        page: int,
        limit: int,
        order_by: str = "nc_id",
        order_direction: str = "DESC",
        status: Any = "*",
        type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        order_direction = order_direction.upper()
        if order_direction not in ("ASC", "DESC"):
            order_direction = "DESC"
        if order_by not in ORDERABLE_COLUMNS:
            order_by = "nc_id"

        rows = await (
            self._filtered(status, type, search)
            .order_by(order_by, order_direction)
            .paginate(page, limit)
            .get()
        )
        total = await self._filtered(status, type, search).count()

        return {
            "data": remove_prefix_from_keys(rows),
            "total": total,
            "page": page,
            "limit": limit,
            "orderBy": order_by,
            "orderDirection": order_direction,
            "status": status,
        }

    async def create(self, data: Mapping[str, Any]) -> Optional[int]:
        return await self.insert(data)

    async def find_by_id(self, nc_id: Any) -> Optional[Dict[str, Any]]:
        return await self.find(nc_id)

    async def find_by_code(self, code: Any, status: Any = "*") -> Dict[str, Any]:
        """The record with prefixes stripped, or an empty dict."""
        if not code:
            return {}

        query = self.query().where("nc_db_code", "=", code)
        if status != "*":
            query.where("nc_status", "=", as_int(status))
        else:
            query.where("nc_status", ">", DELETED)

        row = await query.first()
        return remove_first_prefix(row) if row else {}

    async def update(self, code: Any, data: Mapping[str, Any]) -> int:
        return await self.update_where("nc_db_code", code, data)

    async def delete(self, code: Any) -> int:
        return await self.update_where("nc_db_code", code, {"nc_status": DELETED})
