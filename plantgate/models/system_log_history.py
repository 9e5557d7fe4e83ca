"""
System log history: the audit trail written by the ``log`` middleware and
browsed through the system-log endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from plantgate.orm.query import QueryBuilder
from plantgate.orm.repository import Repository
from plantgate.utils.helpers import remove_prefix_from_keys


class SystemLogHistory(Repository):
    table = "system_log_history"
    prefix = "slh_"
    primary_key = "slh_id"
    schema = """
        CREATE TABLE IF NOT EXISTS system_log_history (
            slh_id INTEGER PRIMARY KEY AUTOINCREMENT,
            slh_lp_plant_db_code VARCHAR(50),
            slh_ip_address VARCHAR(100),
            slh_subject VARCHAR(255),
            slh_content TEXT,
            slh_module VARCHAR(50),
            slh_created_datetime VARCHAR(19),
            slh_created_by VARCHAR(100)
        )
    """

    def _filtered(self, filters: Mapping[str, Any]) -> QueryBuilder:
        query = self.query()

        if filters.get("plant_id"):
            query.where("slh_lp_plant_db_code", "=", filters["plant_id"])
        if filters.get("module"):
            query.where("slh_module", "=", filters["module"])
        if filters.get("created_by"):
            query.where("slh_created_by", "=", filters["created_by"])
        if filters.get("date_from"):
            query.where("slh_created_datetime", ">=", f"{filters['date_from']} 00:00:00")
        if filters.get("date_to"):
            query.where("slh_created_datetime", "<=", f"{filters['date_to']} 23:59:59")
        if filters.get("search"):
            term = f"%{filters['search']}%"
            query.where_raw("slh_subject LIKE ? OR slh_content LIKE ?", [term, term])
        if filters.get("ip_address"):
            query.where("slh_ip_address", "LIKE", f"%{filters['ip_address']}%")

        return query

    async def find_all_with_pagination(
        self,
        page: int,
        limit: int,
        filters: Optional[Mapping[str, Any]] = None,
        plant_data: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        One page of log rows, newest first, with the plant code of each row
        looked up in ``plant_data`` and column prefixes stripped.
        """
        filters = filters or {}
        plants = {
            plant.get("plant_db_code"): plant.get("plant_code", "")
            for plant in (plant_data or [])
            if isinstance(plant, Mapping)
        }

        rows = await (
            self._filtered(filters)
            .order_by("slh_created_datetime", "DESC")
            .paginate(page, limit)
            .get()
        )
        for row in rows:
            row["slh_lp_plant_code"] = plants.get(row.get("slh_lp_plant_db_code"), "")

        total = await self._filtered(filters).count()

        return {
            "data": remove_prefix_from_keys(rows),
            "total": total,
            "page": page,
            "limit": limit,
        }

    async def create(self, data: Mapping[str, Any]) -> Optional[int]:
        return await self.insert(data)

    async def find_by_id(self, log_id: Any) -> Optional[Dict[str, Any]]:
        return await self.find(log_id)

    async def unique_modules(self) -> List[Dict[str, Any]]:
        return await self.query().select("slh_module").distinct().order_by("slh_module").get()

    async def unique_users(self) -> List[Dict[str, Any]]:
        return await self.query().select("slh_created_by").distinct().order_by("slh_created_by").get()
