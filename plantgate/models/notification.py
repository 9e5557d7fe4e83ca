"""
Per-user notification inbox: active notification center records addressed
to a user, with a read flag kept in ``notification_read_status``.

A record reaches a user when its recipient list is ``[]`` or names the
user's code, and its plant and department are empty or match.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from plantgate.orm.repository import Repository
from plantgate.utils.helpers import generate_db_code, now_string, remove_first_prefix, remove_prefix_from_keys

INBOX_FROM = """
    FROM notification_center nc
    LEFT JOIN notification_read_status nrs
        ON nc.nc_db_code = nrs.nrs_nc_db_code AND nrs.nrs_lu_db_code = ?
    WHERE (nc.nc_recipient_list = '[]' OR nc.nc_recipient_list LIKE ?)
    AND (nc.nc_lp_plant_db_code = ? OR nc.nc_lp_plant_db_code = '' OR nc.nc_lp_plant_db_code IS NULL)
    AND (nc.nc_lu_department = ? OR nc.nc_lu_department = '' OR nc.nc_lu_department IS NULL)
    AND nc.nc_status = 1
"""

UNREAD = " AND (nrs.nrs_id IS NULL OR nrs.nrs_status = 0)"


class NotificationReadStatus(Repository):
    table = "notification_read_status"
    prefix = "nrs_"
    primary_key = "nrs_id"
    schema = """
        CREATE TABLE IF NOT EXISTS notification_read_status (
            nrs_id INTEGER PRIMARY KEY AUTOINCREMENT,
            nrs_db_code VARCHAR(50) NOT NULL,
            nrs_nc_db_code VARCHAR(50) NOT NULL,
            nrs_lu_db_code VARCHAR(50) NOT NULL,
            nrs_status INTEGER DEFAULT 0,
            nrs_read_datetime VARCHAR(19)
        )
    """

    async def inbox(
        self,
        user_code: str,
        plant: Optional[str] = "",
        department: Optional[str] = "",
        page: int = 1,
        limit: int = 10,
        unread_only: bool = False,
    ) -> Dict[str, Any]:
        """
        One page of the user's notifications, newest first.

        Returns:
            ``{data, total, unread_count, page, limit}``. Prefixes are
            stripped, so the ``is_read`` flag arrives as ``read`` (0 or 1).
        """
        bindings: List[Any] = [user_code, f"%{user_code}%", plant or "", department or ""]
        condition = INBOX_FROM + (UNREAD if unread_only else "")

        rows = await self.db.fetch_all(
            "SELECT nc.nc_title, nc.nc_content, nc.nc_created_datetime, nc.nc_created_by,"
            " nc.nc_db_code, nc.nc_type,"
            " CASE WHEN nrs.nrs_id IS NULL THEN 0 WHEN nrs.nrs_status = 1 THEN 1 ELSE 0 END AS is_read"
            + condition
            + " ORDER BY nc.nc_created_datetime DESC LIMIT ? OFFSET ?",
            bindings + [limit, (page - 1) * limit],
        )
        counts = await self.db.fetch_one(
            "SELECT COUNT(*) AS total,"
            " SUM(CASE WHEN nrs.nrs_nc_db_code IS NULL OR nrs.nrs_status = 0 THEN 1 ELSE 0 END) AS unread_count"
            + condition,
            bindings,
        ) or {}

        return {
            "data": remove_prefix_from_keys(rows),
            "total": int(counts.get("total") or 0),
            "unread_count": int(counts.get("unread_count") or 0),
            "page": page,
            "limit": limit,
        }

    async def find_notification(self, code: Any) -> Dict[str, Any]:
        """The notification center record whatever its status, or an empty dict."""
        if not code:
            return {}
        row = await self.db.fetch_one("SELECT * FROM notification_center WHERE nc_db_code = ? LIMIT 1", [code])
        return remove_first_prefix(row) if row else {}

    async def mark_as_read(self, nc_code: str, user_code: str, timezone: Optional[str] = None) -> bool:
        existing = await (
            self.query()
            .where("nrs_nc_db_code", nc_code)
            .where("nrs_lu_db_code", user_code)
            .first()
        )
        read_at = now_string(timezone)

        if existing:
            if int(existing["nrs_status"] or 0) == 1:
                return True
            updated = await self.update_where("nrs_id", existing["nrs_id"], {
                "nrs_status": 1,
                "nrs_read_datetime": read_at,
            })
            return updated > 0

        row_id = await self.insert({
            "nrs_db_code": generate_db_code(),
            "nrs_nc_db_code": nc_code,
            "nrs_lu_db_code": user_code,
            "nrs_status": 1,
            "nrs_read_datetime": read_at,
        })
        return row_id is not None
