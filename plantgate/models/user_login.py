"""
User login records: one row per user holding the access token issued by
the administration service and the last login time.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from plantgate.orm.repository import Repository


class UserLogin(Repository):
    table = "user_login"
    prefix = "ul_"
    primary_key = "ul_id"
    schema = """
        CREATE TABLE IF NOT EXISTS user_login (
            ul_id INTEGER PRIMARY KEY AUTOINCREMENT,
            ul_pl_db_code VARCHAR(50),
            ul_lu_db_code VARCHAR(50) NOT NULL,
            ul_access_token VARCHAR(255),
            ul_last_login VARCHAR(19)
        )
    """

    async def find_by_record(self, user_db_code: str) -> Optional[Dict[str, Any]]:
        """Row for the administration user code ``lu_db_code``."""
        return await self.find_by("ul_lu_db_code", user_db_code)

    async def find_by_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        if not token:
            return None
        return await self.find_by("ul_access_token", token)

    async def create(self, data: Mapping[str, Any]) -> Optional[int]:
        return await self.insert(data)

    async def update(self, ul_id: Any, data: Mapping[str, Any]) -> int:
        return await self.update_where("ul_id", ul_id, data)

    async def upsert_login(
        self,
        user_db_code: str,
        platform_login_db_code: Optional[str],
        access_token: str,
        last_login: str,
    ) -> Dict[str, Any]:
        """
        Record a successful login, updating the user's row when one exists.

        Returns:
            ``{"created": bool, "affected": int}``
        """
        existing = await self.find_by_record(user_db_code)
        values = {
            "ul_pl_db_code": platform_login_db_code,
            "ul_access_token": access_token,
            "ul_last_login": last_login,
        }

        if existing:
            affected = await self.update(existing["ul_id"], values)
            return {"created": False, "affected": affected}

        row_id = await self.create({**values, "ul_lu_db_code": user_db_code})
        return {"created": True, "affected": 1 if row_id else 0}
