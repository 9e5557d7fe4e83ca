"""
PlantGate Repository Base
=========================

Table gateways for the domain models.

A repository is bound to one request-scoped ``Database`` and knows its
table name, its column prefix (``ul_``, ``slh_``, ``nc_``) and the DDL
used to create the table.

Example:
    class UserLogin(Repository):
        table = "user_login"
        prefix = "ul_"

    repo = UserLogin(request.db)
    row = await repo.find_by("ul_access_token", token)
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Type

from plantgate.orm.connection import Database, DatabaseDriver
from plantgate.orm.query import QueryBuilder


class Repository:
    """Base table gateway."""

    table: ClassVar[str] = ""
    prefix: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    schema: ClassVar[str] = ""

    def __init__(self, db: Database) -> None:
        if not self.table:
            raise TypeError(f"{type(self).__name__} must define a table")
        self.db = db

    def query(self) -> QueryBuilder:
        return QueryBuilder(self.table, self.db)

    def column(self, name: str) -> str:
        """Prefixed column name: ``column("status")`` → ``nc_status``."""
        return name if name.startswith(self.prefix) else f"{self.prefix}{name}"

    async def find(self, pk: Any) -> Optional[Dict[str, Any]]:
        return await self.query().where(self.primary_key, pk).first()

    async def find_by(self, column: str, value: Any) -> Optional[Dict[str, Any]]:
        return await self.query().where(column, value).first()

    async def insert(self, values: Mapping[str, Any]) -> Optional[int]:
        return await self.query().insert(values)

    async def update_where(self, column: str, value: Any, values: Mapping[str, Any]) -> int:
        return await self.query().where(column, value).update(values)

    @classmethod
    async def create_table(cls, db: Database) -> None:
        """Run the table DDL, written for SQLite and adjusted for MySQL."""
        if not cls.schema:
            return
        ddl = cls.schema
        if db.config.driver == DatabaseDriver.MYSQL:
            ddl = ddl.replace("AUTOINCREMENT", "AUTO_INCREMENT")
        await db.execute(ddl)


async def create_tables(db: Database, repositories: Iterable[Type[Repository]]) -> List[str]:
    """Create every table that does not exist yet; returns the table names."""
    created = []
    for repository in repositories:
        await repository.create_table(db)
        created.append(repository.table)
    return created
