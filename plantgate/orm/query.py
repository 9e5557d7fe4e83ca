"""
PlantGate Query Builder
=======================

Fluent builder for the parameterized SQL the domain models run.

Features:
- Chainable WHERE / ORDER BY / LIMIT / OFFSET
- Raw WHERE fragments with their own bindings
- INSERT, UPDATE and DELETE against the same conditions
- ``?`` placeholders; the connection converts them per driver

Example:
    rows = await (
        QueryBuilder("system_log_history", db)
        .where("slh_module", "user")
        .where("slh_created_datetime", ">=", "2024-01-01 00:00:00")
        .order_by("slh_created_datetime", "DESC")
        .limit(20)
        .offset(40)
        .get()
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from plantgate.orm.connection import Database


class Operator(Enum):
    """SQL comparison operators."""

    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS = "IS"
    IS_NOT = "IS NOT"


OPERATORS = {
    "=": Operator.EQ,
    "!=": Operator.NE,
    "<>": Operator.NE,
    "<": Operator.LT,
    "<=": Operator.LE,
    ">": Operator.GT,
    ">=": Operator.GE,
    "LIKE": Operator.LIKE,
    "NOT LIKE": Operator.NOT_LIKE,
    "IN": Operator.IN,
    "NOT IN": Operator.NOT_IN,
}


@dataclass
class WhereClause:
    """WHERE clause component."""

    column: str
    operator: Operator
    value: Any
    connector: str = "AND"
    is_raw: bool = False
    bindings: List[Any] = field(default_factory=list)

    def to_sql(self) -> Tuple[str, List[Any]]:
        if self.is_raw:
            return f"({self.column})", list(self.bindings)

        if self.operator in (Operator.IN, Operator.NOT_IN):
            values = list(self.value)
            if not values:
                # Empty IN never matches, empty NOT IN always does
                return ("1 = 0" if self.operator == Operator.IN else "1 = 1"), []
            placeholders = ", ".join("?" for _ in values)
            return f"{self.column} {self.operator.value} ({placeholders})", values

        if self.operator == Operator.IS:
            return f"{self.column} IS NULL", []
        if self.operator == Operator.IS_NOT:
            return f"{self.column} IS NOT NULL", []

        return f"{self.column} {self.operator.value} ?", [self.value]


class QueryBuilder:
    """
    Fluent SQL query builder bound to one table and one database.

    Column names are interpolated; values are always bound.
    """

    def __init__(self, table: str, db: Optional["Database"] = None) -> None:
        self._table = table
        self._db = db
        self._selects: List[str] = []
        self._distinct = False
        self._wheres: List[WhereClause] = []
        self._orders: List[Tuple[str, str]] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    # Building

    def select(self, *columns: str) -> "QueryBuilder":
        self._selects.extend(columns)
        return self

    def distinct(self) -> "QueryBuilder":
        self._distinct = True
        return self

    def _add_where(self, column: str, operator: Any, value: Any, connector: str) -> "QueryBuilder":
        # where("name", "John") -> where("name", "=", "John")
        if value is None and operator is not None and str(operator).upper() not in OPERATORS:
            value = operator
            operator = "="

        op = OPERATORS.get(str(operator).upper(), Operator.EQ)
        self._wheres.append(WhereClause(column=column, operator=op, value=value, connector=connector))
        return self

    def where(self, column: str, operator: Any = None, value: Any = None) -> "QueryBuilder":
        """
        Add an AND condition.

        Examples:
            query.where("nc_db_code", code)
            query.where("nc_status", ">", -1)
            query.where("nc_title", "LIKE", "%alert%")
        """
        return self._add_where(column, operator, value, "AND")

    def or_where(self, column: str, operator: Any = None, value: Any = None) -> "QueryBuilder":
        return self._add_where(column, operator, value, "OR")

    def where_in(self, column: str, values: List[Any]) -> "QueryBuilder":
        self._wheres.append(WhereClause(column=column, operator=Operator.IN, value=values))
        return self

    def where_not_in(self, column: str, values: List[Any]) -> "QueryBuilder":
        self._wheres.append(WhereClause(column=column, operator=Operator.NOT_IN, value=values))
        return self

    def where_null(self, column: str) -> "QueryBuilder":
        self._wheres.append(WhereClause(column=column, operator=Operator.IS, value=None))
        return self

    def where_not_null(self, column: str) -> "QueryBuilder":
        self._wheres.append(WhereClause(column=column, operator=Operator.IS_NOT, value=None))
        return self

    def where_raw(self, sql: str, bindings: Optional[List[Any]] = None) -> "QueryBuilder":
        """Add a parenthesized raw condition, e.g. ``"a LIKE ? OR b LIKE ?"``."""
        self._wheres.append(WhereClause(
            column=sql,
            operator=Operator.EQ,
            value=None,
            is_raw=True,
            bindings=list(bindings or []),
        ))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        self._orders.append((column, "DESC" if direction.upper() == "DESC" else "ASC"))
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = int(count)
        return self

    def offset(self, count: int) -> "QueryBuilder":
        self._offset = int(count)
        return self

    def paginate(self, page: int, per_page: int) -> "QueryBuilder":
        return self.limit(per_page).offset((max(page, 1) - 1) * per_page)

    # SQL

    def _build_where(self) -> Tuple[str, List[Any]]:
        parts: List[str] = []
        bindings: List[Any] = []

        for i, clause in enumerate(self._wheres):
            sql, values = clause.to_sql()
            parts.append(sql if i == 0 else f"{clause.connector} {sql}")
            bindings.extend(values)

        return " ".join(parts), bindings

    def to_sql(self) -> Tuple[str, List[Any]]:
        """
        Build the SELECT statement.

        Returns:
            Tuple of (sql_string, bindings)
        """
        select_clause = ", ".join(self._selects) if self._selects else "*"
        if self._distinct:
            select_clause = f"DISTINCT {select_clause}"

        parts = [f"SELECT {select_clause}", f"FROM {self._table}"]
        bindings: List[Any] = []

        if self._wheres:
            where_sql, bindings = self._build_where()
            parts.append(f"WHERE {where_sql}")

        if self._orders:
            parts.append("ORDER BY " + ", ".join(f"{column} {direction}" for column, direction in self._orders))

        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
            if self._offset is not None:
                parts.append(f"OFFSET {self._offset}")

        return " ".join(parts), bindings

    # Execution

    def _require_db(self) -> "Database":
        if self._db is None:
            raise RuntimeError("No database connection")
        return self._db

    async def get(self) -> List[Dict[str, Any]]:
        sql, bindings = self.to_sql()
        return await self._require_db().fetch_all(sql, bindings)

    async def first(self) -> Optional[Dict[str, Any]]:
        self._limit = 1
        sql, bindings = self.to_sql()
        return await self._require_db().fetch_one(sql, bindings)

    async def count(self) -> int:
        """Count matching rows, ignoring order and pagination."""
        sql = f"SELECT COUNT(*) AS total FROM {self._table}"
        bindings: List[Any] = []
        if self._wheres:
            where_sql, bindings = self._build_where()
            sql += f" WHERE {where_sql}"

        row = await self._require_db().fetch_one(sql, bindings)
        return int(row["total"]) if row else 0

    async def exists(self) -> bool:
        return await self.count() > 0

    async def insert(self, values: Mapping[str, Any]) -> Optional[int]:
        """Insert one row; returns the new row id where the driver reports one."""
        columns = list(values)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {self._table} ({', '.join(columns)}) VALUES ({placeholders})"

        result = await self._require_db().execute(sql, [values[c] for c in columns])
        return result.lastrowid

    async def update(self, values: Mapping[str, Any]) -> int:
        if not values:
            return 0

        bindings: List[Any] = [values[c] for c in values]
        sql = f"UPDATE {self._table} SET " + ", ".join(f"{c} = ?" for c in values)

        if self._wheres:
            where_sql, where_bindings = self._build_where()
            sql += f" WHERE {where_sql}"
            bindings.extend(where_bindings)

        result = await self._require_db().execute(sql, bindings)
        return result.rowcount

    async def delete(self) -> int:
        sql = f"DELETE FROM {self._table}"
        bindings: List[Any] = []

        if self._wheres:
            where_sql, bindings = self._build_where()
            sql += f" WHERE {where_sql}"

        result = await self._require_db().execute(sql, bindings)
        return result.rowcount


# Alias
Query = QueryBuilder
