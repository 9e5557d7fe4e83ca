"""
PlantGate Persistence
=====================

Thin async persistence layer:
- SQLite and MySQL connections
- Query builder
- Table repositories
- Per-user connection registry
"""

from plantgate.orm.connection import (
    Connection,
    ConnectionRegistry,
    Database,
    DatabaseConfig,
    DatabaseDriver,
    QueryResult,
)
from plantgate.orm.query import (
    Query,
    QueryBuilder,
)
from plantgate.orm.repository import (
    Repository,
    create_tables,
)

__all__ = [
    # Connection
    "Connection",
    "ConnectionRegistry",
    "Database",
    "DatabaseConfig",
    "DatabaseDriver",
    "QueryResult",
    # Query
    "Query",
    "QueryBuilder",
    # Repository
    "Repository",
    "create_tables",
]
