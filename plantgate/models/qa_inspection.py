"""
QA inspections of received goods.

An inspection (``qa_inspection``) moves through pending (1), reserved (2),
completed (3) and failed (4). Its lines live in ``qa_inspection_item_list``
and the serial numbers recorded on completion in
``qa_inspection_serial_list``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from plantgate.orm.repository import Repository
from plantgate.utils.helpers import as_int, remove_first_prefix, remove_prefix_from_keys

PENDING = 1
RESERVED = 2
COMPLETED = 3
FAILED = 4

STATUS_LABELS = {
    PENDING: "Pending",
    RESERVED: "Reserved",
    COMPLETED: "Completed",
    FAILED: "Failed",
}


def insert_statement(table: str, values: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    columns = list(values)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})", [values[c] for c in columns]


class QaInspectionItem(Repository):
    table = "qa_inspection_item_list"
    prefix = "qiil_"
    primary_key = "qiil_id"
    schema = """
        CREATE TABLE IF NOT EXISTS qa_inspection_item_list (
            qiil_id INTEGER PRIMARY KEY AUTOINCREMENT,
            qiil_db_code VARCHAR(50) NOT NULL,
            qiil_qi_id INTEGER NOT NULL,
            qiil_li_id INTEGER,
            qiil_received_quantity INTEGER DEFAULT 0,
            qiil_failed_quantity INTEGER DEFAULT 0,
            qiil_status INTEGER DEFAULT 0,
            qiil_condition VARCHAR(100),
            qiil_has_serial_number INTEGER DEFAULT 0,
            qiil_icm_no VARCHAR(50),
            qiil_remark TEXT,
            qiil_inspection_area VARCHAR(100),
            qiil_inspection_department VARCHAR(100),
            qiil_created_by VARCHAR(100),
            qiil_created_datetime VARCHAR(19),
            qiil_updated_by VARCHAR(100),
            qiil_updated_datetime VARCHAR(19)
        )
    """


class QaInspectionSerial(Repository):
    table = "qa_inspection_serial_list"
    prefix = "qisl_"
    primary_key = "qisl_id"
    schema = """
        CREATE TABLE IF NOT EXISTS qa_inspection_serial_list (
            qisl_id INTEGER PRIMARY KEY AUTOINCREMENT,
            qisl_db_code VARCHAR(50) NOT NULL,
            qisl_qi_id INTEGER NOT NULL,
            qisl_qiil_id INTEGER NOT NULL,
            qisl_qiil_li_id INTEGER,
            qisl_serial_number VARCHAR(100),
            qisl_batch_number VARCHAR(100),
            qisl_created_by VARCHAR(100),
            qisl_created_datetime VARCHAR(19)
        )
    """


class QaInspection(Repository):
    table = "qa_inspection"
    prefix = "qi_"
    primary_key = "qi_id"
    schema = """
        CREATE TABLE IF NOT EXISTS qa_inspection (
            qi_id INTEGER PRIMARY KEY AUTOINCREMENT,
            qi_db_code VARCHAR(50) NOT NULL,
            qi_gl_no VARCHAR(50),
            qi_ig_no VARCHAR(50),
            qi_ig_no_by VARCHAR(100),
            qi_item_count INTEGER DEFAULT 0,
            qi_status INTEGER DEFAULT 1,
            qi_pdl_vendor_code VARCHAR(50),
            qi_pdl_ph_purchase_no VARCHAR(50),
            qi_pdl_do_no VARCHAR(50),
            qi_reserved_by VARCHAR(100),
            qi_created_by VARCHAR(100),
            qi_created_datetime VARCHAR(19),
            qi_updated_by VARCHAR(100),
            qi_updated_datetime VARCHAR(19)
        )
    """

    async def find_by_code(self, code: Any, status: Any = PENDING) -> Dict[str, Any]:
        """The inspection in the given status with prefixes stripped, or an empty dict."""
        if not code:
            return {}
        row = await (
            self.query()
            .where("qi_db_code", code)
            .where("qi_status", as_int(status))
            .first()
        )
        return remove_first_prefix(row) if row else {}

    async def find_open(self) -> List[Dict[str, Any]]:
        """Pending and reserved inspections, newest first."""
        rows = await (
            self.query()
            .where_in("qi_status", [PENDING, RESERVED])
            .order_by("qi_id", "DESC")
            .get()
        )
        return remove_prefix_from_keys(rows)

    async def items(self, inspection_id: Any) -> List[Dict[str, Any]]:
        rows = await QaInspectionItem(self.db).query().where("qiil_qi_id", inspection_id).order_by("qiil_id").get()
        return remove_prefix_from_keys(rows)

    async def update(self, code: Any, data: Mapping[str, Any]) -> int:
        return await self.update_where("qi_db_code", code, data)

    async def update_item_results(self, items: Iterable[Mapping[str, Any]], updated_by: str, updated_at: str) -> None:
        """
        Record the inspection result of each line in one transaction.

        Each item carries ``id``, ``failedQuantity``, ``status`` and
        ``remark``. Any failure rolls every line back and re-raises.
        """
        async with self.db.transaction() as conn:
            for item in items:
                await conn.execute(
                    "UPDATE qa_inspection_item_list SET qiil_failed_quantity = ?, qiil_status = ?,"
                    " qiil_remark = ?, qiil_updated_by = ?, qiil_updated_datetime = ? WHERE qiil_id = ?",
                    [
                        item.get("failedQuantity"),
                        item.get("status"),
                        item.get("remark"),
                        updated_by,
                        updated_at,
                        item["id"],
                    ],
                )

    async def complete_with_serials(
        self,
        code: Any,
        serials: Iterable[Mapping[str, Any]],
        updated_by: Optional[str] = None,
        updated_at: Optional[str] = None,
    ) -> None:
        """Store the serial list rows and mark the inspection completed, atomically."""
        async with self.db.transaction() as conn:
            for serial in serials:
                sql, bindings = insert_statement(QaInspectionSerial.table, serial)
                await conn.execute(sql, bindings)

            await conn.execute(
                "UPDATE qa_inspection SET qi_status = ?, qi_updated_by = ?, qi_updated_datetime = ? WHERE qi_db_code = ?",
                [COMPLETED, updated_by, updated_at, code],
            )
