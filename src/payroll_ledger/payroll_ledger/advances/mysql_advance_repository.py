from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import AdvanceStatus
from ..core.exceptions import ConcurrentModificationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, in_clause
from .model import AdvanceRecord
from .repository import AdvanceRepository

_COLUMNS = "advance_id, employee_id, amount, issue_date, status, consumed_by_payment_id, consumed_at, notes"


def _to_advance(r: dict) -> AdvanceRecord:
    return AdvanceRecord(
        advance_id=int(r["advance_id"]),
        employee_id=int(r["employee_id"]),
        amount=as_decimal(r["amount"]),
        issue_date=r["issue_date"],
        status=AdvanceStatus(r["status"]),
        consumed_by_payment_id=r.get("consumed_by_payment_id"),
        consumed_at=r.get("consumed_at"),
        notes=r.get("notes"),
    )


class MySQLAdvanceRepository(AdvanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, advance_id: int) -> Optional[AdvanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM advances WHERE advance_id=%s", (int(advance_id),))
            r = fetchone(cur)
            return _to_advance(r) if r else None

    def create(self, *, employee_id: int, amount: Decimal, issue_date: date, notes: Optional[str] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO advances(employee_id, amount, issue_date, status, notes)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(employee_id), amount, issue_date, AdvanceStatus.PENDING.value, notes),
            )
            return int(cur.lastrowid)

    def list_pending(self, employee_id: int) -> Sequence[AdvanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM advances WHERE employee_id=%s AND status=%s ORDER BY issue_date, advance_id",
                (int(employee_id), AdvanceStatus.PENDING.value),
            )
            return [_to_advance(r) for r in fetchall(cur)]

    def list_for_employee(self, employee_id: int) -> Sequence[AdvanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM advances WHERE employee_id=%s ORDER BY issue_date DESC, advance_id DESC",
                (int(employee_id),),
            )
            return [_to_advance(r) for r in fetchall(cur)]

    def mark_consumed(
        self,
        *,
        employee_id: int,
        advance_ids: Sequence[int],
        payment_id: str,
        consumed_at: date,
    ) -> int:
        ids = [int(i) for i in advance_ids]
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE advances
                SET status=%s, consumed_by_payment_id=%s, consumed_at=%s
                WHERE employee_id=%s AND status=%s AND advance_id IN ({in_clause(ids)})
                """,
                (
                    AdvanceStatus.CONSUMED.value,
                    payment_id,
                    consumed_at,
                    int(employee_id),
                    AdvanceStatus.PENDING.value,
                    *ids,
                ),
            )
            if cur.rowcount != len(ids):
                # Raising inside db_cursor rolls the partial flip back.
                raise ConcurrentModificationError(
                    "Pending advances changed while consuming",
                    employee_id=int(employee_id),
                    expected=len(ids),
                    updated=int(cur.rowcount),
                )
            return len(ids)

    def release_payment(self, payment_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE advances
                SET status=%s, consumed_by_payment_id=NULL, consumed_at=NULL
                WHERE consumed_by_payment_id=%s AND status=%s
                """,
                (AdvanceStatus.PENDING.value, payment_id, AdvanceStatus.CONSUMED.value),
            )
            return int(cur.rowcount)

    def list_consumer_payment_ids(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT consumed_by_payment_id AS payment_id FROM advances WHERE status=%s",
                (AdvanceStatus.CONSUMED.value,),
            )
            return [r["payment_id"] for r in fetchall(cur) if r.get("payment_id")]
