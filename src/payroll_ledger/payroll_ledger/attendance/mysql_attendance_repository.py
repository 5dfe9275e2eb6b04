from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, employee_id, work_date, status, check_in, check_out, work_hours, overtime_hours, notes"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in=normalize_mysql_time(r.get("check_in")),
        check_out=normalize_mysql_time(r.get("check_out")),
        work_hours=float(r.get("work_hours") or 0),
        overtime_hours=float(r.get("overtime_hours") or 0),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_period(self, *, employee_id: int, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date ASC
                """,
                (int(employee_id), start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE work_date=%s ORDER BY employee_id ASC",
                (work_date,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_by_ids(self, attendance_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        ids = [int(i) for i in attendance_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id IN ({in_clause(ids)}) ORDER BY work_date ASC",
                tuple(ids),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        employee_id: int,
        work_date: date,
        status: AttendanceStatus,
        check_in: Optional[time],
        check_out: Optional[time],
        work_hours: float,
        overtime_hours: float = 0.0,
        notes: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(employee_id, work_date, status, check_in, check_out,
                                                   work_hours, overtime_hours, notes)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (int(employee_id), work_date, status.value, check_in, check_out, work_hours, overtime_hours, notes),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            # UNIQUE(employee_id, work_date) closes the check-then-insert race.
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateRecordError(
                    "Attendance already recorded for this date",
                    employee_id=int(employee_id),
                    work_date=work_date.isoformat(),
                ) from e
            raise

    def update(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        check_in: Optional[time],
        check_out: Optional[time],
        work_hours: float,
        overtime_hours: float,
        notes: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, check_in=%s, check_out=%s, work_hours=%s, overtime_hours=%s, notes=%s
                WHERE attendance_id=%s
                """,
                (status.value, check_in, check_out, work_hours, overtime_hours, notes, int(attendance_id)),
            )
            # rowcount is 0 when nothing changed too, so re-check existence.
            if cur.rowcount > 0:
                return True
            cur.execute("SELECT 1 AS found FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            return fetchone(cur) is not None
