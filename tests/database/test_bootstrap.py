from pathlib import Path

from src.payroll_ledger.payroll_ledger.database.bootstrap import iter_sql_statements

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_split_respects_quotes():
    sql = "INSERT INTO t VALUES ('a;b'); INSERT INTO t VALUES (\"c\\\";d\");\nSELECT 1"

    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        "INSERT INTO t VALUES (\"c\\\";d\")",
        "SELECT 1",
    ]


def test_schema_declares_payroll_tables():
    statements = list(iter_sql_statements(SCHEMA.read_text(encoding="utf-8")))
    joined = "\n".join(statements)

    for table in (
        "employees",
        "attendance_records",
        "advances",
        "salary_payments",
        "salary_payment_attendance",
        "salary_payment_advances",
    ):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in joined
