from pathlib import Path

from src.hostel_gatepass.hostel_gatepass.database.bootstrap import _prepare, iter_sql_statements
from src.hostel_gatepass.hostel_gatepass.database.mysql_base import duplicate_key_name, in_clause

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_split_ignores_semicolons_inside_quotes():
    sql = "INSERT INTO t VALUES ('a;b'); INSERT INTO t VALUES (\"c;d\");\nSELECT 1"
    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'INSERT INTO t VALUES ("c;d")',
        "SELECT 1",
    ]


def test_split_handles_escaped_quotes():
    sql = "INSERT INTO t VALUES ('it\\'s; fine');"
    assert list(iter_sql_statements(sql)) == ["INSERT INTO t VALUES ('it\\'s; fine')"]


def test_prepare_drops_comments_database_and_use():
    sql = "-- header\nCREATE DATABASE IF NOT EXISTS foo;\nUSE foo;\nCREATE TABLE x (id INT);\n"
    assert list(iter_sql_statements(_prepare(sql))) == ["CREATE TABLE x (id INT)"]


def test_schema_defines_every_table():
    statements = list(iter_sql_statements(_prepare(SCHEMA.read_text(encoding="utf-8"))))
    text = "\n".join(statements)
    for table in (
        "users",
        "guardian_links",
        "gate_passes",
        "gate_pass_events",
        "attendance_records",
        "system_config",
        "notifications",
    ):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in text
    assert "uq_gate_passes_qr_token" in text
    assert "uq_attendance_resident_day" in text


def test_duplicate_key_name_strips_table_prefix():
    msg = "Duplicate entry 'GP-00ff' for key 'gate_passes.uq_gate_passes_qr_token'"
    assert duplicate_key_name(msg) == "uq_gate_passes_qr_token"
    assert duplicate_key_name("Duplicate entry '1-2' for key 'uq_guardian_resident'") == "uq_guardian_resident"
    assert duplicate_key_name("Deadlock found") is None


def test_in_clause_placeholders():
    assert in_clause([1, 2, 3]) == "%s,%s,%s"
