"""Tests for the migration ledger."""

import io
import re

import pytest

from conftest import FakeSupabase, missing_table
from dbtools.catalog import EXPECTED_COLUMNS
from dbtools.ddl import DDLRunner
from dbtools.migrations import (
    CMMS_MIGRATIONS,
    Migration,
    MigrationLedger,
    MigrationStatus,
    columns_exist,
    default_ledger,
    profile_references_clean,
    table_exists,
)


def column_migration(id, table, column):
    return Migration(
        id=id,
        description=f"{table}.{column}",
        sql=f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {column} TEXT;",
        check=columns_exist(table, column),
    )


@pytest.fixture
def db():
    return FakeSupabase({
        "work_orders": ["id", "work_type", "title", "status", "priority",
                        "requested_by_user_id", "assigned_to_user_id", "updated_at"],
        "work_order_tasks": ["id", "work_order_id"],
        "user_profiles": ["id", "user_id"],
    })


def test_default_ledger_ids_are_unique():
    ids = [m.id for m in CMMS_MIGRATIONS]
    assert len(ids) == len(set(ids))
    assert ids[0] == "pm_template_details_table"
    assert ids[-1] == "work_orders_profile_fks"


def test_duplicate_ids_rejected():
    m = column_migration("dup", "work_orders", "x")
    with pytest.raises(ValueError, match="Duplicate migration id"):
        MigrationLedger([m, m])


def test_satisfied_migrations_are_skipped(db):
    db.functions["exec_sql"] = lambda db, sql: []
    ledger = MigrationLedger([column_migration("wo_updated_at", "work_orders", "updated_at")])
    out = io.StringIO()

    results = ledger.run(db, out=out)

    assert results[0].status == MigrationStatus.SKIPPED
    assert db.rpc_calls == []
    assert "⏭️  wo_updated_at: already applied" in out.getvalue()


def test_pending_migration_applied_and_verified(db):
    def exec_sql(db, sql):
        db.add_column("work_order_tasks", "updated_at")
        return []

    db.functions["exec_sql"] = exec_sql
    ledger = MigrationLedger([
        column_migration("wo_updated_at", "work_orders", "updated_at"),
        column_migration("tasks_updated_at", "work_order_tasks", "updated_at"),
    ])
    out = io.StringIO()

    results = ledger.run(db, out=out)

    assert [r.status for r in results] == [MigrationStatus.SKIPPED, MigrationStatus.APPLIED]
    assert "🔧 tasks_updated_at" in out.getvalue()
    # second run finds nothing to do
    assert all(r.status == MigrationStatus.SKIPPED for r in ledger.run(db, out=io.StringIO()))


def test_without_rpc_every_pending_sql_is_printed(db):
    ledger = MigrationLedger([
        column_migration("tasks_updated_at", "work_order_tasks", "updated_at"),
        column_migration("tasks_is_critical", "work_order_tasks", "is_critical"),
    ])
    out = io.StringIO()

    results = ledger.run(db, out=out)

    assert [r.status for r in results] == [MigrationStatus.MANUAL, MigrationStatus.MANUAL]
    text = out.getvalue()
    assert "ADD COLUMN IF NOT EXISTS updated_at" in text
    assert "ADD COLUMN IF NOT EXISTS is_critical" in text


def test_dry_run_prints_without_calling_rpc(db):
    db.functions["exec_sql"] = lambda db, sql: []
    ledger = MigrationLedger([column_migration("tasks_updated_at", "work_order_tasks", "updated_at")])
    out = io.StringIO()

    results = ledger.run(db, dry_run=True, out=out)

    assert results[0].status == MigrationStatus.PENDING
    assert db.rpc_calls == []
    assert "dry run" in out.getvalue()


def test_runner_rpc_name_is_used(db):
    db.functions["run_sql"] = lambda db, sql: db.add_column("work_order_tasks", "updated_at") or []
    ledger = MigrationLedger([column_migration("tasks_updated_at", "work_order_tasks", "updated_at")])
    out = io.StringIO()

    results = ledger.run(db, runner=DDLRunner(db, rpc_name="run_sql", out=out), out=out)

    assert results[0].status == MigrationStatus.APPLIED
    assert db.rpc_calls[0][0] == "run_sql"


def test_check_that_raises_counts_as_pending(db):
    def broken(client):
        raise RuntimeError("boom")

    ledger = MigrationLedger([Migration(id="x", description="x", sql="SELECT 1", check=broken)])
    assert ledger.status(db)[0][1] is False


def test_status_reports_each_migration(db):
    ledger = MigrationLedger([
        Migration(id="tasks", description="", sql="", check=table_exists("work_order_tasks")),
        Migration(id="comments", description="", sql="", check=table_exists("work_order_comments")),
    ])
    assert [(m.id, ok) for m, ok in ledger.status(db)] == [("tasks", True), ("comments", False)]


WRITES = ("insert", "update", "delete")


def apply_ddl(db, sql):
    """exec_sql stand-in that understands CREATE TABLE and ADD COLUMN"""
    for table in re.findall(r"CREATE TABLE IF NOT EXISTS (\w+)", sql):
        if table not in db.schemas:
            db.create_table(table, EXPECTED_COLUMNS[table])
    for table, column in re.findall(r"ALTER TABLE (\w+)\s+ADD COLUMN IF NOT EXISTS (\w+)", sql):
        if table not in db.schemas:
            raise missing_table(table)
        if column not in db.schemas[table]:
            db.add_column(table, column)
    return []


def test_status_and_dry_run_never_write(db):
    db.rows["work_orders"].append({"id": "wo-1", "requested_by_user_id": "auth-1"})
    ledger = default_ledger()

    ledger.status(db)
    ledger.run(db, dry_run=True, out=io.StringIO())

    assert [call for call in db.calls if call[1] in WRITES] == []
    assert db.rpc_calls == []


def test_fresh_schema_creates_tables_before_altering_them():
    db = FakeSupabase({
        "pm_templates": ["id", "name"],
        "work_orders": ["id", "status", "requested_by_user_id", "assigned_to_user_id"],
        "user_profiles": ["id", "user_id"],
    })
    db.functions["exec_sql"] = apply_ddl

    results = {r.id: r.status for r in default_ledger().run(db, out=io.StringIO())}

    assert MigrationStatus.MANUAL not in results.values()
    assert results["work_order_tasks_table"] == MigrationStatus.APPLIED
    # created with both columns by the table migration
    assert results["work_order_tasks_updated_at"] == MigrationStatus.SKIPPED
    assert results["work_order_tasks_is_critical"] == MigrationStatus.SKIPPED
    assert results["work_orders_updated_at"] == MigrationStatus.APPLIED
    assert results["work_orders_actual_hours"] == MigrationStatus.APPLIED


def test_tables_precede_column_migrations():
    ids = [m.id for m in CMMS_MIGRATIONS]
    last_table = max(i for i, m in enumerate(ids) if m.endswith("_table"))
    first_column = min(i for i, m in enumerate(ids) if not m.endswith("_table"))
    assert last_table < first_column


def test_tasks_table_sql_installs_update_trigger():
    sql = next(m.sql for m in CMMS_MIGRATIONS if m.id == "work_order_tasks_table")
    assert "CREATE TRIGGER update_work_order_tasks_updated_at" in sql


def test_profile_references_clean(db):
    db.rows["user_profiles"].append({"id": "profile-1", "user_id": "auth-1"})
    db.rows["work_orders"].append({"id": "wo-1", "requested_by_user_id": "profile-1"})
    assert profile_references_clean(db) is True

    db.rows["work_orders"].append({"id": "wo-2", "assigned_to_user_id": "auth-1"})
    assert profile_references_clean(db) is False


def test_profile_references_need_both_columns():
    db = FakeSupabase({"work_orders": ["id", "requested_by_user_id"], "user_profiles": ["id", "user_id"]})
    assert profile_references_clean(db) is False
