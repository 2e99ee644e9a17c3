"""
Shared pytest fixtures for the dbtools test suite.

Provides:
    - FakeSupabase: in-memory stand-in for supabase.Client that follows the
      postgrest fluent builder and raises real APIError objects
    - cmms: FakeSupabase seeded with a small CMMS dataset (function-scoped)
"""

import itertools
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pytest
from postgrest.exceptions import APIError


def api_error(code: str, message: str) -> APIError:
    return APIError({"message": message, "code": code, "hint": None, "details": None})


def missing_table(table: str) -> APIError:
    return api_error("42P01", f'relation "public.{table}" does not exist')


def missing_column(table: str, column: str) -> APIError:
    return api_error("42703", f"column {table}.{column} does not exist")


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    """One chained request against a FakeSupabase table"""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.columns: Optional[List[str]] = None
        self.payload: Any = None
        self.filters: List[Tuple[str, str, Any]] = []
        self.order_by: Optional[str] = None
        self.row_limit: Optional[int] = None
        self.row_range: Optional[Tuple[int, int]] = None

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.op = "select"
        if columns.strip() != "*":
            self.columns = [c.strip() for c in columns.split(",") if c.strip()]
        return self

    def insert(self, rows: Any):
        self.op = "insert"
        self.payload = rows if isinstance(rows, list) else [rows]
        return self

    def update(self, values: Dict[str, Any]):
        self.op = "update"
        self.payload = values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values: List[Any]):
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = column
        return self

    def limit(self, n: int):
        self.row_limit = n
        return self

    def range(self, start: int, end: int):
        self.row_range = (start, end)
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        for kind, column, value in self.filters:
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.op))
        failure = self.db.failures.get((self.table, self.op))
        if failure is not None:
            raise failure
        if self.table not in self.db.schemas:
            raise missing_table(self.table)

        schema = self.db.schemas[self.table]
        referenced = list(self.columns or [])
        referenced += [column for _, column, _ in self.filters]
        if self.order_by:
            referenced.append(self.order_by)
        if self.op == "update":
            referenced += list(self.payload)
        if self.op == "insert":
            for row in self.payload:
                referenced += list(row)
        for column in referenced:
            if column not in schema:
                raise missing_column(self.table, column)

        return getattr(self, f"_{self.op}")(schema)

    def _select(self, schema: List[str]) -> FakeResponse:
        rows = [row for row in self.db.rows[self.table] if self._matches(row)]
        if self.order_by:
            rows.sort(key=lambda r: (r.get(self.order_by) is None, str(r.get(self.order_by))))
        total = len(rows)
        if self.row_range:
            rows = rows[self.row_range[0]:self.row_range[1] + 1]
        if self.row_limit is not None:
            rows = rows[:self.row_limit]
        columns = self.columns or schema
        return FakeResponse([{c: row.get(c) for c in columns} for row in rows], count=total)

    def _insert(self, schema: List[str]) -> FakeResponse:
        inserted = []
        for row in self.payload:
            stored = {c: row.get(c) for c in schema}
            if "id" in schema and stored["id"] is None:
                stored["id"] = next(self.db.ids)
            inserted.append(stored)
        self.db.rows[self.table].extend(inserted)
        return FakeResponse([dict(r) for r in inserted])

    def _update(self, schema: List[str]) -> FakeResponse:
        updated = []
        for row in self.db.rows[self.table]:
            if self._matches(row):
                row.update(self.payload)
                if self.table in self.db.update_triggers and "updated_at" in schema:
                    row["updated_at"] = f"2026-01-01T00:00:{next(self.db.clock):02d}+00:00"
                updated.append(dict(row))
        return FakeResponse(updated)

    def _delete(self, schema: List[str]) -> FakeResponse:
        kept, deleted = [], []
        for row in self.db.rows[self.table]:
            (deleted if self._matches(row) else kept).append(row)
        self.db.rows[self.table] = kept
        return FakeResponse(deleted)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: Dict[str, Any]):
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.functions.get(self.name)
        if handler is None:
            raise api_error(
                "PGRST202",
                f"Could not find the function public.{self.name}(sql) in the schema cache",
            )
        return FakeResponse(handler(self.db, **self.params))


class FakeSupabase:
    """
    In-memory Supabase client

    schemas maps table -> column list; a table absent from it answers every
    request with 42P01. failures maps (table, op) -> exception to raise.
    update_triggers lists tables whose updates set updated_at, like the
    update_updated_at_column() trigger. functions maps rpc name ->
    handler(db, **params).
    """

    def __init__(self, schemas: Optional[Dict[str, List[str]]] = None):
        self.schemas: Dict[str, List[str]] = {}
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.update_triggers: Set[str] = set()
        self.functions: Dict[str, Callable[..., Any]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.rpc_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.ids = itertools.count(1000)
        self.clock = itertools.count(1)
        for table, columns in (schemas or {}).items():
            self.create_table(table, columns)

    def create_table(self, table: str, columns: List[str], rows: Optional[List[Dict[str, Any]]] = None):
        self.schemas[table] = list(columns)
        self.rows[table] = [{c: row.get(c) for c in columns} for row in (rows or [])]

    def add_column(self, table: str, column: str):
        self.schemas[table].append(column)
        for row in self.rows[table]:
            row.setdefault(column, None)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: Optional[Dict[str, Any]] = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})


# ── Fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def cmms():
    """Small CMMS project: one template with two steps, one asset, one profile"""
    db = FakeSupabase()
    db.create_table("pm_templates", ["id", "name", "system_id"], [
        {"id": "pm-1", "name": "Monthly pump check", "system_id": "sys-1"},
    ])
    db.create_table(
        "pm_template_details",
        ["id", "pm_template_id", "step_number", "task_description", "is_critical"],
        [
            {"id": "d-2", "pm_template_id": "pm-1", "step_number": 2,
             "task_description": "Check pressure", "is_critical": True},
            {"id": "d-1", "pm_template_id": "pm-1", "step_number": 1,
             "task_description": "Inspect seals", "is_critical": False},
        ],
    )
    db.create_table("assets", ["id", "serial_number", "system_id"], [
        {"id": "asset-1", "serial_number": "PUMP-001", "system_id": "sys-1"},
    ])
    db.create_table("user_profiles", ["id", "user_id", "email"], [
        {"id": "profile-1", "user_id": "auth-1", "email": "tech@example.com"},
    ])
    db.create_table("work_orders", [
        "id", "work_type", "title", "description", "status", "priority", "asset_id",
        "system_id", "pm_template_id", "wo_number", "requested_by_user_id",
        "assigned_to_user_id", "created_at", "completed_at", "updated_at",
    ])
    db.create_table("work_order_tasks", [
        "id", "work_order_id", "pm_template_detail_id", "step_number", "task_description",
        "is_critical", "status", "result_value", "result_status", "completed_at",
    ])
    db.create_table("work_order_history", [
        "id", "work_order_id", "action_type", "field_name", "old_value", "new_value",
        "user_id", "user_name", "notes",
    ])
    db.create_table("work_order_comments", ["id", "work_order_id", "user_id", "user_name", "comment"])
    db.update_triggers.add("work_orders")
    return db
