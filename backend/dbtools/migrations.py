"""
Migration Ledger
Ordered, idempotent schema migrations: each one is a read-only check, the
SQL that satisfies it, and the same check used again as verification.
"""

import logging
import sys
from enum import Enum
from typing import Any, Callable, List, Optional, TextIO, Tuple

from pydantic import BaseModel
from supabase import Client

from .catalog import PROFILE_REFERENCE_COLUMNS, WORK_ORDER_TABLE
from .ddl import ChangeStatus, DDLRunner, SchemaChange, print_manual_sql
from .errors import error_message
from .integrity import check_profile_references
from .probe import ProbeStatus, SchemaProbe

logger = logging.getLogger(__name__)


class Migration(BaseModel):
    id: str
    description: str
    sql: str
    # check(client) -> True when the migration is already in place
    check: Callable[[Any], bool]


class MigrationStatus(str, Enum):
    SKIPPED = "skipped"
    APPLIED = "applied"
    MANUAL = "manual"
    PENDING = "pending"


class MigrationResult(BaseModel):
    id: str
    status: MigrationStatus
    sql: str
    message: Optional[str] = None


def columns_exist(table: str, *columns: str) -> Callable[[Any], bool]:
    def check(client) -> bool:
        return not SchemaProbe(client).missing_columns(table, columns)
    return check


def table_exists(table: str) -> Callable[[Any], bool]:
    def check(client) -> bool:
        status = SchemaProbe(client).probe_table(table).status
        return status in (ProbeStatus.EXISTS, ProbeStatus.EMPTY)
    return check


def profile_references_clean(client) -> bool:
    """
    True when both reference columns exist and every value is a profile id

    Read-only: PostgREST cannot list constraints, so the remapped data stands
    in for the constraint itself.
    """
    if not columns_exist(WORK_ORDER_TABLE, *PROFILE_REFERENCE_COLUMNS)(client):
        return False
    report = check_profile_references(client)
    if not report.ok:
        logger.info(
            f"{len(report.violations)} work order references are not profile ids"
            + (f" ({report.error})" if report.error else "")
        )
    return report.ok


UPDATED_AT_FUNCTION_SQL = """CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ language 'plpgsql';"""


def _updated_at_sql(table: str) -> str:
    return f"""ALTER TABLE {table}
ADD COLUMN IF NOT EXISTS updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW();

UPDATE {table}
SET updated_at = COALESCE(created_at, NOW())
WHERE updated_at IS NULL;

{UPDATED_AT_FUNCTION_SQL}

DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table};
CREATE TRIGGER update_{table}_updated_at
BEFORE UPDATE ON {table}
FOR EACH ROW
EXECUTE FUNCTION update_updated_at_column();"""


PM_TEMPLATE_DETAILS_SQL = """CREATE TABLE IF NOT EXISTS pm_template_details (
  id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
  pm_template_id TEXT NOT NULL REFERENCES pm_templates(id) ON DELETE CASCADE,
  step_number INTEGER NOT NULL DEFAULT 1,
  task_description TEXT NOT NULL,
  expected_input_type TEXT CHECK (expected_input_type IN ('text', 'number', 'boolean', 'select', 'photo')),
  standard_text_expected TEXT,
  standard_min_value NUMERIC,
  standard_max_value NUMERIC,
  is_critical BOOLEAN DEFAULT false,
  remarks TEXT,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_pm_template_details_template_id ON pm_template_details(pm_template_id);
CREATE INDEX IF NOT EXISTS idx_pm_template_details_step_number ON pm_template_details(step_number);"""

WORK_ORDER_TASKS_SQL = f"""CREATE TABLE IF NOT EXISTS work_order_tasks (
  id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
  work_order_id TEXT NOT NULL REFERENCES work_orders(id) ON DELETE CASCADE,
  pm_template_detail_id TEXT REFERENCES pm_template_details(id),
  step_number INTEGER NOT NULL DEFAULT 1,
  task_description TEXT NOT NULL,
  expected_input_type TEXT,
  standard_text_expected TEXT,
  standard_min_value NUMERIC,
  standard_max_value NUMERIC,
  is_critical BOOLEAN DEFAULT false,
  status TEXT DEFAULT 'pending',
  result_value TEXT,
  result_status TEXT DEFAULT 'pending',
  notes TEXT,
  photo_urls TEXT[],
  assigned_to TEXT,
  started_at TIMESTAMP WITH TIME ZONE,
  completed_at TIMESTAMP WITH TIME ZONE,
  duration_minutes INTEGER,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_work_order_tasks_work_order_id ON work_order_tasks(work_order_id);
CREATE INDEX IF NOT EXISTS idx_work_order_tasks_pm_template_detail_id ON work_order_tasks(pm_template_detail_id);
CREATE INDEX IF NOT EXISTS idx_work_order_tasks_status ON work_order_tasks(status);

{UPDATED_AT_FUNCTION_SQL}

DROP TRIGGER IF EXISTS update_work_order_tasks_updated_at ON work_order_tasks;
CREATE TRIGGER update_work_order_tasks_updated_at
BEFORE UPDATE ON work_order_tasks
FOR EACH ROW
EXECUTE FUNCTION update_updated_at_column();"""

WORK_ORDER_HISTORY_SQL = """CREATE TABLE IF NOT EXISTS work_order_history (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  work_order_id VARCHAR(50) NOT NULL,
  action_type VARCHAR(50) NOT NULL,
  old_value TEXT,
  new_value TEXT,
  field_name VARCHAR(100),
  user_id VARCHAR(50),
  user_name VARCHAR(100),
  timestamp TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  notes TEXT,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_work_order_history_work_order_id ON work_order_history(work_order_id);
CREATE INDEX IF NOT EXISTS idx_work_order_history_timestamp ON work_order_history(timestamp);"""

WORK_ORDER_COMMENTS_SQL = """CREATE TABLE IF NOT EXISTS work_order_comments (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  work_order_id VARCHAR(50) NOT NULL,
  user_id VARCHAR(50),
  user_name VARCHAR(100) NOT NULL,
  comment TEXT NOT NULL,
  created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_work_order_comments_work_order_id ON work_order_comments(work_order_id);"""

WORK_ORDER_ATTACHMENTS_SQL = """CREATE TABLE IF NOT EXISTS work_order_attachments (
  id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
  work_order_id VARCHAR(50) NOT NULL,
  file_name VARCHAR(255) NOT NULL,
  file_path VARCHAR(500) NOT NULL,
  file_size INTEGER,
  file_type VARCHAR(100),
  uploaded_by_user_id VARCHAR(50),
  uploaded_by_name VARCHAR(100),
  uploaded_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
  description TEXT
);

CREATE INDEX IF NOT EXISTS idx_work_order_attachments_work_order_id ON work_order_attachments(work_order_id);"""

PROFILE_FKS_SQL = """-- Rewrite auth identity ids to profile ids before constraining
UPDATE work_orders wo SET requested_by_user_id = p.id
FROM user_profiles p WHERE wo.requested_by_user_id = p.user_id;

UPDATE work_orders wo SET assigned_to_user_id = p.id
FROM user_profiles p WHERE wo.assigned_to_user_id = p.user_id;

DO $$
BEGIN
  IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'work_orders_requested_by_profile_fkey') THEN
    ALTER TABLE work_orders ADD CONSTRAINT work_orders_requested_by_profile_fkey
      FOREIGN KEY (requested_by_user_id) REFERENCES user_profiles(id);
  END IF;
  IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'work_orders_assigned_to_profile_fkey') THEN
    ALTER TABLE work_orders ADD CONSTRAINT work_orders_assigned_to_profile_fkey
      FOREIGN KEY (assigned_to_user_id) REFERENCES user_profiles(id);
  END IF;
END
$$;"""


# Tables first: the column migrations alter tables created here
CMMS_MIGRATIONS: List[Migration] = [
    Migration(
        id="pm_template_details_table",
        description="pm_template_details checklist steps",
        sql=PM_TEMPLATE_DETAILS_SQL,
        check=table_exists("pm_template_details"),
    ),
    Migration(
        id="work_order_tasks_table",
        description="work_order_tasks execution steps",
        sql=WORK_ORDER_TASKS_SQL,
        check=table_exists("work_order_tasks"),
    ),
    Migration(
        id="work_order_history_table",
        description="work_order_history audit trail",
        sql=WORK_ORDER_HISTORY_SQL,
        check=table_exists("work_order_history"),
    ),
    Migration(
        id="work_order_comments_table",
        description="work_order_comments discussion",
        sql=WORK_ORDER_COMMENTS_SQL,
        check=table_exists("work_order_comments"),
    ),
    Migration(
        id="work_order_attachments_table",
        description="work_order_attachments file metadata",
        sql=WORK_ORDER_ATTACHMENTS_SQL,
        check=table_exists("work_order_attachments"),
    ),
    # Checks see the column only; the trigger is exercised by the smoke test
    Migration(
        id="work_orders_updated_at",
        description="updated_at column and update trigger on work_orders",
        sql=_updated_at_sql("work_orders"),
        check=columns_exist("work_orders", "updated_at"),
    ),
    Migration(
        id="work_order_tasks_updated_at",
        description="updated_at column and update trigger on work_order_tasks",
        sql=_updated_at_sql("work_order_tasks"),
        check=columns_exist("work_order_tasks", "updated_at"),
    ),
    Migration(
        id="work_orders_actual_hours",
        description="actual_hours column on work_orders",
        sql="ALTER TABLE work_orders ADD COLUMN IF NOT EXISTS actual_hours NUMERIC;",
        check=columns_exist("work_orders", "actual_hours"),
    ),
    Migration(
        id="work_order_tasks_is_critical",
        description="is_critical flag on work_order_tasks",
        sql=(
            "ALTER TABLE work_order_tasks ADD COLUMN IF NOT EXISTS is_critical BOOLEAN DEFAULT false;\n"
            "UPDATE work_order_tasks SET is_critical = false WHERE is_critical IS NULL;"
        ),
        check=columns_exist("work_order_tasks", "is_critical"),
    ),
    Migration(
        id="work_orders_profile_fks",
        description="requester/assignee foreign keys to user_profiles(id)",
        sql=PROFILE_FKS_SQL,
        check=profile_references_clean,
    ),
]


class MigrationLedger:
    """Runs migrations in order, skipping the ones already satisfied"""

    def __init__(self, migrations: List[Migration]):
        seen = set()
        for migration in migrations:
            if migration.id in seen:
                raise ValueError(f"Duplicate migration id: {migration.id}")
            seen.add(migration.id)
        self.migrations = list(migrations)

    def _is_satisfied(self, migration: Migration, client: Client) -> bool:
        try:
            return bool(migration.check(client))
        except Exception as e:
            logger.warning(f"Check for {migration.id} raised: {error_message(e)}")
            return False

    def status(self, client: Client) -> List[Tuple[Migration, bool]]:
        """(migration, satisfied) for every migration, in order"""
        return [(m, self._is_satisfied(m, client)) for m in self.migrations]

    def run(
        self,
        client: Client,
        dry_run: bool = False,
        runner: Optional[DDLRunner] = None,
        out: Optional[TextIO] = None
    ) -> List[MigrationResult]:
        """
        Bring the schema up to date

        Args:
            client: Supabase client
            dry_run: Print the SQL of pending migrations instead of running it
            runner: DDLRunner to use (one is built on the client otherwise)
            out: Stream for status lines (default stdout)

        Returns:
            One MigrationResult per migration, in ledger order
        """
        out = out or sys.stdout
        runner = runner or DDLRunner(client, out=out)
        results = []

        for migration in self.migrations:
            if self._is_satisfied(migration, client):
                print(f"⏭️  {migration.id}: already applied", file=out)
                results.append(MigrationResult(id=migration.id, status=MigrationStatus.SKIPPED, sql=migration.sql))
                continue

            if dry_run:
                print_manual_sql(migration.id, migration.sql, "dry run", out=out)
                results.append(MigrationResult(id=migration.id, status=MigrationStatus.PENDING, sql=migration.sql))
                continue

            print(f"🔧 {migration.id}: {migration.description}", file=out)
            outcome = runner.apply(SchemaChange(name=migration.id, sql=migration.sql, verify=migration.check))
            status = MigrationStatus.APPLIED if outcome.status == ChangeStatus.APPLIED else MigrationStatus.MANUAL
            results.append(MigrationResult(id=migration.id, status=status, sql=migration.sql, message=outcome.message))

        return results


def default_ledger() -> MigrationLedger:
    return MigrationLedger(CMMS_MIGRATIONS)
