"""
CMMS database tools
Schema probing, best-effort DDL, migrations, backups and smoke tests for the
maintenance-management Supabase project
"""

from .backup import BackupDocument, backup_tables, load_backup, write_backup
from .config import SupabaseSettings, init_supabase, load_settings
from .csv_export import export_tables, rows_to_csv
from .ddl import ChangeOutcome, ChangeStatus, DDLRunner, SchemaChange
from .diagram import build_mermaid
from .errors import BackupError, ConfigError, DBToolsError, ErrorKind, classify_error
from .integrity import check_profile_references, resolve_profile_id
from .migrations import CMMS_MIGRATIONS, Migration, MigrationLedger, default_ledger
from .probe import ProbeResult, ProbeStatus, SchemaProbe
from .smoke import SmokeReport, WorkOrderSmokeTest

__all__ = [
    "BackupDocument",
    "backup_tables",
    "load_backup",
    "write_backup",
    "SupabaseSettings",
    "init_supabase",
    "load_settings",
    "export_tables",
    "rows_to_csv",
    "ChangeOutcome",
    "ChangeStatus",
    "DDLRunner",
    "SchemaChange",
    "build_mermaid",
    "BackupError",
    "ConfigError",
    "DBToolsError",
    "ErrorKind",
    "classify_error",
    "check_profile_references",
    "resolve_profile_id",
    "CMMS_MIGRATIONS",
    "Migration",
    "MigrationLedger",
    "default_ledger",
    "ProbeResult",
    "ProbeStatus",
    "SchemaProbe",
    "SmokeReport",
    "WorkOrderSmokeTest",
]
