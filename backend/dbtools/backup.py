"""
Database Backup
Dumps tables to a timestamped JSON file plus a human-readable summary
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, TextIO, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, model_validator
from supabase import Client

from .errors import BackupError, ErrorKind, classify_error, error_message
from .rows import fetch_all_rows

logger = logging.getLogger(__name__)

BACKUP_VERSION = "2.0"


class TableInfo(BaseModel):
    name: str
    record_count: int
    columns: List[str] = Field(default_factory=list)
    backup_timestamp: str


class TableBackup(BaseModel):
    table_info: TableInfo
    data: List[Dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _count_matches_data(self):
        if self.table_info.record_count != len(self.data):
            raise ValueError(
                f"{self.table_info.name}: record_count {self.table_info.record_count} "
                f"!= {len(self.data)} rows"
            )
        return self


class BackupInfo(BaseModel):
    timestamp: str
    source: str
    table_count: int = 0
    record_count: int = 0
    backup_version: str = BACKUP_VERSION
    # table -> reason it was left out
    skipped_tables: Dict[str, str] = Field(default_factory=dict)


class BackupDocument(BaseModel):
    backup_info: BackupInfo
    tables: Dict[str, TableBackup] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _totals_match_tables(self):
        if self.backup_info.table_count != len(self.tables):
            raise ValueError(f"table_count {self.backup_info.table_count} != {len(self.tables)} tables")
        total = sum(t.table_info.record_count for t in self.tables.values())
        if self.backup_info.record_count != total:
            raise ValueError(f"record_count {self.backup_info.record_count} != {total} rows")
        return self


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def backup_tables(
    client: Client,
    tables: Iterable[str],
    source: str,
    out: Optional[TextIO] = None
) -> BackupDocument:
    """
    Read every listed table into a BackupDocument

    Tables that do not exist or cannot be read are skipped and recorded in
    backup_info.skipped_tables.

    Args:
        client: Supabase client
        tables: Table names, backed up in order
        source: Where the data came from (the project URL)
        out: Stream for status lines (default stdout)

    Returns:
        Validated BackupDocument
    """
    out = out or sys.stdout
    backed_up: Dict[str, TableBackup] = {}
    skipped: Dict[str, str] = {}

    for table in tables:
        print(f"\n📋 Backing up table: {table}", file=out)
        try:
            rows = fetch_all_rows(client, table)
        except Exception as e:
            if classify_error(e) == ErrorKind.MISSING_RELATION:
                print(f"   ⚪ Table '{table}' does not exist - skipping", file=out)
                skipped[table] = "does not exist"
            else:
                print(f"   ❌ Error accessing '{table}': {error_message(e)}", file=out)
                skipped[table] = error_message(e)
            continue

        columns = list(rows[0].keys()) if rows else []
        backed_up[table] = TableBackup(
            table_info=TableInfo(
                name=table,
                record_count=len(rows),
                columns=columns,
                backup_timestamp=_now(),
            ),
            data=rows,
        )
        print(f"   ✅ Successfully backed up {len(rows)} records", file=out)
        if columns:
            print(f"   📊 Columns: {', '.join(columns)}", file=out)

    return BackupDocument(
        backup_info=BackupInfo(
            timestamp=_now(),
            source=source,
            table_count=len(backed_up),
            record_count=sum(len(t.data) for t in backed_up.values()),
            skipped_tables=skipped,
        ),
        tables=backed_up,
    )


def render_summary(doc: BackupDocument) -> str:
    info = doc.backup_info
    lines = [
        "CMMS Database Backup Summary",
        "============================",
        f"Backup Date: {info.timestamp}",
        f"Source: {info.source}",
        f"Total Tables: {info.table_count}",
        f"Total Records: {info.record_count}",
        "",
        "Table Details:",
        "--------------",
    ]
    for name, table in doc.tables.items():
        lines.append(f"{name}: {table.table_info.record_count} records")
        if table.table_info.columns:
            lines.append(f"  Columns: {', '.join(table.table_info.columns)}")
        lines.append("")
    if info.skipped_tables:
        lines.append("Skipped Tables:")
        lines.append("---------------")
        for name, reason in info.skipped_tables.items():
            lines.append(f"{name}: {reason}")
        lines.append("")
    return "\n".join(lines)


def write_backup(doc: BackupDocument, out_dir: Union[str, Path] = ".") -> Tuple[Path, Path]:
    """
    Write the JSON backup and its .txt summary

    Returns:
        (json_path, summary_path)
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = doc.backup_info.timestamp.replace(":", "-").replace(".", "-").replace("+", "-")

    json_path = out_dir / f"database-backup-{stamp}.json"
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(doc.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

    summary_path = out_dir / f"backup-summary-{stamp}.txt"
    summary_path.write_text(render_summary(doc), encoding="utf-8")

    logger.info(f"Backup written to {json_path}")
    return json_path, summary_path


def load_backup(path: Union[str, Path]) -> BackupDocument:
    """Read and validate a backup file written by write_backup"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise BackupError(f"Cannot read backup {path}: {e}") from e

    try:
        return BackupDocument.model_validate(raw)
    except ValidationError as e:
        raise BackupError(f"Invalid backup {path}: {e}") from e
