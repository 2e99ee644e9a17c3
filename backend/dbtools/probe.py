"""
Schema Probe
Infers table/column presence from trial queries when DDL access is not available
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field
from supabase import Client

from .errors import ErrorKind, classify_error, error_code, error_message

logger = logging.getLogger(__name__)


class ProbeStatus(str, Enum):
    EXISTS = "exists"      # rows returned, columns known
    EMPTY = "empty"        # table exists, no row to read columns from
    ABSENT = "absent"      # relation does not exist
    UNKNOWN = "unknown"    # any other failure, message kept verbatim


class ProbeResult(BaseModel):
    """Outcome of probing one table"""

    table: str
    status: ProbeStatus
    columns: List[str] = Field(default_factory=list)
    error_code: Optional[str] = None
    message: Optional[str] = None

    @property
    def exists(self) -> Optional[bool]:
        """True/False when known, None when the probe could not tell"""
        if self.status in (ProbeStatus.EXISTS, ProbeStatus.EMPTY):
            return True
        if self.status == ProbeStatus.ABSENT:
            return False
        return None


class ColumnStatus(str, Enum):
    PRESENT = "present"
    MISSING = "missing"
    TABLE_MISSING = "table_missing"
    UNKNOWN = "unknown"


class ColumnProbe(BaseModel):
    table: str
    column: str
    status: ColumnStatus
    message: Optional[str] = None


class SchemaProbe:
    """Read-only schema discovery against a Supabase project"""

    def __init__(self, client: Client):
        self.client = client

    def probe_table(self, table: str, columns: str = "*") -> ProbeResult:
        """
        Probe a table with a bounded select

        Args:
            table: Table name
            columns: Select list (default every column)

        Returns:
            ProbeResult; request errors are folded into the result, never raised
        """
        try:
            response = self.client.table(table).select(columns).limit(1).execute()
        except Exception as e:
            kind = classify_error(e)
            message = error_message(e)
            logger.debug(f"Probe of {table} failed ({kind.value}): {message}")
            if kind == ErrorKind.MISSING_RELATION:
                status = ProbeStatus.ABSENT
            elif kind == ErrorKind.MISSING_COLUMN:
                # Relation resolved; only the selected column is unknown
                status = ProbeStatus.EXISTS
            else:
                status = ProbeStatus.UNKNOWN
            return ProbeResult(table=table, status=status, error_code=error_code(e), message=message)

        rows = response.data or []
        if rows:
            return ProbeResult(table=table, status=ProbeStatus.EXISTS, columns=list(rows[0].keys()))
        return ProbeResult(table=table, status=ProbeStatus.EMPTY)

    def probe_tables(self, tables: Iterable[str]) -> Dict[str, ProbeResult]:
        """Probe several tables one after the other, preserving input order"""
        results = {}
        for table in tables:
            results[table] = self.probe_table(table)
        return results

    def probe_column(self, table: str, column: str) -> ColumnProbe:
        """Check a single column by selecting only that column"""
        try:
            self.client.table(table).select(column).limit(1).execute()
        except Exception as e:
            kind = classify_error(e)
            if kind == ErrorKind.MISSING_COLUMN:
                status = ColumnStatus.MISSING
            elif kind == ErrorKind.MISSING_RELATION:
                status = ColumnStatus.TABLE_MISSING
            else:
                status = ColumnStatus.UNKNOWN
            return ColumnProbe(table=table, column=column, status=status, message=error_message(e))
        return ColumnProbe(table=table, column=column, status=ColumnStatus.PRESENT)

    def missing_columns(self, table: str, expected: Iterable[str]) -> List[str]:
        """
        Return the expected columns the table does not have

        Uses the sampled row keys when the table has data, otherwise falls
        back to one probe per column. An absent table is missing everything.
        """
        expected = list(expected)
        result = self.probe_table(table)
        if result.status == ProbeStatus.ABSENT:
            return expected
        if result.status == ProbeStatus.EXISTS and result.columns:
            return [col for col in expected if col not in result.columns]

        missing = []
        for col in expected:
            probe = self.probe_column(table, col)
            if probe.status in (ColumnStatus.MISSING, ColumnStatus.TABLE_MISSING):
                missing.append(col)
        return missing

    def discover_columns_by_insert(
        self,
        table: str,
        row: Dict[str, Any],
        key: str = "id"
    ) -> ProbeResult:
        """
        Learn the columns of an empty table with a disposable insert

        The row is deleted again as soon as it has been read back.

        Args:
            table: Table name
            row: Minimal row the table should accept
            key: Primary key column used for the cleanup delete

        Returns:
            ProbeResult with the columns of the inserted row
        """
        try:
            response = self.client.table(table).insert(row).execute()
        except Exception as e:
            kind = classify_error(e)
            if kind == ErrorKind.MISSING_RELATION:
                status = ProbeStatus.ABSENT
            elif kind == ErrorKind.MISSING_COLUMN:
                status = ProbeStatus.EXISTS
            else:
                status = ProbeStatus.UNKNOWN
            return ProbeResult(table=table, status=status, error_code=error_code(e), message=error_message(e))

        inserted = (response.data or [{}])[0]
        columns = list(inserted.keys())
        if key in inserted:
            try:
                self.client.table(table).delete().eq(key, inserted[key]).execute()
                logger.debug(f"Removed probe row {inserted[key]} from {table}")
            except Exception as e:
                logger.error(f"Could not remove probe row {inserted[key]} from {table}: {error_message(e)}")
                return ProbeResult(
                    table=table,
                    status=ProbeStatus.EXISTS,
                    columns=columns,
                    error_code=error_code(e),
                    message=f"probe row {inserted[key]} left behind: {error_message(e)}",
                )
        else:
            logger.warning(f"Probe row in {table} has no '{key}' column; it was not removed")

        status = ProbeStatus.EXISTS if columns else ProbeStatus.EMPTY
        return ProbeResult(table=table, status=status, columns=columns)
