"""
Best-effort DDL
Applies schema changes through a SQL-executing RPC and falls back to printing
the SQL for an operator when the RPC is unavailable or the change cannot be
verified.
"""

import logging
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, TextIO, Union

from pydantic import BaseModel
from supabase import Client

from .config import DEFAULT_SQL_RPC
from .errors import ErrorKind, classify_error, error_message

logger = logging.getLogger(__name__)

SEPARATOR = "=" * 60
DOLLAR_TAG = re.compile(r"\$[A-Za-z0-9_]*\$")


class SchemaChange(BaseModel):
    """One DDL change plus the read-only check that confirms it"""

    name: str
    sql: str
    # verify(client) -> True once the change is visible; None trusts the RPC
    verify: Optional[Callable[[Any], bool]] = None


class ChangeStatus(str, Enum):
    APPLIED = "applied"
    MANUAL = "manual"


class ChangeOutcome(BaseModel):
    name: str
    status: ChangeStatus
    sql: str
    message: Optional[str] = None


def print_manual_sql(name: str, sql: str, reason: str, out: Optional[TextIO] = None):
    """Print the exact SQL an operator has to run by hand"""
    out = out or sys.stdout
    print(f"⚠️  Could not apply '{name}' automatically: {reason}", file=out)
    print("📋 Please run this SQL in your Supabase SQL Editor:", file=out)
    print(SEPARATOR, file=out)
    print(sql, file=out)
    print(SEPARATOR, file=out)


def split_sql_statements(sql: str) -> List[str]:
    """
    Split a SQL script into statements

    Semicolons inside quoted strings and dollar-quoted bodies ($$ ... $$)
    do not end a statement. -- comments outside quotes are dropped up to the
    end of their line.
    """
    statements = []
    buf = []
    tag = None
    in_quote = False
    i = 0
    while i < len(sql):
        if tag:
            if sql.startswith(tag, i):
                buf.append(tag)
                i += len(tag)
                tag = None
            else:
                buf.append(sql[i])
                i += 1
            continue

        ch = sql[i]
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote:
            if sql.startswith("--", i):
                end = sql.find("\n", i)
                i = len(sql) if end == -1 else end
                continue
            match = DOLLAR_TAG.match(sql, i)
            if match:
                tag = match.group(0)
                buf.append(tag)
                i = match.end()
                continue
            if ch == ";":
                statement = "".join(buf).strip()
                if statement:
                    statements.append(statement)
                buf = []
                i += 1
                continue
        buf.append(ch)
        i += 1

    tail = "".join(buf).strip()
    if tail:
        statements.append(tail)
    return statements


class DDLRunner:
    """Runs SchemaChanges; every change ends either applied or printed"""

    def __init__(self, client: Client, rpc_name: str = DEFAULT_SQL_RPC, out: Optional[TextIO] = None):
        self.client = client
        self.rpc_name = rpc_name
        self._out = out
        self.rpc_available = True

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    def apply(self, change: SchemaChange) -> ChangeOutcome:
        """
        Apply a change, verify it, or print its SQL

        Args:
            change: SchemaChange to apply

        Returns:
            ChangeOutcome with status APPLIED (verified) or MANUAL (SQL printed)
        """
        if not self.rpc_available:
            return self._manual(change, f"SQL function '{self.rpc_name}' is not available")

        try:
            self.client.rpc(self.rpc_name, {"sql": change.sql}).execute()
        except Exception as e:
            kind = classify_error(e)
            if kind in (ErrorKind.MISSING_FUNCTION, ErrorKind.PERMISSION):
                # Same answer for every later change in this run
                self.rpc_available = False
            logger.info(f"RPC {self.rpc_name} failed for {change.name} ({kind.value}): {error_message(e)}")
            return self._manual(change, error_message(e))

        if self._verify(change):
            print(f"✅ {change.name}: applied", file=self.out)
            return ChangeOutcome(name=change.name, status=ChangeStatus.APPLIED, sql=change.sql)
        return self._manual(change, "the SQL ran but the change could not be verified")

    def apply_all(self, changes: List[SchemaChange]) -> List[ChangeOutcome]:
        return [self.apply(change) for change in changes]

    def run_sql_file(self, path: Union[str, Path]) -> List[ChangeOutcome]:
        """Apply every statement of a .sql file in order"""
        path = Path(path)
        sql = path.read_text(encoding="utf-8")
        statements = split_sql_statements(sql)
        print(f"Running migration: {path}", file=self.out)
        print(f"Found {len(statements)} SQL statements", file=self.out)

        outcomes = []
        for i, statement in enumerate(statements, 1):
            preview = " ".join(statement.split())[:60]
            print(f"  [{i}] {preview}...", file=self.out)
            outcomes.append(self.apply(SchemaChange(name=f"{path.name}#{i}", sql=statement)))
        return outcomes

    def _verify(self, change: SchemaChange) -> bool:
        if change.verify is None:
            return True
        try:
            return bool(change.verify(self.client))
        except Exception as e:
            logger.warning(f"Verification of {change.name} raised: {error_message(e)}")
            return False

    def _manual(self, change: SchemaChange, reason: str) -> ChangeOutcome:
        print_manual_sql(change.name, change.sql, reason, out=self.out)
        return ChangeOutcome(name=change.name, status=ChangeStatus.MANUAL, sql=change.sql, message=reason)
