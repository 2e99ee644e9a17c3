"""
CSV Export
One .csv file per table (standard comma escaping) plus a summary file
"""

import csv
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO, Union

import pandas as pd
from supabase import Client

from .errors import error_message
from .rows import fetch_all_rows

logger = logging.getLogger(__name__)

SUMMARY_FILE = "export-summary.txt"


def _cell(value: Any) -> str:
    """Render one value the way the application shows it"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def collect_columns(rows: Iterable[Dict[str, Any]]) -> List[str]:
    """Union of row keys in first-seen order"""
    columns: Dict[str, None] = {}
    for row in rows:
        for key in row:
            columns.setdefault(key, None)
    return list(columns)


def no_data_placeholder(table: str) -> str:
    return f"No data available for table: {table}\n"


def rows_to_csv(
    rows: List[Dict[str, Any]],
    columns: Optional[Sequence[str]] = None,
    table: str = ""
) -> str:
    """
    Convert rows to CSV text

    Fields containing a comma, quote or newline are quoted and inner quotes
    doubled. With no rows the result is a header line when columns are
    known, otherwise an explicit "no data" line.

    Args:
        rows: Row dicts as returned by the API
        columns: Column order (default: union of row keys)
        table: Table name used in the "no data" line
    """
    columns = list(columns) if columns is not None else collect_columns(rows)
    if not columns:
        return no_data_placeholder(table)

    frame = pd.DataFrame(
        [[_cell(row.get(col)) for col in columns] for row in rows],
        columns=columns,
        dtype=object,
    )
    return frame.to_csv(index=False, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")


def export_tables(
    client: Client,
    tables: Iterable[str],
    out_dir: Union[str, Path],
    out: Optional[TextIO] = None
) -> Dict[str, int]:
    """
    Export each readable table to <out_dir>/<table>.csv

    Returns:
        Row count per exported table
    """
    out = out or sys.stdout
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    summary = [
        "CSV Export Summary",
        "==================",
        f"Export Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Export Directory: {out_dir}/",
        "",
    ]
    counts: Dict[str, int] = {}

    for table in tables:
        print(f"\n📋 Exporting table: {table}", file=out)
        try:
            rows = fetch_all_rows(client, table)
        except Exception as e:
            print(f"   ❌ Error: {error_message(e)}", file=out)
            summary.append(f"{table}.csv: skipped ({error_message(e)})")
            continue

        csv_path = out_dir / f"{table}.csv"
        with open(csv_path, "w", encoding="utf-8", newline="") as f:
            f.write(rows_to_csv(rows, table=table))

        counts[table] = len(rows)
        summary.append(f"{table}.csv: {len(rows)} records")
        print(f"   ✅ Exported {len(rows)} records to {csv_path}", file=out)

    (out_dir / SUMMARY_FILE).write_text("\n".join(summary) + "\n", encoding="utf-8")
    logger.info(f"Exported {len(counts)} tables to {out_dir}")
    return counts
