#!/usr/bin/env python3
"""
Inspect one table: columns, sample rows, and (optionally) the columns of an
empty table discovered through a disposable insert.

Usage:
    python inspect_table.py --table work_order_tasks [--sample 3]
    python inspect_table.py --table work_order_history --insert-probe '{"work_order_id": "PROBE", "action_type": "probe"}'
"""
import argparse
import json
import sys

from dbtools.catalog import EXPECTED_COLUMNS
from dbtools.cli import add_common_args, connect
from dbtools.probe import ColumnStatus, ProbeStatus, SchemaProbe


def main():
    parser = argparse.ArgumentParser(description='Inspect the structure of a table')
    add_common_args(parser)
    parser.add_argument('--table', required=True, help='Table name')
    parser.add_argument('--sample', type=int, default=1, help='Number of sample rows to print')
    parser.add_argument('--column', action='append', default=[], help='Check a specific column (repeatable)')
    parser.add_argument('--insert-probe', help='JSON row inserted then deleted to learn the columns of an empty table')
    args = parser.parse_args()

    client, _ = connect(args)
    probe = SchemaProbe(client)

    print(f"🔍 Checking {args.table} table structure...\n")
    result = probe.probe_table(args.table)

    if result.status == ProbeStatus.ABSENT:
        print(f"❌ {args.table} table does not exist: {result.message}")
        sys.exit(1)
    if result.status == ProbeStatus.UNKNOWN:
        print(f"❌ Could not read {args.table}: {result.message}")
        sys.exit(1)

    if result.status == ProbeStatus.EXISTS:
        print(f"📊 Columns: {result.columns}")
        rows = client.table(args.table).select('*').limit(args.sample).execute().data or []
        for i, row in enumerate(rows, 1):
            print(f"\n🔹 Sample {i}:")
            print(json.dumps(row, indent=2, ensure_ascii=False, default=str))
    else:
        print(f"⚠️  {args.table} exists but is empty - column structure unknown")
        if args.insert_probe:
            try:
                row = json.loads(args.insert_probe)
            except json.JSONDecodeError as e:
                print(f"❌ --insert-probe is not valid JSON: {e}")
                sys.exit(1)
            print("🧪 Inserting a disposable row to discover columns...")
            discovered = probe.discover_columns_by_insert(args.table, row)
            if discovered.columns:
                print(f"📊 Columns: {discovered.columns}")
            if discovered.message:
                print(f"⚠️  {discovered.message}")

    columns = args.column or EXPECTED_COLUMNS.get(args.table, [])
    if columns:
        print("\n📋 Column checks:")
        for column in columns:
            check = probe.probe_column(args.table, column)
            icon = '✅' if check.status == ColumnStatus.PRESENT else '❌'
            print(f"  {icon} {column}: {check.status.value}")


if __name__ == '__main__':
    main()
