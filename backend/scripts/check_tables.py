#!/usr/bin/env python3
"""
Check which CMMS tables exist, which are empty, and which expected columns are missing.

Usage:
    python check_tables.py [--tables work_orders work_order_tasks] [--columns] [--json]
"""
import argparse
import json

from dbtools.catalog import EXPECTED_COLUMNS, KNOWN_TABLES
from dbtools.cli import add_common_args, connect
from dbtools.probe import ProbeStatus, SchemaProbe

ICONS = {
    ProbeStatus.EXISTS: '✅',
    ProbeStatus.EMPTY: '⚠️ ',
    ProbeStatus.ABSENT: '❌',
    ProbeStatus.UNKNOWN: '❓',
}


def main():
    parser = argparse.ArgumentParser(description='Probe CMMS tables for presence and shape')
    add_common_args(parser)
    parser.add_argument('--tables', nargs='+', help='Tables to probe (default: every known table)')
    parser.add_argument('--columns', action='store_true', help='Also check the columns the app expects')
    parser.add_argument('--json', action='store_true', help='Print results as JSON')
    args = parser.parse_args()

    client, _ = connect(args)
    probe = SchemaProbe(client)
    tables = args.tables or KNOWN_TABLES

    if not args.json:
        print(f"🔍 Probing {len(tables)} tables...\n")

    results = probe.probe_tables(tables)
    missing_by_table = {}
    if args.columns:
        for table, result in results.items():
            if result.exists and table in EXPECTED_COLUMNS:
                missing_by_table[table] = probe.missing_columns(table, EXPECTED_COLUMNS[table])

    if args.json:
        payload = {
            table: {**result.model_dump(mode='json'), 'missing_columns': missing_by_table.get(table, [])}
            for table, result in results.items()
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    for table, result in results.items():
        icon = ICONS[result.status]
        if result.status == ProbeStatus.EXISTS:
            print(f"{icon} {table}: {len(result.columns)} column(s)")
            print(f"   📊 Columns: {', '.join(result.columns)}")
        elif result.status == ProbeStatus.EMPTY:
            print(f"{icon} {table}: EMPTY (columns unknown)")
        elif result.status == ProbeStatus.ABSENT:
            print(f"{icon} {table}: MISSING")
        else:
            print(f"{icon} {table}: ERROR - {result.message}")

        missing = missing_by_table.get(table)
        if missing:
            print(f"   ⚠️  Missing columns: {', '.join(missing)}")

    absent = [t for t, r in results.items() if r.status == ProbeStatus.ABSENT]
    print("\n" + "=" * 60)
    print(f"📊 {len(results) - len(absent)}/{len(results)} tables found")
    if absent or any(missing_by_table.values()):
        print("   → Run run_migrations.py --dry-run to see the SQL that fixes this")
    print("=" * 60)


if __name__ == '__main__':
    main()
