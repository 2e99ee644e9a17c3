#!/usr/bin/env python3
"""
Bring the CMMS schema up to date.

Each migration is checked first and skipped when already in place. Pending
migrations are sent to the SQL RPC (exec_sql); when that is not possible the
exact SQL is printed for the Supabase SQL Editor.

Usage:
    python run_migrations.py --status
    python run_migrations.py --dry-run
    python run_migrations.py --confirm [--only work_orders_updated_at]
"""
import argparse
import sys

from dbtools.cli import add_common_args, connect
from dbtools.ddl import DDLRunner
from dbtools.migrations import MigrationLedger, MigrationStatus, default_ledger


def main():
    parser = argparse.ArgumentParser(description='Run the CMMS migration ledger')
    add_common_args(parser)
    parser.add_argument('--status', action='store_true', help='Only show which migrations are satisfied')
    parser.add_argument('--dry-run', action='store_true', help='Print the SQL of pending migrations')
    parser.add_argument('--only', nargs='+', help='Run only these migration ids')
    parser.add_argument('--confirm', action='store_true', help='Required to change the schema')
    args = parser.parse_args()

    ledger = default_ledger()
    if args.only:
        unknown = set(args.only) - {m.id for m in ledger.migrations}
        if unknown:
            print(f"❌ Unknown migration id(s): {', '.join(sorted(unknown))}")
            sys.exit(1)
        ledger = MigrationLedger([m for m in ledger.migrations if m.id in args.only])

    if not (args.status or args.dry_run or args.confirm):
        print("⚠️  WARNING: This will change the database schema!")
        print("Run with --confirm to proceed, or --dry-run / --status to look first.")
        sys.exit(1)

    client, settings = connect(args)

    if args.status:
        print("🔍 Checking migrations...\n")
        for migration, satisfied in ledger.status(client):
            icon = '✅' if satisfied else '⏳'
            print(f"  {icon} {migration.id} - {migration.description}")
        return

    results = ledger.run(client, dry_run=args.dry_run, runner=DDLRunner(client, rpc_name=settings.sql_rpc))

    counts = {status: 0 for status in MigrationStatus}
    for result in results:
        counts[result.status] += 1
    print("\n" + "=" * 60)
    print(
        f"📊 {counts[MigrationStatus.APPLIED]} applied, {counts[MigrationStatus.SKIPPED]} already applied, "
        f"{counts[MigrationStatus.MANUAL]} need manual SQL, {counts[MigrationStatus.PENDING]} pending"
    )
    if counts[MigrationStatus.MANUAL]:
        print("   → Run the SQL printed above in the Supabase SQL Editor, then run --status again")
    print("=" * 60)


if __name__ == '__main__':
    main()
