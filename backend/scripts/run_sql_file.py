#!/usr/bin/env python3
"""
Run a SQL file on Supabase through the exec_sql RPC.

Statements that cannot be executed are printed for the SQL Editor.

Usage:
    python run_sql_file.py <migration.sql> --confirm
"""
import argparse
import sys
from pathlib import Path

from dbtools.cli import add_common_args, connect
from dbtools.ddl import ChangeStatus, DDLRunner


def main():
    parser = argparse.ArgumentParser(description='Run a SQL migration file')
    add_common_args(parser)
    parser.add_argument('sql_file', help='Path to the .sql file')
    parser.add_argument('--confirm', action='store_true', help='Required to run the SQL')
    args = parser.parse_args()

    path = Path(args.sql_file)
    if not path.exists():
        print(f"❌ File not found: {path}")
        sys.exit(1)
    if not args.confirm:
        print("⚠️  WARNING: This will execute SQL against the database!")
        print("Run with --confirm to proceed.")
        sys.exit(1)

    client, settings = connect(args)
    runner = DDLRunner(client, rpc_name=settings.sql_rpc)
    outcomes = runner.run_sql_file(path)

    manual = [o for o in outcomes if o.status == ChangeStatus.MANUAL]
    print(f"\n✅ {len(outcomes) - len(manual)}/{len(outcomes)} statements applied")
    if manual:
        print(f"⚠️  {len(manual)} statement(s) must be run manually (SQL printed above)")


if __name__ == '__main__':
    main()
