#!/usr/bin/env python3
"""
Backup all CMMS tables to a timestamped JSON file plus a .txt summary.
Optionally exports the same tables to CSV.

Usage:
    python backup_database.py [--out-dir backups] [--tables assets work_orders] [--csv]
    python backup_database.py --verify backups/database-backup-<ts>.json
"""
import argparse
import sys
from pathlib import Path

from dbtools.backup import backup_tables, load_backup, write_backup
from dbtools.catalog import KNOWN_TABLES
from dbtools.cli import add_common_args, connect, setup_logging
from dbtools.csv_export import export_tables
from dbtools.errors import BackupError


def verify(path: str):
    try:
        doc = load_backup(path)
    except BackupError as e:
        print(f"❌ {e}")
        sys.exit(1)
    info = doc.backup_info
    print(f"✅ Backup is valid: {info.table_count} tables, {info.record_count} records ({info.timestamp})")
    for name, table in doc.tables.items():
        print(f"   {name}: {table.table_info.record_count} records")


def main():
    parser = argparse.ArgumentParser(description='Backup the database to JSON (and CSV)')
    add_common_args(parser)
    parser.add_argument('--out-dir', default='database-backup', help='Output directory')
    parser.add_argument('--tables', nargs='+', help='Tables to back up (default: every known table)')
    parser.add_argument('--csv', action='store_true', help='Also export each table to CSV')
    parser.add_argument('--verify', metavar='BACKUP_JSON', help='Validate an existing backup file and exit')
    args = parser.parse_args()

    if args.verify:
        setup_logging(args.verbose)
        verify(args.verify)
        return

    client, settings = connect(args)
    tables = args.tables or KNOWN_TABLES

    print("💾 Starting database backup...")
    print("==============================")
    try:
        doc = backup_tables(client, tables, source=settings.url)
        json_path, summary_path = write_backup(doc, args.out_dir)
    except Exception as e:
        print(f"❌ Backup failed: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    print("💾 Database backup completed!")
    print(f"📁 Backup saved to: {json_path}")
    print(f"📋 Summary saved to: {summary_path}")
    print(f"📊 Total tables backed up: {doc.backup_info.table_count}")
    print(f"📈 Total records backed up: {doc.backup_info.record_count}")

    if args.csv:
        csv_dir = Path(args.out_dir) / 'csv'
        print(f"\n📊 Exporting CSV files to {csv_dir}/ ...")
        try:
            export_tables(client, list(doc.tables), csv_dir)
        except Exception as e:
            print(f"❌ CSV export failed: {e}")
            sys.exit(1)


if __name__ == '__main__':
    main()
