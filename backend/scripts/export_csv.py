#!/usr/bin/env python3
"""
Export tables to CSV files (one file per table) plus export-summary.txt.

Usage:
    python export_csv.py [--out-dir database-backup-csv] [--tables assets work_orders]
"""
import argparse
import sys

from dbtools.catalog import KNOWN_TABLES
from dbtools.cli import add_common_args, connect
from dbtools.csv_export import SUMMARY_FILE, export_tables


def main():
    parser = argparse.ArgumentParser(description='Export tables to CSV')
    add_common_args(parser)
    parser.add_argument('--out-dir', default='database-backup-csv', help='Output directory')
    parser.add_argument('--tables', nargs='+', help='Tables to export (default: every known table)')
    args = parser.parse_args()

    client, _ = connect(args)

    print("📊 Exporting database to CSV files...")
    print("====================================")
    try:
        counts = export_tables(client, args.tables or KNOWN_TABLES, args.out_dir)
    except Exception as e:
        print(f"❌ CSV export failed: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    print(f"📊 CSV export completed! {len(counts)} tables, {sum(counts.values())} records")
    print(f"📁 Files saved in: {args.out_dir}/")
    print(f"📋 Summary saved in: {SUMMARY_FILE}")


if __name__ == '__main__':
    main()
