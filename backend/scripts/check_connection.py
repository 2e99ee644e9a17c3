#!/usr/bin/env python3
"""
Quick test to verify the Supabase connection before running any other tool.

Usage:
    python check_connection.py [--env-file .env] [--service-role]
"""
import argparse
import sys

from dbtools.catalog import KNOWN_TABLES
from dbtools.cli import add_common_args, connect
from dbtools.probe import ProbeStatus, SchemaProbe


def main():
    parser = argparse.ArgumentParser(description='Test the Supabase connection')
    add_common_args(parser)
    parser.add_argument('--table', default='assets', help='Table used for the read test (default: assets)')
    args = parser.parse_args()

    client, settings = connect(args)
    print("🔌 Testing Supabase connection...")
    print(f"URL: {settings.url}")

    probe = SchemaProbe(client)
    result = probe.probe_table(args.table)
    if result.status == ProbeStatus.UNKNOWN:
        print(f"❌ Connection failed: {result.message}")
        sys.exit(1)

    print("✅ Connection successful!")
    if result.exists:
        print(f"✅ Can read from '{args.table}' table")
    else:
        print(f"⚠️  '{args.table}' table not found, but the API answered")

    print("\n📋 Checking existing tables...")
    for table in KNOWN_TABLES[:6]:
        status = probe.probe_table(table)
        if status.exists:
            print(f"  ✅ {table} exists")
        else:
            print(f"  ⚠️  {table} not found or error: {status.message}")

    print("\n✅ Connection check complete.")


if __name__ == '__main__':
    main()
