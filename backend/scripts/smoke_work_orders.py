#!/usr/bin/env python3
"""
Smoke test the PM / work order flow against the live database.

Creates a test work order from the first PM template, adds tasks, completes a
task and the work order, records history and a comment, verifies each change,
and deletes everything it created.

Usage:
    python smoke_work_orders.py --confirm
"""
import argparse
import sys

from dbtools.cli import add_common_args, connect
from dbtools.smoke import WorkOrderSmokeTest


def main():
    parser = argparse.ArgumentParser(description='Work order smoke test (writes test rows, then removes them)')
    add_common_args(parser)
    parser.add_argument('--user-name', default='Smoke Test', help='Name recorded on history/comment rows')
    parser.add_argument('--confirm', action='store_true', help='Required: the test writes to the live database')
    args = parser.parse_args()

    if not args.confirm:
        print("⚠️  WARNING: This inserts test rows into the live database (they are removed afterwards).")
        print("Run with --confirm flag to proceed.")
        sys.exit(1)

    client, _ = connect(args)

    print("🧪 Testing PM and Work Order functionality...")
    report = WorkOrderSmokeTest(client, user_name=args.user_name).run()

    print("\n🎉 Smoke Test Summary:")
    for step in report.steps:
        print(f"{'✅' if step.ok else '❌'} {step.name}")
    leftovers = [s for s in report.cleanup if not s.ok]
    if leftovers:
        print("\n⚠️  Some test rows could not be removed:")
        for step in leftovers:
            print(f"   {step.name}: {step.detail}")

    if not report.ok:
        sys.exit(1)


if __name__ == '__main__':
    main()
