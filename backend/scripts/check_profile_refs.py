#!/usr/bin/env python3
"""
Check that work_orders.requested_by_user_id / assigned_to_user_id hold
user_profiles.id values (not the auth user_id).

Usage:
    python check_profile_refs.py [--limit 1000]
    python check_profile_refs.py --resolve <auth-user-id>
"""
import argparse
import sys

from dbtools.cli import add_common_args, connect
from dbtools.integrity import check_profile_references, resolve_profile_id


def main():
    parser = argparse.ArgumentParser(description='Check work order user references')
    add_common_args(parser)
    parser.add_argument('--limit', type=int, default=1000, help='Maximum work orders to inspect')
    parser.add_argument('--resolve', metavar='USER_ID', help='Print the profile id for an auth user id and exit')
    args = parser.parse_args()

    client, _ = connect(args)

    if args.resolve:
        profile_id = resolve_profile_id(client, args.resolve)
        if profile_id is None:
            print(f"❌ No user profile for {args.resolve}")
            sys.exit(1)
        print(f"✅ Profile ID: {profile_id}")
        return

    print("🔍 Checking work_orders user references...\n")
    report = check_profile_references(client, limit=args.limit)

    if report.error:
        print(f"❌ Error: {report.error}")
        sys.exit(1)
    if report.missing_columns:
        print(f"❌ work_orders is missing: {', '.join(report.missing_columns)}")
        sys.exit(1)

    print(f"📊 Checked {report.checked} work orders")
    if report.ok:
        print("✅ Every reference points at user_profiles.id")
        return

    for v in report.violations:
        if v.kind == 'auth_user_id':
            print(f"  ⚠️  {v.work_order_id}.{v.column} = {v.value} is an auth user_id (profile id: {v.profile_id})")
        else:
            print(f"  ❌ {v.work_order_id}.{v.column} = {v.value} matches no user profile")
    print("\n💡 Run run_migrations.py --only work_orders_profile_fks to remap ids and add the foreign keys")
    sys.exit(1)


if __name__ == '__main__':
    main()
