"""Argument and connection helpers shared by the scripts in backend/scripts."""

import argparse
import logging
import sys
from typing import Tuple

from supabase import Client

from .config import SupabaseSettings, init_supabase, load_settings
from .errors import ConfigError


def add_common_args(parser: argparse.ArgumentParser, service_role: bool = True):
    parser.add_argument('--env-file', help='Path to a .env file (default: ./.env)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug logging')
    if service_role:
        parser.add_argument(
            '--service-role',
            action='store_true',
            help='Use SUPABASE_SERVICE_ROLE_KEY instead of the anon key (bypasses RLS)',
        )


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def connect(args: argparse.Namespace) -> Tuple[Client, SupabaseSettings]:
    """Load settings and build a client from parsed args, exiting 1 on bad config"""
    setup_logging(getattr(args, 'verbose', False))
    try:
        settings = load_settings(getattr(args, 'env_file', None))
        client = init_supabase(settings, service_role=getattr(args, 'service_role', False))
    except ConfigError as e:
        print(f"❌ {e}")
        print("Set SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) in your .env file.")
        sys.exit(1)
    return client, settings
