#!/usr/bin/env python3
"""
Store Location Collector CLI

Usage:
    python run.py --all                       # Collect every enabled brand
    python run.py --brand cann                # Single brand
    python run.py --all --dry-run             # Show brands and locator URLs only
    python run.py --all --max-concurrent 8    # Wider brand worker pool
    python run.py --new-since 7               # Locations first seen in the last week
"""

import argparse
import logging
import sys
from dataclasses import replace
from datetime import timedelta
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from src.shared.logging_config import setup_logging
from src.shared import sentry_integration
from src.shared.constants import WORKERS
from src.pipeline.brands import (
    DEFAULT_CONFIG_PATH,
    Brand,
    ConfigError,
    load_config,
    load_config_file,
    select_brands,
    validate_config,
)
from src.persistence import AuditStore, Database, LocationStore, PersistenceError
from src.persistence.database import utc_now
from src.pipeline.runner import run_collect_locations


def validate_config_on_startup(config_path: str = DEFAULT_CONFIG_PATH) -> List[str]:
    """Validate configuration file on startup.

    Returns:
        List of validation errors (empty if config is valid)
    """
    try:
        config = load_config_file(config_path)
    except ConfigError as e:
        return e.errors
    return validate_config(config)


def validate_cli_options(args) -> List[str]:
    """Validate CLI options for conflicts.

    Returns:
        List of validation errors (empty if options are valid)
    """
    errors = []
    if args.max_concurrent is not None and not 1 <= args.max_concurrent <= WORKERS.MAX_CONCURRENT_LIMIT:
        errors.append(f"--max-concurrent must be between 1 and {WORKERS.MAX_CONCURRENT_LIMIT}")
    if args.timeout is not None and args.timeout <= 0:
        errors.append("--timeout must be a positive number")
    if args.new_since is not None and args.new_since < 1:
        errors.append("--new-since must be a positive number of days")
    if args.new_since is None and not args.brand and not args.all:
        errors.append("No brands specified. Use --brand <slug> or --all")
    return errors


def setup_parser() -> argparse.ArgumentParser:
    """Setup command line argument parser"""
    parser = argparse.ArgumentParser(
        description="Store Location Collector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    brand_group = parser.add_mutually_exclusive_group()
    brand_group.add_argument(
        '--brand', '-b',
        type=str,
        help='Collect a single brand by slug'
    )
    brand_group.add_argument(
        '--all', '-a',
        action='store_true',
        help='Collect every enabled brand'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='List the selected brands and their locator URLs without fetching'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Brand configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--db',
        type=str,
        default=None,
        help='SQLite database path (overrides settings and LOCATIONS_DB_PATH)'
    )
    parser.add_argument(
        '--max-concurrent',
        type=int,
        default=None,
        help='Number of brands collected in parallel'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='HTTP request timeout in seconds'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Log file path (default: from settings)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--new-since',
        type=int,
        default=None,
        metavar='DAYS',
        help='List active locations first seen in the last DAYS days and exit'
    )

    return parser


def show_dry_run(brands: List[Brand]) -> None:
    """Print the brands a run would process, without network or DB access"""
    print(f"Dry run: {len(brands)} brand(s)")
    for brand in brands:
        if brand.store_locator_url:
            print(f"  {brand.slug:<24} {brand.store_locator_url}  [configured]")
        elif brand.domain:
            print(f"  {brand.slug:<24} https://{brand.domain}/...  [auto-discover]")
        else:
            print(f"  {brand.slug:<24} (no locator URL or domain)")


def show_new_locations(location_store: LocationStore, days: int, brands: List[Brand]) -> None:
    since = utc_now() - timedelta(days=days)
    slugs = {brand.id: brand.slug for brand in brands}
    rows = location_store.list_new_locations_since(since)
    print(f"{len(rows)} location(s) first seen in the last {days} day(s)")
    for row in rows:
        place = ", ".join(part for part in (row['city'], row['state']) if part)
        slug = slugs.get(row['brand_id'], row['brand_id'])
        print(f"  {row['first_seen_at'][:10]}  {slug:<20} {row['name']}  {place}")


def main() -> int:
    """Main entry point"""
    parser = setup_parser()
    args = parser.parse_args()

    # Validate configuration on startup
    config_errors = validate_config_on_startup(args.config)
    if config_errors:
        print("Configuration errors found:")
        for error in config_errors:
            print(f"  - {error}")
        return 1

    cli_errors = validate_cli_options(args)
    if cli_errors:
        print("Invalid command line options:")
        for error in cli_errors:
            print(f"  - {error}")
        return 1

    settings, all_brands = load_config(args.config)
    overrides = {}
    if args.db:
        overrides['database_path'] = args.db
    if args.max_concurrent is not None:
        overrides['max_concurrent_brands'] = args.max_concurrent
    if args.timeout is not None:
        overrides['request_timeout_secs'] = args.timeout
    if args.log_file:
        overrides['log_file'] = args.log_file
    if overrides:
        settings = replace(settings, **overrides)

    setup_logging(settings.log_file, level=logging.DEBUG if args.verbose else logging.INFO)
    sentry_integration.init_sentry()

    try:
        brands = select_brands(all_brands, args.brand)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.dry_run:
        show_dry_run(brands)
        return 0

    try:
        database = Database(settings.database_path)
    except PersistenceError as e:
        logging.error(f"Cannot open database: {e}")
        return 1

    with database:
        location_store = LocationStore(database)
        if args.new_since is not None:
            show_new_locations(location_store, args.new_since, all_brands)
            return 0

        if not brands:
            print("No enabled brands to collect")
            return 0

        audit_store = AuditStore(database)
        try:
            summary = run_collect_locations(brands, settings, location_store, audit_store)
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 130
        except PersistenceError as e:
            logging.error(f"Run aborted: {e}")
            return 1
        finally:
            sentry_integration.flush()

    return 1 if summary.failed else 0


if __name__ == '__main__':
    sys.exit(main())
