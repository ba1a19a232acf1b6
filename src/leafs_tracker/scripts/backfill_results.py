#!/usr/bin/env python3
"""
Backfill script: generate and store recaps for past games of the season.
"""

import sys
import argparse
import logging

from ..config import settings
from ..database import create_tables
from ..services import BackfillService, RebuildNotifier

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main function for the backfill script."""
    parser = argparse.ArgumentParser(description='Backfill recaps for completed games without a stored result')
    parser.add_argument('--limit', type=int, help='Maximum number of recaps to generate')
    parser.add_argument('--dry-run', action='store_true', help='Only list games that are missing a result')
    parser.add_argument('--no-rebuild', action='store_true', help='Do not trigger a site rebuild afterwards')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        create_tables()
        report = BackfillService().run(limit=args.limit, dry_run=args.dry_run)

        print("\n🗂️  Backfill Results")
        print("=" * 30)
        if report.error:
            print(f"Aborted: {report.error}")
            return 1
        print(f"Stored: {len(report.stored)}")
        print(f"Already stored: {len(report.skipped_existing)}")
        print(f"Failed: {len(report.failed)}")
        if report.pending:
            label = "Missing" if args.dry_run else "Pending (limit reached)"
            print(f"{label}: {', '.join(report.pending)}")

        if report.stored and not args.no_rebuild:
            RebuildNotifier().notify(f"backfilled {len(report.stored)} games")

        return 0 if report.ok else 1

    except Exception as e:
        logger.error(f"Error during backfill: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
