#!/usr/bin/env python3
"""
Maintenance script to delete orphan blobs.

An orphan is a blob that no catalog entry references, left behind when a
background deletion failed or the process stopped before draining its
cleanup queue. Only blobs older than --min-age-minutes are considered, so
uploads still in flight are never touched.

Usage:
    python scripts/sweep_orphans.py [--min-age-minutes N] [--dry-run] [-y]

Options:
    --min-age-minutes N   Minimum blob age (default: cleanup.orphan_min_age_minutes)
    --dry-run             List orphans without deleting them
    -y, --yes             Skip confirmation prompt
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from datetime import timedelta

from envelope_images.commons.settings import get_settings
from envelope_images.commons.telemetry import configure_logging
from envelope_images.infrastructure.factory import InfrastructureFactory


@dataclass
class SweepArgs:
    """Parsed command line arguments."""

    min_age_minutes: int | None
    dry_run: bool
    skip_confirm: bool


def parse_args() -> SweepArgs:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Delete blobs that no envelope image references",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--min-age-minutes",
        type=int,
        default=None,
        help="Only consider blobs older than this many minutes",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without actually deleting",
    )
    parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip confirmation prompt"
    )

    args = parser.parse_args()
    if args.min_age_minutes is not None and args.min_age_minutes < 1:
        parser.error("--min-age-minutes must be at least 1")

    return SweepArgs(
        min_age_minutes=args.min_age_minutes,
        dry_run=args.dry_run,
        skip_confirm=args.yes,
    )


async def sweep(min_age: timedelta, dry_run: bool) -> list[str]:
    """Run one orphan sweep against the configured backends."""
    factory = InfrastructureFactory(get_settings())
    try:
        store = factory.get_envelope_image_store()
        return await store.sweep_orphans(min_age=min_age, dry_run=dry_run)
    finally:
        await factory.close_all()


def main() -> None:
    """Main entry point."""
    args = parse_args()
    settings = get_settings()
    configure_logging(
        level=settings.telemetry.log_level,
        format_type="text",
        logger_name="envelope_images",
    )

    minutes = args.min_age_minutes or settings.cleanup.orphan_min_age_minutes
    min_age = timedelta(minutes=minutes)

    print("=" * 50)
    print("  ORPHAN BLOB SWEEP")
    print("=" * 50)
    print(f"\nBlob provider: {settings.blob_storage.provider}")
    print(f"Minimum age: {minutes} minutes")
    print(f"Mode: {'DRY-RUN' if args.dry_run else 'DESTRUCTIVE'}")

    if not args.skip_confirm and not args.dry_run:
        response = input("\nAre you sure you want to continue? [y/N]: ")
        if response.lower() not in ("y", "yes"):
            print("Aborted.")
            sys.exit(0)

    try:
        orphans = asyncio.run(sweep(min_age, args.dry_run))
    except Exception as e:
        print(f"\nSweep failed: {e}")
        sys.exit(1)

    print("\n" + "=" * 50)
    if args.dry_run:
        print(f"[DRY-RUN] {len(orphans)} orphan blob(s) would be deleted:")
    else:
        print(f"Deleted {len(orphans)} orphan blob(s):")
    for handle in orphans:
        print(f"  - {handle}")
    print("=" * 50)


if __name__ == "__main__":
    main()
