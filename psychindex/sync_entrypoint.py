"""Sync entrypoint - Standalone CLI mirroring the JSON content tree into the database.

Usage:
    python -m psychindex.sync_entrypoint                      # Sync everything
    python -m psychindex.sync_entrypoint --dry-run            # Normalize and count only
    python -m psychindex.sync_entrypoint --type=treatments    # Single content type
    python -m psychindex.sync_entrypoint -v                   # Per-batch progress and error details
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from psychindex.core.config import settings
from psychindex.core.db import SessionLocal
from psychindex.core.logging import get_logger
from psychindex.services.entity_store import SqlEntityStore
from psychindex.services.sync_service import CONTENT_TYPES, ContentSyncService, SyncOptions, SyncReport

logger = get_logger("sync_entrypoint")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync JSON content files into the entities table")
    parser.add_argument("--dry-run", action="store_true", help="Normalize and count without writing")
    parser.add_argument("--type", dest="type_filter", default=None, help=f"One of: {', '.join(CONTENT_TYPES)}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show per-batch progress and error details")
    return parser.parse_args(argv)


def format_summary(report: SyncReport, verbose: bool = False) -> str:
    lines = ["=" * 50, "SYNC SUMMARY", "=" * 50, ""]
    for name, stat in report.stats.items():
        lines.append(f"{name.upper()}:")
        lines.append(f"   Total files:  {stat.total}")
        lines.append(f"   Synced:       {stat.synced}")
        lines.append(f"   Skipped:      {stat.skipped}")
        lines.append(f"   Errors:       {stat.errors}")
        if verbose and stat.error_details:
            lines.append("   Error details:")
            lines.extend(f"      - {d['file']}: {d['error']}" for d in stat.error_details)
        lines.append("")
    lines.append(f"Total time: {report.elapsed_seconds:.2f}s")
    lines.append(f"Successfully synced: {report.total_synced}")
    lines.append(f"Errors: {report.total_errors}")
    if report.total_errors:
        lines.append("Some files failed to sync. Run with --verbose for details.")
    return "\n".join(lines)


def build_service(dry_run: bool) -> ContentSyncService:
    store = None
    if not dry_run:
        store = SqlEntityStore(SessionLocal)
    return ContentSyncService(
        store=store,
        data_dir=Path(settings.DATA_DIR),
        batch_size=settings.SYNC_BATCH_SIZE,
        concurrency=settings.SYNC_CONCURRENCY,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for content sync. Returns the process exit code."""
    args = parse_args(argv)

    if args.type_filter and args.type_filter not in CONTENT_TYPES:
        logger.error(f"Unknown type: {args.type_filter}. Valid types: {', '.join(CONTENT_TYPES)}")
        return 1

    if args.dry_run:
        logger.info("DRY RUN MODE - no changes will be made")
    logger.info(f"Data directory: {settings.DATA_DIR}")

    service = build_service(args.dry_run)
    try:
        report = asyncio.run(service.sync(SyncOptions(dry_run=args.dry_run, type_filter=args.type_filter, verbose=args.verbose)))
    except Exception as exc:
        logger.exception(f"Sync failed: {exc}")
        return 1

    print(format_summary(report, verbose=args.verbose))
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
