"""Migrate entrypoint - moves legacy articles into the curated knowledge-hub tree.

Usage:
    python -m psychindex.migrate_entrypoint                   # Migrate, write redirects and report
    python -m psychindex.migrate_entrypoint --dry             # Show the mapping only
    python -m psychindex.migrate_entrypoint --source=old --target=new
"""

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from psychindex.content.articles import write_json
from psychindex.content.migration import ArticleMigrator, MigrationStats, build_report
from psychindex.core.config import settings
from psychindex.core.logging import get_logger

logger = get_logger("migrate_entrypoint")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate legacy articles into the knowledge hub")
    parser.add_argument("--dry", action="store_true", help="Show what would happen without writing")
    parser.add_argument("--source", default=settings.LEGACY_ARTICLES_DIR, help="Legacy article tree")
    parser.add_argument("--target", default=settings.KNOWLEDGE_HUB_DIR, help="Curated knowledge-hub tree")
    parser.add_argument("--redirects", default=settings.REDIRECTS_PATH, help="Where to write the redirect map")
    parser.add_argument("--report", default=settings.MIGRATION_REPORT_PATH, help="Where to write the Markdown report")
    return parser.parse_args(argv)


def format_summary(stats: MigrationStats) -> str:
    lines = ["=" * 50, "MIGRATION SUMMARY", "=" * 50]
    lines.append(f"Total:     {stats.total}")
    lines.append(f"Migrated:  {stats.migrated}")
    lines.append(f"Unsorted:  {stats.unsorted}")
    lines.append(f"Errors:    {len(stats.errors)}")
    lines.append(f"Warnings:  {len(stats.warnings)}")
    lines.extend(f"   - {err}" for err in stats.errors)
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.dry:
        logger.info("DRY RUN MODE - no changes will be made")
    logger.info(f"Migrating {args.source} -> {args.target}")

    migrator = ArticleMigrator(Path(args.source), Path(args.target), dry_run=args.dry)
    stats = migrator.run()

    if not args.dry:
        write_json(Path(args.redirects), stats.redirects)
        logger.info(f"Saved {len(stats.redirects)} redirects to {args.redirects}")
        report = Path(args.report)
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(build_report(stats, datetime.now(timezone.utc)), encoding="utf-8")
        logger.info(f"Migration report written to {report}")

    print(format_summary(stats))
    return stats.exit_code


if __name__ == "__main__":
    sys.exit(main())
