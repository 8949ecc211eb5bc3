"""Anonymize entrypoint - strips personal author details from legacy articles in place.

Every article gets the author "Anonymous", loses ``author_bio`` and
``image_url``, and has markdown ``**`` removed from all of its text.

Usage:
    python -m psychindex.anonymize_entrypoint               # settings.LEGACY_ARTICLES_DIR
    python -m psychindex.anonymize_entrypoint --dry-run     # Report without writing
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from psychindex.content.articles import anonymize_file, find_article_files
from psychindex.core.config import settings
from psychindex.core.logging import get_logger

logger = get_logger("anonymize_entrypoint")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Anonymize legacy article JSON files")
    parser.add_argument("--dir", dest="directory", default=settings.LEGACY_ARTICLES_DIR, help="Article tree to rewrite")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    root = Path(args.directory)
    if not root.is_dir():
        logger.error(f"Directory not found: {root}")
        return 1

    if args.dry_run:
        logger.info("DRY RUN MODE - no changes will be made")

    files = find_article_files(root)
    failed = 0
    for path in files:
        result = anonymize_file(path, dry_run=args.dry_run)
        if result.error:
            failed += 1
            print(f"ERROR    {path}: {result.error}")
        elif result.changes:
            print(f"UPDATED  {path}")
            print("\n".join(f"   - {change}" for change in result.changes))

    print(f"\nProcessed {len(files)} files, {failed} failed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
