"""Validate entrypoint - checks every knowledge-hub article file against the article contract.

Usage:
    python -m psychindex.validate_entrypoint                  # settings.KNOWLEDGE_HUB_DIR
    python -m psychindex.validate_entrypoint --dir=path/to/hub
"""

import argparse
import sys
from typing import List, Optional

from psychindex.content.articles import ValidationSummary, validate_article_tree
from psychindex.core.config import settings
from psychindex.core.logging import get_logger

logger = get_logger("validate_entrypoint")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate knowledge-hub article JSON files")
    parser.add_argument("--dir", dest="directory", default=settings.KNOWLEDGE_HUB_DIR, help="Article tree to check")
    return parser.parse_args(argv)


def format_summary(summary: ValidationSummary) -> str:
    lines = []
    for check in summary.checks:
        if check.valid:
            lines.append(f"OK       {check.path}")
            continue
        lines.append(f"INVALID  {check.path}")
        lines.extend(f"   - {err}" for err in check.errors)
    lines += ["", "=" * 50, "VALIDATION SUMMARY", "=" * 50]
    lines.append(f"Total files: {summary.total}")
    lines.append(f"Valid:       {summary.valid}")
    lines.append(f"Invalid:     {summary.invalid}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger.info(f"Validating articles in {args.directory}")

    summary = validate_article_tree(args.directory)
    if not summary.total:
        print(f"No JSON files found in {args.directory}")
        return 0

    print(format_summary(summary))
    return 1 if summary.invalid else 0


if __name__ == "__main__":
    sys.exit(main())
