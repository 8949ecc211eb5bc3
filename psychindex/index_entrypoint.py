"""Resource index entrypoint - prebuilds the resource index served by /api/resources.

Usage:
    python -m psychindex.index_entrypoint
"""

import sys
from pathlib import Path

from psychindex.core.config import settings
from psychindex.core.logging import get_logger
from psychindex.services.resource_index import build_resource_index, write_resource_index

logger = get_logger("index_entrypoint")


def main() -> int:
    resources_dir = settings.data_path("resources")
    try:
        index = build_resource_index(resources_dir)
    except FileNotFoundError as exc:
        logger.error(str(exc))
        return 1

    output = write_resource_index(index, Path(settings.RESOURCE_INDEX_PATH))
    logger.info(f"Wrote {len(index['resources'])} resources to {output} ({output.stat().st_size / 1024:.1f} KB)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
