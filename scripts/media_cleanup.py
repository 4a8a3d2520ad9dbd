"""
Report, and with --apply delete, media files no content has used.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pulpit.config import get_settings
from pulpit.dependencies import get_db, get_storage_client
from pulpit.services.audit import AuditService
from pulpit.services.media import MediaService

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Unused media cleanup")
    parser.add_argument(
        "--older-than-days",
        type=int,
        default=30,
        help="Only consider files uploaded more than this many days ago",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Delete the files instead of only listing them",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    db = get_db()
    media = MediaService(db, get_storage_client(), AuditService(db))
    result = media.cleanup(args.older_than_days, dry_run=not args.apply)

    for row in result["files"]:
        logger.info("%s %s (%d bytes)", "Deleted" if args.apply else "Unused", row.storage_path, row.size)
    logger.info(
        "%d unused files, %d bytes%s",
        len(result["files"]),
        result["total_size"],
        "" if args.apply else " (dry run, pass --apply to delete)",
    )
    for path in result["storage_errors"]:
        logger.warning("Row removed but stored object remains: %s", path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
