"""
Daemon that periodically sends due content reminders and prunes old ones.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pulpit.config import get_settings
from pulpit.dependencies import get_db, get_links, get_queue_client
from pulpit.services.notifications import NotificationService
from pulpit.services.reminders import ReminderService

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Due reminder daemon")
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=60,
        help="Seconds between reminder sweeps",
    )
    parser.add_argument(
        "--jitter-seconds",
        type=int,
        default=5,
        help="Max random jitter added to sleep",
    )
    parser.add_argument(
        "--cleanup-days",
        type=int,
        default=30,
        help="Delete inactive reminders older than this many days (0 to disable)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sweep and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    db = get_db()
    reminders = ReminderService(db, NotificationService(db, get_queue_client(), get_links()))

    while True:
        try:
            counts = reminders.process_due_reminders()
            logger.info(
                "Sweep complete, sent %d reminders (%d errors)", counts["processed"], counts["errors"]
            )
            if args.cleanup_days:
                removed = reminders.cleanup_old_reminders(args.cleanup_days)
                if removed:
                    logger.info("Removed %d old reminders", removed)
        except Exception as exc:
            logger.exception("Reminder sweep failed: %s", exc)

        if args.once:
            return 0

        sleep_for = args.interval_seconds + random.uniform(0, args.jitter_seconds)
        logger.debug("Sleeping for %.1fs", sleep_for)
        time.sleep(sleep_for)


if __name__ == "__main__":
    raise SystemExit(main())
