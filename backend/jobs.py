"""
Run the mirror jobs without the HTTP server.

    python -m backend.jobs reconcile   # one reconcile pass
    python -m backend.jobs reset       # clear the mirror below its header
    python -m backend.jobs schedule    # reconcile + reset on their schedules
"""

import argparse
import json
import logging
import sys

from apscheduler.schedulers.blocking import BlockingScheduler

from backend.logging_config import configure_logging
from backend.services.mirror import MirrorError, open_mirror_from_settings
from backend.services.reconcile import reconcile_mirror, reset_mirror
from backend.services.scheduler import build_scheduler, register_jobs
from database.db import create_tables

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m backend.jobs")
    parser.add_argument("command", choices=("reconcile", "reset", "schedule"))
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        mirror = open_mirror_from_settings()
    except (RuntimeError, MirrorError) as e:
        logger.error("%s", e)
        return 1

    if args.command == "reconcile":
        create_tables()
        stats = reconcile_mirror(mirror)
        print(json.dumps(stats, ensure_ascii=False, separators=(",", ":")), flush=True)
        return 1 if stats["error"] else 0

    if args.command == "reset":
        try:
            cleared = reset_mirror(mirror)
        except MirrorError as e:
            logger.error("Mirror reset failed: %s", e)
            return 1
        print(json.dumps({"cleared": cleared}), flush=True)
        return 0

    create_tables()
    scheduler = build_scheduler(BlockingScheduler)
    register_jobs(scheduler, mirror)
    logger.info("Mirror jobs scheduled; press Ctrl+C to stop")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
