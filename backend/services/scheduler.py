import logging
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from backend.config import (
    DAILY_RESET_HOUR,
    HOURLY_RESET_HOURS,
    RECONCILE_INTERVAL_SECONDS,
    TIMEZONE,
)
from backend.services.mirror import MirrorError, MirrorSheet
from backend.services.reconcile import reconcile_mirror, reset_mirror

logger = logging.getLogger(__name__)

RECONCILE_JOB_ID = "mirror-reconcile"
DAILY_RESET_JOB_ID = "mirror-reset-daily"
HOURLY_RESET_JOB_ID = "mirror-reset-hourly"


def run_reconcile_job(mirror: MirrorSheet) -> None:
    try:
        reconcile_mirror(mirror)
    except Exception:
        logger.exception("Reconcile job failed")


def run_reset_job(mirror: MirrorSheet, trigger: str) -> None:
    logger.info("%s mirror reset triggered", trigger)
    try:
        reset_mirror(mirror)
    except MirrorError as e:
        logger.error("Mirror reset failed: %s", e)
    except Exception:
        logger.exception("Mirror reset job failed")


def register_jobs(scheduler: BaseScheduler, mirror: MirrorSheet) -> None:
    # Reconcile once right away, then on the fixed interval.
    scheduler.add_job(
        run_reconcile_job,
        "interval",
        seconds=RECONCILE_INTERVAL_SECONDS,
        args=[mirror],
        id=RECONCILE_JOB_ID,
        next_run_time=datetime.now(tz=TIMEZONE),
        replace_existing=True,
    )
    scheduler.add_job(
        run_reset_job,
        "cron",
        hour=DAILY_RESET_HOUR,
        minute=0,
        args=[mirror, "Daily"],
        id=DAILY_RESET_JOB_ID,
        replace_existing=True,
    )
    scheduler.add_job(
        run_reset_job,
        "cron",
        hour=HOURLY_RESET_HOURS,
        minute=0,
        args=[mirror, "Hourly"],
        id=HOURLY_RESET_JOB_ID,
        replace_existing=True,
    )


def build_scheduler(scheduler_cls=BackgroundScheduler) -> BaseScheduler:
    return scheduler_cls(
        timezone=TIMEZONE,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
    )


def start_scheduler(mirror: MirrorSheet) -> BackgroundScheduler:
    scheduler = build_scheduler()
    register_jobs(scheduler, mirror)
    scheduler.start()
    logger.info(
        "Scheduled mirror jobs: reconcile every %ss, reset daily at %02d:00 and hourly (%s)",
        RECONCILE_INTERVAL_SECONDS,
        DAILY_RESET_HOUR,
        HOURLY_RESET_HOURS,
    )
    return scheduler
