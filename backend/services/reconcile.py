import logging
import sqlite3
from datetime import date as date_cls
from datetime import datetime
from typing import TypedDict

from backend.config import TIMEZONE
from backend.services.mirror import MirrorError, MirrorSheet
from database.db import DEFAULT_STATUS, DEFAULT_TYPE, connect_db, upsert_attendance_record

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")


class ReconcileStats(TypedDict):
    rows: int
    synced: int
    skipped: int
    failed: int
    error: str | None


def today_local() -> date_cls:
    return datetime.now(tz=TIMEZONE).date()


def parse_mirror_date(value: str | None, fallback: date_cls) -> str:
    if not value:
        return fallback.isoformat()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"unrecognised date {value!r}")


def reconcile_mirror(mirror: MirrorSheet, *, today: date_cls | None = None) -> ReconcileStats:
    """
    Pull every mirror row into the database, last write wins.

    Rows without an employee id are skipped. A row that fails to store is
    logged and counted; the remaining rows are still processed.
    """
    stats: ReconcileStats = {"rows": 0, "synced": 0, "skipped": 0, "failed": 0, "error": None}

    try:
        rows = mirror.read_all()
    except MirrorError as e:
        logger.error("Reconcile aborted, could not read mirror: %s", e)
        stats["error"] = str(e)
        return stats

    stats["rows"] = len(rows)
    if not rows:
        logger.info("Reconcile: no data rows in mirror")
        return stats

    fallback_date = today or today_local()
    conn = connect_db()
    try:
        for row in rows:
            if row.employee_id is None:
                stats["skipped"] += 1
                logger.debug("Reconcile: row %s has no employee id, skipped", row.row_number)
                continue

            try:
                upsert_attendance_record(
                    employee_id=row.employee_id,
                    date=parse_mirror_date(row.date, fallback_date),
                    full_name=row.name,
                    clockin_time=row.clockin_time,
                    clockout_time=row.clockout_time,
                    status=row.status or DEFAULT_STATUS,
                    type=row.type or DEFAULT_TYPE,
                    conn=conn,
                )
            except (sqlite3.Error, ValueError):
                conn.rollback()
                stats["failed"] += 1
                logger.exception(
                    "Reconcile failed for employee %s (sheet row %s)",
                    row.employee_id,
                    row.row_number,
                )
                continue

            stats["synced"] += 1
    finally:
        conn.close()

    logger.info(
        "Reconcile finished: %d rows, %d synced, %d skipped, %d failed",
        stats["rows"],
        stats["synced"],
        stats["skipped"],
        stats["failed"],
    )
    return stats


def reset_mirror(mirror: MirrorSheet) -> int:
    """Clear every data row below the header. Returns the number of rows cleared."""
    mirror.ensure_header()
    count = mirror.count_data_rows()
    if count <= 0:
        logger.info("Mirror reset: nothing to clear (only header present)")
        return 0

    mirror.clear_below_header()
    logger.info("Mirror reset: cleared %d data rows below header", count)
    return count
