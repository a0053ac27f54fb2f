import logging
from datetime import datetime
from typing import TypedDict

from backend.config import TIMEZONE
from backend.debounce import Debouncer
from backend.services.mirror import MirrorError, MirrorSheet
from database.db import AttendanceAction, TagBinding, get_tag_binding, process_attendance_scan

logger = logging.getLogger(__name__)


class UnknownTagError(LookupError):
    def __init__(self, tag_uid: str):
        super().__init__(f"No employee linked to tag UID {tag_uid}")
        self.tag_uid = tag_uid


class DebouncedTapError(Exception):
    def __init__(self, tag_uid: str, retry_after_seconds: int):
        super().__init__(f"Wait {retry_after_seconds}s before scanning UID {tag_uid} again.")
        self.tag_uid = tag_uid
        self.retry_after_seconds = retry_after_seconds


class ScanResult(TypedDict):
    ok: bool
    employee_id: int
    owner_name: str
    clockin_time: str | None
    clockout_time: str | None
    date: str
    action: AttendanceAction
    mirror_synced: bool


def now_local() -> datetime:
    return datetime.now(tz=TIMEZONE).replace(microsecond=0)


def resolve_tag(tag_uid: str) -> TagBinding:
    binding = get_tag_binding(tag_uid)
    if binding is None:
        raise UnknownTagError(tag_uid)
    return binding


def process_tap(
    tag_uid: str,
    *,
    mirror: MirrorSheet | None,
    debouncer: Debouncer,
    now: datetime | None = None,
) -> ScanResult:
    """
    Debounce -> resolve tag -> clock in/out in the database -> mirror row.

    The database write is authoritative; a mirror failure is logged and
    reported as mirror_synced=False without failing the tap.
    """
    stamp = (now or now_local()).replace(microsecond=0)

    if not debouncer.accept(tag_uid, stamp):
        raise DebouncedTapError(tag_uid, debouncer.retry_after(tag_uid, stamp))

    binding = resolve_tag(tag_uid)
    employee_id = binding["employee_id"]
    owner_name = binding["owner_name"]

    decision = process_attendance_scan(
        employee_id,
        owner_name,
        stamp.strftime("%Y-%m-%d"),
        stamp.strftime("%H:%M:%S"),
    )
    logger.info("Employee %s (%s) %s on %s", employee_id, owner_name, decision["action"], decision["date"])

    mirror_synced = False
    if mirror is not None:
        try:
            mirror.upsert(
                owner_name,
                employee_id,
                decision["clockin_time"],
                decision["clockout_time"],
                decision["date"],
            )
            mirror_synced = True
        except MirrorError as e:
            logger.warning("Mirror upsert failed for employee %s: %s", employee_id, e)

    return {
        "ok": True,
        "employee_id": employee_id,
        "owner_name": owner_name,
        "clockin_time": decision["clockin_time"],
        "clockout_time": decision["clockout_time"],
        "date": decision["date"],
        "action": decision["action"],
        "mirror_synced": mirror_synced,
    }
