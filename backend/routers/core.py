from fastapi import APIRouter

from backend.config import (
    DAILY_RESET_HOUR,
    ENABLE_SCHEDULER,
    GOOGLE_SHEET_NAME,
    HOURLY_RESET_HOURS,
    MIRROR_LAYOUT,
    RECONCILE_INTERVAL_SECONDS,
    SCAN_COOLDOWN_SECONDS,
    TIMEZONE_NAME,
)

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/config/attendance")
def attendance_config():
    return {
        "timezone": TIMEZONE_NAME,
        "scan_cooldown_seconds": SCAN_COOLDOWN_SECONDS,
        "mirror_sheet_name": GOOGLE_SHEET_NAME,
        "mirror_layout": MIRROR_LAYOUT,
        "reconcile_interval_seconds": RECONCILE_INTERVAL_SECONDS,
        "daily_reset_hour": DAILY_RESET_HOUR,
        "hourly_reset_hours": HOURLY_RESET_HOURS,
        "scheduler_enabled": ENABLE_SCHEDULER,
    }
