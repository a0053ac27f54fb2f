import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]

load_dotenv(dotenv_path=BASE_DIR / ".env", override=False)


def _parse_bool(value: str | None, fallback: bool) -> bool:
    if value is None:
        return fallback
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return fallback


def _parse_csv(value: str | None, fallback: list[str]) -> list[str]:
    if not value:
        return fallback
    parsed = [item.strip() for item in value.split(",") if item.strip()]
    return parsed or fallback


def _parse_int(value: str | None, fallback: int, *, minimum: int = 0) -> int:
    if value is None or not value.strip():
        return fallback
    try:
        return max(minimum, int(value.strip()))
    except ValueError:
        return fallback


def _parse_mirror_layout(value: str | None) -> str:
    normalized = (value or "").strip().lower()
    if normalized == "basic":
        return "basic"
    return "extended"


TIMEZONE_NAME = os.getenv("TAPCLOCK_TIMEZONE", "Africa/Johannesburg").strip() or "Africa/Johannesburg"
TIMEZONE = ZoneInfo(TIMEZONE_NAME)

DB_PATH = Path(os.getenv("TAPCLOCK_DB_PATH", BASE_DIR / "database" / "tapclock.db"))

# Google Sheets mirror
GOOGLE_SERVICE_ACCOUNT_KEY = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "").strip()
GOOGLE_SHEET_ID = os.getenv("GOOGLE_SHEET_ID", "").strip()
GOOGLE_SHEET_NAME = os.getenv("GOOGLE_SHEET_NAME", "Sheet1").strip() or "Sheet1"
MIRROR_LAYOUT = _parse_mirror_layout(os.getenv("TAPCLOCK_MIRROR_LAYOUT"))

SCAN_COOLDOWN_SECONDS = _parse_int(os.getenv("TAPCLOCK_SCAN_COOLDOWN_SECONDS"), 120)

# Schedules
RECONCILE_INTERVAL_SECONDS = _parse_int(os.getenv("TAPCLOCK_RECONCILE_INTERVAL_SECONDS"), 60, minimum=1)
DAILY_RESET_HOUR = min(23, _parse_int(os.getenv("TAPCLOCK_DAILY_RESET_HOUR"), 0))
HOURLY_RESET_HOURS = os.getenv("TAPCLOCK_HOURLY_RESET_HOURS", "1-23").strip() or "1-23"
ENABLE_SCHEDULER = _parse_bool(os.getenv("TAPCLOCK_ENABLE_SCHEDULER"), True)

HOST = os.getenv("TAPCLOCK_HOST", "0.0.0.0").strip() or "0.0.0.0"
PORT = _parse_int(os.getenv("PORT"), 5000, minimum=1)
CORS_ALLOW_ORIGINS = _parse_csv(os.getenv("TAPCLOCK_CORS_ALLOW_ORIGINS"), ["*"])
LOG_LEVEL = os.getenv("TAPCLOCK_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Terminal tap simulator
API_URL = os.getenv("TAPCLOCK_API_URL", "http://localhost:5000/scan").strip()
REQUEST_TIMEOUT_SECONDS = _parse_int(os.getenv("TAPCLOCK_REQUEST_TIMEOUT_SECONDS"), 10, minimum=1)


def missing_required_settings() -> list[str]:
    required = {
        "GOOGLE_SERVICE_ACCOUNT_KEY": GOOGLE_SERVICE_ACCOUNT_KEY,
        "GOOGLE_SHEET_ID": GOOGLE_SHEET_ID,
    }
    return [name for name, value in required.items() if not value]
