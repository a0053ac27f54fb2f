import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.debounce import Debouncer
from backend.dependencies import get_debouncer, get_mirror
from backend.services import scan
from backend.services.mirror import MirrorSheet

logger = logging.getLogger(__name__)

router = APIRouter()


class ScanRequest(BaseModel):
    tag_uid: str | None = None
    tag_id: str | None = None


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@router.post("/scan")
def scan_tag(
    payload: ScanRequest,
    debouncer: Debouncer = Depends(get_debouncer),
    mirror: MirrorSheet | None = Depends(get_mirror),
):
    tag_uid = (payload.tag_uid or payload.tag_id or "").strip()
    if not tag_uid:
        return _error(400, "tag_uid required")

    try:
        return scan.process_tap(tag_uid, mirror=mirror, debouncer=debouncer, now=scan.now_local())
    except scan.DebouncedTapError as e:
        return _error(429, str(e), retry_after_seconds=e.retry_after_seconds)
    except scan.UnknownTagError as e:
        return _error(404, str(e))
    except Exception:
        logger.exception("NFC scan failed for UID %s", tag_uid)
        return _error(500, "Internal server error")
