from fastapi import HTTPException, Request

from backend.debounce import Debouncer
from backend.services.mirror import MirrorSheet


def get_debouncer(request: Request) -> Debouncer:
    return request.app.state.debouncer


def get_mirror(request: Request) -> MirrorSheet | None:
    return getattr(request.app.state, "mirror", None)


def require_mirror(request: Request) -> MirrorSheet:
    mirror = get_mirror(request)
    if mirror is None:
        raise HTTPException(status_code=503, detail="Mirror sheet is not configured.")
    return mirror
