from fastapi import APIRouter, Depends, HTTPException

from backend.dependencies import require_mirror
from backend.services.mirror import MirrorError, MirrorSheet
from backend.services.reconcile import reconcile_mirror, reset_mirror

router = APIRouter(prefix="/admin/mirror")


@router.post("/reconcile")
def run_reconcile(mirror: MirrorSheet = Depends(require_mirror)):
    stats = reconcile_mirror(mirror)
    if stats["error"]:
        raise HTTPException(status_code=502, detail=f"Mirror read failed: {stats['error']}")
    return {"ok": True, **stats}


@router.post("/reset")
def run_reset(mirror: MirrorSheet = Depends(require_mirror)):
    try:
        cleared = reset_mirror(mirror)
    except MirrorError as e:
        raise HTTPException(status_code=502, detail=f"Mirror reset failed: {e}")
    return {"ok": True, "cleared": cleared}
