from datetime import datetime

from fastapi import APIRouter, HTTPException

from backend.services.scan import now_local
from database.db import get_attendance_records

router = APIRouter()


@router.get("/attendance")
def attendance(date: str | None = None):
    if date:
        try:
            day = datetime.strptime(date.strip(), "%Y-%m-%d").date().isoformat()
        except ValueError:
            raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD.")
    else:
        day = now_local().strftime("%Y-%m-%d")

    return {"date": day, "rows": get_attendance_records(day)}
