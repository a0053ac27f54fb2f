import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import CORS_ALLOW_ORIGINS, ENABLE_SCHEDULER, HOST, PORT
from backend.debounce import Debouncer
from backend.logging_config import configure_logging
from backend.routers import admin, attendance, core, scan
from backend.services.mirror import open_mirror_from_settings
from backend.services.scheduler import start_scheduler
from database.db import create_tables

logger = logging.getLogger(__name__)

app = FastAPI(title="Tapclock API")

app.state.debouncer = Debouncer()
app.state.mirror = None
app.state.scheduler = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(core.router)
app.include_router(scan.router)
app.include_router(attendance.router)
app.include_router(admin.router)


@app.exception_handler(RequestValidationError)
async def _invalid_request(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# -----------------------------
# Startup / shutdown
# -----------------------------
@app.on_event("startup")
def _startup():
    configure_logging()
    create_tables()

    # Fails fast on missing Google settings before the server accepts taps.
    if app.state.mirror is None:
        app.state.mirror = open_mirror_from_settings()

    if ENABLE_SCHEDULER:
        app.state.scheduler = start_scheduler(app.state.mirror)


@app.on_event("shutdown")
def _shutdown():
    scheduler = app.state.scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        app.state.scheduler = None


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
