import logging

from backend.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the API process and the job runner."""
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler.executors").setLevel(logging.WARNING)
