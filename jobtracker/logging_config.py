import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "botocore", "urllib3")


def setup_logging(level: int | str | None = None) -> None:
    """Configure root logger for the app."""
    if level is None:
        from jobtracker.config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        root.handlers.clear()
    root.addHandler(handler)
    # Reduce noise from third-party libs
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
