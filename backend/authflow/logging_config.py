import logging

from .config import Settings

_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3")


def setup_logging(settings: Settings) -> None:
    """Configure stdlib logging from the application settings."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    logging.getLogger("authflow").setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # SQL_ECHO=1 prints every statement; engines are built without echo
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.sql_echo else logging.WARNING)

    # The development request logger in main.py replaces uvicorn's access log
    if not settings.is_production:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
