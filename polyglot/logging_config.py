import logging

from polyglot.config import Settings, get_settings

# Libraries that are too chatty at the application level.
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging configured: level=%s", settings.log_level
    )
