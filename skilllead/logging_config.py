import logging
import os
from logging.config import dictConfig
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Env flag -> (logger, level) raised when the flag is "1".
DEBUG_FLAGS = {
    "SKILLLEAD_DEBUG_HTTP": (("httpx", logging.DEBUG), ("httpcore", logging.DEBUG)),
    "SKILLLEAD_DEBUG_SQL": (("sqlalchemy.engine", logging.INFO),),
}


def configure_logging(level: Optional[str] = None) -> None:
    """Install console logging for the UI host process.

    ``level`` overrides ``SKILLLEAD_LOG_LEVEL``. Telemetry lines share the
    root handler so hosts can filter them by the ``skilllead.telemetry`` name.
    """
    resolved = (level or os.getenv("SKILLLEAD_LOG_LEVEL", "INFO")).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"console": {"format": LOG_FORMAT}},
            "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "console"}},
            "loggers": {"skilllead": {"level": resolved, "propagate": True}},
            "root": {"handlers": ["console"], "level": resolved},
        }
    )

    for flag, targets in DEBUG_FLAGS.items():
        if os.getenv(flag, "0") != "1":
            continue
        for name, target_level in targets:
            logging.getLogger(name).setLevel(target_level)
