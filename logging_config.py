import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure process logging from environment flags."""
    level = os.getenv("STUDY_PLANNER_LOG_LEVEL", "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    # Streamlit's own watchers are noisy at DEBUG
    if os.getenv("STUDY_PLANNER_DEBUG_HOST", "0") != "1":
        logging.getLogger("streamlit").setLevel(logging.WARNING)
        logging.getLogger("watchdog").setLevel(logging.WARNING)
