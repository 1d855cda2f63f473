"""Logging configuration for the application."""
import logging
import logging.config
import sys

from app.core.config import LOG_LEVEL


def setup_logging():
    """Setup logging configuration."""
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": LOG_LEVEL,
                "formatter": "simple",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "": {"level": LOG_LEVEL, "handlers": ["console"], "propagate": False},
            "app": {"level": LOG_LEVEL, "handlers": ["console"], "propagate": False},
            "sqlalchemy": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
    }
    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("app")
    logger.info(f"Logging configured with level: {LOG_LEVEL}")
    return logger
