"""
Configuration des logs applicatifs (appelée une seule fois au démarrage).
"""

import logging.config

from schoolconnect.config import settings


def configure_logging() -> None:
    level = settings.LOG_LEVEL.upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "{asctime} {levelname} [{name}:{lineno}] {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "detailed",
            },
        },
        "loggers": {
            "schoolconnect": {
                "handlers": ["console"],
                "level": level,
                "propagate": False,
            },
            "apscheduler": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    })
