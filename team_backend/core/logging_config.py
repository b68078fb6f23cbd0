"""
Team Backend Logging Configuration

Console logging with per-environment formatting and redaction of
sensitive values.
"""

import logging
import logging.config
import sys
from typing import Dict, Any

from team_backend.core.config import get_settings


def setup_logging() -> None:
    """Setup logging configuration for the team backend"""
    settings = get_settings()

    log_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(pathname)s:%(lineno)d",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(funcName)s() - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "json" if settings.log_format == "json" else (
                    "detailed" if settings.debug else "default"
                ),
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "": {  # Root logger
                "level": settings.log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "team_backend": {
                "level": settings.log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "httpx": {
                "level": "INFO" if settings.debug else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.error": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(log_config)

    redaction_filter = SecurityRedactionFilter()
    for name in ["", "team_backend"]:
        for handler in logging.getLogger(name).handlers:
            handler.addFilter(redaction_filter)

    logger = logging.getLogger("team_backend.startup")
    logger.info(
        "Team backend logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        }
    )


class SecurityRedactionFilter(logging.Filter):
    """Filter to redact sensitive information from log arguments"""

    SENSITIVE_FIELDS = [
        "password", "token", "secret", "authorization", "cookie", "api_key"
    ]

    def filter(self, record):
        if record.args:
            record.args = self._redact_sensitive_data(record.args)
        return True

    def _redact_sensitive_data(self, data):
        """Recursively redact sensitive data from log arguments"""
        if isinstance(data, dict):
            return {
                key: "[REDACTED]" if any(sensitive in str(key).lower() for sensitive in self.SENSITIVE_FIELDS)
                else self._redact_sensitive_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, (list, tuple)):
            return type(data)(self._redact_sensitive_data(item) for item in data)
        return data
