import logging
import logging.config
from typing import Any


# Third-party loggers that echo request payloads (and with them API keys) at INFO
QUIET_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy", "httpx", "httpcore")


def setup_logging(level: str = "INFO") -> dict[str, Any]:
    """Configure console logging for the application.

    The returned dict is the applied ``dictConfig`` so callers can extend it.
    """
    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": level, "handlers": ["console"]},
    }

    logging.config.dictConfig(config)
    return config
