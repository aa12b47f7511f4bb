import logging
from logging.config import dictConfig

from certtrack.config import Settings, get_settings

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Install a stream handler on the root logger at the configured level."""
    settings = settings or get_settings()
    level = settings.log_level.upper()

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

    # Request-level chatter from the HTTP and S3 clients only in debug
    if not settings.debug:
        for noisy in ("httpx", "httpcore", "botocore", "boto3"):
            logging.getLogger(noisy).setLevel(logging.WARNING)
