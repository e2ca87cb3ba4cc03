"""Structured logging setup for the Lambda handlers."""

import logging
import sys
from typing import Optional

import structlog

SERVICE_NAME = "ecg-records"


def _add_service_name(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(level: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog to emit JSON lines.

    Args:
        level: Log level name; defaults to the ``LOG_LEVEL`` setting
    """
    if level is None:
        from .config import get_settings
        level = get_settings().LOG_LEVEL

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    # Lambda installs its own root handler before our code runs
    logging.getLogger().setLevel(log_level)

    # botocore is chatty at INFO
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service_name,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
