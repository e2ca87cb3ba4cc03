"""CardioX ECG record lookup service.

AWS Lambda handlers that resolve ECG records stored in S3 and hand out
short-lived presigned URLs for them. A record is a JSON metadata object
under ``ecg-data/`` plus an optional PDF report under ``ecg-reports/``,
both filed in ``YYYY/MM/DD/`` date shards.

Key Features:
- Date-shard key resolution with a bounded fallback search over recent days
- HEAD-based existence checks before any URL is issued
- Fresh presigned URLs on every request (no caching)
- Per-process rate limiting and an S3 circuit breaker
- Structured logging and a consistent success/error response envelope
- Environment-based configuration

"""

# Core modules
from . import config
from . import errors
from . import logging_config

# Lookup
from .core import RecordService, resolve_key

# Entry points
from .main import report_handler, record_status_handler, doctor_reports_handler, regenerate_url_handler

__version__ = "1.0.0"
__author__ = "CardioX Backend Team"

__all__ = [
    # Core
    "config",
    "errors",
    "logging_config",
    # Lookup
    "RecordService",
    "resolve_key",
    # Entry points
    "report_handler",
    "record_status_handler",
    "doctor_reports_handler",
    "regenerate_url_handler",
]
