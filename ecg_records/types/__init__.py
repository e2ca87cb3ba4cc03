"""Type definitions for the ECG record lookup service."""

from .models import (
    FileKind,
    ErrorCode,
    RecordExistence,
    RecordUrls,
    StoredObject,
    ReportSummary,
    S3Client,
    Logger
)

__all__ = [
    "FileKind",
    "ErrorCode",
    "RecordExistence",
    "RecordUrls",
    "StoredObject",
    "ReportSummary",
    "S3Client",
    "Logger"
]
