"""Type definitions for the ECG record lookup service."""

from datetime import datetime, timezone
from typing import Dict, Optional, Any, Protocol, runtime_checkable
from dataclasses import dataclass, field
from enum import Enum


class FileKind(str, Enum):
    """Companion objects that make up a record."""
    JSON = "json"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return self.value


class ErrorCode(str, Enum):
    """Stable error codes returned in the response envelope."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    BACKEND_ERROR = "BACKEND_ERROR"
    ACCESS_DENIED = "ACCESS_DENIED"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    RATE_LIMITED = "RATE_LIMITED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass
class RecordExistence:
    """Which companion objects of a record are present."""
    json_exists: bool
    pdf_exists: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jsonExists": self.json_exists,
            "pdfExists": self.pdf_exists,
        }


@dataclass
class RecordUrls:
    """Freshly signed URLs for a record."""
    json_url: str
    pdf_url: Optional[str]
    expires_in: int
    generated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire shape returned by the report endpoint."""
        return {
            "jsonUrl": self.json_url,
            "pdfUrl": self.pdf_url,
            "expiresIn": self.expires_in,
            "generatedAt": _isoformat(self.generated_at),
        }


@dataclass
class StoredObject:
    """A single entry from an S3 listing."""
    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None

    @property
    def file_name(self) -> str:
        return self.key.rsplit("/", 1)[-1]


@dataclass
class ReportSummary:
    """A signed PDF report as shown on the doctor dashboard."""
    key: str
    file_name: str
    url: str
    uploaded_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        uploaded_at = _isoformat(self.uploaded_at)
        return {
            "key": self.key,
            "fileName": self.file_name,
            "url": self.url,
            "uploadedAt": uploaded_at,
            "lastModified": uploaded_at,
        }


@runtime_checkable
class S3Client(Protocol):
    """Type protocol for the async S3 client."""
    async def head_object(self, **kwargs) -> Any: ...
    async def generate_presigned_url(self, ClientMethod: str, **kwargs) -> str: ...
    def get_paginator(self, operation_name: str) -> Any: ...


# Type aliases
Logger = Any  # structlog logger
