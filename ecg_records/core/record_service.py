"""Record lookup façade: existence checks and fresh presigned URLs."""

from datetime import date, datetime, timezone
from typing import Callable, List, Optional

import structlog

from ..config import Settings
from ..errors import BackendError, InvalidInputError, RecordNotFoundError
from ..types import FileKind, RecordExistence, RecordUrls, ReportSummary, S3Client, StoredObject, Logger
from .key_resolver import DEFAULT_SEARCH_DAYS, resolve_key, utc_today
from .s3_client import DEFAULT_URL_TTL, issue_url, list_objects, object_exists

logger: Logger = structlog.get_logger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def validate_record_id(record_id) -> str:
    """Reject identifiers that cannot be a key stem."""
    if not isinstance(record_id, str):
        raise InvalidInputError("Record ID must be a string", field="id")
    record_id = record_id.strip()
    if not record_id:
        raise InvalidInputError("Record ID cannot be empty", field="id")
    if "/" in record_id:
        raise InvalidInputError("Record ID must not contain '/'", field="id")
    return record_id


def validate_ttl(ttl_seconds) -> int:
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
        raise InvalidInputError("TTL must be a positive number of seconds", field="ttlSeconds")
    return ttl_seconds


def validate_object_key(key) -> str:
    if not isinstance(key, str) or not key.strip():
        raise InvalidInputError("Object key cannot be empty", field="key")
    if key.startswith("/"):
        raise InvalidInputError("Object key must be relative to the bucket", field="key")
    return key


class RecordService:
    """Resolve ECG records in S3 and hand out short-lived URLs for them.

    Every call is stateless: keys are resolved and signed afresh, so two
    calls for the same record return different URLs for the same objects.
    """

    def __init__(
        self,
        s3_client: S3Client,
        bucket: str,
        json_prefix: str = "ecg-data/",
        pdf_prefix: str = "ecg-reports/",
        reviewed_prefix: str = "ecg-reports/reviewed/",
        search_days: int = DEFAULT_SEARCH_DAYS,
        today: Callable[[], date] = utc_today,
    ):
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefixes = {FileKind.JSON: json_prefix, FileKind.PDF: pdf_prefix}
        self.reviewed_prefix = reviewed_prefix
        self.search_days = search_days
        self._today = today

    @classmethod
    def from_settings(cls, s3_client: S3Client, settings: Settings) -> "RecordService":
        return cls(
            s3_client,
            settings.S3_BUCKET,
            json_prefix=settings.JSON_PREFIX,
            pdf_prefix=settings.PDF_PREFIX,
            reviewed_prefix=settings.REVIEWED_PREFIX,
            search_days=settings.SEARCH_WINDOW_DAYS,
        )

    async def resolve(self, record_id: str, kind: FileKind) -> Optional[str]:
        return await resolve_key(
            self.s3_client,
            self.bucket,
            record_id,
            kind,
            today=self._today(),
            search_days=self.search_days,
            prefixes=self.prefixes,
        )

    async def check_exists(self, record_id: str) -> RecordExistence:
        """Report which of the record's objects exist; a missing PDF is not an error."""
        record_id = validate_record_id(record_id)

        json_key = await self.resolve(record_id, FileKind.JSON)
        pdf_key = await self.resolve(record_id, FileKind.PDF)

        existence = RecordExistence(json_exists=json_key is not None, pdf_exists=pdf_key is not None)
        logger.info("Checked record existence", record_id=record_id, **existence.to_dict())
        return existence

    async def get_urls(self, record_id: str, ttl_seconds: int = DEFAULT_URL_TTL) -> RecordUrls:
        """Issue fresh URLs for a record's JSON (required) and PDF (optional).

        Raises:
            InvalidInputError: Bad record id or TTL
            RecordNotFoundError: The JSON object could not be resolved
            BackendError: S3 failed with a non-404 error
        """
        record_id = validate_record_id(record_id)
        ttl_seconds = validate_ttl(ttl_seconds)

        json_key = await self.resolve(record_id, FileKind.JSON)
        if json_key is None:
            raise RecordNotFoundError(f"ECG record {record_id} not found")
        json_url = await issue_url(self.s3_client, self.bucket, json_key, ttl_seconds)

        pdf_url = None
        pdf_key = await self.resolve(record_id, FileKind.PDF)
        if pdf_key is None:
            logger.info("PDF not found, only providing JSON URL", record_id=record_id)
        else:
            try:
                pdf_url = await issue_url(self.s3_client, self.bucket, pdf_key, ttl_seconds)
            except BackendError as e:
                logger.warning("Could not sign PDF URL", record_id=record_id, key=pdf_key, error=e.message)

        return RecordUrls(json_url=json_url, pdf_url=pdf_url, expires_in=ttl_seconds)

    async def get_url_for_key(self, key: str, ttl_seconds: int = DEFAULT_URL_TTL) -> str:
        """Re-sign an explicit object key after an earlier URL expired."""
        key = validate_object_key(key)
        ttl_seconds = validate_ttl(ttl_seconds)
        if not key.startswith(tuple(self.prefixes.values())):
            raise InvalidInputError("Object key is outside the ECG record prefixes", field="key")

        if not await object_exists(self.s3_client, self.bucket, key):
            raise RecordNotFoundError(f"Object {key} not found")
        return await issue_url(self.s3_client, self.bucket, key, ttl_seconds)

    async def list_reports(self, ttl_seconds: int = DEFAULT_URL_TTL) -> List[ReportSummary]:
        """Signed PDF reports, newest first.

        Listing results can be stale, so each key is probed before it is
        signed. Entries that vanished or fail individually are skipped.
        """
        ttl_seconds = validate_ttl(ttl_seconds)
        pdf_prefix = self.prefixes[FileKind.PDF]

        candidates: List[StoredObject] = []
        async for page in list_objects(self.s3_client, self.bucket, pdf_prefix):
            candidates.extend(
                obj for obj in page
                if obj.key.lower().endswith(".pdf") and not obj.key.startswith(self.reviewed_prefix)
            )

        reports: List[ReportSummary] = []
        for obj in candidates:
            try:
                if not await object_exists(self.s3_client, self.bucket, obj.key):
                    logger.warning("Skipping listed key that no longer exists", key=obj.key)
                    continue
                url = await issue_url(self.s3_client, self.bucket, obj.key, ttl_seconds)
            except BackendError as e:
                logger.error("Failed to generate report URL", key=obj.key, error=e.message)
                continue

            reports.append(ReportSummary(
                key=obj.key,
                file_name=obj.file_name,
                url=url,
                uploaded_at=obj.last_modified,
            ))

        reports.sort(key=lambda r: r.uploaded_at or _OLDEST, reverse=True)
        logger.info("Listed doctor reports", listed=len(candidates), returned=len(reports))
        return reports
