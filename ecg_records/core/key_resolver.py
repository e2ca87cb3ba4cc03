"""Resolve record identifiers to S3 keys across date-sharded folders.

Records are written as ``<prefix>YYYY/MM/DD/<record_id>.<ext>``. The shard
is normally the date embedded in the identifier (``ECG_Report_20250101_120000``)
but uploads can land under a different day, so a miss on the primary guess
falls back to a bounded walk over the most recent days.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import List, Mapping, Optional, Union

import structlog

from ..types import FileKind, S3Client, Logger
from .s3_client import object_exists

logger: Logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_DAYS = 7
DEFAULT_PREFIXES: Mapping[FileKind, str] = {
    FileKind.JSON: "ecg-data/",
    FileKind.PDF: "ecg-reports/",
}

# A standalone run of exactly eight digits, e.g. the 20250101 in ECG_Report_20250101_120000
DATE_TOKEN = re.compile(r"(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def date_shard(day: date) -> str:
    """Format a date as a ``YYYY/MM/DD/`` shard."""
    return f"{day.year:04d}/{day.month:02d}/{day.day:02d}/"


def extract_date_shard(record_id: str) -> Optional[str]:
    """Return the shard for the first valid date token in a record id, if any."""
    for match in DATE_TOKEN.finditer(record_id):
        year, month, day = (int(part) for part in match.groups())
        try:
            return date_shard(date(year, month, day))
        except ValueError:
            # 8 digits that are not a calendar date (e.g. a hex id segment)
            continue
    return None


def build_key(
    record_id: str,
    kind: FileKind,
    shard: str,
    prefixes: Mapping[FileKind, str] = DEFAULT_PREFIXES
) -> str:
    return f"{prefixes[kind]}{shard}{record_id}.{kind.extension}"


def candidate_keys(
    record_id: str,
    kind: Union[FileKind, str],
    today: date,
    search_days: int = DEFAULT_SEARCH_DAYS,
    prefixes: Mapping[FileKind, str] = DEFAULT_PREFIXES
) -> List[str]:
    """Ordered candidate keys: the primary guess, then today back to today-(search_days-1).

    Duplicates are dropped, so at most ``search_days + 1`` keys are returned.
    """
    kind = FileKind(kind)
    primary_shard = extract_date_shard(record_id) or date_shard(today)
    keys = [build_key(record_id, kind, primary_shard, prefixes)]

    for offset in range(search_days):
        key = build_key(record_id, kind, date_shard(today - timedelta(days=offset)), prefixes)
        if key not in keys:
            keys.append(key)

    return keys


async def resolve_key(
    s3_client: S3Client,
    bucket: str,
    record_id: str,
    kind: Union[FileKind, str],
    today: Optional[date] = None,
    search_days: int = DEFAULT_SEARCH_DAYS,
    prefixes: Mapping[FileKind, str] = DEFAULT_PREFIXES
) -> Optional[str]:
    """Find the key under which a record's JSON or PDF object is stored.

    Candidates are probed one at a time and the first hit wins, which
    favours the most recent day when several shards hold the object.

    Args:
        s3_client: Async S3 client
        bucket: S3 bucket name
        record_id: Record identifier (the object stem)
        kind: Which companion object to look for
        today: Reference date for the fallback window; defaults to today (UTC)
        search_days: Size of the fallback window
        prefixes: Key prefix per file kind

    Returns:
        The existing key, or None if no candidate exists

    Raises:
        BackendError: If any probe fails with a non-404 error
    """
    kind = FileKind(kind)
    candidates = candidate_keys(record_id, kind, today or utc_today(), search_days, prefixes)

    for probes, key in enumerate(candidates, start=1):
        if await object_exists(s3_client, bucket, key):
            logger.info("Resolved record key", record_id=record_id, kind=kind.value, key=key, probes=probes)
            return key

    logger.info("Record key not found", record_id=record_id, kind=kind.value, probes=len(candidates))
    return None
