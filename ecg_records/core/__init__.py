"""Core record lookup logic."""

from .key_resolver import candidate_keys, extract_date_shard, resolve_key
from .record_service import RecordService
from .s3_client import issue_url, list_objects, object_exists, open_s3_client

__all__ = [
    "candidate_keys",
    "extract_date_shard",
    "resolve_key",
    "RecordService",
    "issue_url",
    "list_objects",
    "object_exists",
    "open_s3_client"
]
