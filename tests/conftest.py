"""Shared fixtures: an in-memory async S3 double and a fixed clock."""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from ecg_records.config import Settings
from ecg_records.core.circuit_breaker import BreakerOptions, CircuitBreaker
from ecg_records.core.rate_limiter import InMemoryRateLimitStore, RateLimiter
from ecg_records.core.record_service import RecordService
from ecg_records.errors import InvalidInputError, RecordNotFoundError

BUCKET = "test-bucket"
TODAY = date(2025, 1, 10)


def client_error(code: str, status: int, operation: str = "HeadObject") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} error"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakePaginator:
    """Mimics the aioboto3 list_objects_v2 paginator."""

    def __init__(self, s3: "FakeS3Client"):
        self.s3 = s3

    def paginate(self, **kwargs):
        self.s3.list_calls.append(kwargs)
        return self._pages(kwargs.get("Prefix", ""))

    async def _pages(self, prefix: str):
        if self.s3.list_error is not None:
            raise self.s3.list_error
        listing = {**self.s3.objects, **self.s3.stale}
        keys = sorted(key for key in listing if key.startswith(prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self.s3.page_size):
            chunk = keys[start:start + self.s3.page_size]
            yield {
                "Contents": [
                    {"Key": key, "Size": 1024, "LastModified": listing[key]}
                    for key in chunk
                ]
            }


class FakeS3Client:
    """In-memory stand-in for an aioboto3 S3 client."""

    def __init__(self, bucket: str = BUCKET):
        self.bucket = bucket
        self.objects: Dict[str, Optional[datetime]] = {}
        # keys that still show up in listings but were deleted
        self.stale: Dict[str, Optional[datetime]] = {}
        self.head_errors: Dict[str, Exception] = {}
        self.sign_errors: Dict[str, Exception] = {}
        self.list_error: Optional[Exception] = None
        self.page_size = 1000
        self.head_calls: List[str] = []
        self.sign_calls: List[Dict] = []
        self.list_calls: List[Dict] = []

    def put(self, key: str, last_modified: Optional[datetime] = None) -> None:
        self.objects[key] = last_modified or datetime(2025, 1, 1, tzinfo=timezone.utc)

    async def head_object(self, Bucket: str, Key: str):
        self.head_calls.append(Key)
        if Key in self.head_errors:
            raise self.head_errors[Key]
        if Key not in self.objects:
            raise client_error("404", 404)
        return {"ContentLength": 1024, "LastModified": self.objects[Key]}

    async def generate_presigned_url(self, ClientMethod, Params=None, ExpiresIn=3600, HttpMethod=None):
        key = Params["Key"]
        self.sign_calls.append({"method": ClientMethod, "key": key, "expires_in": ExpiresIn})
        if key in self.sign_errors:
            raise self.sign_errors[key]
        return (
            f"https://{Params['Bucket']}.s3.amazonaws.com/{key}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=sig{len(self.sign_calls)}"
        )

    def get_paginator(self, operation_name: str):
        assert operation_name == "list_objects_v2"
        return FakePaginator(self)

    @property
    def signed_keys(self) -> List[str]:
        return [call["key"] for call in self.sign_calls]


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def service(s3):
    return RecordService(s3, BUCKET, today=lambda: TODAY)


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("S3_BUCKET", BUCKET)
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.delenv("PRESIGNED_URL_TTL", raising=False)
    return Settings()


@pytest.fixture
def s3_client_factory(s3):
    @asynccontextmanager
    async def factory(settings):
        yield s3
    return factory


@pytest.fixture
def rate_limiter():
    return RateLimiter(InMemoryRateLimitStore(), limit=100, window_seconds=60)


@pytest.fixture
def breaker():
    return CircuitBreaker(
        "s3-test",
        BreakerOptions(failure_threshold=3, reset_timeout=30),
        exclude=(RecordNotFoundError, InvalidInputError),
    )


@pytest.fixture
def handler_deps(settings, s3_client_factory, rate_limiter, breaker):
    """Keyword overrides accepted by every async_lambda_handler."""
    return {
        "settings": settings,
        "s3_client_factory": s3_client_factory,
        "rate_limiter": rate_limiter,
        "breaker": breaker,
    }
