"""S3 access with retry logic: existence probes, presigned URLs and listings."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, List, Optional

import aioboto3
import structlog
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from tenacity import retry, retry_if_exception, stop_after_attempt, stop_after_delay, wait_exponential

from ..config import Settings, get_settings
from ..errors import BackendError
from ..types import S3Client, StoredObject, Logger

logger: Logger = structlog.get_logger(__name__)

DEFAULT_URL_TTL = 300
# Upper bound on time spent retrying one S3 call; keeps retries inside the API Gateway 29 s budget
RETRY_DEADLINE_SECONDS = 20

NOT_FOUND_CODES = frozenset({"404", "NotFound", "NoSuchKey"})
TRANSIENT_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
})
TRANSIENT_NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def error_code_of(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "Unknown"))


def status_code_of(exc: ClientError) -> Optional[int]:
    return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def is_not_found(exc: ClientError) -> bool:
    """Whether a ClientError means the object simply is not there."""
    return error_code_of(exc) in NOT_FOUND_CODES or status_code_of(exc) == 404


def is_transient(exc: BaseException) -> bool:
    """Whether an error is worth retrying (throttling, 5xx, dropped connections)."""
    if isinstance(exc, ClientError):
        status = status_code_of(exc)
        return error_code_of(exc) in TRANSIENT_CODES or (status is not None and status >= 500)
    return isinstance(exc, TRANSIENT_NETWORK_ERRORS)


def _backend_error(action: str, key: str, exc: Exception) -> BackendError:
    if isinstance(exc, ClientError):
        code = error_code_of(exc)
        return BackendError(f"{action} failed for {key}: {code}", error_code=code, status_code=status_code_of(exc))
    return BackendError(f"{action} failed for {key}: {exc}", error_code=type(exc).__name__)


@asynccontextmanager
async def open_s3_client(settings: Optional[Settings] = None) -> AsyncIterator[S3Client]:
    """Open an async S3 client scoped to one invocation."""
    settings = settings or get_settings()
    config = Config(
        signature_version="s3v4",
        connect_timeout=settings.S3_CONNECT_TIMEOUT,
        read_timeout=settings.S3_READ_TIMEOUT,
        # retries are handled by tenacity below
        retries={"max_attempts": 1, "mode": "standard"},
    )
    session = aioboto3.Session()
    async with session.client("s3", region_name=settings.AWS_REGION, config=config) as s3:
        yield s3


@retry(
    retry=retry_if_exception(is_transient),
    stop=(stop_after_attempt(3) | stop_after_delay(RETRY_DEADLINE_SECONDS)),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)
async def _head_object(s3_client: S3Client, bucket: str, key: str) -> dict:
    return await s3_client.head_object(Bucket=bucket, Key=key)


@retry(
    retry=retry_if_exception(is_transient),
    stop=(stop_after_attempt(3) | stop_after_delay(RETRY_DEADLINE_SECONDS)),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)
async def _presign_get(s3_client: S3Client, bucket: str, key: str, ttl_seconds: int) -> str:
    return await s3_client.generate_presigned_url(
        "get_object",
        Params={"Bucket": bucket, "Key": key},
        ExpiresIn=ttl_seconds,
    )


async def object_exists(s3_client: S3Client, bucket: str, key: str) -> bool:
    """Check that an object exists with a metadata-only HEAD request.

    Args:
        s3_client: Async S3 client
        bucket: S3 bucket name
        key: S3 object key

    Returns:
        True if the object exists, False on 404 / NotFound / NoSuchKey

    Raises:
        BackendError: For any other failure (permissions, throttling, network)
    """
    try:
        await _head_object(s3_client, bucket, key)
        logger.debug("Object exists", bucket=bucket, key=key)
        return True
    except ClientError as e:
        if is_not_found(e):
            logger.debug("Object not found", bucket=bucket, key=key)
            return False
        logger.error("Existence probe failed", bucket=bucket, key=key, error=error_code_of(e))
        raise _backend_error("HeadObject", key, e) from e
    except BotoCoreError as e:
        logger.error("Existence probe failed", bucket=bucket, key=key, error=str(e))
        raise _backend_error("HeadObject", key, e) from e


async def issue_url(
    s3_client: S3Client,
    bucket: str,
    key: str,
    ttl_seconds: int = DEFAULT_URL_TTL
) -> str:
    """Sign a read-only GET URL for a key.

    Signing does not prove the object exists; probe with object_exists first.

    Args:
        s3_client: Async S3 client
        bucket: S3 bucket name
        key: S3 object key
        ttl_seconds: URL lifetime in seconds

    Returns:
        Presigned URL string

    Raises:
        BackendError: If signing fails
    """
    try:
        url = await _presign_get(s3_client, bucket, key, ttl_seconds)
        logger.info("Issued presigned URL", bucket=bucket, key=key, expires_in=ttl_seconds)
        return url
    except (ClientError, BotoCoreError) as e:
        logger.error("Failed to sign URL", bucket=bucket, key=key, error=str(e))
        raise _backend_error("GetSignedUrl", key, e) from e


async def list_objects(
    s3_client: S3Client,
    bucket: str,
    prefix: str
) -> AsyncGenerator[List[StoredObject], None]:
    """List objects under a prefix with pagination.

    Args:
        s3_client: Async S3 client
        bucket: S3 bucket name
        prefix: Key prefix to filter objects

    Yields:
        One list of StoredObject per non-empty page

    Raises:
        BackendError: If the listing fails
    """
    logger.info("Listing objects from S3", bucket=bucket, prefix=prefix)
    try:
        paginator = s3_client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            contents = page.get("Contents") or []
            objects = [
                StoredObject(
                    key=obj["Key"],
                    size=obj.get("Size"),
                    last_modified=obj.get("LastModified"),
                )
                for obj in contents
                if obj.get("Key")
            ]
            if objects:
                logger.info("Found objects", prefix=prefix, count=len(objects))
                yield objects
    except (ClientError, BotoCoreError) as e:
        logger.error("Failed to list objects", bucket=bucket, prefix=prefix, error=str(e))
        raise _backend_error("ListObjectsV2", prefix, e) from e
