"""Shared request pipeline for the Lambda handlers.

Each endpoint is an async function taking a :class:`HandlerContext`. The
pipeline normalises the event, answers CORS preflight, rejects other
methods, applies rate limiting, opens the S3 client and turns exceptions
into enveloped HTTP responses.
"""

import time
from dataclasses import dataclass
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Optional

import structlog

from ..config import Settings, get_settings
from ..core.circuit_breaker import BreakerOptions, CircuitBreaker
from ..core.rate_limiter import InMemoryRateLimitStore, RateLimiter
from ..core.record_service import RecordService
from ..core.s3_client import open_s3_client
from ..errors import InvalidInputError, RecordNotFoundError, RecordServiceError
from ..types import ErrorCode, S3Client, Logger
from .events import ApiRequest, normalize_event
from .responses import cors_response, error_response, response_for_error

logger: Logger = structlog.get_logger(__name__)

S3ClientFactory = Callable[[Settings], AsyncContextManager[S3Client]]


@dataclass
class HandlerContext:
    request: ApiRequest
    service: RecordService
    breaker: CircuitBreaker
    settings: Settings


Endpoint = Callable[[HandlerContext], Awaitable[Dict[str, Any]]]


# Per-process protection state, shared by every handler in the same Lambda instance
_rate_limiter: Optional[RateLimiter] = None
_s3_breaker: Optional[CircuitBreaker] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            InMemoryRateLimitStore(),
            limit=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )
    return _rate_limiter


def get_s3_breaker() -> CircuitBreaker:
    global _s3_breaker
    if _s3_breaker is None:
        settings = get_settings()
        _s3_breaker = CircuitBreaker(
            "s3",
            BreakerOptions(
                failure_threshold=settings.BREAKER_FAILURE_THRESHOLD,
                reset_timeout=settings.BREAKER_RESET_TIMEOUT,
            ),
            exclude=(RecordNotFoundError, InvalidInputError),
        )
    return _s3_breaker


def reset_protection() -> None:
    """Forget rate-limit windows and breaker state."""
    global _rate_limiter, _s3_breaker
    _rate_limiter = None
    _s3_breaker = None


def client_identifier(request: ApiRequest) -> str:
    """Best-effort client IP for rate limiting."""
    ip = (
        request.headers.get("x-forwarded-for")
        or request.headers.get("x-real-ip")
        or request.source_ip
        or "unknown"
    )
    return ip.split(",")[0].strip() or "unknown"


async def handle_api_event(
    event: Dict[str, Any],
    context: Any,
    endpoint: Endpoint,
    settings: Optional[Settings] = None,
    s3_client_factory: S3ClientFactory = open_s3_client,
    rate_limiter: Optional[RateLimiter] = None,
    breaker: Optional[CircuitBreaker] = None,
) -> Dict[str, Any]:
    """Run one GET endpoint for an API Gateway event."""
    settings = settings or get_settings()
    start_time = time.time()
    structlog.contextvars.clear_contextvars()

    try:
        request = normalize_event(event)
    except InvalidInputError as e:
        logger.warning("Rejected malformed event", error=e.message)
        return response_for_error(e, settings.is_production)

    structlog.contextvars.bind_contextvars(
        request_id=request.request_id,
        method=request.method,
        path=request.path,
    )

    try:
        if request.method == "OPTIONS":
            return cors_response()
        if request.method != "GET":
            return error_response("Method not allowed", 405, ErrorCode.METHOD_NOT_ALLOWED)

        limiter = rate_limiter or get_rate_limiter()
        decision = limiter.check(client_identifier(request))
        if not decision.allowed:
            return error_response(
                "Too many requests",
                429,
                ErrorCode.RATE_LIMITED,
                headers={"Retry-After": str(decision.retry_after(limiter.now()))},
            )

        async with s3_client_factory(settings) as s3_client:
            handler_context = HandlerContext(
                request=request,
                service=RecordService.from_settings(s3_client, settings),
                breaker=breaker or get_s3_breaker(),
                settings=settings,
            )
            response = await endpoint(handler_context)

        logger.info(
            "Request completed",
            status_code=response["statusCode"],
            processing_time=round(time.time() - start_time, 3),
        )
        return response

    except RecordServiceError as e:
        logger.warning("Request failed", error=e.message, code=e.code.value)
        return response_for_error(e, settings.is_production)
    except Exception as e:
        logger.exception("Unhandled error in handler", error=str(e))
        return response_for_error(e, settings.is_production)
    finally:
        structlog.contextvars.clear_contextvars()
