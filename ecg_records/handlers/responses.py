"""HTTP response formatting for API Gateway.

Every body uses the same envelope::

    {"success": bool, "data": ..., "error": {"message": ..., "code": ..., "details": ...}}
"""

import json
from typing import Any, Dict, Optional

from ..errors import (
    BackendError,
    CircuitOpenError,
    InvalidInputError,
    RecordNotFoundError,
    RecordServiceError,
)
from ..types import ErrorCode

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Max-Age": "86400",
}


def build_response(
    status_code: int,
    body: Any,
    headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **CORS_HEADERS, **(headers or {})},
        "body": json.dumps(body),
        "isBase64Encoded": False,
    }


def success_response(data: Any, status_code: int = 200, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if metadata:
        body["metadata"] = metadata
    return build_response(status_code, body)


def error_response(
    message: str,
    status_code: int = 500,
    code: Optional[ErrorCode] = None,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"message": message}
    if code is not None:
        error["code"] = code.value
    if details:
        error["details"] = details
    return build_response(status_code, {"success": False, "error": error}, headers)


def cors_response() -> Dict[str, Any]:
    return build_response(200, {"success": True, "data": {"message": "CORS preflight"}})


def response_for_error(exc: Exception, production: bool = False) -> Dict[str, Any]:
    """Map a service exception to its HTTP response."""
    if isinstance(exc, InvalidInputError):
        return error_response(exc.message, 400, exc.code, exc.details)

    if isinstance(exc, RecordNotFoundError):
        return error_response(exc.message, 404, exc.code)

    if isinstance(exc, CircuitOpenError):
        return error_response("Service temporarily unavailable", 503, exc.code)

    if isinstance(exc, BackendError):
        if exc.access_denied:
            return error_response("Access denied", 403, ErrorCode.ACCESS_DENIED)
        message = "Storage backend error" if production else exc.message
        return error_response(message, 500, exc.code)

    if isinstance(exc, RecordServiceError):
        return error_response("Internal server error" if production else exc.message, 500, exc.code)

    message = "Internal server error" if production else (str(exc) or "Unknown error")
    return error_response(message, 500, ErrorCode.INTERNAL_ERROR)
