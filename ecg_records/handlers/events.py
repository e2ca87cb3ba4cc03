"""API Gateway event normalisation.

REST APIs (payload v1) and HTTP APIs (payload v2) deliver differently shaped
events. Both are parsed into a tagged union of pydantic models and flattened
into a single :class:`ApiRequest` at the boundary.
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, ValidationError
from ulid import new as new_ulid

from ..errors import InvalidInputError, MissingParameterError


class _EventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RestIdentity(_EventModel):
    source_ip: Optional[str] = Field(None, alias="sourceIp")


class RestRequestContext(_EventModel):
    request_id: Optional[str] = Field(None, alias="requestId")
    identity: Optional[RestIdentity] = None


class RestApiEvent(_EventModel):
    """API Gateway REST API (payload format 1.0)."""
    http_method: str = Field(alias="httpMethod")
    path: str = "/"
    headers: Optional[Dict[str, Optional[str]]] = None
    query: Optional[Dict[str, Optional[str]]] = Field(None, alias="queryStringParameters")
    request_context: RestRequestContext = Field(default_factory=RestRequestContext, alias="requestContext")


class HttpDescription(_EventModel):
    method: str
    path: str = "/"
    source_ip: Optional[str] = Field(None, alias="sourceIp")


class HttpRequestContext(_EventModel):
    request_id: Optional[str] = Field(None, alias="requestId")
    http: Optional[HttpDescription] = None


class HttpApiEvent(_EventModel):
    """API Gateway HTTP API (payload format 2.0)."""
    version: str = "2.0"
    route_key: Optional[str] = Field(None, alias="routeKey")
    raw_path: Optional[str] = Field(None, alias="rawPath")
    headers: Optional[Dict[str, Optional[str]]] = None
    query: Optional[Dict[str, Optional[str]]] = Field(None, alias="queryStringParameters")
    request_context: HttpRequestContext = Field(default_factory=HttpRequestContext, alias="requestContext")


def _event_kind(value: Any) -> str:
    if isinstance(value, dict):
        context = value.get("requestContext") or {}
        if value.get("version") == "2.0" or "http" in context:
            return "http"
        return "rest"
    return "http" if isinstance(value, HttpApiEvent) else "rest"


ApiGatewayEvent = Annotated[
    Union[
        Annotated[RestApiEvent, Tag("rest")],
        Annotated[HttpApiEvent, Tag("http")],
    ],
    Discriminator(_event_kind),
]

_event_adapter: TypeAdapter = TypeAdapter(ApiGatewayEvent)


@dataclass
class ApiRequest:
    """Transport-neutral view of an incoming request."""
    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    source_ip: Optional[str] = None
    request_id: str = ""

    def require(self, name: str) -> str:
        """Return a non-empty query parameter or raise MissingParameterError."""
        value = (self.query.get(name) or "").strip()
        if not value:
            raise MissingParameterError(f"Missing required parameter: {name}", field=name)
        return value


def _clean(mapping: Optional[Dict[str, Optional[str]]], lower: bool = False) -> Dict[str, str]:
    if not mapping:
        return {}
    return {
        (key.lower() if lower else key): value
        for key, value in mapping.items()
        if value is not None
    }


def normalize_event(event: Dict[str, Any]) -> ApiRequest:
    """Flatten a v1 or v2 API Gateway event into an ApiRequest.

    Raises:
        InvalidInputError: If the event matches neither payload format
    """
    if not isinstance(event, dict):
        raise InvalidInputError("Event must be a JSON object")
    try:
        parsed = _event_adapter.validate_python(event)
    except ValidationError as e:
        raise InvalidInputError("Malformed API Gateway event", field="event") from e

    if isinstance(parsed, HttpApiEvent):
        http = parsed.request_context.http
        if http is not None:
            method, path, source_ip = http.method, http.path, http.source_ip
        elif parsed.route_key and " " in parsed.route_key:
            method, path = parsed.route_key.split(" ", 1)
            source_ip = None
        else:
            raise InvalidInputError("HTTP API event has no method", field="requestContext")
        path = parsed.raw_path or path
    else:
        method, path = parsed.http_method, parsed.path
        identity = parsed.request_context.identity
        source_ip = identity.source_ip if identity else None

    return ApiRequest(
        method=method.upper(),
        path=path,
        query=_clean(parsed.query),
        headers=_clean(parsed.headers, lower=True),
        source_ip=source_ip,
        request_id=parsed.request_context.request_id or str(new_ulid()),
    )
