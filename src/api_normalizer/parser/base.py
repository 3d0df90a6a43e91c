"""Canonical data model for normalized API documentation.

Both normalizers (structured OpenAPI/Swagger and heuristic free text)
produce these models, so downstream consumers never need to know which
parser ran. Models are frozen and hold tuples rather than lists, so a spec
is a read-only value once returned.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
ParamLocation = Literal["path", "query", "header", "cookie"]
AuthType = Literal["apiKey", "bearer", "basic", "oauth2", "none", "unknown"]
SourceType = Literal["openapi", "text"]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE")


class CanonicalModel(BaseModel):
    """Shared config: immutable, camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AuthScheme(CanonicalModel):
    """The single authentication scheme of an API."""

    type: AuthType
    header_name: str | None = None
    query_param_name: str | None = None
    scheme: str | None = None
    description: str = ""
    flows: dict[str, Any] | None = None


class Parameter(CanonicalModel):
    """A single non-body parameter (path, query, header, or cookie)."""

    name: str
    location: ParamLocation = Field(alias="in")
    required: bool = False
    description: str = ""
    type: str = "string"  # string / integer / number / boolean / array / object
    default: str | None = None
    enum: tuple[str, ...] | None = None
    example: str | None = None


class SchemaField(CanonicalModel):
    """One field of a flattened request/response schema."""

    name: str
    type: str = "string"
    required: bool = False
    description: str = ""
    default: Any = None
    enum: tuple[Any, ...] | None = None
    example: Any = None
    nested: tuple["SchemaField", ...] | None = None


class RequestBody(CanonicalModel):
    required: bool = False
    content_type: str = "application/json"
    schema_fields: tuple[SchemaField, ...] = Field(default_factory=tuple, alias="schema")
    example: Any = None


class ResponseDef(CanonicalModel):
    status_code: str  # "200", "404", "default", ...
    description: str = ""
    schema_fields: tuple[SchemaField, ...] = Field(default_factory=tuple, alias="schema")
    example: Any = None


class Endpoint(CanonicalModel):
    """A single HTTP operation."""

    id: str
    method: HttpMethod
    path: str  # /users/{id}
    summary: str = ""
    description: str = ""
    tag: str = "default"
    operation_id: str | None = None
    parameters: tuple[Parameter, ...] = ()
    request_body: RequestBody | None = None
    responses: tuple[ResponseDef, ...] = ()
    auth: bool = False
    deprecated: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path


class TagGroup(CanonicalModel):
    name: str
    description: str | None = None
    endpoint_ids: tuple[str, ...] = ()


class PaginationHint(CanonicalModel):
    type: Literal["cursor", "offset", "page", "unknown"]
    parameters: tuple[str, ...] = ()
    description: str = ""


class RateLimitHint(CanonicalModel):
    status_code: int = 429
    retry_header: str | None = "Retry-After"
    description: str = ""


class ApiSpec(CanonicalModel):
    """Root aggregate describing a whole HTTP API."""

    title: str = "Untitled API"
    description: str = ""
    version: str = "1.0.0"
    base_url: str
    auth: AuthScheme
    endpoints: tuple[Endpoint, ...] = ()
    tags: tuple[TagGroup, ...] = ()
    pagination_hints: tuple[PaginationHint, ...] = ()
    rate_limit_hints: tuple[RateLimitHint, ...] = ()
    source_type: SourceType

    def tag_map(self) -> dict[str, list[str]]:
        """Return {tag name: endpoint ids} in declaration order."""
        return {group.name: list(group.endpoint_ids) for group in self.tags}

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.id == endpoint_id:
                return endpoint
        return None


class ParseResult(CanonicalModel):
    """A normalized spec plus the diagnostics collected while building it."""

    spec: ApiSpec
    warnings: tuple[str, ...] = ()
    todos: tuple[str, ...] = ()


def build_tag_groups(
    endpoints: list[Endpoint],
    declared: list[TagGroup] | None = None,
) -> list[TagGroup]:
    """Group endpoint ids by tag, keeping declared tags (and their order) first."""
    groups: dict[str, dict[str, Any]] = {}
    for group in declared or []:
        groups.setdefault(group.name, {"description": group.description, "ids": []})

    for endpoint in endpoints:
        tag = endpoint.tag or "default"
        groups.setdefault(tag, {"description": None, "ids": []})["ids"].append(endpoint.id)

    return [
        TagGroup(name=name, description=data["description"], endpoint_ids=data["ids"])
        for name, data in groups.items()
    ]
