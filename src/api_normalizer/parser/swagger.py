"""OpenAPI / Swagger document normalizer.

Normalizes OpenAPI 3.x and Swagger 2.0 documents (JSON or YAML) into the
canonical ApiSpec model. The document version is resolved once up front;
every helper then branches on ``SpecVersion`` instead of re-sniffing keys.
"""

import enum
import json
import logging
import re
from typing import Any

import yaml

from api_normalizer.config import NormalizerSettings
from api_normalizer.errors import ParseError
from api_normalizer.parser.base import (
    HTTP_METHODS,
    ApiSpec,
    AuthScheme,
    Endpoint,
    PaginationHint,
    Parameter,
    ParseResult,
    RateLimitHint,
    RequestBody,
    ResponseDef,
    SchemaField,
    TagGroup,
    build_tag_groups,
)
from api_normalizer.parser.diagnostics import Diagnostics

logger = logging.getLogger(__name__)

PARAM_LOCATIONS = ("path", "query", "header", "cookie")

PAGINATION_KEYWORDS = {"page", "limit", "offset", "cursor", "after", "before", "per_page", "pagesize", "page_size"}
CURSOR_KEYWORDS = {"cursor", "after", "before"}


class SpecVersion(enum.Enum):
    SWAGGER2 = "swagger2"
    OPENAPI3 = "openapi3"


def parse_openapi(content: str, settings: NormalizerSettings | None = None) -> ParseResult:
    """Normalize an OpenAPI/Swagger document into an ApiSpec.

    Raises ParseError when ``content`` is neither valid JSON nor valid YAML.
    """
    doc = load_document(content)
    return OpenApiNormalizer(doc, settings).normalize()


def load_document(content: str) -> dict:
    """Decode ``content`` as JSON, falling back to YAML."""
    try:
        doc = json.loads(content)
    except (json.JSONDecodeError, ValueError):
        try:
            doc = yaml.safe_load(content)
        except (yaml.YAMLError, ValueError) as e:
            # PyYAML constructors raise plain ValueError, e.g. for an impossible date
            raise ParseError("Could not parse input as JSON or YAML") from e

    if not isinstance(doc, dict):
        logger.debug("Document root is %s, not a mapping; treating it as empty", type(doc).__name__)
        return {}
    return doc


class OpenApiNormalizer:
    """Builds one ApiSpec from one decoded OpenAPI/Swagger document."""

    def __init__(self, doc: dict, settings: NormalizerSettings | None = None):
        self.doc = doc
        self.settings = settings or NormalizerSettings()
        self.version = SpecVersion.SWAGGER2 if "swagger" in doc else SpecVersion.OPENAPI3

    def normalize(self) -> ParseResult:
        diagnostics = Diagnostics()
        info = _mapping(self.doc.get("info"))

        base_url = self.base_url()
        if not base_url:
            diagnostics.todo("Base URL could not be determined; please set it manually.")

        auth = self.auth_scheme(diagnostics)
        endpoints = self.endpoints()
        declared_tags = [
            TagGroup(name=str(t["name"]), description=_text(t.get("description")) or None)
            for t in _as_list(self.doc.get("tags"))
            if isinstance(t, dict) and t.get("name")
        ]

        spec = ApiSpec(
            title=_text(info.get("title")) or "Untitled API",
            description=_text(info.get("description")),
            version=_text(info.get("version")) or "1.0.0",
            base_url=base_url or self.settings.placeholder_base_url,
            auth=auth,
            endpoints=endpoints,
            tags=build_tag_groups(endpoints, declared_tags),
            pagination_hints=detect_pagination(endpoints),
            rate_limit_hints=detect_rate_limits(endpoints),
            source_type="openapi",
        )
        logger.info("Normalized %s document: %d endpoints", self.version.value, len(endpoints))
        return diagnostics.result(spec)

    # -- base URL -------------------------------------------------------------

    def base_url(self) -> str | None:
        if self.version is SpecVersion.SWAGGER2:
            host = self.doc.get("host")
            if not host:
                return None
            schemes = self.doc.get("schemes") or ["https"]
            if isinstance(schemes, str):
                schemes = [schemes]
            base_path = _text(self.doc.get("basePath")).rstrip("/")
            return f"{schemes[0]}://{host}{base_path}"

        servers = _as_list(self.doc.get("servers"))
        if servers and isinstance(servers[0], dict) and servers[0].get("url"):
            return _text(servers[0]["url"])
        return None

    # -- auth -----------------------------------------------------------------

    def auth_scheme(self, diagnostics: Diagnostics) -> AuthScheme:
        if self.version is SpecVersion.SWAGGER2:
            schemes = self.doc.get("securityDefinitions")
        else:
            schemes = _mapping(self.doc.get("components")).get("securitySchemes")

        if not isinstance(schemes, dict) or not schemes:
            diagnostics.warn("No security schemes found; the API might be public or its auth docs are missing.")
            return AuthScheme(type="none", description="No authentication detected.")

        name, first = next(iter(schemes.items()))
        if len(schemes) > 1:
            logger.info("%d security schemes declared, using the first one (%s)", len(schemes), name)
        first = self._resolve(first) or {}

        raw_type = _text(first.get("type"))
        scheme_type = raw_type.lower()
        description = _text(first.get("description"))

        if scheme_type == "apikey":
            location = first.get("in")
            key_name = _text(first.get("name")) or None
            return AuthScheme(
                type="apiKey",
                header_name=key_name if location == "header" else None,
                query_param_name=key_name if location == "query" else None,
                description=description or f"API Key in {location}: {key_name}",
            )
        if scheme_type == "http":
            http_scheme = _text(first.get("scheme")).lower()
            if http_scheme == "bearer":
                return AuthScheme(type="bearer", scheme="bearer", description=description or "Bearer token authentication")
            if http_scheme == "basic":
                return AuthScheme(type="basic", scheme="basic", description=description or "Basic authentication")
            return AuthScheme(
                type="basic",
                scheme=http_scheme or None,
                description=description or f"HTTP authentication (scheme: {http_scheme or 'unspecified'})",
            )
        if scheme_type == "basic":
            return AuthScheme(type="basic", scheme="basic", description=description or "Basic authentication")
        if scheme_type == "oauth2":
            return AuthScheme(
                type="oauth2",
                description=description or "OAuth 2.0 authentication",
                flows=self._oauth_flows(first),
            )

        return AuthScheme(type="unknown", description=f"Detected scheme type: {raw_type}")

    def _oauth_flows(self, scheme: dict) -> dict | None:
        if self.version is SpecVersion.OPENAPI3:
            flows = scheme.get("flows")
            return flows if isinstance(flows, dict) else None

        flow = scheme.get("flow")
        if not flow:
            return None
        details = {key: scheme[key] for key in ("authorizationUrl", "tokenUrl", "scopes") if key in scheme}
        return {str(flow): details}

    # -- endpoints ------------------------------------------------------------

    def endpoints(self) -> list[Endpoint]:
        endpoints: list[Endpoint] = []
        seen_ids: set[str] = set()

        for path, path_item in _mapping(self.doc.get("paths")).items():
            path_item = self._resolve(path_item)
            if not path_item:
                continue
            for method in HTTP_METHODS:
                operation = path_item.get(method.lower())
                if not isinstance(operation, dict):
                    continue
                endpoint = self._endpoint(str(path), method, operation, path_item)
                if endpoint.id in seen_ids:
                    logger.debug("Dropping %s %s: duplicate id %r", method, path, endpoint.id)
                    continue
                seen_ids.add(endpoint.id)
                endpoints.append(endpoint)

        return endpoints

    def _endpoint(self, path: str, method: str, operation: dict, path_item: dict) -> Endpoint:
        operation_id = _text(operation.get("operationId")) or None
        tags = [t for t in _as_list(operation.get("tags")) if t]
        raw_params = [
            p for p in (self._resolve(p) for p in _as_list(path_item.get("parameters")) + _as_list(operation.get("parameters")))
            if p
        ]

        if "security" in operation:
            auth = bool(operation.get("security"))
        else:
            auth = bool(self.doc.get("security"))

        summary = _text(operation.get("summary"))
        logger.debug("Extracting %s %s", method, path)
        return Endpoint(
            id=operation_id or f"{method}_{re.sub(r'[{}/]', '_', path)}",
            method=method,
            path=path,
            summary=summary,
            description=_text(operation.get("description")) or summary,
            tag=str(tags[0]) if tags else "default",
            operation_id=operation_id,
            parameters=[self._parameter(p) for p in raw_params if p.get("in") in PARAM_LOCATIONS and p.get("name")],
            request_body=self._request_body(operation, raw_params),
            responses=self._responses(operation),
            auth=auth,
            deprecated=bool(operation.get("deprecated")),
        )

    def _parameter(self, param: dict) -> Parameter:
        schema = self._resolve(param.get("schema")) or {}
        return Parameter(
            name=str(param["name"]),
            location=param["in"],
            required=bool(param.get("required")),
            description=_text(param.get("description")),
            type=_text(param.get("type")) or _schema_type(schema) or "string",
            default=_stringify(_first_present("default", param, schema)),
            enum=_string_list(_first_present("enum", param, schema)),
            example=_stringify(_first_present("example", param, schema)),
        )

    # -- request bodies -------------------------------------------------------

    def _request_body(self, operation: dict, raw_params: list[dict]) -> RequestBody | None:
        if self.version is SpecVersion.SWAGGER2:
            return self._swagger2_body(operation, raw_params)

        body = self._resolve(operation.get("requestBody"))
        if not body:
            return None
        content = body.get("content")
        if not isinstance(content, dict) or not content:
            return None

        content_type, media = _pick_media(content)
        return RequestBody(
            required=bool(body.get("required")),
            content_type=content_type,
            schema_fields=self.flatten_schema(media.get("schema")),
            example=self._media_example(media),
        )

    def _swagger2_body(self, operation: dict, raw_params: list[dict]) -> RequestBody | None:
        consumes = [str(c) for c in _as_list(operation.get("consumes") or self.doc.get("consumes"))]

        body_params = [p for p in raw_params if p.get("in") == "body"]
        if body_params:
            body = body_params[0]
            schema = self._resolve(body.get("schema")) or {}
            if "application/json" in consumes or not consumes:
                content_type = "application/json"
            else:
                content_type = consumes[0]
            return RequestBody(
                required=bool(body.get("required")),
                content_type=content_type,
                schema_fields=self.flatten_schema(body.get("schema")),
                example=schema.get("example"),
            )

        form_params = [p for p in raw_params if p.get("in") == "formData" and p.get("name")]
        if not form_params:
            return None
        if any(p.get("type") == "file" for p in form_params) or "multipart/form-data" in consumes:
            content_type = "multipart/form-data"
        else:
            content_type = "application/x-www-form-urlencoded"
        fields = [
            SchemaField(
                name=str(p["name"]),
                type=_text(p.get("type")) or "string",
                required=bool(p.get("required")),
                description=_text(p.get("description")),
                default=p.get("default"),
                enum=_as_list(p.get("enum")) or None,
            )
            for p in form_params
        ]
        return RequestBody(
            required=any(f.required for f in fields),
            content_type=content_type,
            schema_fields=fields,
        )

    def _media_example(self, media: dict) -> Any:
        if "example" in media:
            return media["example"]
        examples = media.get("examples")
        if isinstance(examples, dict):
            for example in examples.values():
                example = self._resolve(example) or {}
                if "value" in example:
                    return example["value"]
        return (self._resolve(media.get("schema")) or {}).get("example")

    # -- responses ------------------------------------------------------------

    def _responses(self, operation: dict) -> list[ResponseDef]:
        result = []
        for status_code, response in _mapping(operation.get("responses")).items():
            response = self._resolve(response) or {}
            schema_fields: list[SchemaField] = []
            example = None

            content = response.get("content")
            if isinstance(content, dict) and content:
                _, media = _pick_media(content)
                schema_fields = self.flatten_schema(media.get("schema"))
                example = self._media_example(media)
            elif response.get("schema") is not None:
                schema_fields = self.flatten_schema(response["schema"])
                examples = response.get("examples")
                if isinstance(examples, dict) and examples:
                    example = examples.get("application/json", next(iter(examples.values())))

            result.append(
                ResponseDef(
                    status_code=str(status_code),
                    description=_text(response.get("description")),
                    schema_fields=schema_fields,
                    example=example,
                )
            )
        return result

    # -- schemas --------------------------------------------------------------

    def flatten_schema(self, schema: Any, depth: int = 0, _expanding: frozenset = frozenset()) -> list[SchemaField]:
        """Flatten a JSON-Schema-like object into an ordered list of fields.

        Objects expand to one field per property, arrays to a single ``items``
        field and anything else to a single ``value`` field. A schema that is
        already being expanded further up the chain (a recursive ``$ref`` or a
        cyclic YAML anchor) becomes a terminal object field. Recursion also
        stops at ``max_schema_depth``, where the schema becomes a terminal
        ``value``.
        """
        schema = self._resolve(schema)
        if schema is None:
            return []
        if id(schema) in _expanding:
            return [SchemaField(name="value", type="object", description="Recursive reference")]
        expanding = _expanding | {id(schema)}
        schema = self._merge_all_of(schema)
        schema_type = _schema_type(schema)
        description = _text(schema.get("description"))

        if depth >= self.settings.max_schema_depth:
            logger.warning("Schema nesting exceeds %d levels; truncating", self.settings.max_schema_depth)
            return [SchemaField(name="value", type=schema_type or "object", description=description)]

        if schema_type == "object" or "properties" in schema:
            required = {r for r in _as_list(schema.get("required")) if isinstance(r, str)}
            fields = []
            for name, prop in _mapping(schema.get("properties")).items():
                resolved = self._resolve(prop) or {}
                prop = self._merge_all_of(resolved)
                prop_type = _schema_type(prop) or "string"
                nested = None
                if id(resolved) in expanding:
                    # Back-reference to an enclosing schema: keep the field, do not expand it.
                    prop_type = "object"
                elif prop_type in ("object", "array") or "properties" in prop:
                    nested = self.flatten_schema(resolved, depth + 1, expanding)
                fields.append(
                    SchemaField(
                        name=str(name),
                        type=prop_type,
                        required=name in required,
                        description=_text(prop.get("description")),
                        default=prop.get("default"),
                        enum=_as_list(prop.get("enum")) or None,
                        example=prop.get("example"),
                        nested=nested,
                    )
                )
            return fields

        if schema_type == "array":
            return [
                SchemaField(
                    name="items",
                    type="array",
                    description=description or "Array items",
                    nested=self.flatten_schema(schema.get("items"), depth + 1, expanding),
                )
            ]

        return [
            SchemaField(
                name="value",
                type=schema_type or "string",
                description=description,
                default=schema.get("default"),
                enum=_as_list(schema.get("enum")) or None,
                example=schema.get("example"),
            )
        ]

    def _merge_all_of(self, schema: dict) -> dict:
        """Fold ``allOf`` members into one object schema (properties and required only)."""
        parts = _as_list(schema.get("allOf"))
        if not parts:
            return schema
        merged = {k: v for k, v in schema.items() if k != "allOf"}
        properties = dict(_mapping(merged.get("properties")))
        required = list(_as_list(merged.get("required")))
        for part in parts:
            part = self._resolve(part) or {}
            properties.update(_mapping(part.get("properties")))
            required.extend(_as_list(part.get("required")))
            for key in ("type", "description", "example"):
                if key in part and key not in merged:
                    merged[key] = part[key]
        if properties:
            merged["properties"] = properties
        if required:
            merged["required"] = required
        return merged

    # -- $ref -----------------------------------------------------------------

    def _resolve(self, node: Any) -> dict | None:
        """Follow local ``$ref`` pointers. Unresolvable refs become ``{}``."""
        seen: set[str] = set()
        while isinstance(node, dict) and isinstance(node.get("$ref"), str):
            ref = node["$ref"]
            if ref in seen or not ref.startswith("#/"):
                logger.debug("Cannot resolve $ref %r", ref)
                return {}
            seen.add(ref)
            node = self._lookup(ref)
        return node if isinstance(node, dict) else None

    def _lookup(self, ref: str) -> Any:
        target: Any = self.doc
        for token in ref[2:].split("/"):
            token = token.replace("~1", "/").replace("~0", "~")
            if isinstance(target, dict) and token in target:
                target = target[token]
            elif isinstance(target, list) and token.isdigit() and int(token) < len(target):
                target = target[int(token)]
            else:
                return {}
        return target


# -- cross-cutting hints -------------------------------------------------------


def detect_pagination(endpoints: list[Endpoint]) -> list[PaginationHint]:
    """One hint per distinct pagination parameter name, first occurrence wins."""
    hints = []
    seen: set[str] = set()
    for endpoint in endpoints:
        for param in endpoint.parameters:
            lower_name = param.name.lower()
            if lower_name not in PAGINATION_KEYWORDS or lower_name in seen:
                continue
            seen.add(lower_name)
            if lower_name in CURSOR_KEYWORDS:
                hint_type = "cursor"
            elif lower_name == "offset":
                hint_type = "offset"
            else:
                hint_type = "page"
            hints.append(
                PaginationHint(
                    type=hint_type,
                    parameters=[param.name],
                    description=param.description or f"Pagination parameter: {param.name}",
                )
            )
    return hints


def detect_rate_limits(endpoints: list[Endpoint]) -> list[RateLimitHint]:
    """A single hint from the first endpoint that documents a 429 response."""
    for endpoint in endpoints:
        for response in endpoint.responses:
            if response.status_code == "429":
                return [
                    RateLimitHint(
                        status_code=429,
                        retry_header="Retry-After",
                        description=response.description or "Rate limit exceeded; wait and retry.",
                    )
                ]
    return []


# -- helpers -------------------------------------------------------------------


def _pick_media(content: dict) -> tuple[str, dict]:
    """Prefer application/json, else the first declared media type."""
    if "application/json" in content:
        content_type = "application/json"
    else:
        content_type = next(iter(content))
    media = content[content_type]
    return str(content_type), media if isinstance(media, dict) else {}


def _schema_type(schema: dict) -> str | None:
    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        # OpenAPI 3.1 allows ["string", "null"]
        schema_type = next((t for t in schema_type if t != "null"), None)
    if schema_type:
        return str(schema_type)
    if "properties" in schema:
        return "object"
    if "items" in schema:
        return "array"
    return None


def _first_present(key: str, *sources: dict) -> Any:
    for source in sources:
        if key in source:
            return source[key]
    return None


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, default=str)


def _string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [_stringify(v) or "" for v in value]


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
