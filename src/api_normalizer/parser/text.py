"""Free-text / Markdown API documentation normalizer.

Recovers the base URL, auth scheme, endpoints and pagination/rate-limit
conventions from unstructured docs using ordered regex rules. Extraction is
best effort: it never raises, and whatever cannot be found is reported as a
warning or todo on the result.
"""

import logging
import re
from urllib.parse import parse_qsl, urlsplit

from api_normalizer.config import NormalizerSettings
from api_normalizer.parser.base import (
    HTTP_METHODS,
    ApiSpec,
    AuthScheme,
    Endpoint,
    PaginationHint,
    Parameter,
    ParseResult,
    RateLimitHint,
    ResponseDef,
    build_tag_groups,
)
from api_normalizer.parser.diagnostics import Diagnostics

logger = logging.getLogger(__name__)

_H1 = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_HEADING = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)

_LABELED_URL = re.compile(
    r"(?:base\s*url|api\s*url|endpoint|server|host)[:\s*]*[`\"'<(]?\s*(https?://[^\s\"'`<>)]+)",
    re.IGNORECASE,
)
_ANY_URL = re.compile(r"(https?://[a-zA-Z0-9][-a-zA-Z0-9.]*(?:/api)?(?:/v\d+)?)")

_BEARER = re.compile(r"bearer\s*token|authorization:\s*bearer", re.IGNORECASE)
_API_KEY = re.compile(r"x-api-key|api[_-]?key", re.IGNORECASE)
_API_KEY_QUERY = re.compile(r"[?&](api[_-]?key)=", re.IGNORECASE)

_METHOD = r"(GET|POST|PUT|PATCH|DELETE)"
_PATH = r"(/[a-zA-Z0-9_\-{}/:.]+)"
# Bare text, `code span` and **bold** surface forms, evaluated in this order.
ENDPOINT_PATTERNS = (
    re.compile(rf"\b{_METHOD}\s+{_PATH}", re.IGNORECASE),
    re.compile(rf"`{_METHOD}\s+{_PATH}`", re.IGNORECASE),
    re.compile(rf"\*\*{_METHOD}\*\*\s+{_PATH}", re.IGNORECASE),
)

# A curl command at line start (optionally after a `$ ` prompt or an opening
# backtick) whose first argument is an option or a URL.
_CURL_COMMAND = re.compile(
    r"(?:^|`)[ \t]*(?:\$[ \t]*)?curl[ \t]+((?:-|['\"]?https?://)(?:[^\n]*\\\r?\n)*[^\n]*)",
    re.IGNORECASE | re.MULTILINE,
)
_CURL_METHOD = re.compile(rf"(?:-X|--request)\s*['\"]?{_METHOD}\b", re.IGNORECASE)
_CURL_DATA = re.compile(r"(?:^|\s)(?:-d|-F|--data(?:-raw|-binary|-urlencode)?|--form)\b")
_CURL_URL = re.compile(r"https?://[^\s'\"\\`<>]+")

_PATH_PARAM = re.compile(r"\{([^}]+)\}|(?<=/):([A-Za-z_][A-Za-z0-9_]*)")


def parse_text(content: str, settings: NormalizerSettings | None = None) -> ParseResult:
    """Normalize free-text documentation into an ApiSpec. Never raises."""
    settings = settings or NormalizerSettings()
    diagnostics = Diagnostics()

    if len(content) > settings.max_text_chars:
        diagnostics.warn(
            f"Documentation text exceeds {settings.max_text_chars} characters; only the beginning was scanned."
        )
        content = content[: settings.max_text_chars]

    base_url = extract_base_url(content)
    if not base_url:
        diagnostics.todo("Base URL could not be determined from the text; please provide it.")

    auth = extract_auth(content, diagnostics)
    endpoints = extract_endpoints(content, settings)
    if not endpoints:
        diagnostics.warn("No endpoints could be extracted from the documentation text.")
        diagnostics.todo("Manually add endpoint definitions; the parser could not detect any.")

    spec = ApiSpec(
        title=extract_title(content) or "Untitled API",
        description=extract_description(content, settings.description_chars),
        version="1.0.0",
        base_url=base_url or settings.placeholder_base_url,
        auth=auth,
        endpoints=endpoints,
        tags=build_tag_groups(endpoints),
        pagination_hints=extract_pagination_hints(content),
        rate_limit_hints=extract_rate_limit_hints(content),
        source_type="text",
    )
    logger.info("Extracted %d endpoints from free text", len(endpoints))
    return diagnostics.result(spec)


# -- metadata ------------------------------------------------------------------


def extract_title(text: str) -> str | None:
    h1 = _H1.search(text)
    if h1:
        return h1.group(1).strip()
    lines = _non_blank_lines(text)
    if lines and len(lines[0]) < 80:
        return lines[0]
    return None


def extract_description(text: str, limit: int = 200) -> str:
    return " ".join(_non_blank_lines(text)[:3])[:limit]


def extract_base_url(text: str) -> str | None:
    match = _LABELED_URL.search(text)
    if not match:
        match = _ANY_URL.search(text)
    if not match:
        return None
    return re.sub(r"[/.,;:]+$", "", match.group(1)) or None


# -- auth ----------------------------------------------------------------------


def extract_auth(text: str, diagnostics: Diagnostics) -> AuthScheme:
    """First match wins: bearer, api key, basic, oauth."""
    if _BEARER.search(text):
        return AuthScheme(type="bearer", scheme="bearer", description="Bearer token authentication (detected from docs)")

    key_match = _API_KEY.search(text)
    if key_match:
        query_match = _API_KEY_QUERY.search(text)
        if query_match:
            return AuthScheme(
                type="apiKey",
                query_param_name=query_match.group(1),
                description="API Key authentication in query string (detected from docs)",
            )
        token = key_match.group(0)
        return AuthScheme(
            type="apiKey",
            header_name=token if "-" in token else "X-API-Key",
            description="API Key authentication (detected from docs)",
        )

    lower = text.lower()
    if "basic auth" in lower:
        return AuthScheme(type="basic", scheme="basic", description="Basic authentication (detected from docs)")
    if "oauth" in lower:
        return AuthScheme(type="oauth2", description="OAuth 2.0 (detected from docs)")

    diagnostics.warn("Authentication method could not be determined from the text.")
    return AuthScheme(type="unknown", description="Authentication method not detected; please specify.")


# -- endpoints -----------------------------------------------------------------


class _EndpointCollector:
    """Ordered endpoints, deduplicated by (method, path) and by id."""

    def __init__(self):
        self.endpoints: list[Endpoint] = []
        self._keys: set[tuple[str, str]] = set()
        self._ids: set[str] = set()

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._keys

    def add(self, endpoint: Endpoint) -> None:
        if endpoint.key in self._keys or endpoint.id in self._ids:
            logger.debug("Skipping duplicate endpoint %s %s", endpoint.method, endpoint.path)
            return
        self._keys.add(endpoint.key)
        self._ids.add(endpoint.id)
        self.endpoints.append(endpoint)


def extract_endpoints(text: str, settings: NormalizerSettings | None = None) -> list[Endpoint]:
    settings = settings or NormalizerSettings()
    collector = _EndpointCollector()

    for pattern in ENDPOINT_PATTERNS:
        for match in pattern.finditer(text):
            method = match.group(1).upper()
            path = match.group(2).rstrip(".:") or "/"
            if method not in HTTP_METHODS or (method, path) in collector:
                continue

            start = max(0, match.start() - settings.context_radius)
            context = text[start : match.start() + settings.context_radius]
            collector.add(
                Endpoint(
                    id=endpoint_id(method, path),
                    method=method,
                    path=path,
                    summary=_summary_from_context(context, match.start() - start, method, path),
                    description=" ".join(context.split())[: settings.description_chars],
                    tag=guess_tag(path),
                    parameters=path_parameters(path),
                    responses=[ResponseDef(status_code="200", description="Successful response")],
                    auth=True,
                )
            )

    for endpoint in _curl_endpoints(text):
        collector.add(endpoint)

    return collector.endpoints


def _curl_endpoints(text: str) -> list[Endpoint]:
    endpoints = []
    for match in _CURL_COMMAND.finditer(text):
        command = match.group(1)
        url_match = _CURL_URL.search(command)
        if not url_match:
            continue

        method_match = _CURL_METHOD.search(command)
        if method_match:
            method = method_match.group(1).upper()
        elif _CURL_DATA.search(command):
            method = "POST"
        else:
            method = "GET"

        url = urlsplit(url_match.group(0))
        path = url.path or "/"
        params = path_parameters(path)
        seen = {p.name for p in params}
        for name, value in parse_qsl(url.query, keep_blank_values=True):
            if name in seen:
                continue
            seen.add(name)
            params.append(Parameter(name=name, location="query", example=value or None))

        endpoints.append(
            Endpoint(
                id=endpoint_id(method, path),
                method=method,
                path=path,
                summary=f"{method} {path}",
                description="Extracted from curl example",
                tag=guess_tag(path),
                parameters=params,
                responses=[ResponseDef(status_code="200", description="Successful response")],
                auth=True,
            )
        )
    return endpoints


def endpoint_id(method: str, path: str) -> str:
    return f"{method.lower()}_{re.sub(r'[{}/:.]', '_', path)}"


def path_parameters(path: str) -> list[Parameter]:
    """Path parameters from ``{name}`` and ``:name`` segments; always required strings."""
    params = []
    seen = set()
    for match in _PATH_PARAM.finditer(path):
        name = match.group(1) or match.group(2)
        if name in seen:
            continue
        seen.add(name)
        params.append(
            Parameter(
                name=name,
                location="path",
                required=True,
                description=f"Path parameter: {name}",
                type="string",
            )
        )
    return params


def guess_tag(path: str) -> str:
    segments = [s for s in path.split("/") if s and not s.startswith(("{", ":"))]
    if len(segments) >= 2:
        return _capitalize(segments[1])
    if segments:
        return _capitalize(segments[0])
    return "default"


def _summary_from_context(context: str, offset: int, method: str, path: str) -> str:
    """Nearest markdown heading at or before the match, else the first one after it."""
    headings = list(_HEADING.finditer(context))
    before = [h for h in headings if h.start() <= offset]
    if before:
        return before[-1].group(1).strip()
    if headings:
        return headings[0].group(1).strip()
    return f"{method} {path}"


# -- cross-cutting hints -------------------------------------------------------


def extract_pagination_hints(text: str) -> list[PaginationHint]:
    """Independent lexical checks; more than one hint type may fire."""
    lower = text.lower()
    hints = []
    if re.search(r"\bcursor\b", lower) or re.search(r"\bafter\b", lower):
        hints.append(PaginationHint(type="cursor", parameters=["cursor"], description="Cursor-based pagination detected"))
    if re.search(r"\boffset\b", lower) and re.search(r"\blimit\b", lower):
        hints.append(
            PaginationHint(type="offset", parameters=["offset", "limit"], description="Offset-based pagination detected")
        )
    if re.search(r"\bpage\b", lower) and re.search(r"\bper_page\b", lower):
        hints.append(
            PaginationHint(type="page", parameters=["page", "per_page"], description="Page-based pagination detected")
        )
    return hints


def extract_rate_limit_hints(text: str) -> list[RateLimitHint]:
    if re.search(r"429|rate.?limit|too many requests", text, re.IGNORECASE):
        return [RateLimitHint(status_code=429, retry_header="Retry-After", description="Rate limiting detected in docs")]
    return []


def _non_blank_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]
