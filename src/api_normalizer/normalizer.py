"""Single entry point: raw documentation in, canonical ApiSpec out."""

import logging

from api_normalizer.config import NormalizerSettings
from api_normalizer.parser.base import ParseResult
from api_normalizer.parser.detect import detect_format
from api_normalizer.parser.swagger import parse_openapi
from api_normalizer.parser.text import parse_text

logger = logging.getLogger(__name__)

HINTS = ("auto", "openapi", "text")


def normalize(content: str, hint: str = "auto", settings: NormalizerSettings | None = None) -> ParseResult:
    """Normalize API documentation into a ParseResult.

    ``hint`` is 'auto' (sniff the content), 'openapi' or 'text'. Only the
    structured path can fail: ParseError is raised when content routed there
    is neither JSON nor YAML. The text path always returns a result.
    """
    if hint not in HINTS:
        raise ValueError(f"Unknown format hint {hint!r}; expected one of {', '.join(HINTS)}")

    fmt = detect_format(content) if hint == "auto" else hint
    logger.debug("Normalizing %d characters as %s (hint: %s)", len(content), fmt, hint)

    if fmt == "openapi":
        return parse_openapi(content, settings)
    return parse_text(content, settings)
