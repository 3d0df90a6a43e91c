"""Auto-detect the modality of API documentation."""

import json
import logging
import re

logger = logging.getLogger(__name__)

_YAML_VERSION_KEY = re.compile(r"^(openapi|swagger)\s*:", re.MULTILINE)


def detect_format(content: str) -> str:
    """Decide which normalizer should handle ``content``.

    Returns: 'openapi' or 'text'. This is a syntactic sniff only and never
    raises; an ambiguous document is routed to the text normalizer.
    """
    trimmed = content.strip()

    # JSON-shaped: decide on the top-level keys only
    if trimmed.startswith("{"):
        try:
            data = json.loads(trimmed)
        except (json.JSONDecodeError, ValueError):
            logger.debug("Input looks like JSON but does not decode; routing to text")
            return "text"
        if isinstance(data, dict) and ("openapi" in data or "swagger" in data):
            return "openapi"
        return "text"

    # YAML with a version key at the start of a line
    if _YAML_VERSION_KEY.search(trimmed):
        return "openapi"

    return "text"
