"""Exceptions raised by api-normalizer."""


class NormalizerError(Exception):
    """Base class for all api-normalizer errors."""


class ParseError(NormalizerError, ValueError):
    """Structured input could not be decoded as JSON or YAML."""
