"""Diagnostics collected while normalizing a document.

Two kinds of findings:
- warnings: ambiguity that does not block output (e.g. no auth declared)
- todos: a required fact is missing and a placeholder was used instead
"""

import logging

from api_normalizer.parser.base import ApiSpec, ParseResult

logger = logging.getLogger(__name__)

TODO_PREFIX = "TODO: "


class Diagnostics:
    """Accumulates warnings and todos for a single normalizer run."""

    def __init__(self):
        self.warnings: list[str] = []
        self.todos: list[str] = []

    def warn(self, message: str) -> None:
        if message in self.warnings:
            return
        logger.debug(message)
        self.warnings.append(message)

    def todo(self, message: str) -> None:
        if not message.startswith(TODO_PREFIX):
            message = TODO_PREFIX + message
        if message in self.todos:
            return
        logger.debug(message)
        self.todos.append(message)

    def result(self, spec: ApiSpec) -> ParseResult:
        return ParseResult(spec=spec, warnings=tuple(self.warnings), todos=tuple(self.todos))
