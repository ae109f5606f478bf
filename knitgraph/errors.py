"""Exception hierarchy for knitgraph."""

from __future__ import annotations

from typing import List, Optional


class KnitGraphError(Exception):
    """Base class for errors raised by knitgraph."""


class ParserUnavailableError(KnitGraphError):
    """tree-sitter or the Kotlin grammar could not be loaded."""


class SourceLoadError(KnitGraphError):
    """The source root is unusable or no Kotlin files matched."""


class EmptyGraphError(KnitGraphError):
    """A batch produced no graph nodes at all."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [])
