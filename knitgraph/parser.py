"""Tree-sitter Kotlin parser construction.

A :class:`KotlinParser` is built explicitly by the caller and owned by one
extraction worker at a time; the underlying grammar engine is not assumed to
be thread-safe. Construction is the expensive part, so build one per batch
(or per worker), not one per file.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from .errors import ParserUnavailableError

logger = logging.getLogger(__name__)

GRAMMAR_MODULE = "tree_sitter_kotlin"


class KotlinParser:
    """Error-tolerant Kotlin parser built on Tree-sitter.

    Tree-sitter produces a concrete syntax tree even for sources with minor
    syntax errors, so a broken file still yields whatever declarations are
    recognisable.
    """

    def __init__(self) -> None:
        self._parser = self._init_parser()

    @staticmethod
    def _init_parser() -> Any:
        try:
            from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ParserUnavailableError(
                "tree-sitter is not installed. Install with: pip install tree-sitter"
            ) from exc

        try:
            mod = importlib.import_module(GRAMMAR_MODULE)
        except ImportError as exc:
            raise ParserUnavailableError(
                f"Grammar package '{GRAMMAR_MODULE}' not installed. "
                "Install with: pip install tree-sitter-kotlin"
            ) from exc

        try:
            # tree-sitter >=0.22 per-language packages expose a
            # language() function that returns the Language capsule.
            parser = TSParser(Language(mod.language()))
        except Exception as exc:
            raise ParserUnavailableError(f"Could not load tree-sitter Kotlin grammar: {exc}") from exc

        logger.debug("Loaded tree-sitter parser for kotlin")
        return parser

    def parse(self, code: bytes) -> Any:
        """Parse UTF-8 encoded Kotlin source and return the tree."""
        return self._parser.parse(code)
