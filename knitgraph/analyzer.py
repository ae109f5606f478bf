"""Batch entry points: run every extraction pass over a set of Kotlin files."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

from .assembler import DEDUPE_MEANING, GraphAssembler
from .consumers import extract_consumer_edges
from .declarations import extract_declarations
from .errors import EmptyGraphError
from .models import AnalysisResult, FileExtraction, SourceFile
from .parser import KotlinParser
from .providers import extract_provider_edges
from .resolver import FileContext

logger = logging.getLogger(__name__)


def _posix_path(path: str) -> str:
    return path.replace("\\", "/")


def extract_file(source: SourceFile, parser: KotlinParser) -> FileExtraction:
    """Run declaration, provider, and consumer passes over one file.

    Any failure is captured on the returned extraction instead of raised,
    so one bad file never aborts a batch.
    """
    path = _posix_path(source.path)
    if not path.endswith(".kt"):
        return FileExtraction(path=path, error="only Kotlin files (.kt) are supported")
    try:
        ctx = FileContext.from_source(path, source.content)
        root = parser.parse(ctx.code).root_node
        return FileExtraction(
            path=path,
            declarations=extract_declarations(root, ctx),
            edges=extract_provider_edges(root, ctx) + extract_consumer_edges(root, ctx),
        )
    except Exception as exc:
        logger.warning("Failed to analyze %s: %s", path, exc)
        return FileExtraction(path=path, error=str(exc) or exc.__class__.__name__)


def _extract_chunk(chunk: Sequence[SourceFile]) -> List[FileExtraction]:
    # Each worker owns its parser; tree-sitter parsers are not shared.
    parser = KotlinParser()
    return [extract_file(f, parser) for f in chunk]


def _chunks(files: Sequence[SourceFile], count: int) -> List[Sequence[SourceFile]]:
    size = -(-len(files) // count)
    return [files[i:i + size] for i in range(0, len(files), size)]


def extract_all(
    files: Sequence[SourceFile],
    parser: Optional[KotlinParser] = None,
    workers: int = 1,
) -> List[FileExtraction]:
    """Extract every file, returning results in input order."""
    if workers <= 1 or len(files) <= 1:
        parser = parser or KotlinParser()
        return [extract_file(f, parser) for f in files]

    # Fail fast on a missing grammar before spinning up the pool.
    if parser is None:
        KotlinParser()
    chunks = _chunks(files, min(workers, len(files)))
    results: List[FileExtraction] = []
    with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
        for chunk_result in executor.map(_extract_chunk, chunks):
            results.extend(chunk_result)
    return results


def analyze_files(
    files: Sequence[SourceFile],
    parser: Optional[KotlinParser] = None,
    workers: int = 1,
    dedupe: str = DEDUPE_MEANING,
) -> AnalysisResult:
    """Analyze a batch of Kotlin files into an :class:`AnalysisResult`.

    Per-file failures end up in ``result.errors``. Raises
    :class:`~knitgraph.errors.EmptyGraphError` when no file yields a node, and
    :class:`~knitgraph.errors.ParserUnavailableError` when no parser can be built.
    """
    assembler = GraphAssembler(dedupe=dedupe)
    for extraction in extract_all(files, parser=parser, workers=workers):
        assembler.add_extraction(extraction)

    result = assembler.build()
    logger.info(
        "Analyzed %d/%d files (%d errors)",
        assembler.files_processed, len(files), len(result.errors),
    )
    if not result.nodes:
        raise EmptyGraphError(
            f"No declarations found in {len(files)} file(s)", errors=result.errors
        )
    return result


def analyze_file(source: SourceFile, parser: Optional[KotlinParser] = None) -> AnalysisResult:
    return analyze_files([source], parser=parser)
