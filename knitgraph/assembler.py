"""Merge per-file extractions into one canonical dependency graph."""

from __future__ import annotations

import logging
from typing import Dict, List, Set, Tuple

from .models import AnalysisResult, Edge, FileExtraction, GraphNode, Location

logger = logging.getLogger(__name__)

DEDUPE_MEANING = "meaning"
DEDUPE_LOCATION = "location"
DEDUPE_MODES = (DEDUPE_MEANING, DEDUPE_LOCATION)


def edge_key(edge: Edge, mode: str = DEDUPE_MEANING) -> Tuple:
    if mode == DEDUPE_LOCATION:
        loc = edge.source_location
        return (edge.source, edge.target, edge.kind, loc.file, loc.line)
    return (edge.source, edge.target, edge.kind)


class GraphAssembler:
    """Accumulates nodes and raw edges across files; :meth:`build` filters and dedupes.

    Node registration is idempotent: the first declaration of an FQN fixes its
    ``definedIn`` location for the rest of the run.
    """

    def __init__(self, dedupe: str = DEDUPE_MEANING) -> None:
        if dedupe not in DEDUPE_MODES:
            raise ValueError(f"dedupe must be one of {DEDUPE_MODES}, got {dedupe!r}")
        self.dedupe = dedupe
        self._nodes: Dict[str, GraphNode] = {}
        self._file_nodes: Dict[str, Dict[str, None]] = {}
        self._raw_edges: List[Edge] = []
        self.errors: List[str] = []
        self.files_processed = 0

    def add_node(self, fqn: str, location: Location) -> None:
        if fqn not in self._nodes:
            self._nodes[fqn] = GraphNode(id=fqn, defined_in=location)
        # dict keys keep insertion order without duplicates
        self._file_nodes.setdefault(location.file, {})[fqn] = None

    def add_edge(self, edge: Edge) -> None:
        self._raw_edges.append(edge)

    def add_extraction(self, extraction: FileExtraction) -> None:
        if extraction.error:
            self.errors.append(f"{extraction.path}: {extraction.error}")
            return
        self.files_processed += 1
        for decl in extraction.declarations:
            self.add_node(decl.fqn, decl.location)
        for edge in extraction.edges:
            self.add_edge(edge)

    @property
    def node_ids(self) -> Set[str]:
        return set(self._nodes)

    def build(self) -> AnalysisResult:
        node_ids = self.node_ids
        seen: Set[Tuple] = set()
        edges: List[Edge] = []
        dropped = 0
        for edge in self._raw_edges:
            if edge.source not in node_ids or edge.target not in node_ids:
                dropped += 1
                continue
            key = edge_key(edge, self.dedupe)
            if key in seen:
                continue
            seen.add(key)
            edges.append(edge)

        logger.info(
            "Assembled graph: %d nodes, %d edges (%d raw, %d external dropped)",
            len(self._nodes), len(edges), len(self._raw_edges), dropped,
        )
        return AnalysisResult(
            nodes=list(self._nodes.values()),
            edges=edges,
            file_to_defined_nodes={f: list(ids) for f, ids in self._file_nodes.items()},
            errors=list(self.errors),
        )
