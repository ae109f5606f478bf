"""Structural metrics over an assembled dependency graph.

Every function here is pure: results depend only on the nodes and edges
passed in. Two of them are expensive on purpose and callers should guard
them on large graphs:

* :func:`longest_paths` enumerates all simple paths from each root.
* :func:`critical_nodes` enumerates bounded simple paths between every
  ordered pair of nodes, O(n^2 x paths).
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import CycleInfo, Edge, GraphAnalysis, GraphNode, HeavyNode, PathInfo

logger = logging.getLogger(__name__)

HEAVIEST_LIMIT = 5
LONGEST_PATH_LIMIT = 3
CRITICAL_LIMIT = 5
CRITICAL_PATH_DEPTH = 10

Adjacency = Dict[str, List[str]]


def build_adjacency(nodes: Sequence[GraphNode], edges: Sequence[Edge]) -> Adjacency:
    adjacency: Adjacency = {node.id: [] for node in nodes}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def cycle_edge_key(source: str, target: str) -> str:
    return f"{source}-{target}"


def detect_cycles(nodes: Sequence[GraphNode], edges: Sequence[Edge]) -> CycleInfo:
    """Depth-first cycle search with a recursion stack.

    The first back edge found ends the whole search from the current start
    node, so two disjoint cycles reachable from one start are reported as
    one. Rotations of an already recorded cycle are not recorded again.

    This departs from a plain short-circuiting DFS, which returns with the
    abandoned nodes still marked on the recursion stack. Here the stack is
    emptied on short-circuit. The abandoned nodes stay visited, so a later
    start node that reaches one of them sees a finished node rather than an
    open back edge, and no false cycle is recorded.
    """
    adjacency = build_adjacency(nodes, edges)
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    info = CycleInfo()
    seen_keys: Set[Tuple[str, ...]] = set()

    def record(cycle: List[str]) -> None:
        key = tuple(sorted(cycle[:-1]))
        if key in seen_keys:
            return
        seen_keys.add(key)
        info.cycles.append(cycle)
        info.cycle_nodes.update(cycle)
        for src, dst in zip(cycle, cycle[1:]):
            info.cycle_edges.add(cycle_edge_key(src, dst))

    def search(start: str) -> None:
        path: List[str] = [start]
        visited.add(start)
        on_stack.add(start)
        frames = [iter(adjacency.get(start, []))]
        while frames:
            neighbor = next(frames[-1], None)
            if neighbor is None:
                frames.pop()
                on_stack.discard(path.pop())
                continue
            if neighbor not in visited:
                visited.add(neighbor)
                on_stack.add(neighbor)
                path.append(neighbor)
                frames.append(iter(adjacency.get(neighbor, [])))
            elif neighbor in on_stack:
                record(path[path.index(neighbor):] + [neighbor])
                # First cycle ends this start node's search. Everything on the
                # stack leaves it, but stays visited.
                on_stack.clear()
                return

    for node in nodes:
        if node.id not in visited:
            search(node.id)
    return info


def dependency_counts(
    nodes: Sequence[GraphNode], edges: Sequence[Edge]
) -> Tuple[Dict[str, int], Dict[str, int]]:
    incoming = {node.id: 0 for node in nodes}
    outgoing = {node.id: 0 for node in nodes}
    for edge in edges:
        incoming[edge.target] = incoming.get(edge.target, 0) + 1
        outgoing[edge.source] = outgoing.get(edge.source, 0) + 1
    return incoming, outgoing


def heaviest_nodes(
    nodes: Sequence[GraphNode], edges: Sequence[Edge], limit: int = HEAVIEST_LIMIT
) -> List[HeavyNode]:
    incoming, outgoing = dependency_counts(nodes, edges)
    ranked = sorted(
        (HeavyNode(id=n.id, incoming=incoming[n.id], outgoing=outgoing[n.id]) for n in nodes),
        key=lambda h: h.total_dependencies,
        reverse=True,
    )
    return ranked[:limit]


def classify_nodes(
    nodes: Sequence[GraphNode], edges: Sequence[Edge]
) -> Tuple[List[str], List[str], List[str]]:
    """Return ``(roots, leaves, isolated)`` node ids."""
    incoming, outgoing = dependency_counts(nodes, edges)
    roots = [n.id for n in nodes if incoming[n.id] == 0]
    leaves = [n.id for n in nodes if outgoing[n.id] == 0]
    isolated = [n.id for n in nodes if incoming[n.id] == 0 and outgoing[n.id] == 0]
    return roots, leaves, isolated


def longest_path_from(adjacency: Adjacency, root: str) -> List[str]:
    """Longest simple path starting at *root*; the first one found wins ties.

    Backtracking DFS over an explicit stack, so path length is not bounded
    by the interpreter's recursion limit.
    """
    path: List[str] = [root]
    on_path: Set[str] = {root}
    longest = list(path)
    frames = [iter(adjacency.get(root, []))]
    while frames:
        neighbor = next(frames[-1], None)
        if neighbor is None:
            frames.pop()
            on_path.discard(path.pop())
            continue
        if neighbor in on_path:
            continue
        on_path.add(neighbor)
        path.append(neighbor)
        if len(path) > len(longest):
            longest = list(path)
        frames.append(iter(adjacency.get(neighbor, [])))
    return longest


def longest_paths(
    nodes: Sequence[GraphNode],
    edges: Sequence[Edge],
    roots: Optional[Iterable[str]] = None,
    limit: int = LONGEST_PATH_LIMIT,
) -> List[PathInfo]:
    """Longest simple path from each root node, longest first."""
    adjacency = build_adjacency(nodes, edges)
    if roots is None:
        roots = classify_nodes(nodes, edges)[0]
    candidates = []
    for root in roots:
        path = longest_path_from(adjacency, root)
        if len(path) > 1:
            candidates.append(PathInfo(path=path))
    candidates.sort(key=lambda p: p.length, reverse=True)
    return candidates[:limit]


def find_all_paths(adjacency: Adjacency, start: str, end: str, max_depth: int = 20) -> List[List[str]]:
    paths: List[List[str]] = []
    visited: Set[str] = set()

    def dfs(current: str, path: List[str], depth: int) -> None:
        if depth > max_depth:
            return
        if current == end:
            paths.append(path + [current])
            return
        visited.add(current)
        for neighbor in adjacency.get(current, []):
            if neighbor not in visited:
                dfs(neighbor, path + [current], depth + 1)
        visited.discard(current)

    dfs(start, [], 0)
    return paths


def critical_nodes(
    nodes: Sequence[GraphNode],
    edges: Sequence[Edge],
    limit: int = CRITICAL_LIMIT,
    max_depth: int = CRITICAL_PATH_DEPTH,
) -> List[str]:
    """Nodes that sit on the most simple paths between ordered node pairs."""
    adjacency = build_adjacency(nodes, edges)
    counts: Dict[str, int] = {}
    for start in nodes:
        for end in nodes:
            if start.id == end.id:
                continue
            for path in find_all_paths(adjacency, start.id, end.id, max_depth):
                for node_id in path:
                    counts[node_id] = counts.get(node_id, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [node_id for node_id, _ in ranked[:limit]]


def analyze_graph(
    nodes: Sequence[GraphNode],
    edges: Sequence[Edge],
    include_critical: bool = True,
) -> GraphAnalysis:
    """Compute every metric in one pass over fresh inputs.

    Pass ``include_critical=False`` to skip the quadratic critical-node
    enumeration on large graphs; ``critical_nodes`` is then empty.
    """
    roots, leaves, isolated = classify_nodes(nodes, edges)
    top_paths = longest_paths(nodes, edges, roots=roots)
    critical = critical_nodes(nodes, edges) if include_critical else []
    return GraphAnalysis(
        cycles=detect_cycles(nodes, edges),
        heaviest_nodes=heaviest_nodes(nodes, edges),
        longest_paths=top_paths,
        critical_nodes=critical,
        isolated_nodes=isolated,
        leaf_nodes=leaves,
        root_nodes=roots,
        max_depth=max((p.length for p in top_paths), default=0),
    )


def analysis_fingerprint(nodes: Sequence[GraphNode], edges: Sequence[Edge]) -> str:
    """Content hash of the inputs :func:`analyze_graph` depends on."""
    payload = {
        "nodes": [n.id for n in nodes],
        "edges": [[e.source, e.target] for e in edges],
    }
    return hashlib.sha256(json.dumps(payload, separators=(",", ":")).encode("utf-8")).hexdigest()


class AnalysisCache:
    """Small LRU memo of :func:`analyze_graph` keyed by content fingerprint."""

    def __init__(self, max_entries: int = 16) -> None:
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[str, bool], GraphAnalysis]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[Edge],
        include_critical: bool = True,
    ) -> GraphAnalysis:
        key = (analysis_fingerprint(nodes, edges), include_critical)
        if key in self._entries:
            self._entries.move_to_end(key)
            return self._entries[key]
        logger.debug("Analysis cache miss for %s", key[0][:12])
        analysis = analyze_graph(nodes, edges, include_critical=include_critical)
        self._entries[key] = analysis
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return analysis
