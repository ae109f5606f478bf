"""Core data models shared by extraction, assembly, and graph analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

PROVIDER_PARAM = "provider-param"
CONSUMER_REQUESTS = "consumer-requests"
EDGE_KINDS = (PROVIDER_PARAM, CONSUMER_REQUESTS)

UNKNOWN_OWNER = "UnknownOwner"


@dataclass(frozen=True)
class Location:
    file: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "line": self.line}


@dataclass
class SourceFile:
    """One Kotlin source file: repo-relative path plus full text."""

    path: str
    content: str


@dataclass
class GraphNode:
    id: str
    defined_in: Location
    kind: str = "class"
    used_in: List[Location] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "definedIn": self.defined_in.to_dict(),
            "usedIn": [loc.to_dict() for loc in self.used_in],
        }


@dataclass
class Edge:
    source: str
    target: str
    kind: str
    source_location: Location

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "kind": self.kind,
            "sourceLocation": self.source_location.to_dict(),
        }


@dataclass
class Declaration:
    fqn: str
    location: Location


@dataclass
class FileExtraction:
    """Raw output of one file's extraction pass, before assembly."""

    path: str
    declarations: List[Declaration] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    error: str = ""


@dataclass
class AnalysisResult:
    nodes: List[GraphNode]
    edges: List[Edge]
    file_to_defined_nodes: Dict[str, List[str]]
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "fileToDefinedNodes": {k: list(v) for k, v in self.file_to_defined_nodes.items()},
            "errors": list(self.errors),
        }


@dataclass
class CycleInfo:
    cycles: List[List[str]] = field(default_factory=list)
    cycle_nodes: Set[str] = field(default_factory=set)
    cycle_edges: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycles": [list(c) for c in self.cycles],
            "cycleNodes": sorted(self.cycle_nodes),
            "cycleEdges": sorted(self.cycle_edges),
        }


@dataclass
class HeavyNode:
    id: str
    incoming: int
    outgoing: int

    @property
    def total_dependencies(self) -> int:
        return self.incoming + self.outgoing

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "totalDependencies": self.total_dependencies,
            "incoming": self.incoming,
            "outgoing": self.outgoing,
        }


@dataclass
class PathInfo:
    path: List[str]

    @property
    def length(self) -> int:
        return len(self.path) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {"path": list(self.path), "length": self.length}


@dataclass
class GraphAnalysis:
    cycles: CycleInfo
    heaviest_nodes: List[HeavyNode]
    longest_paths: List[PathInfo]
    critical_nodes: List[str]
    isolated_nodes: List[str]
    leaf_nodes: List[str]
    root_nodes: List[str]
    max_depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycles": self.cycles.to_dict(),
            "heaviestNodes": [h.to_dict() for h in self.heaviest_nodes],
            "longestPaths": [p.to_dict() for p in self.longest_paths],
            "criticalNodes": list(self.critical_nodes),
            "isolatedNodes": list(self.isolated_nodes),
            "leafNodes": list(self.leaf_nodes),
            "rootNodes": list(self.root_nodes),
            "maxDepth": self.max_depth,
        }
