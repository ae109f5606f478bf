"""Pytest configuration and fixtures for KnitGraph tests."""

from pathlib import Path
from typing import Iterable, List, Tuple

import pytest

from knitgraph.models import PROVIDER_PARAM, Edge, GraphNode, Location, SourceFile
from knitgraph.parser import KotlinParser


@pytest.fixture(scope="session")
def kotlin_parser() -> KotlinParser:
    """One real tree-sitter Kotlin parser shared by the whole session."""
    return KotlinParser()


@pytest.fixture
def kotlin_project_path() -> Path:
    """Path to the sample Kotlin project."""
    return Path(__file__).parent / "fixtures" / "kotlin_project"


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path: Path, monkeypatch):
    """Keep tests away from a real ~/.knitgraph/config.toml and env overrides."""
    monkeypatch.setattr("knitgraph.config.CONFIG_FILE", tmp_path / "no-config.toml")
    for var in (
        "KNITGRAPH_MAX_FILES",
        "KNITGRAPH_MAX_FILE_BYTES",
        "KNITGRAPH_WORKERS",
        "KNITGRAPH_DEDUPE",
        "KNITGRAPH_CRITICAL_CEILING",
    ):
        monkeypatch.delenv(var, raising=False)


def kt(path: str, content: str) -> SourceFile:
    return SourceFile(path=path, content=content)


def make_graph(
    ids: Iterable[str], pairs: Iterable[Tuple[str, str]], kind: str = PROVIDER_PARAM
) -> Tuple[List[GraphNode], List[Edge]]:
    """Build bare nodes and edges for graph-analysis tests."""
    nodes = [GraphNode(id=i, defined_in=Location("Test.kt", 1)) for i in ids]
    edges = [Edge(source=s, target=t, kind=kind, source_location=Location("Test.kt", 1)) for s, t in pairs]
    return nodes, edges
