"""Tests for graph assembly and batch analysis."""

from pathlib import Path

import pytest

from conftest import kt
from knitgraph.analyzer import analyze_file, analyze_files, extract_file
from knitgraph.assembler import DEDUPE_LOCATION, GraphAssembler
from knitgraph.errors import EmptyGraphError
from knitgraph.models import (
    CONSUMER_REQUESTS,
    PROVIDER_PARAM,
    Declaration,
    Edge,
    FileExtraction,
    Location,
    SourceFile,
)
from knitgraph.sources import load_sources


def edge(source, target, kind=PROVIDER_PARAM, file="A.kt", line=1) -> Edge:
    return Edge(source=source, target=target, kind=kind, source_location=Location(file, line))


class TestGraphAssembler:
    """Tests for node registration, filtering, and dedup."""

    def _assembler(self, **kwargs) -> GraphAssembler:
        assembler = GraphAssembler(**kwargs)
        assembler.add_node("p.A", Location("A.kt", 3))
        assembler.add_node("p.B", Location("B.kt", 1))
        return assembler

    def test_first_definition_wins(self):
        assembler = self._assembler()
        assembler.add_node("p.A", Location("Other.kt", 9))
        result = assembler.build()
        assert [n.id for n in result.nodes] == ["p.A", "p.B"]
        assert result.nodes[0].defined_in == Location("A.kt", 3)
        assert result.file_to_defined_nodes == {"A.kt": ["p.A"], "B.kt": ["p.B"], "Other.kt": ["p.A"]}

    def test_file_to_defined_nodes_has_no_duplicates(self):
        assembler = self._assembler()
        assembler.add_node("p.A", Location("A.kt", 7))
        assert assembler.build().file_to_defined_nodes["A.kt"] == ["p.A"]

    def test_dangling_edges_dropped(self):
        assembler = self._assembler()
        assembler.add_edge(edge("p.A", "p.B"))
        assembler.add_edge(edge("p.A", "kotlin.String"))
        assembler.add_edge(edge("UnknownOwner", "p.B", CONSUMER_REQUESTS))
        result = assembler.build()
        node_ids = {n.id for n in result.nodes}
        assert [(e.source, e.target) for e in result.edges] == [("p.A", "p.B")]
        assert all(e.source in node_ids and e.target in node_ids for e in result.edges)

    def test_meaning_dedup_keeps_first_location(self):
        assembler = self._assembler()
        assembler.add_edge(edge("p.A", "p.B", line=4))
        assembler.add_edge(edge("p.A", "p.B", file="B.kt", line=12))
        assembler.add_edge(edge("p.A", "p.B", CONSUMER_REQUESTS, line=20))
        result = assembler.build()
        assert len(result.edges) == 2
        assert result.edges[0].source_location == Location("A.kt", 4)
        assert {e.kind for e in result.edges} == {PROVIDER_PARAM, CONSUMER_REQUESTS}

    def test_location_dedup(self):
        assembler = self._assembler(dedupe=DEDUPE_LOCATION)
        assembler.add_edge(edge("p.A", "p.B", line=4))
        assembler.add_edge(edge("p.A", "p.B", line=4))
        assembler.add_edge(edge("p.A", "p.B", line=5))
        assert len(assembler.build().edges) == 2

    def test_invalid_dedupe_mode(self):
        with pytest.raises(ValueError):
            GraphAssembler(dedupe="fuzzy")

    def test_failed_extraction_recorded(self):
        assembler = GraphAssembler()
        assembler.add_extraction(FileExtraction(path="Bad.kt", error="boom"))
        assembler.add_extraction(FileExtraction(
            path="Good.kt",
            declarations=[Declaration("p.Good", Location("Good.kt", 1))],
        ))
        result = assembler.build()
        assert result.errors == ["Bad.kt: boom"]
        assert [n.id for n in result.nodes] == ["p.Good"]
        assert assembler.files_processed == 1


class _ExplodingParser:
    def parse(self, code):
        raise RuntimeError("grammar exploded")


class TestExtractFile:
    def test_parse_failure_is_captured(self):
        extraction = extract_file(kt("src\\A.kt", "class A"), _ExplodingParser())
        assert extraction.path == "src/A.kt"
        assert extraction.error == "grammar exploded"
        assert extraction.declarations == []

    def test_non_kotlin_file_rejected(self, kotlin_parser):
        extraction = extract_file(kt("README.md", "class A"), kotlin_parser)
        assert "only Kotlin files" in extraction.error


class TestAnalyzeFiles:
    """End-to-end extraction over small in-memory batches."""

    def test_end_to_end_provider(self, kotlin_parser):
        files = [
            kt("A.kt", "package p\n\n@Provides\nclass A(val b: B)\n"),
            kt("B.kt", "package p\n\nclass B\n"),
        ]
        result = analyze_files(files, parser=kotlin_parser)
        assert [n.id for n in result.nodes] == ["p.A", "p.B"]
        assert [(e.source, e.target, e.kind) for e in result.edges] == [("p.A", "p.B", PROVIDER_PARAM)]
        assert result.file_to_defined_nodes == {"A.kt": ["p.A"], "B.kt": ["p.B"]}
        assert result.errors == []

    def test_consumer_cycle(self, kotlin_parser):
        files = [
            kt("A.kt", "package c\n\nclass A {\n    val b: B by di\n}\n"),
            kt("B.kt", "package c\n\nclass B {\n    val c: C by di\n}\n"),
            kt("C.kt", "package c\n\nclass C {\n    val a: A by di\n}\n"),
        ]
        result = analyze_files(files, parser=kotlin_parser)
        assert {(e.source, e.target) for e in result.edges} == {
            ("c.A", "c.B"), ("c.B", "c.C"), ("c.C", "c.A"),
        }
        assert {e.kind for e in result.edges} == {CONSUMER_REQUESTS}

    def test_same_file_twice_is_idempotent(self, kotlin_parser):
        source = kt("A.kt", "package p\n\nclass A\n")
        result = analyze_files([source, source], parser=kotlin_parser)
        assert len(result.nodes) == 1
        assert result.nodes[0].defined_in == Location("A.kt", 3)

    def test_redeclaration_keeps_earliest_location(self, kotlin_parser):
        files = [kt("one/A.kt", "package p\nclass A\n"), kt("two/A.kt", "package p\n\n\nclass A\n")]
        result = analyze_files(files, parser=kotlin_parser)
        assert result.nodes[0].defined_in == Location("one/A.kt", 2)
        assert result.file_to_defined_nodes == {"one/A.kt": ["p.A"], "two/A.kt": ["p.A"]}

    def test_partial_failure_keeps_results(self, kotlin_parser):
        files = [kt("A.kt", "package p\n\nclass A\n"), kt("notes.txt", "hello")]
        result = analyze_files(files, parser=kotlin_parser)
        assert [n.id for n in result.nodes] == ["p.A"]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("notes.txt:")

    def test_zero_nodes_raises(self, kotlin_parser):
        with pytest.raises(EmptyGraphError) as excinfo:
            analyze_files([kt("Main.kt", "fun main() {}\n"), kt("x.txt", "")], parser=kotlin_parser)
        assert len(excinfo.value.errors) == 1

    def test_empty_batch_raises(self, kotlin_parser):
        with pytest.raises(EmptyGraphError):
            analyze_files([], parser=kotlin_parser)

    def test_analyze_file(self, kotlin_parser):
        result = analyze_file(SourceFile("Solo.kt", "package s\nobject Solo\n"), parser=kotlin_parser)
        assert [n.id for n in result.nodes] == ["s.Solo"]

    def test_workers_match_serial(self, kotlin_project_path: Path):
        files = load_sources(kotlin_project_path).files
        serial = analyze_files(files, workers=1)
        parallel = analyze_files(files, workers=3)
        assert serial.to_dict() == parallel.to_dict()


class TestSampleProject:
    """Extraction over tests/fixtures/kotlin_project."""

    def test_nodes_and_edges(self, kotlin_project_path: Path, kotlin_parser):
        result = analyze_files(load_sources(kotlin_project_path).files, parser=kotlin_parser)
        assert [n.id for n in result.nodes] == [
            "com.example.data.Api",
            "com.example.data.HttpApi",
            "com.example.data.HttpClient",
            "com.example.domain.Repository",
            "com.example.ui.MainViewModel",
        ]
        assert [(e.source, e.target, e.kind) for e in result.edges] == [
            ("com.example.data.Api", "com.example.data.HttpApi", PROVIDER_PARAM),
            ("com.example.domain.Repository", "com.example.data.Api", PROVIDER_PARAM),
            ("com.example.ui.MainViewModel", "com.example.domain.Repository", CONSUMER_REQUESTS),
        ]

    def test_consumer_dedup_keeps_first_site(self, kotlin_project_path: Path, kotlin_parser):
        result = analyze_files(load_sources(kotlin_project_path).files, parser=kotlin_parser)
        consumer = [e for e in result.edges if e.kind == CONSUMER_REQUESTS][0]
        assert consumer.source_location == Location("ui/MainViewModel.kt", 8)

    def test_json_shape(self, kotlin_project_path: Path, kotlin_parser):
        payload = analyze_files(load_sources(kotlin_project_path).files, parser=kotlin_parser).to_dict()
        assert set(payload) == {"nodes", "edges", "fileToDefinedNodes", "errors"}
        assert payload["nodes"][0] == {
            "id": "com.example.data.Api",
            "kind": "class",
            "definedIn": {"file": "data/Api.kt", "line": 3},
            "usedIn": [],
        }
        assert payload["edges"][0]["sourceLocation"] == {"file": "data/HttpApi.kt", "line": 5}
