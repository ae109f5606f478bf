"""Tests for DOT, HTML, and JSON export."""

import json
from pathlib import Path

import pytest

from conftest import make_graph
from knitgraph.graph_analysis import analyze_graph
from knitgraph.graph_export import export_dot, export_html, export_json, node_label
from knitgraph.models import CONSUMER_REQUESTS, AnalysisResult


@pytest.fixture
def cyclic_result() -> AnalysisResult:
    nodes, edges = make_graph(
        ["app.A", "app.B", "app.C", "lib.D"],
        [("app.A", "app.B"), ("app.B", "app.C"), ("app.C", "app.A")],
    )
    _, consumer = make_graph([], [("lib.D", "app.A")], kind=CONSUMER_REQUESTS)
    return AnalysisResult(nodes=nodes, edges=edges + consumer, file_to_defined_nodes={})


def test_node_label():
    assert node_label("com.example.Repo") == "Repo"
    assert node_label("UnknownOwner") == "UnknownOwner"


def test_export_dot(tmp_path: Path, cyclic_result):
    out = tmp_path / "graph.dot"
    export_dot(cyclic_result, out)
    text = out.read_text()
    assert text.startswith("digraph KnitGraph {")
    assert '"app.A" [label="A", tooltip="app.A", color="red"' in text
    assert '"app.A" -> "app.B" [label="provider-param", color="red"];' in text
    assert '"lib.D" -> "app.A" [label="consumer-requests", style="dashed"];' in text
    assert text.rstrip().endswith("}")


def test_export_dot_focus(tmp_path: Path, cyclic_result):
    out = tmp_path / "focus.dot"
    export_dot(cyclic_result, out, focus="lib.D")
    text = out.read_text()
    assert '"lib.D" -> "app.A"' in text
    assert '"app.B" [' not in text
    assert '"app.A" -> "app.B"' not in text


def test_export_dot_unknown_focus_keeps_everything(tmp_path: Path, cyclic_result):
    out = tmp_path / "all.dot"
    export_dot(cyclic_result, out, focus="nothing-matches")
    assert out.read_text().count(" -> ") == 4


def test_export_html(tmp_path: Path, cyclic_result):
    out = tmp_path / "graph.html"
    export_html(cyclic_result, out)
    text = out.read_text()
    assert "<title>KnitGraph Export</title>" in text
    assert "Nodes (4)" in text
    assert "Edges (4)" in text
    assert 'class="tag cycle"' in text
    assert "--provider-param--&gt;" in text


def test_export_json(cyclic_result):
    payload = json.loads(export_json(cyclic_result))
    assert [n["id"] for n in payload["nodes"]] == ["app.A", "app.B", "app.C", "lib.D"]
    assert "analysis" not in payload


def test_export_json_with_analysis(cyclic_result):
    analysis = analyze_graph(cyclic_result.nodes, cyclic_result.edges)
    payload = json.loads(export_json(cyclic_result, analysis))
    assert payload["analysis"]["cycles"]["cycleNodes"] == ["app.A", "app.B", "app.C"]
    assert payload["analysis"]["rootNodes"] == ["lib.D"]
