"""Graph export helpers for DOT, standalone HTML, and JSON outputs."""

from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .graph_analysis import analyze_graph, cycle_edge_key
from .models import AnalysisResult, Edge, GraphAnalysis


def node_label(node_id: str) -> str:
    """Short display name: the last segment of an FQN."""
    return node_id.rsplit(".", 1)[-1]


def export_json(result: AnalysisResult, analysis: Optional[GraphAnalysis] = None) -> str:
    payload: Dict[str, Any] = result.to_dict()
    if analysis is not None:
        payload["analysis"] = analysis.to_dict()
    return json.dumps(payload, indent=2)


def export_dot(
    result: AnalysisResult,
    output_file: Path,
    analysis: Optional[GraphAnalysis] = None,
    focus: str = "",
) -> None:
    analysis = analysis or analyze_graph(result.nodes, result.edges)
    selected = _focused_subgraph(result, focus)
    critical = set(analysis.critical_nodes)

    lines = ["digraph KnitGraph {"]
    lines.append("  rankdir=LR;")

    for node_id in selected["nodes"]:
        attrs = [f'label="{_esc(node_label(node_id))}"', f'tooltip="{_esc(node_id)}"']
        if node_id in analysis.cycles.cycle_nodes:
            attrs.append('color="red"')
        if node_id in critical:
            attrs.append('style="bold"')
        lines.append(f'  "{_esc(node_id)}" [{", ".join(attrs)}];')

    for edge in selected["edges"]:
        attrs = [f'label="{_esc(edge.kind)}"']
        if cycle_edge_key(edge.source, edge.target) in analysis.cycles.cycle_edges:
            attrs.append('color="red"')
        if edge.kind == "consumer-requests":
            attrs.append('style="dashed"')
        lines.append(f'  "{_esc(edge.source)}" -> "{_esc(edge.target)}" [{", ".join(attrs)}];')

    lines.append("}")
    output_file.write_text("\n".join(lines) + "\n", encoding="utf-8")


def export_html(
    result: AnalysisResult,
    output_file: Path,
    analysis: Optional[GraphAnalysis] = None,
    focus: str = "",
) -> None:
    """Export the graph as a self-contained HTML report."""
    analysis = analysis or analyze_graph(result.nodes, result.edges)
    selected = _focused_subgraph(result, focus)
    heavy = {h.id for h in analysis.heaviest_nodes[:3]}
    critical = set(analysis.critical_nodes[:3])

    node_items = []
    for node_id in selected["nodes"]:
        tags = []
        if node_id in analysis.cycles.cycle_nodes:
            tags.append('<span class="tag cycle">cycle</span>')
        if node_id in heavy:
            tags.append('<span class="tag heavy">heavy</span>')
        if node_id in critical:
            tags.append('<span class="tag critical">critical</span>')
        node_items.append(
            f'<li title="{html.escape(node_id)}">{html.escape(node_label(node_id))} {"".join(tags)}</li>'
        )

    edge_items = []
    for edge in selected["edges"]:
        css = ' class="cycle"' if cycle_edge_key(edge.source, edge.target) in analysis.cycles.cycle_edges else ""
        loc = edge.source_location
        edge_items.append(
            f"<li{css}>{html.escape(edge.source)} --{html.escape(edge.kind)}--&gt; "
            f"{html.escape(edge.target)} <small>{html.escape(loc.file)}:{loc.line}</small></li>"
        )

    doc = _HTML_TEMPLATE.format(
        node_count=len(node_items),
        edge_count=len(edge_items),
        nodes="\n      ".join(node_items),
        edges="\n      ".join(edge_items),
        analysis=html.escape(json.dumps(analysis.to_dict(), indent=2)),
    )
    output_file.write_text(doc, encoding="utf-8")


_HTML_TEMPLATE = """<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>KnitGraph Export</title>
  <style>
    body {{ font-family: ui-monospace, SFMono-Regular, Menlo, monospace; margin: 20px; }}
    #container {{ display: grid; grid-template-columns: 1fr 1fr; gap: 18px; }}
    .panel {{ border: 1px solid #ddd; border-radius: 8px; padding: 10px; }}
    ul {{ list-style: none; padding: 0; margin: 0; }}
    li {{ margin: 4px 0; }}
    li.cycle {{ color: #dc2626; }}
    .tag {{ font-size: 11px; border-radius: 4px; padding: 0 4px; color: #fff; }}
    .cycle {{ background: #dc2626; }}
    .heavy {{ background: #d97706; }}
    .critical {{ background: #7c3aed; }}
  </style>
</head>
<body>
  <h1>KnitGraph Export</h1>
  <div id="container">
    <div class="panel">
      <h2>Nodes ({node_count})</h2>
      <ul>
      {nodes}
      </ul>
    </div>
    <div class="panel">
      <h2>Edges ({edge_count})</h2>
      <ul>
      {edges}
      </ul>
    </div>
  </div>
  <h2>Analysis</h2>
  <pre>{analysis}</pre>
</body>
</html>
"""


def _focused_subgraph(result: AnalysisResult, focus: str) -> Dict[str, List[Any]]:
    node_ids = [n.id for n in result.nodes]
    if not focus:
        return {"nodes": node_ids, "edges": list(result.edges)}

    focus_ids = {node_id for node_id in node_ids if focus in node_id}
    if not focus_ids:
        return {"nodes": node_ids, "edges": list(result.edges)}

    edge_subset: List[Edge] = [
        e for e in result.edges if e.source in focus_ids or e.target in focus_ids
    ]
    node_subset = set(focus_ids)
    for e in edge_subset:
        node_subset.add(e.source)
        node_subset.add(e.target)
    return {"nodes": sorted(node_subset), "edges": edge_subset}


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
