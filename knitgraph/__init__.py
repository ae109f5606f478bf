"""KnitGraph: extract and analyze Knit-style DI dependency graphs from Kotlin sources."""

from __future__ import annotations

__version__ = "0.1.0"

from .analyzer import analyze_file, analyze_files
from .graph_analysis import analyze_graph, detect_cycles
from .models import AnalysisResult, Edge, GraphAnalysis, GraphNode, SourceFile
from .parser import KotlinParser

__all__ = [
    "__version__",
    "AnalysisResult",
    "Edge",
    "GraphAnalysis",
    "GraphNode",
    "KotlinParser",
    "SourceFile",
    "analyze_file",
    "analyze_files",
    "analyze_graph",
    "detect_cycles",
]
