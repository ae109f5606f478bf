"""Detect ``by di`` consumer sites and emit ``consumer-requests`` edges."""

from __future__ import annotations

import re
from typing import Any, List, Optional

from .models import CONSUMER_REQUESTS, UNKNOWN_OWNER, Edge, Location
from .resolver import FileContext
from .syntax import ancestor_of_type, line_of, node_text, simple_identifier_from, walk

KNOWN_WRAPPERS = frozenset({"Loadable", "knit.Loadable"})

OWNER_TYPES = (
    "class_declaration",
    "object_declaration",
    "interface_declaration",
    "companion_object",
)
OUTER_OWNER_TYPES = ("class_declaration", "object_declaration", "interface_declaration")

_BY_DI_RE = re.compile(r"\bby\s+di\b")
_CONSUMER_RE = re.compile(r"\b(val|var)\s+\w+\s*:\s*([A-Za-z0-9_.<>?]+)\s+by\s+di\b")
_WRAPPED_RE = re.compile(r"^([A-Za-z0-9_.]+)\s*<\s*([^>]+?)\s*>$")


def unwrap_known_wrappers(type_text: str) -> str:
    """``Loadable<Foo>`` -> ``Foo``; anything else is returned unchanged."""
    m = _WRAPPED_RE.match(type_text)
    if not m:
        return type_text
    outer, inner = m.group(1), m.group(2)
    short = outer.rsplit(".", 1)[-1]
    if outer in KNOWN_WRAPPERS or short in KNOWN_WRAPPERS:
        return inner
    return type_text


def requested_type(property_text: str) -> Optional[str]:
    if not _BY_DI_RE.search(property_text):
        return None
    m = _CONSUMER_RE.search(property_text)
    return m.group(2) if m else None


def owner_of(node: Any) -> Optional[Any]:
    """Enclosing type declaration; companion objects resolve to their outer type."""
    owner = ancestor_of_type(node, OWNER_TYPES)
    if owner is not None and owner.type == "companion_object":
        owner = ancestor_of_type(owner, OUTER_OWNER_TYPES)
    return owner


def extract_consumer_edges(root: Any, ctx: FileContext) -> List[Edge]:
    edges: List[Edge] = []
    for node in walk(root):
        if node.type != "property_declaration":
            continue
        raw_type = requested_type(node_text(node, ctx.code))
        if not raw_type:
            continue
        requested = ctx.qualify(unwrap_known_wrappers(raw_type))

        owner = owner_of(node)
        owner_name = simple_identifier_from(owner, ctx.code) if owner is not None else None
        # Top-level consumers keep an edge from a placeholder owner that is
        # never declared, so assembly filters it out.
        owner_fqn = ctx.qualify(owner_name) if owner_name else UNKNOWN_OWNER

        edges.append(Edge(
            source=owner_fqn,
            target=requested,
            kind=CONSUMER_REQUESTS,
            source_location=Location(ctx.path, line_of(node)),
        ))
    return edges
