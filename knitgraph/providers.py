"""Detect ``@Provides`` provider sites and emit ``provider-param`` edges.

There are four independent provider shapes, each with its own extractor:

* annotated class       -- ``@Provides class Impl(dep: Dep)`` or
                           ``@Provides(Iface::class) class Impl``
* annotated constructor -- ``@Provides constructor(dep: Dep)`` inside a class
* annotated function    -- ``@Provides fun make(dep: Dep): Thing``
* annotated property    -- ``@Provides(Iface::class) val impl: Impl``

Annotation detection is a heuristic. When a node carries no ``modifiers``
child with the annotation, the 160 bytes of raw text immediately preceding
the node are searched instead. That window can pick up an annotation that
belongs to a nearby declaration, and misses one that sits further away.
"""

from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple

from .models import PROVIDER_PARAM, Edge, Location
from .resolver import FileContext
from .syntax import (
    ancestor_of_type,
    first_child_of_type,
    line_of,
    node_text,
    simple_identifier_from,
    text_before,
    walk,
)

ANNOTATION_WINDOW = 160
TARGET_WINDOW = 200

CONSTRUCTOR_TYPES = ("constructor", "secondary_constructor", "primary_constructor")
PARAMETER_TYPES = ("parameter", "class_parameter")
PARAMETER_LIST_TYPES = ("function_value_parameters", "class_parameters")
TYPE_NODE_TYPES = (
    "type",
    "user_type",
    "nullable_type",
    "non_nullable_type",
    "function_type",
    "parenthesized_type",
)

_PROVIDES_RE = re.compile(r"@Provides\b")
_PROVIDES_CALL_RE = re.compile(r"@Provides\s*\(")
_PROVIDES_TARGET_RE = re.compile(r"@Provides\s*\(\s*(?:\w+\s*=\s*)?([\w.]+)\s*::\s*class\s*\)")
_TYPE_AFTER_COLON_RE = re.compile(r":\s*([A-Za-z0-9_.<>?]+)")
_RETURN_TYPE_RE = re.compile(r"\s*(?:@[A-Za-z0-9_.]+(?:\([^)]*\))?\s*)*([A-Za-z0-9_.<>?]+)")
_CLASS_HEADER_RE = re.compile(r"\bclass\b[\s\S]*?\(([\s\S]*?)\)")
_FUN_KEYWORD_RE = re.compile(r"\bfun\b")
_FIRST_PARENS_RE = re.compile(r"\(([\s\S]*?)\)")
_PROPERTY_TYPE_RE = re.compile(r"\b(?:val|var)\s+[\w.]+\s*:\s*([A-Za-z0-9_.<>?]+)")


# ---------------------------------------------------------------------------
# Text heuristics
# ---------------------------------------------------------------------------

def has_provides_annotation(node: Any, code: bytes) -> bool:
    mods = first_child_of_type(node, "modifiers")
    if mods is not None:
        for child in mods.named_children:
            if child.type == "annotation" and "@Provides" in node_text(child, code):
                return True
    return bool(_PROVIDES_RE.search(text_before(node, code, ANNOTATION_WINDOW)))


def has_own_provides_modifier(node: Any, code: bytes) -> bool:
    """Like :func:`has_provides_annotation`, without the text window."""
    mods = first_child_of_type(node, "modifiers")
    if mods is None:
        return False
    return any(
        child.type == "annotation" and "@Provides" in node_text(child, code)
        for child in mods.named_children
    )


def provides_target_from_annotation_text(text: str) -> Optional[str]:
    """``X`` from ``@Provides(X::class)`` or ``@Provides(name = X::class)``."""
    m = _PROVIDES_TARGET_RE.search(text)
    return m.group(1) if m else None


def annotation_window(node: Any, code: bytes) -> str:
    """Text before the node plus the node's own leading text."""
    start = node.start_byte
    before = code[max(0, start - TARGET_WINDOW):start]
    head = code[start:min(node.end_byte, start + TARGET_WINDOW)]
    return (before + head).decode("utf-8", errors="replace")


def _top_level_colon(text: str, start: int = 0) -> int:
    """Index of the first ``:`` outside brackets, before any body; -1 if none."""
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(0, depth - 1)
        elif depth == 0:
            if ch in "{=":
                return -1
            if ch == ":":
                if i + 1 < len(text) and text[i + 1] == ":":
                    i += 2
                    continue
                return i
        i += 1
    return -1


def return_type_from_provides_function(text: str) -> Optional[str]:
    fun = _FUN_KEYWORD_RE.search(text)
    colon = _top_level_colon(text, fun.end() if fun else 0)
    if colon < 0:
        return None
    m = _RETURN_TYPE_RE.match(text, colon + 1)
    return m.group(1) if m else None


def function_param_types(text: str) -> List[str]:
    """Declared types inside the function's first parenthesis group."""
    fun = _FUN_KEYWORD_RE.search(text)
    m = _FIRST_PARENS_RE.search(text, fun.end() if fun else 0)
    if not m:
        return []
    return _TYPE_AFTER_COLON_RE.findall(m.group(1))


def class_header_param_types(class_text: str) -> List[str]:
    """Declared types in the primary-constructor parentheses.

    The match stops at the first ``)``, so a default argument containing a
    call cuts the header short.
    """
    m = _CLASS_HEADER_RE.search(class_text)
    if not m:
        return []
    return _TYPE_AFTER_COLON_RE.findall(m.group(1))


def property_declared_type(text: str) -> Optional[str]:
    m = _PROPERTY_TYPE_RE.search(text)
    return m.group(1) if m else None


def constructor_param_types(node: Any, code: bytes) -> List[Tuple[str, int]]:
    """``(type text, line)`` for every parameter of a constructor node."""
    params: List[Any] = []
    for child in node.named_children:
        if child.type in PARAMETER_TYPES:
            params.append(child)
        elif child.type in PARAMETER_LIST_TYPES:
            params.extend(c for c in child.named_children if c.type in PARAMETER_TYPES)

    types: List[Tuple[str, int]] = []
    for param in params:
        type_node = param.child_by_field_name("type")
        if type_node is None:
            type_node = next((c for c in param.named_children if c.type in TYPE_NODE_TYPES), None)
        if type_node is not None:
            types.append((node_text(type_node, code), line_of(type_node)))
    return types


# ---------------------------------------------------------------------------
# Shape extractors
# ---------------------------------------------------------------------------

def _edge(source: str, target: str, ctx: FileContext, line: int) -> Edge:
    return Edge(
        source=source,
        target=target,
        kind=PROVIDER_PARAM,
        source_location=Location(ctx.path, line),
    )


def annotated_class_edges(node: Any, ctx: FileContext) -> List[Edge]:
    if node.type != "class_declaration" or not has_provides_annotation(node, ctx.code):
        return []
    class_name = simple_identifier_from(node, ctx.code)
    if not class_name:
        return []
    class_fqn = ctx.qualify(class_name)
    line = line_of(node)

    target = provides_target_from_annotation_text(annotation_window(node, ctx.code))
    if target:
        return [_edge(ctx.qualify(target), class_fqn, ctx, line)]
    return [
        _edge(class_fqn, ctx.qualify(dep), ctx, line)
        for dep in class_header_param_types(node_text(node, ctx.code))
    ]


def annotated_constructor_edges(node: Any, ctx: FileContext) -> List[Edge]:
    if node.type not in CONSTRUCTOR_TYPES:
        return []
    # The window before a primary constructor is its own class header.
    if node.type == "primary_constructor":
        if not has_own_provides_modifier(node, ctx.code):
            return []
    elif not has_provides_annotation(node, ctx.code):
        return []

    owner = ancestor_of_type(node, ["class_declaration"])
    owner_name = simple_identifier_from(owner, ctx.code) if owner is not None else None
    if not owner_name:
        return []
    owner_fqn = ctx.qualify(owner_name)
    line = line_of(node)
    return [
        _edge(owner_fqn, ctx.qualify(dep), ctx, line)
        for dep, _ in constructor_param_types(node, ctx.code)
    ]


def annotated_function_edges(node: Any, ctx: FileContext) -> List[Edge]:
    if node.type != "function_declaration" or not has_provides_annotation(node, ctx.code):
        return []
    text = node_text(node, ctx.code)
    ret = return_type_from_provides_function(text)
    if not ret:
        return []
    provided = ctx.qualify(ret)
    line = line_of(node)
    return [_edge(provided, ctx.qualify(dep), ctx, line) for dep in function_param_types(text)]


def annotated_property_edges(node: Any, ctx: FileContext) -> List[Edge]:
    if node.type != "property_declaration":
        return []
    window = annotation_window(node, ctx.code)
    if not (has_provides_annotation(node, ctx.code) or _PROVIDES_CALL_RE.search(window)):
        return []
    target = provides_target_from_annotation_text(window)
    if not target:
        return []
    declared = property_declared_type(node_text(node, ctx.code))
    if not declared:
        return []
    return [_edge(ctx.qualify(target), ctx.qualify(declared), ctx, line_of(node))]


SHAPES = (
    annotated_class_edges,
    annotated_constructor_edges,
    annotated_function_edges,
    annotated_property_edges,
)


def extract_provider_edges(root: Any, ctx: FileContext) -> List[Edge]:
    edges: List[Edge] = []
    for node in walk(root):
        for shape in SHAPES:
            edges.extend(shape(node, ctx))
    return edges
