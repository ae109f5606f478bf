"""Helpers for walking tree-sitter syntax trees.

Trees are parser-owned and read-only here. ``node.parent`` is only used to
climb towards an enclosing declaration; nothing in knitgraph keeps a
reference to a tree node past the extraction pass of its file.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Sequence

SyntaxNode = Any


def walk(node: SyntaxNode) -> Iterator[SyntaxNode]:
    """Yield *node* and all of its named descendants, depth-first, pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


def first_child_of_type(node: SyntaxNode, node_type: str) -> Optional[SyntaxNode]:
    for child in node.named_children:
        if child.type == node_type:
            return child
    return None


def ancestor_of_type(node: SyntaxNode, types: Sequence[str]) -> Optional[SyntaxNode]:
    current = node.parent
    while current is not None:
        if current.type in types:
            return current
        current = current.parent
    return None


def node_text(node: SyntaxNode, code: bytes) -> str:
    return code[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def text_before(node: SyntaxNode, code: bytes, width: int) -> str:
    """Raw text of the *width* bytes preceding *node*."""
    start = node.start_byte
    return code[max(0, start - width):start].decode("utf-8", errors="replace")


IDENTIFIER_TYPES = ("identifier", "simple_identifier", "type_identifier")


def simple_identifier_from(node: SyntaxNode, code: bytes) -> Optional[str]:
    """Declared name of a class / object / interface node.

    Reads the grammar's ``name`` field, falling back to the first identifier
    child for grammars that do not label it.
    """
    ident = node.child_by_field_name("name")
    if ident is None:
        ident = next((c for c in node.named_children if c.type in IDENTIFIER_TYPES), None)
    return node_text(ident, code) if ident is not None else None


def line_of(node: SyntaxNode) -> int:
    """1-based line of the node's start."""
    return node.start_point[0] + 1
