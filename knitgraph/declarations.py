"""Collect class / interface / object declarations as graph node candidates."""

from __future__ import annotations

import re
from typing import Any, List

from .models import Declaration, Location
from .resolver import FileContext
from .syntax import line_of, simple_identifier_from, text_before, walk

DECLARATION_TYPES = ("class_declaration", "interface_declaration", "object_declaration")

_COMPANION_HEAD_RE = re.compile(r"^\s*companion\s+object\b")
_COMPANION_TAIL_RE = re.compile(r"\bcompanion\s*$")


def is_companion_object(node: Any, ctx: FileContext) -> bool:
    head = ctx.code[node.start_byte:node.start_byte + 60].decode("utf-8", errors="replace")
    if _COMPANION_HEAD_RE.match(head):
        return True
    return bool(_COMPANION_TAIL_RE.search(text_before(node, ctx.code, 60)))


def extract_declarations(root: Any, ctx: FileContext) -> List[Declaration]:
    declarations: List[Declaration] = []
    for node in walk(root):
        if node.type not in DECLARATION_TYPES:
            continue
        if node.type == "object_declaration" and is_companion_object(node, ctx):
            continue
        name = simple_identifier_from(node, ctx.code)
        if not name:
            continue
        declarations.append(
            Declaration(fqn=ctx.qualify(name), location=Location(ctx.path, line_of(node)))
        )
    return declarations
