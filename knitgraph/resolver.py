"""Resolve Kotlin type tokens to fully-qualified names.

Resolution is purely textual: the file's ``package`` line and its ``import``
lines are the only context. Nothing here checks that a resolved name exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict

_PACKAGE_RE = re.compile(r"\bpackage\s+([A-Za-z0-9_.]+)")
_IMPORT_RE = re.compile(r"^\s*import\s+([A-Za-z0-9_.]+)", re.MULTILINE)
_WHITESPACE_RE = re.compile(r"\s+")
# One level only: "Map<String, List<Foo>>" keeps part of its argument list.
_GENERIC_ARGS_RE = re.compile(r"<[^<>]*>")
_NULLABLE_RE = re.compile(r"\?+$")


def package_name(code: str) -> str:
    """First ``package a.b.c`` in *code*, or ``""``."""
    m = _PACKAGE_RE.search(code)
    return m.group(1) if m else ""


def collect_imports(code: str) -> Dict[str, str]:
    """Map each imported short name to its full dotted path; last import wins."""
    imports: Dict[str, str] = {}
    for m in _IMPORT_RE.finditer(code):
        fqn = m.group(1)
        imports[fqn.rsplit(".", 1)[-1]] = fqn
    return imports


def qualify(raw: str, pkg: str, imports: Dict[str, str]) -> str:
    base = _WHITESPACE_RE.sub("", raw)
    base = _GENERIC_ARGS_RE.sub("", base)
    base = _NULLABLE_RE.sub("", base)
    if "." in base:
        return base
    if base in imports:
        return imports[base]
    return f"{pkg}.{base}" if pkg else base


@dataclass
class FileContext:
    """Per-file resolution context passed to every extraction pass."""

    path: str
    code: bytes
    pkg: str = ""
    imports: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_source(cls, path: str, content: str) -> "FileContext":
        return cls(
            path=path,
            code=content.encode("utf-8"),
            pkg=package_name(content),
            imports=collect_imports(content),
        )

    def qualify(self, raw: str) -> str:
        return qualify(raw, self.pkg, self.imports)
