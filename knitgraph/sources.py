"""Load Kotlin sources from a directory tree for a batch run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Set

from .config import DEFAULT_MAX_FILE_BYTES, DEFAULT_MAX_FILES
from .errors import SourceLoadError
from .models import SourceFile

logger = logging.getLogger(__name__)

KOTLIN_SUFFIX = ".kt"

SKIP_DIRS: Set[str] = {
    ".git", ".gradle", ".idea", "build", "out", "node_modules",
    ".kotlin", ".knitgraph",
}


@dataclass
class SourceBatch:
    files: List[SourceFile] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    truncated: bool = False


def normalize_path(path: str) -> str:
    return path.replace("\\", "/").strip("/")


def included_by(includes: Sequence[str], candidate: str) -> bool:
    """True if *candidate* equals an include path or sits under an included folder."""
    for inc in includes:
        inc = normalize_path(inc)
        if not inc:
            continue
        if candidate == inc or candidate.startswith(inc + "/"):
            return True
    return False


def _kotlin_paths(root: Path) -> List[str]:
    paths = []
    for file_path in sorted(root.rglob(f"*{KOTLIN_SUFFIX}")):
        rel = file_path.relative_to(root)
        if any(part in SKIP_DIRS for part in rel.parts[:-1]):
            continue
        if file_path.is_file():
            paths.append(rel.as_posix())
    return paths


def load_sources(
    root: Path,
    include: Iterable[str] = (),
    prefix: str = "",
    max_files: int = DEFAULT_MAX_FILES,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> SourceBatch:
    """Collect ``.kt`` files under *root*.

    With a *prefix*, only files under that folder are kept and their paths
    become relative to it. With *include* paths, only matching files or
    folders are kept.
    """
    if not root.is_dir():
        raise SourceLoadError(f"Source root '{root}' is not a directory")

    paths = _kotlin_paths(root)
    base = root
    norm_prefix = normalize_path(prefix)
    if norm_prefix:
        paths = [p[len(norm_prefix) + 1:] for p in paths if p.startswith(norm_prefix + "/")]
        base = root / norm_prefix

    includes = [normalize_path(p) for p in include]
    if includes:
        paths = [p for p in paths if included_by(includes, p)]
        if not paths:
            raise SourceLoadError("No matching Kotlin files for the provided include paths")

    batch = SourceBatch()
    if len(paths) > max_files:
        logger.warning("Truncating %d Kotlin files to %d", len(paths), max_files)
        paths = paths[:max_files]
        batch.truncated = True

    for rel in paths:
        file_path = base / rel
        size = file_path.stat().st_size
        if size > max_file_bytes:
            batch.skipped.append(f"{rel}: larger than {max_file_bytes} bytes")
            continue
        try:
            content = file_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError:
            batch.skipped.append(f"{rel}: not valid UTF-8")
            continue
        batch.files.append(SourceFile(path=rel, content=content))

    logger.info("Loaded %d Kotlin files from %s (%d skipped)", len(batch.files), base, len(batch.skipped))
    return batch
