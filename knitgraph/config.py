"""Configuration for knitgraph batch runs.

Settings come from ``~/.knitgraph/config.toml`` (section ``[analysis]``)
when present, then environment variables override individual values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("KNITGRAPH_HOME", str(Path.home() / ".knitgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Caller-side limits; the extraction core itself enforces none of these.
DEFAULT_MAX_FILES = 2000
DEFAULT_MAX_FILE_BYTES = 1 * 1024 * 1024
DEFAULT_WORKERS = 8
DEFAULT_DEDUPE_MODE = "meaning"
DEFAULT_CRITICAL_NODE_CEILING = 400

ENV_VARS = {
    "max_files": "KNITGRAPH_MAX_FILES",
    "max_file_bytes": "KNITGRAPH_MAX_FILE_BYTES",
    "workers": "KNITGRAPH_WORKERS",
    "dedupe_mode": "KNITGRAPH_DEDUPE",
    "critical_node_ceiling": "KNITGRAPH_CRITICAL_CEILING",
}


@dataclass
class Settings:
    max_files: int = DEFAULT_MAX_FILES
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    workers: int = DEFAULT_WORKERS
    dedupe_mode: str = DEFAULT_DEDUPE_MODE
    critical_node_ceiling: int = DEFAULT_CRITICAL_NODE_CEILING


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Return the ``[analysis]`` table of the TOML config, or ``{}``."""
    path = path or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        data = toml.load(path)
    except (toml.TomlDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    return dict(data.get("analysis", {}))


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid value %r for %s, using %r", value, name, default)
            return default
    return str(value)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    environ = os.environ if environ is None else environ
    file_values = load_config_file(config_path)
    settings = Settings()
    for f in fields(Settings):
        default = getattr(settings, f.name)
        if f.name in file_values:
            setattr(settings, f.name, _coerce(f.name, file_values[f.name], default))
        env_value = environ.get(ENV_VARS[f.name])
        if env_value:
            setattr(settings, f.name, _coerce(f.name, env_value, default))
    return settings
