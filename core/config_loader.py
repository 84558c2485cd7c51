"""Shared helpers for loading declaration mappings from TOML, JSON or YAML."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

import json
import tomllib

try:  # Optional dependency for YAML support
    import yaml
except ModuleNotFoundError:  # pragma: no cover - exercised when PyYAML absent
    yaml = None


ConfigLoader = Callable[[Any], Any]


def _load_yaml(stream: Any) -> Any:
    if yaml is None:
        raise RuntimeError(
            "PyYAML is required to load YAML bake files. Install with `pip install PyYAML`."
        )
    try:
        return yaml.safe_load(stream)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML: {exc}") from exc


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": tomllib.load,
    ".json": json.load,
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
}
"""Mapping of file suffixes to loader callables."""


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Decode ``path`` by suffix; the root must be a mapping."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS)) or "<none>"
        raise ValueError(f"Unsupported file extension: {suffix}. Supported: {supported}")

    if suffix == ".toml":
        with path.open("rb") as handle:
            data = loader(handle)
    else:
        with path.open("r", encoding="utf-8") as handle:
            data = loader(handle)

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise TypeError(f"File '{path}' must contain a mapping at the root")
    return data


def merge_mappings(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep merge two mappings; non-mapping values in ``overlay`` replace."""

    result: Dict[str, Any] = dict(base)
    for key, value in overlay.items():
        existing = result.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            result[key] = merge_mappings(existing, value)
        else:
            result[key] = value
    return result


def normalize_string_list(value: Any, *, field_name: str | None = None) -> List[str]:
    """Coerce ``value`` into a list of trimmed, non-empty strings."""

    if value is None:
        return []

    label = f"{field_name} " if field_name else ""
    if isinstance(value, str):
        text = value.strip()
        return [text] if text else []

    if isinstance(value, Sequence):
        items: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise TypeError(f"{label}entries must be strings")
            text = item.strip()
            if text:
                items.append(text)
        return items

    raise TypeError(f"{label}must be a string or sequence of strings")


__all__ = [
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
]
