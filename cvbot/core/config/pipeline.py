from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from cvbot.core.config.settings import settings

_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"
_CONFIG_CACHE: dict[Path, dict[str, Any]] = {}


def pipeline_config_path() -> Path:
    return Path(settings.pipeline_config_path or _CONFIG_DIR / "pipeline.yaml")


def boundaries_config_path() -> Path:
    return Path(settings.boundaries_config_path or _CONFIG_DIR / "boundaries.yaml")


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk and cache it by resolved path."""
    resolved = path.resolve()
    cached = _CONFIG_CACHE.get(resolved)
    if cached is not None:
        return cached

    if not resolved.exists():
        raise RuntimeError(f"Pipeline config not found at '{resolved}'.")

    try:
        raw = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read pipeline config '{resolved}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in pipeline config '{resolved}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(
            f"Invalid pipeline config '{resolved}': expected a top-level mapping."
        )

    _CONFIG_CACHE[resolved] = parsed
    return parsed


def get_pipeline_config() -> dict[str, Any]:
    return load_yaml_config(pipeline_config_path())


def get_boundaries_config() -> dict[str, Any]:
    return load_yaml_config(boundaries_config_path())


def get_pipeline_value(path: str, default: Any = None) -> Any:
    """Get nested config value using dot path notation, e.g. 'retrieval.top_k'."""
    if not path:
        return default

    current: Any = get_pipeline_config()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current
