"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from civic_scrapers.common.errors import ConfigError
from civic_scrapers.common.fs import read_yaml
from civic_scrapers.common.schema import validate_organization_config, validate_runtime_config

RUNTIME_FILENAME = "runtime.yml"


@dataclass(frozen=True)
class ConfigBundle:
    organizations: dict[str, dict]
    runtime: dict


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    base = read_yaml(path)
    if not isinstance(base, dict):
        raise ConfigError(f"{path.name} must contain a mapping")
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay {overlay_path.name} must contain a mapping")
    return _deep_merge(base, overlay)


def _overlay_for(path: Path, overlay_config_dir: Path | None) -> Path | None:
    if overlay_config_dir is None:
        return None
    return overlay_config_dir / path.name


def list_organizations(config_dir: Path) -> list[str]:
    return sorted(path.stem for path in config_dir.glob("*.yml") if path.name != RUNTIME_FILENAME)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    runtime_path = config_dir / RUNTIME_FILENAME
    if not runtime_path.exists():
        raise ConfigError(f"Missing runtime config: {runtime_path}")
    runtime = validate_runtime_config(
        _load_yaml_with_overlay(runtime_path, _overlay_for(runtime_path, overlay_config_dir)),
        allow_unknown=allow_unknown,
    )

    organizations = {}
    for slug in list_organizations(config_dir):
        path = config_dir / f"{slug}.yml"
        cfg = _load_yaml_with_overlay(path, _overlay_for(path, overlay_config_dir))
        organizations[slug] = validate_organization_config(cfg, allow_unknown=allow_unknown)

    return ConfigBundle(organizations=organizations, runtime=runtime)
