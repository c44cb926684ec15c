"""Configuration loading and runtime bootstrapping."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from quest.rewards import Friend
from quest.scoring import ScoringPolicy

DEFAULT_CONFIG: dict[str, Any] = {
    "paths": {"save_file": "goals_save.txt"},
    "logging": {"level": "WARNING"},
    "scoring": {},
    "friends": [],
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_effective_config(root: Path) -> dict[str, Any]:
    """Built-in defaults overlaid with ``config/default.yaml`` under ``root``."""
    return merge_dicts(DEFAULT_CONFIG, load_yaml(root / "config" / "default.yaml"))


def resolve_save_path(root: Path, config: dict[str, Any], override: Path | None = None) -> Path:
    """Resolve the save file and make sure its directory exists."""
    raw = override or Path(config.get("paths", {}).get("save_file", "goals_save.txt"))
    save_path = raw if raw.is_absolute() else (root / raw)
    save_path = save_path.resolve()
    save_path.parent.mkdir(parents=True, exist_ok=True)
    return save_path


def build_policy(config: dict[str, Any]) -> ScoringPolicy:
    return ScoringPolicy.model_validate(config.get("scoring") or {})


def build_friends(config: dict[str, Any]) -> list[Friend]:
    return [Friend.model_validate(entry) for entry in config.get("friends") or []]


def configure_logging(config: dict[str, Any]) -> None:
    level_name = str(config.get("logging", {}).get("level", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
