"""Configuration manager for codebase intel using TOML files."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "routing": {
        "model_profile": "",
        "profiles": {},
    },
    "graph": {
        "max_workers": config.DEFAULT_MAX_WORKERS,
        "max_depth": config.DEFAULT_MAX_DEPTH,
    },
    "repo_map": {
        "token_budget": config.DEFAULT_TOKEN_BUDGET,
    },
}


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the TOML config merged over :data:`DEFAULT_CONFIG`.

    A missing file yields the defaults. A file that cannot be parsed is
    reported and ignored.
    """
    path = config_file or config.CONFIG_FILE
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if not path.exists():
        return merged

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return merged

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def save_config(cfg: Dict[str, Any], config_file: Optional[Path] = None) -> bool:
    """Write *cfg* to the TOML config file, creating parent dirs."""
    path = config_file or config.CONFIG_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(cfg, f)
    except OSError as exc:
        logger.warning("Could not write config %s: %s", path, exc)
        return False
    return True


def load_routing_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Return ``{"model_profile": str, "profiles": {agent: {profile: model}}}``.

    Profiles from the file are layered over :data:`config.MODEL_PROFILES`.
    """
    routing = load_full_config(config_file).get("routing", {})
    profiles = copy.deepcopy(config.MODEL_PROFILES)
    for agent, table in (routing.get("profiles") or {}).items():
        if isinstance(table, dict):
            profiles.setdefault(agent, {}).update(table)
    return {
        "model_profile": routing.get("model_profile") or "",
        "profiles": profiles,
    }


def load_graph_config(config_file: Optional[Path] = None) -> Dict[str, int]:
    graph = load_full_config(config_file).get("graph", {})
    return {
        "max_workers": int(graph.get("max_workers", config.DEFAULT_MAX_WORKERS)),
        "max_depth": int(graph.get("max_depth", config.DEFAULT_MAX_DEPTH)),
    }


def load_repo_map_config(config_file: Optional[Path] = None) -> Dict[str, int]:
    repo_map = load_full_config(config_file).get("repo_map", {})
    return {
        "token_budget": int(repo_map.get("token_budget", config.DEFAULT_TOKEN_BUDGET)),
    }
