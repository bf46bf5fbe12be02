"""Configuration paths and tuning constants for codebase intel."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODEBASE_INTEL_HOME", str(Path.home() / ".codebase-intel"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Repo map
CHARS_PER_TOKEN = 4
DEFAULT_TOKEN_BUDGET = 1000

# Dependency graph / impact
DEFAULT_MAX_DEPTH = 10
DEFAULT_MAX_WORKERS = 8

# Task classification
FILE_COUNT_HIGH = 6
FILE_COUNT_MODERATE = 3
BLAST_RADIUS_HIGH = 6
BLAST_RADIUS_MODERATE = 3
ACTION_LENGTH_THRESHOLD = 800

COMPLEXITY_LABELS = {
    1: "trivial",
    2: "simple",
    3: "moderate",
    4: "complex",
    5: "very_complex",
}

MODEL_MAP = {
    1: "sonnet",
    2: "sonnet",
    3: "sonnet",
    4: "opus",
    5: "opus",
}

# Higher wins when two recommendations disagree. "inherit" defers to the
# caller's own session model, which is always at least the top tier.
MODEL_PRIORITY = {"haiku": 0, "sonnet": 1, "opus": 2, "inherit": 2}

DEFAULT_AGENT = "gsd-executor"

# agent -> profile name -> model
MODEL_PROFILES = {
    "gsd-executor": {
        "quality": "opus",
        "balanced": "sonnet",
        "budget": "sonnet",
    },
}
