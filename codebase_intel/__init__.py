"""Codebase intel: signatures, complexity, dependency graphs and task routing."""

from __future__ import annotations

__version__ = "0.3.0"

from .cache import LRUCache
from .complexity import compute_complexity
from .graph import (
    GraphHolder,
    build_dependency_graph,
    find_cycles,
    top_dependencies,
    transitive_dependents,
)
from .orchestration import (
    classify_plan,
    classify_task,
    route_task,
    select_execution_mode,
)
from .repo_map import generate_repo_map
from .signatures import extract_exports, extract_signatures

__all__ = [
    "__version__",
    "LRUCache",
    "GraphHolder",
    "build_dependency_graph",
    "classify_plan",
    "classify_task",
    "compute_complexity",
    "extract_exports",
    "extract_signatures",
    "find_cycles",
    "generate_repo_map",
    "route_task",
    "select_execution_mode",
    "top_dependencies",
    "transitive_dependents",
]
