"""Language detection and project source-file discovery."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, Optional, Set

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping (extensible)
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".js": "javascript",
    ".cjs": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".pyw": "python",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".rake": "ruby",
    ".ex": "elixir",
    ".exs": "elixir",
    ".java": "java",
    ".kt": "kotlin",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".cs": "c_sharp",
    ".swift": "swift",
    ".dart": "dart",
    ".lua": "lua",
    ".zig": "zig",
    ".nim": "nim",
}

JS_FAMILY: Set[str] = {"javascript", "typescript"}

SKIP_DIRS: Set[str] = {
    ".venv", "venv", "__pycache__", "node_modules", ".git",
    "site-packages", ".tox", ".pytest_cache", "build", "dist",
    ".mypy_cache", ".ruff_cache", "htmlcov", ".eggs",
    "egg-info", ".planning", "coverage", "vendor", "target",
}


def detect_language(file_path: str) -> Optional[str]:
    """Map *file_path*'s extension to a language tag, or ``None``."""
    return LANGUAGE_MAP.get(PurePosixPath(file_path.replace("\\", "/")).suffix)


def is_js_family(language: Optional[str]) -> bool:
    return language in JS_FAMILY


def iter_source_files(root: Path) -> Iterator[str]:
    """Yield project-relative POSIX paths of every file with a known language.

    Directories in :data:`SKIP_DIRS` (and ``*.egg-info``) are pruned. Paths
    are yielded in sorted order so repeated walks agree.
    """
    root = root.resolve()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in SKIP_DIRS and not d.endswith(".egg-info")
        )
        for filename in sorted(filenames):
            if Path(filename).suffix not in LANGUAGE_MAP:
                continue
            rel = Path(dirpath, filename).relative_to(root)
            yield rel.as_posix()
