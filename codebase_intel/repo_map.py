"""Budgeted textual digest of a project's signatures.

The map lists the densest files first, one section per file::

    # Repo Map

    ## src/lib/ast.js (4 exports)
      fn extractSignatures(filePath, options) :612
      class Walker() :40
        method Walker.visit(node) :52
      exports: extractSignatures, extractExports, ...

Sections are appended until the character budget (``token_budget`` times
:data:`~codebase_intel.config.CHARS_PER_TOKEN`, plus 20% headroom) would
be exceeded. The first section is always kept.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from . import config
from .cache import LRUCache
from .models import RepoMap, Signature
from .signatures import extract_signatures

logger = logging.getLogger(__name__)

HEADER = "# Repo Map"
BUDGET_HEADROOM = 1.2
TIGHT_BUDGET_CHARS = 2000
MAX_SIGS_TIGHT = 10
MAX_SIGS_ROOMY = 30
MAX_PARAMS_CHARS = 40
MAX_EXPORTS_CHARS = 60

_PREFIXES = {
    "method": "    method",
    "class": "  class",
}


@dataclass
class FileDigest:
    path: str
    signatures: List[Signature]
    export_names: List[str]


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def _digest(root: Path, rel_path: str, cache: Optional[LRUCache]) -> Optional[FileDigest]:
    result = extract_signatures(str(root / rel_path), cache=cache)
    if result.error:
        logger.debug("Repo map: %s -> %s", rel_path, result.error)
    exports = result.export_surface.export_names if result.export_surface else []
    if not result.signatures and not exports:
        return None
    return FileDigest(rel_path, list(result.signatures), exports)


def format_signature(sig: Signature) -> str:
    prefix = _PREFIXES.get(sig.kind, "  fn")
    async_mark = "async " if sig.is_async else ""
    params = _truncate(", ".join(sig.params), MAX_PARAMS_CHARS)
    return f"{prefix} {async_mark}{sig.name}({params}) :{sig.line}"


def render_section(digest: FileDigest, max_sigs: int) -> str:
    """Render one file's section, ending with a blank line."""
    label = f" ({len(digest.export_names)} exports)" if digest.export_names else ""
    lines = [f"## {digest.path}{label}"]
    lines.extend(format_signature(s) for s in digest.signatures[:max_sigs])
    if len(digest.signatures) > max_sigs:
        lines.append(f"  ... +{len(digest.signatures) - max_sigs} more")
    if digest.export_names:
        lines.append("  exports: " + _truncate(", ".join(digest.export_names), MAX_EXPORTS_CHARS))
    lines.append("")
    return "\n".join(lines)


def generate_repo_map(
    files: Iterable[str],
    token_budget: int = config.DEFAULT_TOKEN_BUDGET,
    root: Union[str, Path] = ".",
    cache: Optional[LRUCache] = None,
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> RepoMap:
    """Build a repo map for *files* (paths relative to *root*).

    Signature extraction fans out over a thread pool; the result is
    assembled in a single pass and does not depend on thread timing.
    """
    root = Path(root)
    file_list = list(files)
    char_budget = token_budget * config.CHARS_PER_TOKEN
    limit = char_budget * BUDGET_HEADROOM

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        digests = [
            d for d in executor.map(lambda p: _digest(root, p, cache), file_list)
            if d is not None
        ]
    # stable: ties keep input order
    digests.sort(key=lambda d: len(d.signatures), reverse=True)

    parts = [HEADER, ""]
    total_chars = len("\n".join(parts))
    files_included = 0
    total_signatures = 0

    for digest in digests:
        remaining = limit - total_chars
        max_sigs = MAX_SIGS_TIGHT if remaining < TIGHT_BUDGET_CHARS else MAX_SIGS_ROOMY
        section = render_section(digest, max_sigs)
        # one joining newline per section
        if total_chars + len(section) + 1 > limit and files_included > 0:
            break
        parts.append(section)
        total_chars += len(section) + 1
        files_included += 1
        total_signatures += len(digest.signatures)

    summary = "\n".join(parts).strip()
    return RepoMap(
        summary=summary,
        files_included=files_included,
        total_signatures=total_signatures,
        token_estimate=math.ceil(len(summary) / config.CHARS_PER_TOKEN),
    )
