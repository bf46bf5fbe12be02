"""Project dependency graph, cycle detection and impact analysis.

:func:`build_dependency_graph` parses every file's imports on a thread
pool, then merges the per-file results on the calling thread in input
order, so the adjacency lists are identical from run to run.
:func:`find_cycles` and :func:`transitive_dependents` only read a finished
graph; :class:`GraphHolder` lets a long-lived process rebuild the graph
while readers keep using the previous snapshot.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from . import config
from .imports import IMPORT_PARSERS, parse_imports
from .languages import detect_language
from .models import (
    CycleReport,
    DependencyGraph,
    GraphStats,
    ImpactReport,
    TransitiveDependent,
)

logger = logging.getLogger(__name__)

LanguageOf = Callable[[str], Optional[str]]
Reader = Callable[[str], str]


def file_reader(root: Union[str, Path]) -> Reader:
    """Reader for paths relative to *root*."""
    base = Path(root)

    def read(path: str) -> str:
        return (base / path).read_text(encoding="utf-8")

    return read


# ===================================================================
# Build
# ===================================================================

# per-file outcome: (path, language, resolved targets or None on failure)
_FileResult = Tuple[str, str, Optional[List[str]]]


def _scan_file(path: str, language: str, read: Reader, file_set: Set[str]) -> _FileResult:
    try:
        content = read(path)
    except Exception as exc:
        logger.debug("read error: %s: %s", path, exc)
        return path, language, None
    try:
        edges = parse_imports(path, content, language, file_set)
    except Exception as exc:
        logger.debug("parse error: %s: %s", path, exc)
        return path, language, None
    targets = list(dict.fromkeys(e.resolved for e in edges if e.resolved))
    return path, language, targets


def build_dependency_graph(
    file_set: Iterable[str],
    language_of: LanguageOf = detect_language,
    read: Optional[Reader] = None,
    max_workers: int = config.DEFAULT_MAX_WORKERS,
) -> DependencyGraph:
    """Build forward/reverse import adjacency for *file_set*.

    Args:
        file_set: Project-relative POSIX paths; also the universe that
            import specifiers may resolve into.
        language_of: Maps a path to its language tag.
        read: Returns a file's text; defaults to reading relative to the
            current directory.
        max_workers: Thread-pool size for per-file parsing.

    Any exception from *read*, *language_of* or import parsing is a
    per-file failure: it counts towards ``stats.parse_errors`` and the file
    is otherwise skipped.
    """
    files = list(dict.fromkeys(file_set))
    known = set(files)
    read = read or file_reader(".")

    work = []
    lookup_errors = 0
    for path in files:
        try:
            language = language_of(path)
        except Exception as exc:
            logger.debug("language lookup error: %s: %s", path, exc)
            lookup_errors += 1
            continue
        if language and language in IMPORT_PARSERS:
            work.append((path, language))

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        results = list(executor.map(lambda item: _scan_file(item[0], item[1], read, known), work))

    forward: Dict[str, List[str]] = {}
    reverse: Dict[str, List[str]] = {}
    languages: Set[str] = set()
    parse_errors = lookup_errors
    total_edges = 0

    for path, language, targets in results:
        languages.add(language)
        if targets is None:
            parse_errors += 1
            continue
        if targets:
            forward[path] = targets
            total_edges += len(targets)
        for target in targets:
            reverse.setdefault(target, []).append(path)

    logger.debug(
        "Dependency graph: %d files, %d edges, %d errors",
        len(results), total_edges, parse_errors,
    )
    return DependencyGraph(
        forward=forward,
        reverse=reverse,
        stats=GraphStats(
            total_files_parsed=len(results),
            total_edges=total_edges,
            languages_parsed=sorted(languages),
            parse_errors=parse_errors,
        ),
        built_at=datetime.now(timezone.utc).isoformat(),
    )


# ===================================================================
# Cycles (Tarjan SCC, iterative)
# ===================================================================

def find_cycles(graph: DependencyGraph) -> CycleReport:
    """Strongly connected components of size >= 2, largest first."""
    forward = graph.forward
    nodes: Dict[str, None] = dict.fromkeys(forward)
    for targets in forward.values():
        nodes.update(dict.fromkeys(targets))

    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = 0

    for start in nodes:
        if start in index:
            continue
        # work items: (node, position of the next neighbour to visit)
        work: List[Tuple[str, int]] = [(start, 0)]
        while work:
            v, pos = work.pop()
            if pos == 0:
                index[v] = lowlink[v] = counter
                counter += 1
                stack.append(v)
                on_stack.add(v)

            neighbours = forward.get(v, [])
            descended = False
            while pos < len(neighbours):
                w = neighbours[pos]
                pos += 1
                if w not in index:
                    work.append((v, pos))
                    work.append((w, 0))
                    descended = True
                    break
                if w in on_stack:
                    lowlink[v] = min(lowlink[v], index[w])
            if descended:
                continue

            if lowlink[v] == index[v]:
                component = []
                while True:
                    w = stack.pop()
                    on_stack.discard(w)
                    component.append(w)
                    if w == v:
                        break
                if len(component) >= 2:
                    components.append(component)

            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[v])

    components.sort(key=len, reverse=True)
    in_cycles = {f for c in components for f in c}
    return CycleReport(
        cycles=components,
        cycle_count=len(components),
        files_in_cycles=len(in_cycles),
    )


# ===================================================================
# Impact (BFS over reverse edges)
# ===================================================================

def transitive_dependents(
    graph: DependencyGraph,
    path: str,
    max_depth: int = config.DEFAULT_MAX_DEPTH,
) -> ImpactReport:
    """Every file that imports *path*, directly or through other files.

    Dependents at ``max_depth`` are reported but not expanded; when any of
    them has importers that were never reached, ``truncated`` is set.
    """
    reverse = graph.reverse
    visited = {path}
    direct: List[str] = []
    transitive: List[TransitiveDependent] = []
    frontier: List[str] = []
    deepest = 0

    queue = deque([(path, 0)])
    while queue:
        current, depth = queue.popleft()
        for dep in reverse.get(current, []):
            if dep in visited:
                continue
            visited.add(dep)
            dep_depth = depth + 1
            deepest = max(deepest, dep_depth)
            if dep_depth == 1:
                direct.append(dep)
            else:
                transitive.append(TransitiveDependent(dep, dep_depth))
            if dep_depth < max_depth:
                queue.append((dep, dep_depth))
            else:
                frontier.append(dep)

    truncated = any(
        importer not in visited
        for node in frontier
        for importer in reverse.get(node, [])
    )
    transitive.sort(key=lambda t: t.depth)
    return ImpactReport(
        file=path,
        direct=direct,
        transitive=transitive,
        fan_in=len(direct) + len(transitive),
        max_depth_reached=deepest,
        truncated=truncated,
    )


def top_dependencies(graph: DependencyGraph, limit: int = 10) -> List[Tuple[str, int]]:
    """Most-imported files as ``(path, importer_count)``, highest first."""
    ranked = sorted(graph.reverse.items(), key=lambda kv: (-len(kv[1]), kv[0]))
    return [(path, len(importers)) for path, importers in ranked[:limit]]


# ===================================================================
# Snapshot holder
# ===================================================================

class GraphHolder:
    """Holds the current graph; rebuilds swap in a complete new one.

    Readers call :meth:`snapshot` and keep using what they got. A rebuild
    never mutates a graph that has been handed out.
    """

    def __init__(self, graph: Optional[DependencyGraph] = None) -> None:
        self._graph = graph or DependencyGraph()
        self._lock = threading.Lock()
        self._build_lock = threading.Lock()

    def snapshot(self) -> DependencyGraph:
        with self._lock:
            return self._graph

    def swap(self, graph: DependencyGraph) -> DependencyGraph:
        """Install *graph* and return the one it replaced."""
        with self._lock:
            previous, self._graph = self._graph, graph
        return previous

    def rebuild(
        self,
        file_set: Iterable[str],
        language_of: LanguageOf = detect_language,
        read: Optional[Reader] = None,
        max_workers: int = config.DEFAULT_MAX_WORKERS,
    ) -> DependencyGraph:
        """Build a fresh graph off-lock, then swap it in."""
        with self._build_lock:
            graph = build_dependency_graph(file_set, language_of, read, max_workers)
            self.swap(graph)
        return graph
