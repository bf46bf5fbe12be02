"""Core data models shared by extraction, graph, and classification layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

# Error tags returned in result values instead of raised exceptions.
ERROR_FILE_NOT_FOUND = "file_not_found"
ERROR_UNKNOWN_LANGUAGE = "unknown_language"
ERROR_NO_DETECTOR = "no_detector"
ERROR_PARSE_FAILED = "parse_failed"
ERROR_PARSE_FAILED_REGEX_FALLBACK = "parse_failed_regex_fallback"
ERROR_UNSUPPORTED_LANGUAGE = "unsupported_language"


# ===================================================================
# Extraction
# ===================================================================

@dataclass(frozen=True)
class Signature:
    name: str
    kind: str  # "function", "class", "method", "arrow"
    params: List[str]
    line: int
    is_async: bool = False
    generator: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind,
            "params": list(self.params),
            "line": self.line,
            "async": self.is_async,
            "generator": self.generator,
        }


@dataclass
class ExportSurface:
    named: List[str] = field(default_factory=list)
    default: Optional[str] = None
    re_exports: List[str] = field(default_factory=list)
    cjs_exports: List[str] = field(default_factory=list)
    type: str = "cjs"  # "esm", "cjs", "mixed"
    language: Optional[str] = None
    error: Optional[str] = None

    @property
    def export_names(self) -> List[str]:
        """Flat list of public names (re-exports excluded)."""
        names = list(self.named) + list(self.cjs_exports)
        if self.default:
            names.append(f"default:{self.default}")
        return names

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "named": list(self.named),
            "default": self.default,
            "reExports": list(self.re_exports),
            "cjsExports": list(self.cjs_exports),
            "type": self.type,
            "language": self.language,
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class SignatureResult:
    signatures: List[Signature] = field(default_factory=list)
    language: Optional[str] = None
    export_surface: Optional[ExportSurface] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "signatures": [s.to_dict() for s in self.signatures],
            "language": self.language,
        }
        if self.export_surface is not None:
            payload["export_surface"] = self.export_surface.to_dict()
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True)
class FunctionComplexity:
    name: str
    line: int
    complexity: int
    nesting_max: int


@dataclass
class ComplexityReport:
    file: str
    module_complexity: int = 0
    functions: List[FunctionComplexity] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "file": self.file,
            "module_complexity": self.module_complexity,
            "functions": [asdict(f) for f in self.functions],
        }
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass
class RepoMap:
    summary: str
    files_included: int
    total_signatures: int
    token_estimate: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===================================================================
# Dependency graph
# ===================================================================

@dataclass(frozen=True)
class ImportEdge:
    raw: str
    resolved: Optional[str] = None


@dataclass
class GraphStats:
    total_files_parsed: int = 0
    total_edges: int = 0
    languages_parsed: List[str] = field(default_factory=list)
    parse_errors: int = 0


@dataclass
class DependencyGraph:
    forward: Dict[str, List[str]] = field(default_factory=dict)
    reverse: Dict[str, List[str]] = field(default_factory=dict)
    stats: GraphStats = field(default_factory=GraphStats)
    built_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "forward": {k: list(v) for k, v in self.forward.items()},
            "reverse": {k: list(v) for k, v in self.reverse.items()},
            "stats": asdict(self.stats),
            "built_at": self.built_at,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DependencyGraph":
        """Rebuild a graph from its ``to_dict`` shape (e.g. a cached intel file)."""
        stats = payload.get("stats") or {}
        return cls(
            forward={k: list(v) for k, v in (payload.get("forward") or {}).items()},
            reverse={k: list(v) for k, v in (payload.get("reverse") or {}).items()},
            stats=GraphStats(
                total_files_parsed=stats.get("total_files_parsed", 0),
                total_edges=stats.get("total_edges", 0),
                languages_parsed=list(stats.get("languages_parsed", [])),
                parse_errors=stats.get("parse_errors", 0),
            ),
            built_at=payload.get("built_at", ""),
        )


@dataclass
class CycleReport:
    cycles: List[List[str]] = field(default_factory=list)
    cycle_count: int = 0
    files_in_cycles: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TransitiveDependent:
    path: str
    depth: int


@dataclass
class ImpactReport:
    file: str
    direct: List[str] = field(default_factory=list)
    transitive: List[TransitiveDependent] = field(default_factory=list)
    fan_in: int = 0
    max_depth_reached: int = 0
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "direct_dependents": list(self.direct),
            "transitive_dependents": [
                {"file": t.path, "depth": t.depth} for t in self.transitive
            ],
            "fan_in": self.fan_in,
            "max_depth_reached": self.max_depth_reached,
            "truncated": self.truncated,
        }


# ===================================================================
# Planning / orchestration
# ===================================================================

@dataclass
class Task:
    name: str
    type: str = "auto"
    files: List[str] = field(default_factory=list)
    action: str = ""
    verify: str = ""
    done: str = ""

    @property
    def is_checkpoint(self) -> bool:
        return self.type.startswith("checkpoint:")


@dataclass(frozen=True)
class TaskComplexityScore:
    score: int
    label: str
    factors: List[str]
    recommended_model: str
    recommended_agent: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "label": self.label,
            "factors": list(self.factors),
            "recommended_model": self.recommended_model,
            "recommended_agent": self.recommended_agent,
        }


@dataclass
class ClassifiedTask:
    name: str
    type: str
    files: List[str]
    complexity: TaskComplexityScore

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "files": list(self.files),
            "complexity": self.complexity.to_dict(),
        }


@dataclass
class PlanClassification:
    plan: str
    wave: int = 1
    autonomous: bool = False
    tasks: List[ClassifiedTask] = field(default_factory=list)
    plan_complexity: int = 1
    recommended_model: str = "sonnet"

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def has_checkpoints(self) -> bool:
        return any(t.type.startswith("checkpoint:") for t in self.tasks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan,
            "wave": self.wave,
            "autonomous": self.autonomous,
            "task_count": self.task_count,
            "tasks": [t.to_dict() for t in self.tasks],
            "plan_complexity": self.plan_complexity,
            "recommended_model": self.recommended_model,
        }


@dataclass
class ExecutionModeDecision:
    mode: str  # "single", "sequential", "parallel", "pipeline"
    reason: str
    waves: Dict[int, List[str]] = field(default_factory=dict)
    total_plans: int = 0
    total_waves: int = 0
    has_checkpoints: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "reason": self.reason,
            "waves": {str(k): list(v) for k, v in self.waves.items()},
            "total_plans": self.total_plans,
            "total_waves": self.total_waves,
            "has_checkpoints": self.has_checkpoints,
        }


@dataclass(frozen=True)
class RouteDecision:
    model: str
    agent: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
