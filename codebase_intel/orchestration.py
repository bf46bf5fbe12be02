"""Task complexity scoring, execution-mode selection and model routing.

These functions feed automated scheduling, so none of them raise: an
internal fault degrades to a conservative default (score 3, sequential
execution, the lower model tier) with a factor or reason that says so.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from . import config
from .models import (
    ClassifiedTask,
    DependencyGraph,
    ExecutionModeDecision,
    PlanClassification,
    RouteDecision,
    Task,
    TaskComplexityScore,
)
from .plans import parse_tasks_from_plan, read_frontmatter

logger = logging.getLogger(__name__)

TEST_IDIOMS = re.compile(
    r"\btest\b|npm\s+test|pytest|jest|mocha|vitest|go\s+test|mix\s+test",
    re.I,
)

HUMAN_CHECKPOINTS = ("checkpoint:decision", "checkpoint:human-verify")


# ===================================================================
# Task classifier
# ===================================================================

def _normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def _paths_match(key: str, file: str) -> bool:
    return key == file or key.endswith("/" + file) or file.endswith("/" + key)


def count_importers(files: Sequence[str], graph: DependencyGraph) -> int:
    """Importers of *files* summed over every reverse-graph key that matches.

    Keys and files match when equal or when one is a ``/``-suffix of the
    other, after dropping ``./`` prefixes and normalising separators.
    """
    total = 0
    for file in files:
        wanted = _normalize_path(file)
        for key, importers in graph.reverse.items():
            if _paths_match(_normalize_path(key), wanted):
                total += len(importers)
    return total


def _score(score: int, factors: List[str]) -> TaskComplexityScore:
    score = max(1, min(5, score))
    return TaskComplexityScore(
        score=score,
        label=config.COMPLEXITY_LABELS[score],
        factors=factors,
        recommended_model=config.MODEL_MAP[score],
        recommended_agent=config.DEFAULT_AGENT,
    )


def classify_task(task: Task, graph: Optional[DependencyGraph] = None) -> TaskComplexityScore:
    """Score *task* from 1 (trivial) to 5 (very complex).

    Contributions: declared file count, blast radius through *graph*'s
    reverse edges, test invocations in the action or verify text, human
    checkpoints, and a long action description.
    """
    try:
        score = 1
        factors: List[str] = []
        files = list(task.files or [])
        action = task.action or ""
        verify = task.verify or ""

        if len(files) >= config.FILE_COUNT_HIGH:
            score += 2
            factors.append(f"{len(files)} files (high)")
        elif len(files) >= config.FILE_COUNT_MODERATE:
            score += 1
            factors.append(f"{len(files)} files")

        if graph is not None:
            importers = count_importers(files, graph)
            if importers >= config.BLAST_RADIUS_HIGH:
                score += 2
                factors.append(f"high blast radius ({importers} importers)")
            elif importers >= config.BLAST_RADIUS_MODERATE:
                score += 1
                factors.append(f"moderate blast radius ({importers} importers)")

        if TEST_IDIOMS.search(action) or TEST_IDIOMS.search(verify):
            score += 1
            factors.append("has tests")

        if task.type in HUMAN_CHECKPOINTS:
            score += 1
            factors.append(f"checkpoint ({task.type})")

        if len(action) > config.ACTION_LENGTH_THRESHOLD:
            score += 1
            factors.append(f"complex action (>{config.ACTION_LENGTH_THRESHOLD} chars)")

        return _score(score, factors)
    except Exception as exc:
        logger.warning("Task classification failed for %r: %s", getattr(task, "name", task), exc)
        return _score(3, ["classification error - defaulting"])


# ===================================================================
# Plan classifier
# ===================================================================

def _model_priority(model: str) -> int:
    return config.MODEL_PRIORITY.get(model, 0)


def _wave_number(value: object) -> int:
    try:
        wave = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return wave or 1


def classify_plan(
    name: str,
    content: str,
    graph: Optional[DependencyGraph] = None,
) -> Optional[PlanClassification]:
    """Classify every task of one plan document.

    ``plan_complexity`` is the highest task score (1 for an empty plan);
    ``recommended_model`` is the highest-priority task recommendation.
    Returns ``None`` if the plan cannot be processed.
    """
    try:
        frontmatter = read_frontmatter(content)
        tasks = [
            ClassifiedTask(t.name, t.type, t.files, classify_task(t, graph))
            for t in parse_tasks_from_plan(content)
        ]
        best = "sonnet"
        for t in tasks:
            if _model_priority(t.complexity.recommended_model) > _model_priority(best):
                best = t.complexity.recommended_model
        autonomous = frontmatter.get("autonomous")
        return PlanClassification(
            plan=name,
            wave=_wave_number(frontmatter.get("wave", 1)),
            autonomous=autonomous is True or autonomous == "true",
            tasks=tasks,
            plan_complexity=max((t.complexity.score for t in tasks), default=1),
            recommended_model=best,
        )
    except Exception as exc:
        logger.warning("Plan classification failed for %s: %s", name, exc)
        return None


def classify_plan_file(
    plan_path: Path,
    graph: Optional[DependencyGraph] = None,
) -> Optional[PlanClassification]:
    """Read *plan_path* and classify it; ``None`` when unreadable."""
    try:
        content = Path(plan_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read plan %s: %s", plan_path, exc)
        return None
    return classify_plan(Path(plan_path).name, content, graph)


# ===================================================================
# Execution mode
# ===================================================================

def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


def select_execution_mode(plans: Sequence[PlanClassification]) -> ExecutionModeDecision:
    """Pick single, sequential, parallel or pipeline execution for a batch.

    Any checkpoint task forces ``sequential``.
    """
    try:
        if not plans:
            return ExecutionModeDecision(mode="single", reason="no plans to execute")

        waves: Dict[int, List[str]] = {}
        for plan in plans:
            waves.setdefault(plan.wave or 1, []).append(plan.plan)
        waves = dict(sorted(waves.items()))
        total_plans = len(plans)
        total_waves = len(waves)

        def decide(mode: str, reason: str, checkpoints: bool = False) -> ExecutionModeDecision:
            return ExecutionModeDecision(
                mode=mode,
                reason=reason,
                waves=waves,
                total_plans=total_plans,
                total_waves=total_waves,
                has_checkpoints=checkpoints,
            )

        if any(plan.has_checkpoints for plan in plans):
            return decide(
                "sequential",
                "plan has checkpoint tasks requiring human interaction",
                checkpoints=True,
            )

        if total_plans == 1 and plans[0].task_count <= 2:
            return decide("single", f"1 plan with {_plural(plans[0].task_count, 'task')}")

        for wave, names in waves.items():
            if len(names) > 1:
                return decide("parallel", f"{len(names)} independent plans in wave {wave}")

        if total_waves >= 3:
            return decide("pipeline", f"{total_waves} waves requiring sequential execution")

        return decide("sequential", f"{total_plans} plans across {_plural(total_waves, 'wave')}")
    except Exception as exc:
        logger.warning("Execution mode selection failed: %s", exc)
        return ExecutionModeDecision(
            mode="sequential",
            reason="mode selection error - defaulting to sequential",
        )


# ===================================================================
# Routing
# ===================================================================

def route_task(
    complexity: TaskComplexityScore,
    model_profile: Optional[str] = None,
    profiles: Optional[Mapping[str, Mapping[str, str]]] = None,
    agent: str = config.DEFAULT_AGENT,
) -> RouteDecision:
    """Map a complexity score to a model for *agent*.

    With *model_profile* set, the profile's model for *agent* competes with
    the score's recommendation and the higher tier wins. The top tier is
    reported as ``inherit``, deferring to the caller's own session model.
    """
    try:
        score = complexity.score or 3
        model = config.MODEL_MAP.get(score, "sonnet")
        reason = f"score {score} ({complexity.label})"

        table = (profiles if profiles is not None else config.MODEL_PROFILES).get(agent) or {}
        profile_model = table.get(model_profile) if model_profile else None
        if profile_model:
            if _model_priority(profile_model) >= _model_priority(model):
                model = profile_model
            reason += f" via {model_profile} profile"
        elif model_profile:
            logger.debug("Unknown model profile %r for %s", model_profile, agent)

        return RouteDecision(
            model="inherit" if model == "opus" else model,
            agent=agent,
            reason=reason,
        )
    except Exception as exc:
        logger.warning("Task routing failed: %s", exc)
        return RouteDecision(
            model="sonnet",
            agent=config.DEFAULT_AGENT,
            reason="routing error - defaulting to sonnet",
        )
