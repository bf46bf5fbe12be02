"""Tests for task classification, execution-mode selection and routing."""

from pathlib import Path

import pytest

from codebase_intel import config
from codebase_intel.models import (
    ClassifiedTask,
    DependencyGraph,
    PlanClassification,
    Task,
    TaskComplexityScore,
)
from codebase_intel.orchestration import (
    classify_plan,
    classify_plan_file,
    classify_task,
    count_importers,
    route_task,
    select_execution_mode,
)

from conftest import plan_text, task_block


def _complexity(score: int) -> TaskComplexityScore:
    return TaskComplexityScore(
        score=score,
        label=config.COMPLEXITY_LABELS[score],
        factors=[],
        recommended_model=config.MODEL_MAP[score],
        recommended_agent=config.DEFAULT_AGENT,
    )


def _plan(name: str, wave: int = 1, tasks: int = 1, task_type: str = "auto") -> PlanClassification:
    return PlanClassification(
        plan=name,
        wave=wave,
        tasks=[ClassifiedTask(f"t{i}", task_type, [], _complexity(2)) for i in range(tasks)],
    )


class TestClassifyTask:
    def test_trivial(self):
        result = classify_task(Task("Rename variable", files=["a.js"], action="Rename x to y."))
        assert result.score == 1
        assert result.label == "trivial"
        assert result.factors == []
        assert result.recommended_model == "sonnet"
        assert result.recommended_agent == config.DEFAULT_AGENT

    def test_many_files_with_tests(self):
        """Seven files plus a test run is complex."""
        task = Task(
            "Refactor pipeline",
            files=[f"src/f{i}.js" for i in range(7)],
            action="Split the stages and run npm test afterwards.",
        )
        result = classify_task(task)
        assert result.score == 4
        assert result.label == "complex"
        assert "7 files (high)" in result.factors
        assert "has tests" in result.factors
        assert result.recommended_model == "opus"

    def test_moderate_file_count(self):
        result = classify_task(Task("x", files=["a", "b", "c"]))
        assert result.score == 2
        assert result.factors == ["3 files"]

    @pytest.mark.parametrize("text", ["pytest -q", "go test ./...", "mix test", "run the Jest suite"])
    def test_test_idioms_in_verify(self, text):
        assert "has tests" in classify_task(Task("x", verify=text)).factors

    def test_no_test_idiom(self):
        assert "has tests" not in classify_task(Task("x", action="Update the latest docs.")).factors

    def test_human_checkpoint(self):
        result = classify_task(Task("Pick a schema", type="checkpoint:decision"))
        assert result.score == 2
        assert result.factors == ["checkpoint (checkpoint:decision)"]

    def test_long_action(self):
        result = classify_task(Task("x", action="a" * (config.ACTION_LENGTH_THRESHOLD + 1)))
        assert result.factors == [f"complex action (>{config.ACTION_LENGTH_THRESHOLD} chars)"]

    def test_blast_radius(self, sample_graph: DependencyGraph):
        task = Task("Touch shared code", files=["models.py", "utils.py", "./web/math.js"])
        result = classify_task(task, sample_graph)
        assert "high blast radius (6 importers)" in result.factors
        assert "3 files" in result.factors
        assert result.score == 4

    def test_blast_radius_ignored_without_graph(self):
        result = classify_task(Task("x", files=["models.py"]))
        assert not any("blast radius" in f for f in result.factors)

    def test_score_clamped_to_five(self, sample_graph: DependencyGraph):
        task = Task(
            "Everything",
            type="checkpoint:human-verify",
            files=["models.py", "utils.py", "web/math.js", "d", "e", "f", "g"],
            action="pytest " + "x" * 900,
        )
        result = classify_task(task, sample_graph)
        assert result.score == 5
        assert result.label == "very_complex"

    def test_internal_error_defaults_to_moderate(self):
        result = classify_task(Task("bad", action=123))
        assert result.score == 3
        assert result.label == "moderate"
        assert result.factors == ["classification error - defaulting"]


def test_count_importers_suffix_match(sample_graph: DependencyGraph):
    assert count_importers(["math.js"], sample_graph) == 2
    assert count_importers([".\\web\\math.js"], sample_graph) == 2
    assert count_importers(["nothing.js"], sample_graph) == 0


class TestClassifyPlan:
    def test_plan_summary(self):
        content = plan_text(
            "wave: 2\nautonomous: true",
            task_block("Small", files="a.js"),
            task_block("Big", files=", ".join(f"f{i}.js" for i in range(7)), verify="npm test"),
        )
        plan = classify_plan("02-big.md", content)
        assert plan.plan == "02-big.md"
        assert plan.wave == 2
        assert plan.autonomous is True
        assert plan.task_count == 2
        assert plan.plan_complexity == 4
        assert plan.recommended_model == "opus"
        assert not plan.has_checkpoints

    def test_defaults(self):
        plan = classify_plan("empty.md", "no frontmatter, no tasks")
        assert plan.wave == 1
        assert plan.autonomous is False
        assert plan.plan_complexity == 1
        assert plan.recommended_model == "sonnet"

    def test_string_values_in_frontmatter(self):
        plan = classify_plan("p.md", plan_text('wave: "3"\nautonomous: "true"', task_block()))
        assert plan.wave == 3
        assert plan.autonomous is True

    def test_checkpoint_detected(self):
        plan = classify_plan("p.md", plan_text("", task_block(type="checkpoint:human-action")))
        assert plan.has_checkpoints

    def test_from_file(self, temp_dir: Path):
        path = temp_dir / "01-setup.md"
        path.write_text(plan_text("wave: 1", task_block()), encoding="utf-8")
        plan = classify_plan_file(path)
        assert plan.plan == "01-setup.md"
        assert plan.task_count == 1

    def test_missing_file(self, temp_dir: Path):
        assert classify_plan_file(temp_dir / "nope.md") is None


class TestExecutionMode:
    def test_empty_batch(self):
        decision = select_execution_mode([])
        assert decision.mode == "single"
        assert decision.reason == "no plans to execute"

    def test_single_small_plan(self):
        decision = select_execution_mode([_plan("a", tasks=2)])
        assert decision.mode == "single"
        assert decision.reason == "1 plan with 2 tasks"

    def test_single_task_wording(self):
        assert select_execution_mode([_plan("a")]).reason == "1 plan with 1 task"

    def test_same_wave_is_parallel(self):
        decision = select_execution_mode([_plan("a"), _plan("b")])
        assert decision.mode == "parallel"
        assert decision.reason == "2 independent plans in wave 1"
        assert decision.waves == {1: ["a", "b"]}

    def test_three_waves_is_pipeline(self):
        decision = select_execution_mode([_plan("c", 3), _plan("a", 1), _plan("b", 2)])
        assert decision.mode == "pipeline"
        assert decision.reason == "3 waves requiring sequential execution"
        assert list(decision.waves) == [1, 2, 3]
        assert decision.total_waves == 3

    def test_two_waves_is_sequential(self):
        decision = select_execution_mode([_plan("a", 1), _plan("b", 2)])
        assert decision.mode == "sequential"
        assert decision.reason == "2 plans across 2 waves"

    def test_large_single_plan_is_sequential(self):
        assert select_execution_mode([_plan("a", tasks=3)]).mode == "sequential"

    def test_checkpoint_forces_sequential(self):
        """A checkpoint anywhere wins over every parallel shape."""
        plans = [_plan("a"), _plan("b"), _plan("c", task_type="checkpoint:decision")]
        decision = select_execution_mode(plans)
        assert decision.mode == "sequential"
        assert decision.has_checkpoints is True
        assert decision.reason == "plan has checkpoint tasks requiring human interaction"
        assert decision.total_plans == 3

    def test_internal_error_defaults_to_sequential(self):
        decision = select_execution_mode([None])
        assert decision.mode == "sequential"
        assert decision.reason == "mode selection error - defaulting to sequential"

    def test_to_dict_wave_keys_are_strings(self):
        payload = select_execution_mode([_plan("a"), _plan("b", 2)]).to_dict()
        assert payload["waves"] == {"1": ["a"], "2": ["b"]}


class TestRouteTask:
    def test_low_score(self):
        route = route_task(_complexity(2))
        assert route.model == "sonnet"
        assert route.agent == config.DEFAULT_AGENT
        assert route.reason == "score 2 (simple)"

    def test_high_score_inherits(self):
        assert route_task(_complexity(5)).model == "inherit"

    def test_profile_raises_tier(self):
        route = route_task(_complexity(2), "quality")
        assert route.model == "inherit"
        assert route.reason == "score 2 (simple) via quality profile"

    def test_profile_never_lowers_tier(self):
        route = route_task(_complexity(4), "budget")
        assert route.model == "inherit"
        assert route.reason.endswith("via budget profile")

    def test_custom_profiles(self):
        profiles = {"reviewer": {"fast": "haiku", "deep": "opus"}}
        assert route_task(_complexity(1), "fast", profiles, agent="reviewer").model == "sonnet"
        route = route_task(_complexity(1), "deep", profiles, agent="reviewer")
        assert route.model == "inherit"
        assert route.agent == "reviewer"

    def test_unknown_profile_ignored(self):
        route = route_task(_complexity(3), "nonexistent")
        assert route.model == "sonnet"
        assert route.reason == "score 3 (moderate)"

    def test_internal_error_defaults_to_sonnet(self):
        route = route_task(None)
        assert route.model == "sonnet"
        assert route.reason == "routing error - defaulting to sonnet"
