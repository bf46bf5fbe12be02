"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from codebase_intel import __version__, config
from codebase_intel.cli import app

from conftest import plan_text, task_block


runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"codebase-intel v{__version__}" in result.stdout


class TestSignaturesCommand:
    """Tests for 'cbi signatures'."""

    def test_json(self, sample_project_path: Path):
        result = runner.invoke(app, ["signatures", str(sample_project_path / "web" / "math.js"), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["language"] == "javascript"
        assert [s["name"] for s in payload["signatures"]] == ["add", "subtract", "range", "clamp"]
        assert payload["export_surface"]["cjsExports"] == ["add", "subtract", "range", "clamp"]

    def test_table(self, sample_project_path: Path):
        result = runner.invoke(app, ["signatures", str(sample_project_path / "utils.py")])
        assert result.exit_code == 0
        assert "validate_email" in result.stdout

    def test_unknown_language(self, temp_dir: Path):
        path = temp_dir / "notes.txt"
        path.write_text("hello")
        result = runner.invoke(app, ["signatures", str(path)])
        assert result.exit_code != 0

    def test_missing_file(self):
        result = runner.invoke(app, ["signatures", "/nonexistent/file.js"])
        assert result.exit_code != 0


class TestComplexityCommand:
    """Tests for 'cbi complexity'."""

    def test_json(self, sample_project_path: Path):
        result = runner.invoke(app, ["complexity", str(sample_project_path / "web" / "math.js"), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        funcs = {f["name"]: f["complexity"] for f in payload["functions"]}
        assert funcs["add"] == 1
        assert funcs["clamp"] == 3
        assert payload["module_complexity"] == sum(funcs.values())

    def test_table(self, sample_project_path: Path):
        result = runner.invoke(app, ["complexity", str(sample_project_path / "web" / "index.js")])
        assert result.exit_code == 0
        assert "Module complexity" in result.stdout


class TestRepoMapCommand:
    """Tests for 'cbi repo-map'."""

    def test_text(self, sample_project_path: Path):
        result = runner.invoke(app, ["repo-map", str(sample_project_path)])
        assert result.exit_code == 0
        assert "# Repo Map" in result.stdout
        assert "web/math.js" in result.stdout

    def test_json_with_budget(self, sample_project_path: Path):
        result = runner.invoke(app, ["repo-map", str(sample_project_path), "--tokens", "1", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["files_included"] == 1

    def test_budget_from_config(self, sample_project_path: Path):
        config.CONFIG_FILE.write_text("[repo_map]\ntoken_budget = 1\n", encoding="utf-8")
        result = runner.invoke(app, ["repo-map", str(sample_project_path), "--json"])
        assert json.loads(result.stdout)["files_included"] == 1

    def test_not_a_directory(self, sample_project_path: Path):
        result = runner.invoke(app, ["repo-map", str(sample_project_path / "utils.py")])
        assert result.exit_code != 0


class TestDepsCommand:
    """Tests for 'cbi deps'."""

    def test_json(self, sample_project_path: Path):
        result = runner.invoke(app, ["deps", str(sample_project_path), "--cycles", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["stats"]["total_edges"] == 9
        assert payload["cycles"]["cycle_count"] == 0
        assert payload["top_dependencies"][0] == {"file": "models.py", "importers": 2}

    def test_cycle_report(self, write_files):
        root = write_files({"a.js": "require('./b');\n", "b.js": "require('./a');\n"})
        result = runner.invoke(app, ["deps", str(root), "--cycles"])
        assert result.exit_code == 0
        assert "1 cycles" in result.stdout


class TestImpactCommand:
    """Tests for 'cbi impact'."""

    def test_json(self, sample_project_path: Path):
        result = runner.invoke(app, ["impact", str(sample_project_path), "utils.py", "web/math.js", "--json"])
        assert result.exit_code == 0
        reports = {r["file"]: r for r in json.loads(result.stdout)}
        assert sorted(reports["utils.py"]["direct_dependents"]) == ["main.py", "processor.py"]
        assert reports["web/math.js"]["fan_in"] == 2
        assert reports["web/math.js"]["truncated"] is False

    def test_text_without_dependents(self, sample_project_path: Path):
        result = runner.invoke(app, ["impact", str(sample_project_path), "main.py"])
        assert result.exit_code == 0
        assert "no dependents" in result.stdout


class TestClassifyCommand:
    """Tests for 'cbi classify'."""

    def test_json_parallel(self, temp_dir: Path):
        for name in ("01-a.md", "01-b.md"):
            (temp_dir / name).write_text(plan_text("wave: 1", task_block()), encoding="utf-8")
        result = runner.invoke(app, ["classify", str(temp_dir / "01-a.md"), str(temp_dir / "01-b.md"), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["execution_mode"]["mode"] == "parallel"
        task = payload["plans"][0]["tasks"][0]
        assert task["complexity"]["score"] == 1
        assert task["route"]["model"] == "sonnet"

    def test_profile_and_root(self, temp_dir: Path, sample_project_path: Path):
        plan = temp_dir / "01-shared.md"
        plan.write_text(
            plan_text("wave: 1", task_block(files="models.py, utils.py, web/math.js")),
            encoding="utf-8",
        )
        result = runner.invoke(
            app,
            ["classify", str(plan), "--root", str(sample_project_path), "--profile", "quality", "--json"],
        )
        assert result.exit_code == 0
        task = json.loads(result.stdout)["plans"][0]["tasks"][0]
        assert task["complexity"]["score"] == 4
        assert task["route"]["model"] == "inherit"
        assert task["route"]["reason"].endswith("via quality profile")

    def test_table(self, temp_dir: Path):
        plan = temp_dir / "01-check.md"
        plan.write_text(plan_text("", task_block(type="checkpoint:decision")), encoding="utf-8")
        result = runner.invoke(app, ["classify", str(plan)])
        assert result.exit_code == 0
        assert "sequential" in result.stdout


class TestConfigCommands:
    """Tests for 'cbi config'."""

    def test_set_and_show(self):
        result = runner.invoke(app, ["config", "set", "graph.max_depth", "3"])
        assert result.exit_code == 0
        assert "graph.max_depth = 3" in result.stdout

        shown = runner.invoke(app, ["config", "show"])
        assert shown.exit_code == 0
        body = shown.stdout.split("\n", 1)[1]
        assert json.loads(body)["graph"]["max_depth"] == 3

    def test_set_rejects_unknown_section(self):
        result = runner.invoke(app, ["config", "set", "nope.key", "1"])
        assert result.exit_code != 0

    def test_set_rejects_non_integer(self):
        result = runner.invoke(app, ["config", "set", "graph.max_workers", "many"])
        assert result.exit_code != 0
