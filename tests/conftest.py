"""Pytest configuration and fixtures for codebase intel tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator

import pytest

from codebase_intel.graph import build_dependency_graph, file_reader
from codebase_intel.languages import iter_source_files
from codebase_intel.models import DependencyGraph


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path_factory, monkeypatch):
    """Point the config file at a per-test location so the user's home is never read."""
    home = tmp_path_factory.mktemp("cbi-home")
    monkeypatch.setattr("codebase_intel.config.BASE_DIR", home)
    monkeypatch.setattr("codebase_intel.config.CONFIG_FILE", home / "config.toml")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_project_path() -> Path:
    """Get path to sample test project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def sample_graph(sample_project_path: Path) -> DependencyGraph:
    """Dependency graph of the sample project."""
    files = list(iter_source_files(sample_project_path))
    return build_dependency_graph(files, read=file_reader(sample_project_path), max_workers=2)


@pytest.fixture
def write_files(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write ``{relative_path: text}`` under ``temp_dir`` and return the root."""

    def _write(files: Dict[str, str]) -> Path:
        for rel, text in files.items():
            path = temp_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return temp_dir

    return _write


@pytest.fixture
def sample_js_code() -> str:
    """Small CommonJS module used across extraction tests."""
    return '''// arithmetic helpers
function add(a, b) {
  return a + b;
}

class Calculator {
  constructor(initial = 0) {
    this.value = initial;
  }

  async *history(limit, ...rest) {
    yield this.value;
  }

  reset = () => {
    this.value = 0;
  };
}

const double = (x) => x * 2;

exports.triple = function (x) {
  return x * 3;
};

module.exports = { add, Calculator };
'''


def plan_text(frontmatter: str = "", *tasks: str) -> str:
    """Assemble a plan document from a frontmatter body and task blocks."""
    head = f"---\n{frontmatter}\n---\n\n" if frontmatter else ""
    return head + "# Plan\n\n" + "\n\n".join(tasks) + "\n"


def task_block(
    name: str = "Do the thing",
    type: str = "auto",
    files: str = "",
    action: str = "Implement it.",
    verify: str = "",
) -> str:
    return (
        f'<task type="{type}">\n'
        f"  <name>{name}</name>\n"
        f"  <files>{files}</files>\n"
        f"  <action>{action}</action>\n"
        f"  <verify>{verify}</verify>\n"
        f"  <done>Done.</done>\n"
        f"</task>"
    )
