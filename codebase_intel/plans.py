"""Plan documents: YAML frontmatter and ``<task>`` blocks.

A plan is markdown with an optional ``---`` frontmatter block and any
number of task elements::

    ---
    wave: 2
    autonomous: true
    ---
    <task type="auto">
      <name>Add parser</name>
      <files>src/parser.js, src/lexer.js</files>
      <action>...</action>
      <verify>npm test</verify>
      <done>...</done>
    </task>
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import yaml

from .cache import LRUCache
from .models import Task

logger = logging.getLogger(__name__)

_FRONTMATTER = re.compile(r"^---\r?\n([\s\S]+?)\r?\n---", re.M)
_TASK_BLOCK = re.compile(r'<task\s+type="([^"]*)"[^>]*>([\s\S]*?)</task>')


def read_frontmatter(content: str, cache: Optional[LRUCache] = None) -> Dict[str, Any]:
    """Return the leading YAML mapping of *content*, or ``{}``.

    Malformed YAML and non-mapping frontmatter both yield ``{}``.
    """
    if not content:
        return {}
    key = None
    if cache is not None:
        key = cache.key_for("frontmatter", "", None, content)
        hit = cache.get(key)
        if hit is not None:
            return hit

    data: Dict[str, Any] = {}
    match = _FRONTMATTER.match(content.lstrip("\ufeff"))
    if match:
        try:
            loaded = yaml.safe_load(match.group(1))
        except yaml.YAMLError as exc:
            logger.debug("Ignoring malformed frontmatter: %s", exc)
            loaded = None
        if isinstance(loaded, dict):
            data = loaded

    if cache is not None:
        cache.put(key, data)
    return data


def _element(body: str, tag: str) -> Optional[str]:
    m = re.search(rf"<{tag}>([\s\S]*?)</{tag}>", body, re.I)
    return m.group(1).strip() if m else None


def parse_files_list(files: Optional[str]) -> List[str]:
    if not files:
        return []
    return [f.strip() for f in files.split(",") if f.strip()]


def parse_tasks_from_plan(content: str) -> List[Task]:
    """Every ``<task type="...">`` block in *content*, in document order."""
    if not content:
        return []
    tasks = []
    for m in _TASK_BLOCK.finditer(content):
        body = m.group(2)
        tasks.append(Task(
            name=_element(body, "name") or "Unnamed Task",
            type=m.group(1) or "auto",
            files=parse_files_list(_element(body, "files")),
            action=_element(body, "action") or "",
            verify=_element(body, "verify") or "",
            done=_element(body, "done") or "",
        ))
    return tasks
