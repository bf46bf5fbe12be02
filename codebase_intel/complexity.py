"""Per-function cyclomatic complexity.

Each function body starts at 1 and gains 1 for every ``if``, ternary, loop,
``catch``, short-circuit operator (``&&``, ``||``, ``??``) and non-default
``switch`` case. Nesting depth grows on entry to ``if``/loop/``switch``/
``catch``. Nested functions are scored on their own and never counted
against the function that contains them.

Languages without a grammar, and JavaScript the grammar rejects, get a
single ``<module>`` entry computed by counting branching keywords in the
raw text. That number is an approximation, not true cyclomatic complexity.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from .cache import LRUCache
from .languages import detect_language, is_js_family
from .models import (
    ERROR_FILE_NOT_FOUND,
    ERROR_PARSE_FAILED_REGEX_FALLBACK,
    ERROR_UNKNOWN_LANGUAGE,
    ComplexityReport,
    FunctionComplexity,
)
from .parser import (
    FUNCTION_BOUNDARIES,
    FUNCTION_LITERALS,
    NodeKind,
    children,
    node_line,
    node_text,
    parse_javascript,
    property_name,
)
from .signatures import exported_member_name, load_source, prepare_js

logger = logging.getLogger(__name__)

BRANCH_KINDS: FrozenSet[NodeKind] = frozenset({
    NodeKind.IF_STATEMENT,
    NodeKind.TERNARY_EXPRESSION,
    NodeKind.FOR_STATEMENT,
    NodeKind.FOR_IN_STATEMENT,
    NodeKind.WHILE_STATEMENT,
    NodeKind.DO_STATEMENT,
    NodeKind.CATCH_CLAUSE,
    NodeKind.SWITCH_CASE,
})

NESTING_KINDS: FrozenSet[NodeKind] = frozenset({
    NodeKind.IF_STATEMENT,
    NodeKind.FOR_STATEMENT,
    NodeKind.FOR_IN_STATEMENT,
    NodeKind.WHILE_STATEMENT,
    NodeKind.DO_STATEMENT,
    NodeKind.SWITCH_STATEMENT,
    NodeKind.CATCH_CLAUSE,
})

LOGICAL_OPERATORS: FrozenSet[str] = frozenset({"&&", "||", "??"})

# Keyword patterns for the textual approximation. ``elif``/``except``
# cover Python, where ``\bif\b`` does not match inside ``elif``.
_BRANCH_PATTERNS = [
    re.compile(p) for p in (
        r"\bif\b",
        r"\belse\s+if\b",
        r"\belif\b",
        r"\bfor\b",
        r"\bwhile\b",
        r"\bswitch\b",
        r"\bcase\b",
        r"\bcatch\b",
        r"\bexcept\b",
        r"&&",
        r"\|\|",
    )
]


def regex_complexity(code: str) -> int:
    """Approximate complexity: 1 plus the number of branching keywords."""
    return 1 + sum(len(p.findall(code)) for p in _BRANCH_PATTERNS)


def _is_branch(node: Any, kind: NodeKind) -> bool:
    if kind in BRANCH_KINDS:
        return True
    if kind is NodeKind.BINARY_EXPRESSION:
        op = node.child_by_field_name("operator")
        return op is not None and op.type in LOGICAL_OPERATORS
    return False


def score_body(body: Any) -> Tuple[int, int]:
    """Return ``(complexity, nesting_max)`` for one function body subtree."""
    complexity = 1
    nesting_max = 0
    stack: List[Tuple[Any, int]] = [(body, 0)]
    while stack:
        node, depth = stack.pop()
        kind = NodeKind.of(node)
        if _is_branch(node, kind):
            complexity += 1
        child_depth = depth + 1 if kind in NESTING_KINDS else depth
        nesting_max = max(nesting_max, child_depth)
        for child in children(node):
            if NodeKind.of(child) in FUNCTION_BOUNDARIES:
                continue
            stack.append((child, child_depth))
    return complexity, nesting_max


# ===================================================================
# Function discovery
# ===================================================================

class FunctionCollector:
    """Finds ``(name, line, body)`` for every scorable function in a tree.

    Mirrors the signature walk, except that class declarations are not
    descended into past their own members.
    """

    def __init__(self) -> None:
        self.functions: List[Tuple[str, int, Any]] = []
        self._arms: Dict[NodeKind, Callable[[Any], bool]] = {
            NodeKind.FUNCTION_DECLARATION: self._visit_function,
            NodeKind.GENERATOR_FUNCTION_DECLARATION: self._visit_function,
            NodeKind.CLASS_DECLARATION: self._visit_class,
            NodeKind.LEXICAL_DECLARATION: self._visit_variables,
            NodeKind.VARIABLE_DECLARATION: self._visit_variables,
            NodeKind.EXPRESSION_STATEMENT: self._visit_expression,
        }

    def walk(self, root: Any) -> List[Tuple[str, int, Any]]:
        stack = list(reversed(children(root)))
        while stack:
            node = stack.pop()
            arm = self._arms.get(NodeKind.of(node))
            descend = arm(node) if arm is not None else True
            if descend:
                stack.extend(reversed(children(node)))
        return self.functions

    def _add(self, name: str, line: int, fn: Any) -> None:
        body = fn.child_by_field_name("body")
        if body is not None:
            self.functions.append((name, line, body))

    def _visit_function(self, node: Any) -> bool:
        name = node.child_by_field_name("name")
        if name is not None:
            self._add(node_text(name), node_line(node), node)
        return True

    def _visit_class(self, node: Any) -> bool:
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        if name_node is None or body is None:
            return False
        class_name = node_text(name_node)
        for member in children(body):
            kind = NodeKind.of(member)
            if kind is NodeKind.METHOD_DEFINITION:
                method = property_name(member.child_by_field_name("name"))
                self._add(f"{class_name}.{method}", node_line(member), member)
            elif kind is NodeKind.FIELD_DEFINITION:
                value = member.child_by_field_name("value")
                if value is not None and NodeKind.of(value) in FUNCTION_LITERALS:
                    field = property_name(member.child_by_field_name("property"))
                    self._add(f"{class_name}.{field}", node_line(member), value)
        return False

    def _visit_variables(self, node: Any) -> bool:
        for decl in children(node):
            if NodeKind.of(decl) is not NodeKind.VARIABLE_DECLARATOR:
                continue
            name = decl.child_by_field_name("name")
            value = decl.child_by_field_name("value")
            if (
                name is not None and name.type == "identifier"
                and value is not None and NodeKind.of(value) in FUNCTION_LITERALS
            ):
                self._add(node_text(name), node_line(node), value)
        return True

    def _visit_expression(self, node: Any) -> bool:
        expr = children(node)
        if not expr or NodeKind.of(expr[0]) is not NodeKind.ASSIGNMENT_EXPRESSION:
            return True
        left = expr[0].child_by_field_name("left")
        right = expr[0].child_by_field_name("right")
        if left is not None and right is not None and NodeKind.of(right) in FUNCTION_LITERALS:
            name = exported_member_name(left)
            if name is not None:
                self._add(name, node_line(node), right)
        return True


# ===================================================================
# Public API
# ===================================================================

def compute_complexity(
    path: str,
    language: Optional[str] = None,
    content: Optional[str] = None,
    cache: Optional[LRUCache] = None,
) -> ComplexityReport:
    """Score every function in *path*.

    ``module_complexity`` is the sum of the per-function scores (or the
    single textual estimate for non-grammar languages).
    """
    code = load_source(path, content)
    if code is None:
        return ComplexityReport(file=path, error=ERROR_FILE_NOT_FOUND)

    language = language or detect_language(path)
    if not language:
        return ComplexityReport(file=path, error=ERROR_UNKNOWN_LANGUAGE)

    key = None
    if cache is not None:
        key = cache.key_for("complexity", path, language, code)
        hit = cache.get(key)
        if hit is not None:
            return hit

    report = _score(path, language, code)
    if cache is not None:
        cache.put(key, report)
    return report


def _module_estimate(path: str, code: str, error: Optional[str] = None) -> ComplexityReport:
    approx = regex_complexity(code)
    return ComplexityReport(
        file=path,
        module_complexity=approx,
        functions=[FunctionComplexity("<module>", 1, approx, 0)],
        error=error,
    )


def _score(path: str, language: str, code: str) -> ComplexityReport:
    if not is_js_family(language):
        return _module_estimate(path, code)

    root = parse_javascript(prepare_js(path, language, code))
    if root is None:
        logger.debug("Grammar parse failed for %s; estimating complexity from text", path)
        return _module_estimate(path, code, ERROR_PARSE_FAILED_REGEX_FALLBACK)

    functions = []
    for name, line, body in FunctionCollector().walk(root):
        complexity, nesting = score_body(body)
        functions.append(FunctionComplexity(name, line, complexity, nesting))
    return ComplexityReport(
        file=path,
        module_complexity=sum(f.complexity for f in functions),
        functions=functions,
    )
