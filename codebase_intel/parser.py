"""ECMAScript grammar layer built on Tree-sitter.

- Loads the ``tree-sitter-javascript`` grammar once and hands every worker
  thread its own :class:`tree_sitter.Parser` (parsers are not thread-safe).
- Strips TypeScript-only syntax so ``.ts``/``.tsx`` sources parse with the
  JavaScript grammar.
- Exposes :class:`NodeKind`, the closed set of node kinds the extraction
  and complexity visitors dispatch on.

Tree-sitter is error-tolerant: it always returns a tree. A parse is treated
as *failed* when the root node reports ``has_error``; callers then fall back
to pattern-based extraction.
"""

from __future__ import annotations

import logging
import re
import threading
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

import tree_sitter_javascript
from tree_sitter import Language, Parser as TSParser

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tree_sitter_javascript.language())

_thread_local = threading.local()


def get_parser() -> TSParser:
    """Return this thread's JavaScript parser, creating it on first use."""
    parser = getattr(_thread_local, "js_parser", None)
    if parser is None:
        parser = TSParser(JS_LANGUAGE)
        _thread_local.js_parser = parser
        logger.debug("Created tree-sitter JavaScript parser for thread %s", threading.get_ident())
    return parser


def parse_javascript(code: str) -> Optional[Any]:
    """Parse *code* and return its root node, or ``None`` if the grammar rejects it."""
    # lone surrogates (surrogateescape-decoded bytes) become "?"
    tree = get_parser().parse(code.encode("utf-8", errors="replace"))
    root = tree.root_node
    if root.has_error:
        logger.debug("tree-sitter reported syntax errors; treating parse as failed")
        return None
    return root


# ===================================================================
# Node kinds
# ===================================================================

class NodeKind(Enum):
    PROGRAM = "program"
    FUNCTION_DECLARATION = "function_declaration"
    GENERATOR_FUNCTION_DECLARATION = "generator_function_declaration"
    FUNCTION_EXPRESSION = "function_expression"
    FUNCTION = "function"  # pre-0.21 grammars name function expressions "function"
    GENERATOR_FUNCTION = "generator_function"
    ARROW_FUNCTION = "arrow_function"
    CLASS_DECLARATION = "class_declaration"
    CLASS_BODY = "class_body"
    METHOD_DEFINITION = "method_definition"
    FIELD_DEFINITION = "field_definition"
    LEXICAL_DECLARATION = "lexical_declaration"
    VARIABLE_DECLARATION = "variable_declaration"
    VARIABLE_DECLARATOR = "variable_declarator"
    EXPRESSION_STATEMENT = "expression_statement"
    ASSIGNMENT_EXPRESSION = "assignment_expression"
    MEMBER_EXPRESSION = "member_expression"
    EXPORT_STATEMENT = "export_statement"
    IF_STATEMENT = "if_statement"
    TERNARY_EXPRESSION = "ternary_expression"
    FOR_STATEMENT = "for_statement"
    FOR_IN_STATEMENT = "for_in_statement"
    WHILE_STATEMENT = "while_statement"
    DO_STATEMENT = "do_statement"
    SWITCH_STATEMENT = "switch_statement"
    SWITCH_CASE = "switch_case"
    SWITCH_DEFAULT = "switch_default"
    CATCH_CLAUSE = "catch_clause"
    BINARY_EXPRESSION = "binary_expression"
    OTHER = "other"

    @classmethod
    def of(cls, node: Any) -> "NodeKind":
        return _KIND_BY_TYPE.get(node.type, cls.OTHER)


_KIND_BY_TYPE: Dict[str, NodeKind] = {
    k.value: k for k in NodeKind if k is not NodeKind.OTHER
}

FUNCTION_LITERALS: FrozenSet[NodeKind] = frozenset({
    NodeKind.FUNCTION_EXPRESSION,
    NodeKind.FUNCTION,
    NodeKind.GENERATOR_FUNCTION,
    NodeKind.ARROW_FUNCTION,
})

# Anything that starts a new function scope.
FUNCTION_BOUNDARIES: FrozenSet[NodeKind] = FUNCTION_LITERALS | {
    NodeKind.FUNCTION_DECLARATION,
    NodeKind.GENERATOR_FUNCTION_DECLARATION,
    NodeKind.METHOD_DEFINITION,
}


# ===================================================================
# Node helpers
# ===================================================================

def node_text(node: Any) -> str:
    return node.text.decode("utf-8", errors="replace")


def node_line(node: Any) -> int:
    """1-based line of the node's first character."""
    return node.start_point[0] + 1


def children(node: Any) -> List[Any]:
    """Named, non-comment children: the child list every visitor recurses into."""
    return [c for c in node.named_children if c.type != "comment"]


def has_token(node: Any, token: str) -> bool:
    return any(not c.is_named and c.type == token for c in node.children)


def is_async(node: Any) -> bool:
    return has_token(node, "async")


def is_generator(node: Any) -> bool:
    kind = NodeKind.of(node)
    if kind in (NodeKind.GENERATOR_FUNCTION, NodeKind.GENERATOR_FUNCTION_DECLARATION):
        return True
    return kind is NodeKind.METHOD_DEFINITION and has_token(node, "*")


def property_name(node: Optional[Any]) -> str:
    """Name of a property key (``foo``, ``#foo``, ``'foo'``)."""
    if node is None:
        return "anonymous"
    text = node_text(node)
    if node.type == "string":
        return text[1:-1]
    return text or "anonymous"


def param_names(func_node: Any) -> List[str]:
    """Parameter names of a function-like node; destructuring collapses to a placeholder."""
    single = func_node.child_by_field_name("parameter")
    if single is not None:
        return [node_text(single)]
    params = func_node.child_by_field_name("parameters")
    if params is None:
        return []
    return [_param_name(p) for p in children(params)]


def _param_name(param: Any) -> str:
    if param.type == "identifier":
        return node_text(param)
    if param.type == "assignment_pattern":
        left = param.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            return node_text(left)
        return _param_name(left) if left is not None else "?"
    if param.type == "rest_pattern":
        inner = children(param)
        if inner and inner[0].type == "identifier":
            return "..." + node_text(inner[0])
        return "..."
    if param.type == "object_pattern":
        return "{...}"
    if param.type == "array_pattern":
        return "[...]"
    return "?"


# ===================================================================
# TypeScript stripping
# ===================================================================

def _keep_lines(group: Optional[int] = None) -> Callable[[Any], str]:
    """Replacement that keeps *group* (if any) plus the match's newline count."""

    def _repl(match: Any) -> str:
        kept = match.group(group) if group is not None else ""
        return kept + "\n" * match.group(0).count("\n")

    return _repl


_TYPE_IMPORT = re.compile(r"^\s*import\s+type\s+\{[^}]*\}\s+from\s+['\"][^'\"]*['\"];?\s*$", re.M)
_IMPORT_CLAUSE = re.compile(r"\bimport\s*\{[^}]*\}")
_TYPE_SPECIFIER = re.compile(r"\btype\s+\w+\s*,?\s*")
_INTERFACE = re.compile(r"^\s*(?:export\s+)?interface\s+\w+(?:\s+extends\s+[^{]*)?\s*\{[^}]*\}", re.M)
_TYPE_ALIAS = re.compile(r"^\s*(?:export\s+)?type\s+\w+(?:<[^>]*>)?\s*=\s*[^;]*;", re.M)
_ENUM = re.compile(r"^\s*(?:export\s+)?(?:const\s+)?enum\s+\w+\s*\{[^}]*\}", re.M)
_DECLARE = re.compile(r"^\s*declare\s+[^;{]*[;{][^}]*\}?", re.M)
_GENERIC_PARAMS = re.compile(
    r"<\s*[A-Z_]\w*(?:\s+extends\s+[^>]*)?\s*(?:,\s*[A-Z_]\w*(?:\s+extends\s+[^>]*)?\s*)*>"
)
_RETURN_TYPE = re.compile(r"\)\s*:\s*(?:Promise\s*<[^>]*>|[\w\[\]|&<>.,\t ?]+?)(?=\s*[{=>])")
_PARAM_TYPE = re.compile(r"(\w+)[ \t]*:[ \t]*(?:[\w\[\]|&<>.,\t ?]+?)(?=[,)=])")
_OPTIONAL_MARK = re.compile(r"(\w+)\?(?=\s*[,)=:])")
_AS_CAST = re.compile(r"\bas\s+(?:const|[\w\[\]|&<>.,\t ?]+?)(?=[,;)\]}])")
_NON_NULL = re.compile(r"(\w+)!(?=\.|\[)")
_ANGLE_CAST = re.compile(r"<(\w+)>(?=\s*\w)")
_READONLY = re.compile(r"\breadonly\s+")
_ACCESS_MODIFIER = re.compile(r"^\s*(public|private|protected|override)\s+", re.M)
_ABSTRACT = re.compile(r"\babstract\s+")
_IMPLEMENTS = re.compile(r"\bimplements\s+[\w\s,<>]+(?=\s*\{)")


def _strip_type_specifiers(match: Any) -> str:
    return _TYPE_SPECIFIER.sub("", match.group(0))


_STRIP_STEPS: List[Tuple[re.Pattern, Callable[[Any], str]]] = [
    (_TYPE_IMPORT, _keep_lines()),
    (_IMPORT_CLAUSE, _strip_type_specifiers),
    (_INTERFACE, _keep_lines()),
    (_TYPE_ALIAS, _keep_lines()),
    (_ENUM, _keep_lines()),
    (_DECLARE, _keep_lines()),
    (_GENERIC_PARAMS, _keep_lines()),
    (_RETURN_TYPE, lambda m: ")" + "\n" * m.group(0).count("\n")),
    (_OPTIONAL_MARK, _keep_lines(1)),
    (_PARAM_TYPE, _keep_lines(1)),
    (_AS_CAST, _keep_lines()),
    (_NON_NULL, _keep_lines(1)),
]

_MODIFIER_STEPS: List[Tuple[re.Pattern, Callable[[Any], str]]] = [
    (_READONLY, _keep_lines()),
    (_ACCESS_MODIFIER, _keep_lines()),
    (_ABSTRACT, _keep_lines()),
    (_IMPLEMENTS, _keep_lines()),
]


def strip_typescript(code: str, jsx: bool = False) -> str:
    """Strip TypeScript-only syntax so the JavaScript grammar can parse *code*.

    Best effort: annotations, generics, interfaces, type aliases, enums,
    ``declare`` blocks, casts, non-null assertions, and class modifiers are
    removed. Removed regions keep their newlines so line numbers still match
    the original source. Angle-bracket casts are left alone when *jsx* is set.
    """
    for pattern, repl in _STRIP_STEPS:
        code = pattern.sub(repl, code)
    if not jsx:
        code = _ANGLE_CAST.sub(_keep_lines(), code)
    for pattern, repl in _MODIFIER_STEPS:
        code = pattern.sub(repl, code)
    return code
