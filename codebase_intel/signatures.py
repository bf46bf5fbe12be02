"""Signature and export-surface extraction.

ECMAScript-family sources (``.js``, ``.cjs``, ``.mjs``, ``.jsx``, and
``.ts``/``.tsx`` after :func:`~codebase_intel.parser.strip_typescript`) are
parsed with Tree-sitter and walked for functions, classes, methods, arrow
bindings and ``exports.x = function`` assignments. When the grammar
rejects a file, a line-oriented pattern scan recovers what it can.

Every other language goes through :data:`DETECTOR_REGISTRY`, a table of
one signature pattern plus a projection per language. These detectors are
heuristics: they only see top-level, single-line declarations and will
miss or misread unusual formatting. A real grammar can replace an entry
without changing the callers.

Nothing here raises for bad input; failures come back as an error tag on
the result (see :mod:`codebase_intel.models`).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .cache import LRUCache
from .languages import detect_language, is_js_family
from .models import (
    ERROR_FILE_NOT_FOUND,
    ERROR_NO_DETECTOR,
    ERROR_PARSE_FAILED,
    ERROR_UNKNOWN_LANGUAGE,
    ERROR_UNSUPPORTED_LANGUAGE,
    ExportSurface,
    Signature,
    SignatureResult,
)
from .parser import (
    FUNCTION_LITERALS,
    NodeKind,
    children,
    is_async,
    is_generator,
    node_line,
    node_text,
    param_names,
    parse_javascript,
    property_name,
    strip_typescript,
)

logger = logging.getLogger(__name__)


# ===================================================================
# Source loading
# ===================================================================

def load_source(path: str, content: Optional[str] = None) -> Optional[str]:
    """Return *content*, or the text at *path*; ``None`` when unreadable."""
    if content is not None:
        return content
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return None


def prepare_js(path: str, language: str, code: str) -> str:
    """Apply the TypeScript pre-pass when *language* needs it."""
    if language == "typescript":
        return strip_typescript(code, jsx=path.endswith(".tsx"))
    return code


# ===================================================================
# AST walk: signatures
# ===================================================================

class SignatureVisitor:
    """Collects :class:`Signature` records from a Tree-sitter JavaScript tree.

    One arm per :class:`NodeKind` of interest. Every node, handled or not,
    is then descended into through its named children, so declarations
    nested in blocks and function bodies are reported too.
    """

    def __init__(self) -> None:
        self.signatures: List[Signature] = []
        self._arms: Dict[NodeKind, Callable[[Any], None]] = {
            NodeKind.FUNCTION_DECLARATION: self._visit_function,
            NodeKind.GENERATOR_FUNCTION_DECLARATION: self._visit_function,
            NodeKind.CLASS_DECLARATION: self._visit_class,
            NodeKind.LEXICAL_DECLARATION: self._visit_variables,
            NodeKind.VARIABLE_DECLARATION: self._visit_variables,
            NodeKind.EXPRESSION_STATEMENT: self._visit_expression,
        }

    def walk(self, root: Any) -> List[Signature]:
        stack = list(reversed(children(root)))
        while stack:
            node = stack.pop()
            arm = self._arms.get(NodeKind.of(node))
            if arm is not None:
                arm(node)
            stack.extend(reversed(children(node)))
        return self.signatures

    def _visit_function(self, node: Any) -> None:
        name = node.child_by_field_name("name")
        if name is None:
            return
        self.signatures.append(Signature(
            name=node_text(name),
            kind="function",
            params=param_names(node),
            line=node_line(node),
            is_async=is_async(node),
            generator=is_generator(node),
        ))

    def _visit_class(self, node: Any) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        class_name = node_text(name_node)
        self.signatures.append(Signature(class_name, "class", [], node_line(node)))

        body = node.child_by_field_name("body")
        if body is None:
            return
        for member in children(body):
            kind = NodeKind.of(member)
            if kind is NodeKind.METHOD_DEFINITION:
                method = property_name(member.child_by_field_name("name"))
                self.signatures.append(Signature(
                    name=f"{class_name}.{method}",
                    kind="method",
                    params=param_names(member),
                    line=node_line(member),
                    is_async=is_async(member),
                    generator=is_generator(member),
                ))
            elif kind is NodeKind.FIELD_DEFINITION:
                value = member.child_by_field_name("value")
                if value is None or NodeKind.of(value) not in FUNCTION_LITERALS:
                    continue
                field = property_name(member.child_by_field_name("property"))
                self.signatures.append(Signature(
                    name=f"{class_name}.{field}",
                    kind="method",
                    params=param_names(value),
                    line=node_line(member),
                    is_async=is_async(value),
                    generator=is_generator(value),
                ))

    def _visit_variables(self, node: Any) -> None:
        for decl in children(node):
            if NodeKind.of(decl) is not NodeKind.VARIABLE_DECLARATOR:
                continue
            name = decl.child_by_field_name("name")
            value = decl.child_by_field_name("value")
            if name is None or name.type != "identifier" or value is None:
                continue
            if NodeKind.of(value) not in FUNCTION_LITERALS:
                continue
            self.signatures.append(Signature(
                name=node_text(name),
                kind="arrow",
                params=param_names(value),
                line=node_line(node),
                is_async=is_async(value),
                generator=is_generator(value),
            ))

    def _visit_expression(self, node: Any) -> None:
        expr = children(node)
        if not expr or NodeKind.of(expr[0]) is not NodeKind.ASSIGNMENT_EXPRESSION:
            return
        left = expr[0].child_by_field_name("left")
        right = expr[0].child_by_field_name("right")
        if left is None or right is None or NodeKind.of(right) not in FUNCTION_LITERALS:
            return
        name = exported_member_name(left)
        if name is None:
            return
        self.signatures.append(Signature(
            name=name,
            kind="function",
            params=param_names(right),
            line=node_line(node),
            is_async=is_async(right),
            generator=is_generator(right),
        ))


def exported_member_name(left: Any) -> Optional[str]:
    """``foo`` for ``module.exports.foo`` or ``exports.foo``, else ``None``."""
    if NodeKind.of(left) is not NodeKind.MEMBER_EXPRESSION:
        return None
    obj = left.child_by_field_name("object")
    prop = left.child_by_field_name("property")
    if obj is None or prop is None:
        return None
    if obj.type == "identifier" and node_text(obj) == "exports":
        return node_text(prop)
    if NodeKind.of(obj) is NodeKind.MEMBER_EXPRESSION:
        inner_obj = obj.child_by_field_name("object")
        inner_prop = obj.child_by_field_name("property")
        if (
            inner_obj is not None and inner_prop is not None
            and node_text(inner_obj) == "module"
            and node_text(inner_prop) == "exports"
        ):
            return node_text(prop)
    return None


# ===================================================================
# Regex fallback for JavaScript the grammar rejects
# ===================================================================

_JS_FUNCTION = re.compile(r"^(?:export\s+)?(?:async\s+)?function\s*\*?\s+(\w+)\s*\(([^)]*)\)")
_JS_CLASS = re.compile(r"^(?:export\s+)?class\s+(\w+)")
_JS_ARROW = re.compile(r"^(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?\(?([^)]*)\)?\s*=>")


def _split_params(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


def extract_js_signatures_regex(code: str) -> List[Signature]:
    """Line-by-line scan for function, class and arrow-binding declarations."""
    signatures: List[Signature] = []
    for lineno, line in enumerate(code.split("\n"), start=1):
        m = _JS_FUNCTION.match(line)
        if m:
            signatures.append(Signature(
                name=m.group(1),
                kind="function",
                params=_split_params(m.group(2)),
                line=lineno,
                is_async=re.search(r"async\s+function", line) is not None,
                generator=re.search(r"function\s*\*", line) is not None,
            ))
            continue
        m = _JS_CLASS.match(line)
        if m:
            signatures.append(Signature(m.group(1), "class", [], lineno))
            continue
        m = _JS_ARROW.match(line)
        if m:
            signatures.append(Signature(
                name=m.group(1),
                kind="arrow",
                params=_split_params(m.group(2)),
                line=lineno,
                is_async=re.search(r"=\s*async", line) is not None,
            ))
    return signatures


# ===================================================================
# Detector registry for languages without a grammar
# ===================================================================

Projection = Callable[[re.Match, int], Signature]


def _python_sig(m: re.Match, line: int) -> Signature:
    params = [p.split(":")[0].split("=")[0].strip() for p in _split_params(m.group(3))]
    return Signature(m.group(2), "function", [p for p in params if p], line, is_async=bool(m.group(1)))


def _go_sig(m: re.Match, line: int) -> Signature:
    params = [p.split()[0] for p in _split_params(m.group(2))]
    return Signature(m.group(1), "function", params, line)


def _rust_sig(m: re.Match, line: int) -> Signature:
    params = [p.split(":")[0].strip() for p in _split_params(m.group(4))]
    return Signature(m.group(3), "function", [p for p in params if p], line, is_async=bool(m.group(2)))


def _paren_sig(m: re.Match, line: int) -> Signature:
    raw = (m.group(2) or "").replace("(", "").replace(")", "")
    return Signature(m.group(1), "function", _split_params(raw), line)


def _java_sig(m: re.Match, line: int) -> Signature:
    params = [p.split()[-1] for p in _split_params(m.group(2))]
    return Signature(m.group(1), "function", params, line)


def _php_sig(m: re.Match, line: int) -> Signature:
    params = [p.split()[-1].lstrip("$") for p in _split_params(m.group(2))]
    return Signature(m.group(1), "function", [p for p in params if p], line)


DETECTOR_REGISTRY: Dict[str, Tuple[re.Pattern, Projection]] = {
    "python": (re.compile(r"^(async\s+)?def\s+(\w+)\s*\(([^)]*)\)", re.M), _python_sig),
    "go": (re.compile(r"^func\s+(?:\([\w\s*]+\)\s+)?(\w+)\s*\(([^)]*)\)", re.M), _go_sig),
    "rust": (
        re.compile(r"^(pub\s+)?(async\s+)?fn\s+(\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)", re.M),
        _rust_sig,
    ),
    "ruby": (re.compile(r"^[ \t]*def\s+(\w+[?!=]?)[ \t]*(\([^)]*\))?", re.M), _paren_sig),
    "elixir": (re.compile(r"^[ \t]*defp?\s+(\w+)[ \t]*(\([^)]*\))?", re.M), _paren_sig),
    "java": (
        re.compile(
            r"^[ \t]*(?:public|private|protected)?[ \t]*(?:static)?[ \t]*"
            r"[\w<>\[\]]+\s+(\w+)\s*\(([^)]*)\)",
            re.M,
        ),
        _java_sig,
    ),
    "php": (
        re.compile(
            r"^[ \t]*(?:public|private|protected)?[ \t]*(?:static)?[ \t]*"
            r"function\s+(\w+)\s*\(([^)]*)\)",
            re.M,
        ),
        _php_sig,
    ),
}


def detect_signatures(language: str, code: str) -> Optional[List[Signature]]:
    """Run *language*'s registered detector, or return ``None`` if it has none."""
    entry = DETECTOR_REGISTRY.get(language)
    if entry is None:
        return None
    pattern, project = entry
    return [
        project(m, code.count("\n", 0, m.start()) + 1)
        for m in pattern.finditer(code)
    ]


# ===================================================================
# Export surface
# ===================================================================

_CJS_MEMBER = re.compile(r"module\.exports\.(\w+)\s*=")
_CJS_EXPORTS = re.compile(r"(?<![.\w])exports\.(\w+)\s*=")
_CJS_OBJECT = re.compile(r"module\.exports\s*=\s*\{([^}]+)\}")
_CJS_OBJECT_KEY = re.compile(r"^\s*(\w+)\s*(?::|$)")
_LINE_COMMENT = re.compile(r"//[^\n]*")


def extract_cjs_exports(code: str) -> List[str]:
    """Assignment-style exports (``module.exports.x =``, ``exports.x =``,
    ``module.exports = { ... }``), deduplicated in first-seen order."""
    stripped = _LINE_COMMENT.sub("", code)
    names: List[str] = []

    def add(name: str) -> None:
        if name and name not in names:
            names.append(name)

    for m in _CJS_MEMBER.finditer(stripped):
        add(m.group(1))
    for m in _CJS_EXPORTS.finditer(stripped):
        add(m.group(1))
    obj = _CJS_OBJECT.search(stripped)
    if obj:
        # shorthand ``foo`` and ``foo: value`` entries; the key is the export
        for entry in obj.group(1).split(","):
            m = _CJS_OBJECT_KEY.match(entry)
            if m:
                add(m.group(1))
    return names


def _string_value(node: Any) -> str:
    text = node_text(node)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _specifier_names(clause: Any) -> List[str]:
    names = []
    for spec in children(clause):
        if spec.type != "export_specifier":
            continue
        exported = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
        names.append(property_name(exported) if exported is not None else "unknown")
    return names


def walk_esm_exports(root: Any) -> Tuple[List[str], Optional[str], List[str]]:
    """Top-level ``export`` statements as ``(named, default, re_exports)``."""
    named: List[str] = []
    default: Optional[str] = None
    re_exports: List[str] = []

    for node in children(root):
        if NodeKind.of(node) is not NodeKind.EXPORT_STATEMENT:
            continue
        declaration = node.child_by_field_name("declaration")
        source = node.child_by_field_name("source")
        clause = next((c for c in children(node) if c.type == "export_clause"), None)

        if any(not c.is_named and c.type == "default" for c in node.children):
            target = declaration or node.child_by_field_name("value")
            default = "anonymous"
            if target is not None:
                name = target.child_by_field_name("name")
                if name is not None:
                    default = node_text(name)
                elif target.type == "identifier":
                    default = node_text(target)
        elif source is not None:
            if clause is not None:
                re_exports.extend(_specifier_names(clause))
            else:
                re_exports.append("* from " + _string_value(source))
        elif declaration is not None:
            name = declaration.child_by_field_name("name")
            if name is not None:
                named.append(node_text(name))
            else:
                for decl in children(declaration):
                    ident = decl.child_by_field_name("name")
                    if ident is not None and ident.type == "identifier":
                        named.append(node_text(ident))
        elif clause is not None:
            named.extend(_specifier_names(clause))

    return named, default, re_exports


def build_export_surface(root: Optional[Any], code: str, language: str) -> ExportSurface:
    """Union the AST exports of *root* (if it parsed) with the CJS scan of *code*."""
    named, default, re_exports = walk_esm_exports(root) if root is not None else ([], None, [])
    cjs = extract_cjs_exports(code)

    has_esm = bool(named) or default is not None or bool(re_exports)
    if has_esm and cjs:
        module_type = "mixed"
    elif has_esm:
        module_type = "esm"
    else:
        module_type = "cjs"
    return ExportSurface(
        named=named,
        default=default,
        re_exports=re_exports,
        cjs_exports=cjs,
        type=module_type,
        language=language,
    )


# ===================================================================
# Public API
# ===================================================================

def extract_signatures(
    path: str,
    language: Optional[str] = None,
    content: Optional[str] = None,
    cache: Optional[LRUCache] = None,
) -> SignatureResult:
    """Extract function/class/method signatures from one file.

    Args:
        path: File path; read from disk when *content* is not given.
        language: Language tag; detected from the extension when omitted.
        content: Pre-read source text.
        cache: Optional result cache shared across calls.

    Returns:
        A :class:`SignatureResult`. JS-family results carry their
        :class:`ExportSurface`; failures carry an error tag.
    """
    code = load_source(path, content)
    if code is None:
        return SignatureResult(error=ERROR_FILE_NOT_FOUND)

    language = language or detect_language(path)
    if not language:
        return SignatureResult(error=ERROR_UNKNOWN_LANGUAGE)

    key = None
    if cache is not None:
        key = cache.key_for("signatures", path, language, code)
        hit = cache.get(key)
        if hit is not None:
            return hit

    result = _extract(path, language, code)
    if cache is not None:
        cache.put(key, result)
    return result


def _extract(path: str, language: str, code: str) -> SignatureResult:
    if is_js_family(language):
        root = parse_javascript(prepare_js(path, language, code))
        surface = build_export_surface(root, code, language)
        if root is not None:
            return SignatureResult(SignatureVisitor().walk(root), language, surface)

        logger.debug("Grammar parse failed for %s; using pattern fallback", path)
        signatures = extract_js_signatures_regex(code)
        return SignatureResult(
            signatures,
            language,
            surface,
            error=None if signatures else ERROR_PARSE_FAILED,
        )

    signatures = detect_signatures(language, code)
    if signatures is None:
        return SignatureResult(language=language, error=ERROR_NO_DETECTOR)
    return SignatureResult(signatures, language)


def extract_exports(
    path: str,
    language: Optional[str] = None,
    content: Optional[str] = None,
    cache: Optional[LRUCache] = None,
) -> ExportSurface:
    """Return the export surface of a JS-family file.

    Other languages yield an empty surface tagged ``unsupported_language``.
    """
    code = load_source(path, content)
    if code is None:
        return ExportSurface(error=ERROR_FILE_NOT_FOUND)

    language = language or detect_language(path)
    if not is_js_family(language):
        return ExportSurface(language=language, error=ERROR_UNSUPPORTED_LANGUAGE)

    key = None
    if cache is not None:
        key = cache.key_for("exports", path, language, code)
        hit = cache.get(key)
        if hit is not None:
            return hit

    root = parse_javascript(prepare_js(path, language, code))
    surface = build_export_surface(root, code, language)
    if cache is not None:
        cache.put(key, surface)
    return surface
