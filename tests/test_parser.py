"""Tests for the Tree-sitter grammar layer and TypeScript stripping."""

import threading

from codebase_intel.parser import (
    FUNCTION_BOUNDARIES,
    FUNCTION_LITERALS,
    NodeKind,
    children,
    get_parser,
    node_line,
    param_names,
    parse_javascript,
    strip_typescript,
)


def test_parse_valid_javascript():
    """A clean module parses to a program node."""
    root = parse_javascript("function add(a, b) { return a + b; }\n")
    assert root is not None
    assert NodeKind.of(root) is NodeKind.PROGRAM
    assert NodeKind.of(children(root)[0]) is NodeKind.FUNCTION_DECLARATION


def test_parse_failure_returns_none():
    """Syntax errors count as a failed parse."""
    assert parse_javascript("function (( {\n") is None


def test_unknown_node_kind_maps_to_other():
    root = parse_javascript("let x = 1;\n")
    decl = children(children(root)[0])[0]
    value = decl.child_by_field_name("value")
    assert NodeKind.of(value) is NodeKind.OTHER


def test_function_boundaries_include_literals():
    assert FUNCTION_LITERALS <= FUNCTION_BOUNDARIES
    assert NodeKind.METHOD_DEFINITION in FUNCTION_BOUNDARIES


def test_param_names_patterns():
    """Defaults, rest and destructured parameters."""
    root = parse_javascript("function f(a, b = 2, {c}, [d], ...rest) {}\n")
    fn = children(root)[0]
    assert param_names(fn) == ["a", "b", "{...}", "[...]", "...rest"]


def test_param_names_single_arrow_parameter():
    root = parse_javascript("const f = x => x;\n")
    value = children(children(root)[0])[0].child_by_field_name("value")
    assert param_names(value) == ["x"]


def test_node_line_is_one_based():
    root = parse_javascript("\n\nfunction later() {}\n")
    assert node_line(children(root)[0]) == 3


def test_parser_is_per_thread():
    """Each worker thread gets its own parser instance."""
    seen = []

    def grab():
        seen.append(get_parser())

    worker = threading.Thread(target=grab)
    worker.start()
    worker.join()
    assert seen[0] is not get_parser()
    assert get_parser() is get_parser()


class TestStripTypescript:
    """TypeScript-only syntax is removed without shifting lines."""

    def test_annotations_removed(self):
        code = "function greet(name: string, times?: number): string {\n  return name;\n}\n"
        stripped = strip_typescript(code)
        assert ": string" not in stripped
        assert "?" not in stripped
        assert parse_javascript(stripped) is not None

    def test_interface_and_alias_keep_line_count(self):
        code = (
            "export interface Point {\n"
            "  x: number;\n"
            "  y: number;\n"
            "}\n"
            "type Id = string;\n"
            "export function origin() {\n"
            "  return 0;\n"
            "}\n"
        )
        stripped = strip_typescript(code)
        assert stripped.count("\n") == code.count("\n")
        assert "interface" not in stripped
        root = parse_javascript(stripped)
        assert root is not None
        export = children(root)[0]
        assert node_line(export) == 6

    def test_class_modifiers_removed(self):
        code = (
            "class Box implements Sized {\n"
            "  private readonly size: number = 1;\n"
            "  public grow(by: number): void {\n"
            "    this.size += by;\n"
            "  }\n"
            "}\n"
        )
        stripped = strip_typescript(code)
        for word in ("private", "readonly", "public", "implements"):
            assert word not in stripped
        assert parse_javascript(stripped) is not None

    def test_generics_and_casts(self):
        code = "function first<T>(items: T[]): T {\n  return (items as any)[0];\n}\n"
        stripped = strip_typescript(code)
        assert "<T>" not in stripped
        assert " as " not in stripped
        assert parse_javascript(stripped) is not None

    def test_plain_javascript_unchanged(self):
        code = "const x = cond ? a : b;\nfunction f(a, b) { return a; }\n"
        assert parse_javascript(strip_typescript(code)) is not None
