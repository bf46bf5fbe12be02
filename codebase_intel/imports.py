"""Per-language import extraction and resolution.

Each parser takes file text and returns the raw import specifiers in
first-seen order, comments stripped. Each resolver maps one specifier to a
project-relative POSIX path that exists in the caller's file set, or to
``None``. External packages are never guessed at: anything that does not
land on a known project file stays unresolved.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import AbstractSet, Callable, Dict, Iterable, List, Optional

from .models import ImportEdge

logger = logging.getLogger(__name__)

_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_LINE_COMMENT = re.compile(r"//[^\n]*")
_HASH_COMMENT = re.compile(r"#[^\n]*")


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(i for i in items if i))


def _strip_c_comments(content: str) -> str:
    return _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", content))


def _first_existing(candidates: Iterable[str], file_set: AbstractSet[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate in file_set:
            return candidate
    return None


def _norm(path: str) -> str:
    return posixpath.normpath(path.replace("\\", "/"))


# ===================================================================
# Parsers
# ===================================================================

_JS_REQUIRE = re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_JS_FROM = re.compile(r"""\b(?:import|export)\s+[\s\S]*?\s+from\s+['"]([^'"]+)['"]""")
_JS_SIDE_EFFECT = re.compile(r"""\bimport\s+['"]([^'"]+)['"]""")
_JS_DYNAMIC = re.compile(r"""\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)""")


def parse_js_imports(content: str) -> List[str]:
    """``require()``, ``import ... from``, ``export ... from``, bare and dynamic ``import``."""
    stripped = _strip_c_comments(content)
    found: List[str] = []
    for pattern in (_JS_REQUIRE, _JS_FROM, _JS_SIDE_EFFECT, _JS_DYNAMIC):
        found.extend(m.group(1) for m in pattern.finditer(stripped))
    return _unique(found)


_PY_FROM = re.compile(r"^\s*from\s+(\.{0,3}[\w.]*)\s+import\b", re.M)
_PY_IMPORT = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)", re.M)


def parse_python_imports(content: str) -> List[str]:
    stripped = _HASH_COMMENT.sub("", content)
    found = [m.group(1) for m in _PY_FROM.finditer(stripped)]
    for m in _PY_IMPORT.finditer(stripped):
        for module in m.group(1).split(","):
            found.append(re.split(r"\s+as\s+", module.strip())[0].strip())
    return _unique(found)


_GO_SINGLE = re.compile(r'\bimport\s+(?:\w+\s+)?"([^"]+)"')
_GO_GROUP = re.compile(r"\bimport\s*\(([\s\S]*?)\)")
_GO_PATH = re.compile(r'"([^"]+)"')


def parse_go_imports(content: str) -> List[str]:
    stripped = _strip_c_comments(content)
    found = [m.group(1) for m in _GO_SINGLE.finditer(stripped)]
    for block in _GO_GROUP.finditer(stripped):
        found.extend(m.group(1) for m in _GO_PATH.finditer(block.group(1)))
    return _unique(found)


_EX_SIMPLE = re.compile(r"^\s*(?:alias|import|use|require)\s+([A-Z][\w.]*)", re.M)
_EX_MULTI = re.compile(r"^\s*alias\s+([A-Z][\w.]*)\.\{([^}]+)\}", re.M)


def parse_elixir_imports(content: str) -> List[str]:
    stripped = _HASH_COMMENT.sub("", content)
    found = [m.group(1).rstrip(".") for m in _EX_SIMPLE.finditer(stripped)]
    for m in _EX_MULTI.finditer(stripped):
        base = m.group(1)
        found.extend(f"{base}.{part.strip()}" for part in m.group(2).split(",") if part.strip())
    return _unique(found)


_RS_USE = re.compile(r"\buse\s+([\w:]+)")
_RS_MOD = re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?mod\s+(\w+)\s*;", re.M)
_RS_EXTERN = re.compile(r"\bextern\s+crate\s+(\w+)")


def parse_rust_imports(content: str) -> List[str]:
    """``use`` paths (up to any ``{``/``*`` group), ``mod x;`` as ``self::x``, ``extern crate``."""
    stripped = _strip_c_comments(content)
    found = [m.group(1).rstrip(":") for m in _RS_USE.finditer(stripped)]
    found.extend(f"self::{m.group(1)}" for m in _RS_MOD.finditer(stripped))
    found.extend(m.group(1) for m in _RS_EXTERN.finditer(stripped))
    return _unique(found)


IMPORT_PARSERS: Dict[str, Callable[[str], List[str]]] = {
    "javascript": parse_js_imports,
    "typescript": parse_js_imports,
    "python": parse_python_imports,
    "go": parse_go_imports,
    "elixir": parse_elixir_imports,
    "rust": parse_rust_imports,
}


# ===================================================================
# Resolvers
# ===================================================================

_JS_EXTENSIONS = (".js", ".ts", ".tsx", ".jsx", ".cjs", ".mjs")
_JS_INDEX = ("/index.js", "/index.ts", "/index.tsx")


def resolve_js(specifier: str, from_file: str, file_set: AbstractSet[str]) -> Optional[str]:
    """Relative specifiers only; bare package names stay unresolved."""
    if not specifier.startswith("."):
        return None
    base = _norm(posixpath.join(posixpath.dirname(from_file), specifier))
    candidates = [base]
    candidates.extend(base + ext for ext in _JS_EXTENSIONS)
    candidates.extend(base + idx for idx in _JS_INDEX)
    if base.endswith(".js"):
        # TypeScript sources are imported by their emitted ``.js`` name
        stem = base[:-3]
        candidates.extend((stem + ".ts", stem + ".tsx"))
    return _first_existing(candidates, file_set)


def resolve_python(specifier: str, from_file: str, file_set: AbstractSet[str]) -> Optional[str]:
    if specifier.startswith("."):
        dots = len(specifier) - len(specifier.lstrip("."))
        base = posixpath.dirname(from_file)
        for _ in range(dots - 1):
            base = posixpath.dirname(base)
        rest = specifier[dots:].replace(".", "/")
        module = posixpath.join(base, rest) if rest else base
        roots = [_norm(module)] if module else []
    else:
        module = specifier.replace(".", "/")
        roots = [module, "src/" + module]

    candidates = []
    for root in roots:
        candidates.extend((root + ".py", root + "/__init__.py", root + ".pyi"))
    return _first_existing(candidates, file_set)


def resolve_go(specifier: str, from_file: str, file_set: AbstractSet[str]) -> Optional[str]:
    """Match a package directory: exact path suffix first, then last segment."""
    package = specifier.rstrip("/").split("/")[-1]
    if not package:
        return None
    go_files = sorted(
        (f for f in file_set if f.endswith(".go")),
        key=lambda f: (f.endswith("_test.go"), f),
    )
    for f in go_files:
        directory = posixpath.dirname(f)
        if directory and (specifier == directory or specifier.endswith("/" + directory)):
            return f
    for f in go_files:
        if posixpath.basename(posixpath.dirname(f)) == package:
            return f
    return None


def _snake(segment: str) -> str:
    return re.sub(r"(?<!^)([A-Z])", r"_\1", segment).lower()


def resolve_elixir(specifier: str, from_file: str, file_set: AbstractSet[str]) -> Optional[str]:
    """``MyApp.Accounts.User`` -> ``lib/my_app/accounts/user.ex`` (and without the app prefix)."""
    parts = [_snake(p) for p in specifier.split(".") if p]
    candidates = []
    for base in ("/".join(parts), "/".join(parts[1:])):
        if base:
            candidates.extend((f"lib/{base}.ex", f"{base}.ex", f"lib/{base}/index.ex"))
    return _first_existing(candidates, file_set)


_RUST_ROOT_FILES = ("mod", "lib", "main")


def _rust_module_dir(from_file: str) -> str:
    """Directory holding the children of *from_file*'s module."""
    directory = posixpath.dirname(from_file)
    stem = posixpath.splitext(posixpath.basename(from_file))[0]
    if stem in _RUST_ROOT_FILES:
        return directory
    return posixpath.join(directory, stem) if directory else stem


def resolve_rust(specifier: str, from_file: str, file_set: AbstractSet[str]) -> Optional[str]:
    """``crate::``, ``super::`` and ``self::`` paths; any other root is an external crate.

    ``use crate::a::item`` names an item inside ``a``, so shorter module
    prefixes are tried until one maps to a file. Failing that, a ``crate::``
    or ``super::`` path resolves to the file of the module it starts from.
    """
    segments = specifier.split("::")
    head, rest = segments[0], [s for s in segments[1:] if s and s != "*"]
    if head == "crate":
        base = "src"
    elif head == "self":
        base = _rust_module_dir(from_file)
    elif head == "super":
        base = posixpath.dirname(_rust_module_dir(from_file))
        while rest and rest[0] == "super":
            base = posixpath.dirname(base)
            rest = rest[1:]
    else:
        return None

    for end in range(len(rest), 0, -1):
        module = _norm(posixpath.join(base, *rest[:end]))
        found = _first_existing((module + ".rs", module + "/mod.rs"), file_set)
        if found:
            return found
    if head in ("crate", "super") and base:
        root = _norm(base)
        return _first_existing(
            (root + ".rs", root + "/mod.rs", root + "/lib.rs", root + "/main.rs"),
            file_set,
        )
    return None


IMPORT_RESOLVERS: Dict[str, Callable[[str, str, AbstractSet[str]], Optional[str]]] = {
    "javascript": resolve_js,
    "typescript": resolve_js,
    "python": resolve_python,
    "go": resolve_go,
    "elixir": resolve_elixir,
    "rust": resolve_rust,
}


def parse_imports(
    file_path: str,
    content: str,
    language: Optional[str],
    file_set: AbstractSet[str],
) -> List[ImportEdge]:
    """Extract and resolve every import in one file.

    Languages without a parser yield an empty list. A resolved target is
    never the importing file itself.
    """
    parser = IMPORT_PARSERS.get(language or "")
    if parser is None:
        return []
    resolver = IMPORT_RESOLVERS[language]
    edges = []
    for raw in parser(content):
        resolved = resolver(raw, file_path, file_set)
        if resolved == file_path:
            resolved = None
        edges.append(ImportEdge(raw, resolved))
    return edges
