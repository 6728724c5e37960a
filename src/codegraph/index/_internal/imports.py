"""Import extraction and module-to-file resolution.

Python ``import`` / ``from ... import`` statements and JS/TS ES imports and
``require()`` calls are turned into flat ImportInfo records, one per bound
name. Files without a syntax tree use a line-regex scanner with the same
output shape.

ModuleResolver maps an import's module string onto an indexed file path,
trying the importer's directory before the project root, then any file
whose path ends with the module path.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codegraph.config.constants import LANGUAGE_FAMILIES
from codegraph.index._internal.extraction.treewalk import iter_nodes, node_text, start_line
from codegraph.index._internal.registry import calculate_import_distance

if TYPE_CHECKING:
    from tree_sitter import Node

IMPORT = "import"
FROM = "from"
ES_IMPORT = "es_import"
REQUIRE = "require"

# Imported name used for namespace bindings (import * as x, const x = require(...))
NAMESPACE = "*"


@dataclass(frozen=True)
class ImportInfo:
    """One name bound by an import statement."""

    file_path: str
    imported_name: str
    from_module: str
    import_kind: str
    line: int
    alias: str | None = None

    @property
    def local_name(self) -> str:
        """Name the importing file uses to refer to the import."""
        return self.alias or self.imported_name


# ---------------------------------------------------------------------------
# Tree extraction
# ---------------------------------------------------------------------------


def _strip_quotes(text: str) -> str:
    return text.strip("'\"`")


def _python_imports(file_path: str, root: Node) -> list[ImportInfo]:
    imports: list[ImportInfo] = []
    for node in iter_nodes(root):
        line = start_line(node)
        if node.type == "import_statement":
            for child in node.children:
                if child.type == "dotted_name":
                    name = node_text(child)
                    imports.append(ImportInfo(file_path, name, name, IMPORT, line))
                elif child.type == "aliased_import":
                    name = node_text(child.child_by_field_name("name"))
                    alias = node_text(child.child_by_field_name("alias")) or None
                    if name:
                        imports.append(ImportInfo(file_path, name, name, IMPORT, line, alias))

        elif node.type == "import_from_statement":
            module_node = node.child_by_field_name("module_name")
            source = node_text(module_node)
            module_span = (
                (module_node.start_byte, module_node.end_byte) if module_node else None
            )
            for child in node.children:
                is_module = (child.start_byte, child.end_byte) == module_span
                if child.type == "dotted_name" and not is_module:
                    imports.append(ImportInfo(file_path, node_text(child), source, FROM, line))
                elif child.type == "aliased_import":
                    name = node_text(child.child_by_field_name("name"))
                    alias = node_text(child.child_by_field_name("alias")) or None
                    if name:
                        imports.append(ImportInfo(file_path, name, source, FROM, line, alias))
                elif child.type == "wildcard_import":
                    imports.append(ImportInfo(file_path, NAMESPACE, source, FROM, line))
    return imports


def _es_import(file_path: str, node: Node) -> list[ImportInfo]:
    source = _strip_quotes(node_text(node.child_by_field_name("source")))
    if not source:
        return []
    line = start_line(node)
    imports: list[ImportInfo] = []
    for child in node.children:
        if child.type != "import_clause":
            continue
        for clause_child in child.children:
            if clause_child.type == "identifier":
                imports.append(
                    ImportInfo(file_path, node_text(clause_child), source, ES_IMPORT, line)
                )
            elif clause_child.type == "named_imports":
                for spec in clause_child.children:
                    if spec.type != "import_specifier":
                        continue
                    name = node_text(spec.child_by_field_name("name"))
                    alias = node_text(spec.child_by_field_name("alias")) or None
                    if name:
                        imports.append(ImportInfo(file_path, name, source, ES_IMPORT, line, alias))
            elif clause_child.type == "namespace_import":
                for ns_child in clause_child.children:
                    if ns_child.type == "identifier":
                        imports.append(
                            ImportInfo(
                                file_path, NAMESPACE, source, ES_IMPORT, line, node_text(ns_child)
                            )
                        )
    if not imports:
        # Side-effect import: import './polyfills'
        imports.append(ImportInfo(file_path, NAMESPACE, source, ES_IMPORT, line))
    return imports


def _require(file_path: str, node: Node) -> list[ImportInfo]:
    function = node.child_by_field_name("function")
    if function is None or node_text(function) != "require":
        return []
    arguments = node.child_by_field_name("arguments")
    source = ""
    for arg in arguments.children if arguments else ():
        if arg.type in ("string", "template_string"):
            source = _strip_quotes(node_text(arg))
            break
    if not source:
        return []

    line = start_line(node)
    parent = node.parent
    binding = None
    if parent is not None and parent.type == "variable_declarator":
        binding = parent.child_by_field_name("name")
    if binding is None:
        return [ImportInfo(file_path, NAMESPACE, source, REQUIRE, line)]
    if binding.type == "identifier":
        return [ImportInfo(file_path, NAMESPACE, source, REQUIRE, line, node_text(binding))]

    imports: list[ImportInfo] = []
    if binding.type == "object_pattern":
        for prop in binding.children:
            if prop.type == "shorthand_property_identifier_pattern":
                imports.append(ImportInfo(file_path, node_text(prop), source, REQUIRE, line))
            elif prop.type == "pair_pattern":
                key = node_text(prop.child_by_field_name("key"))
                value = node_text(prop.child_by_field_name("value"))
                if key:
                    imports.append(ImportInfo(file_path, key, source, REQUIRE, line, value or None))
    return imports or [ImportInfo(file_path, NAMESPACE, source, REQUIRE, line)]


def _javascript_imports(file_path: str, root: Node) -> list[ImportInfo]:
    imports: list[ImportInfo] = []
    for node in iter_nodes(root):
        if node.type == "import_statement":
            imports.extend(_es_import(file_path, node))
        elif node.type == "call_expression":
            imports.extend(_require(file_path, node))
    return imports


def extract_imports(file_path: str, root: Node, language: str) -> list[ImportInfo]:
    """Imports from a parsed file, in source order."""
    family = LANGUAGE_FAMILIES.get(language)
    if family == "python":
        return _python_imports(file_path, root)
    if family == "javascript":
        return _javascript_imports(file_path, root)
    return []


# ---------------------------------------------------------------------------
# Regex fallback
# ---------------------------------------------------------------------------

_PY_IMPORT = re.compile(
    r"^\s*import\s+(?P<names>[\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)"
)
_PY_FROM = re.compile(r"^\s*from\s+(?P<module>\.*[\w.]*)\s+import\s+(?P<names>[^#]+)")
_JS_IMPORT = re.compile(r"^\s*import\s+(?P<clause>.*?)\s*from\s*['\"](?P<source>[^'\"]+)['\"]")
_JS_BARE_IMPORT = re.compile(r"^\s*import\s*['\"](?P<source>[^'\"]+)['\"]")
_JS_REQUIRE = re.compile(
    r"(?:(?:const|let|var)\s+(?P<binding>[\w$]+|\{[^}]*\})\s*=\s*)?"
    r"require\(\s*['\"](?P<source>[^'\"]+)['\"]\s*\)"
)
_AS = re.compile(r"^(?P<name>[\w.$*]+)(?:\s+as\s+(?P<alias>[\w$]+))?$")


def _split_names(raw: str) -> list[tuple[str, str | None]]:
    names: list[tuple[str, str | None]] = []
    for part in raw.strip().strip("()").split(","):
        match = _AS.match(part.strip())
        if match:
            names.append((match.group("name"), match.group("alias")))
    return names


def _scan_python_imports(file_path: str, content: str) -> list[ImportInfo]:
    imports: list[ImportInfo] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _PY_FROM.match(line)
        if match:
            module = match.group("module")
            for name, alias in _split_names(match.group("names")):
                imports.append(ImportInfo(file_path, name, module, FROM, lineno, alias))
            continue
        match = _PY_IMPORT.match(line)
        if match:
            for name, alias in _split_names(match.group("names")):
                imports.append(ImportInfo(file_path, name, name, IMPORT, lineno, alias))
    return imports


def _scan_es_clause(clause: str) -> list[tuple[str, str | None]]:
    names: list[tuple[str, str | None]] = []
    braces = re.search(r"\{(?P<inner>[^}]*)\}", clause)
    if braces:
        names.extend(_split_names(braces.group("inner")))
        clause = clause[: braces.start()] + clause[braces.end() :]
    namespace = re.search(r"\*\s*as\s+(?P<alias>[\w$]+)", clause)
    if namespace:
        names.append((NAMESPACE, namespace.group("alias")))
        clause = clause[: namespace.start()] + clause[namespace.end() :]
    default = clause.strip().strip(",").strip()
    if default and re.fullmatch(r"[\w$]+", default) and default != "type":
        names.append((default, None))
    return names


def _scan_javascript_imports(file_path: str, content: str) -> list[ImportInfo]:
    imports: list[ImportInfo] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _JS_IMPORT.match(line)
        if match:
            source = match.group("source")
            names = _scan_es_clause(match.group("clause")) or [(NAMESPACE, None)]
            for name, alias in names:
                imports.append(ImportInfo(file_path, name, source, ES_IMPORT, lineno, alias))
            continue
        match = _JS_BARE_IMPORT.match(line)
        if match:
            imports.append(
                ImportInfo(file_path, NAMESPACE, match.group("source"), ES_IMPORT, lineno)
            )
            continue
        for match in _JS_REQUIRE.finditer(line):
            source = match.group("source")
            binding = match.group("binding")
            if binding and binding.startswith("{"):
                for name, alias in _split_names(binding.strip("{}").replace(":", " as ")):
                    imports.append(ImportInfo(file_path, name, source, REQUIRE, lineno, alias))
            else:
                imports.append(ImportInfo(file_path, NAMESPACE, source, REQUIRE, lineno, binding))
    return imports


def scan_imports(file_path: str, content: str, language: str) -> list[ImportInfo]:
    """Regex import scan for files without a syntax tree."""
    family = LANGUAGE_FAMILIES.get(language)
    if family == "python":
        return _scan_python_imports(file_path, content)
    if family == "javascript":
        return _scan_javascript_imports(file_path, content)
    return []


# ---------------------------------------------------------------------------
# Module resolution
# ---------------------------------------------------------------------------

_PYTHON_SUFFIXES = (".py", ".pyi", ".pyx", "/__init__.py")
_JS_SUFFIXES = (
    "",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    "/index.ts",
    "/index.tsx",
    "/index.js",
    "/index.jsx",
)


def _python_stems(
    module: str, caller_dir: str
) -> tuple[list[tuple[str, tuple[str, ...]]], str | None]:
    """(anchored (stem, suffixes) pairs, suffix stem for project-wide matching)."""
    if module.startswith("."):
        depth = len(module) - len(module.lstrip("."))
        base = caller_dir
        for _ in range(depth - 1):
            base = posixpath.dirname(base)
        rest = module[depth:].replace(".", "/")
        if not rest:
            return [(base, ("/__init__.py",))], None
        return [(posixpath.join(base, rest), _PYTHON_SUFFIXES)], None
    stem = module.replace(".", "/")
    anchored = [(stem, _PYTHON_SUFFIXES)]
    if caller_dir:
        anchored.insert(0, (posixpath.join(caller_dir, stem), _PYTHON_SUFFIXES))
    return anchored, stem


class ModuleResolver:
    """Maps import module strings onto indexed file paths.

    Usage::

        resolver = ModuleResolver(["a/x.py", "a/main.py"])
        resolver.resolve(info)  # "a/x.py" for ``from x import helper`` in a/main.py
    """

    def __init__(self, file_paths: Iterable[str]) -> None:
        self._files: set[str] = set(file_paths)
        self._by_stem: dict[str, list[str]] = {}
        for path in sorted(self._files):
            stem, _ext = posixpath.splitext(path)
            self._by_stem.setdefault(stem, []).append(path)
            if stem.endswith("/__init__") or stem.endswith("/index"):
                self._by_stem.setdefault(posixpath.dirname(stem), []).append(path)

    def _first_existing(self, stem: str, suffixes: tuple[str, ...]) -> str | None:
        for suffix in suffixes:
            candidate = posixpath.normpath(stem + suffix) if stem else suffix.lstrip("/")
            if candidate in self._files:
                return candidate
        return None

    def _by_suffix(self, stem: str) -> list[str]:
        tail = "/" + stem
        return [
            path
            for key, paths in self._by_stem.items()
            if key == stem or key.endswith(tail)
            for path in paths
        ]

    def resolve_module(self, module: str, caller_path: str, language: str) -> str | None:
        """Indexed file implementing ``module`` as seen from ``caller_path``."""
        if not module:
            return None
        caller_dir = posixpath.dirname(caller_path)
        family = LANGUAGE_FAMILIES.get(language)

        if family == "javascript":
            if not module.startswith("."):
                return None
            stem = posixpath.normpath(posixpath.join(caller_dir, module))
            return self._first_existing(stem, _JS_SUFFIXES)

        if family == "python":
            anchored, suffix_stem = _python_stems(module, caller_dir)
            for stem, suffixes in anchored:
                found = self._first_existing(stem, suffixes)
                if found:
                    return found
            if suffix_stem:
                matches = self._by_suffix(suffix_stem)
                if matches:
                    return min(matches, key=lambda p: calculate_import_distance(caller_path, p))
        return None

    def resolve(self, info: ImportInfo, language: str) -> str | None:
        """File an import points at; a ``from pkg import mod`` may name a submodule."""
        found = self.resolve_module(info.from_module, info.file_path, language)
        if found is None and info.import_kind == FROM and info.imported_name != NAMESPACE:
            sep = "" if info.from_module.endswith(".") else "."
            found = self.resolve_module(
                f"{info.from_module}{sep}{info.imported_name}", info.file_path, language
            )
        return found
