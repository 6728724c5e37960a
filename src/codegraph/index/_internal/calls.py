"""Call-site collection and heuristic call resolution.

Call sites are gathered per file (from the syntax tree, or by a regex
scanner when there is none) and resolved only after every file has been
registered, since a callee may live in a file indexed later.

Resolution stops at the first rule that succeeds:

1. builtin table (Python builtins, JS globals)
2. the caller's imports (real definition when the module is indexed,
   otherwise an ``imported`` placeholder node)
3. ``super`` calls, through the resolved inheritance edges
4. same-file definitions (``self``/``this``/``cls`` prefer the enclosing class,
   a receiver built by ``Cls()`` or ``new Cls()`` prefers ``Cls``)
5. method calls only: any method with that name, nearest file first,
   preferring the receiver's class when it is known

Placeholder nodes hang off synthetic Module nodes so every Function node
still has exactly one container.
"""

from __future__ import annotations

import builtins
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import structlog

from codegraph.config.constants import LANGUAGE_FAMILIES
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind, node_id
from codegraph.index._internal.extraction.treewalk import iter_nodes, node_text, span
from codegraph.index._internal.imports import FROM, IMPORT, NAMESPACE, ImportInfo, ModuleResolver
from codegraph.index._internal.structure import file_node_id

if TYPE_CHECKING:
    from tree_sitter import Node

    from codegraph.graph.knowledge import KnowledgeGraph
    from codegraph.index._internal.registry import SymbolEntry, SymbolRegistry

log = structlog.get_logger(__name__)

FUNCTION_CALL = "function"
METHOD_CALL = "method"
SUPER_CALL = "super"
CONSTRUCTOR_CALL = "constructor"

PYTHON_BUILTINS: frozenset[str] = frozenset(n for n in dir(builtins) if not n.startswith("_"))

JS_GLOBALS: frozenset[str] = frozenset(
    {
        "parseInt",
        "parseFloat",
        "isNaN",
        "isFinite",
        "setTimeout",
        "setInterval",
        "clearTimeout",
        "clearInterval",
        "setImmediate",
        "queueMicrotask",
        "requestAnimationFrame",
        "require",
        "encodeURIComponent",
        "decodeURIComponent",
        "encodeURI",
        "decodeURI",
        "fetch",
        "alert",
        "structuredClone",
        "Symbol",
        "BigInt",
        "Boolean",
        "Number",
        "String",
        "Array",
        "Object",
        "Error",
        "TypeError",
        "RangeError",
        "Promise",
        "Map",
        "Set",
        "WeakMap",
        "WeakSet",
        "Date",
        "RegExp",
        "URL",
        "URLSearchParams",
    }
)

# Receivers whose methods count as JS builtins (console.log, JSON.parse, ...)
JS_GLOBAL_OBJECTS: frozenset[str] = frozenset(
    {
        "console",
        "Math",
        "JSON",
        "Object",
        "Array",
        "Promise",
        "Number",
        "String",
        "Date",
        "Reflect",
        "Symbol",
        "process",
        "window",
        "document",
        "globalThis",
    }
)

SELF_RECEIVERS = frozenset({"self", "this", "cls"})
BUILTINS_MODULE = "builtins"

_CALLABLE_KINDS = frozenset((NodeKind.FUNCTION, NodeKind.METHOD, NodeKind.CLASS))
_IMPORTABLE_KINDS = frozenset((NodeKind.FUNCTION, NodeKind.CLASS))

_HIGH = "high"
_LOW = "low"


@dataclass(frozen=True)
class CallSite:
    """One syntactic call occurrence awaiting resolution."""

    file_path: str
    name: str
    call_type: str
    line: int
    column: int
    object_name: str | None = None
    # Class of the receiver when it was bound by a constructor call in scope
    receiver_type: str | None = None


# ---------------------------------------------------------------------------
# Call-site collection
# ---------------------------------------------------------------------------


def _python_call(file_path: str, node: Node) -> CallSite | None:
    function = node.child_by_field_name("function")
    if function is None:
        return None
    line, column = node.start_point[0] + 1, node.start_point[1] + 1
    if function.type == "identifier":
        return CallSite(file_path, node_text(function), FUNCTION_CALL, line, column)
    if function.type != "attribute":
        return None
    obj = function.child_by_field_name("object")
    attr = node_text(function.child_by_field_name("attribute"))
    if obj is None or not attr:
        return None
    if obj.type == "call" and node_text(obj.child_by_field_name("function")) == "super":
        return CallSite(file_path, attr, SUPER_CALL, line, column, "super")
    return CallSite(file_path, attr, METHOD_CALL, line, column, node_text(obj))


def _member_target(function: Node) -> tuple[str, str | None]:
    if function.type == "member_expression":
        obj = function.child_by_field_name("object")
        return node_text(function.child_by_field_name("property")), node_text(obj) or None
    return node_text(function), None


def _javascript_call(file_path: str, node: Node) -> CallSite | None:
    line, column = node.start_point[0] + 1, node.start_point[1] + 1
    if node.type == "new_expression":
        constructor = node.child_by_field_name("constructor")
        if constructor is None or constructor.type not in ("identifier", "member_expression"):
            return None
        name, obj = _member_target(constructor)
        return CallSite(file_path, name, CONSTRUCTOR_CALL, line, column, obj) if name else None

    function = node.child_by_field_name("function")
    if function is None:
        return None
    if function.type == "super":
        return CallSite(file_path, "constructor", SUPER_CALL, line, column, "super")
    if function.type == "identifier":
        return CallSite(file_path, node_text(function), FUNCTION_CALL, line, column)
    if function.type == "member_expression":
        name, obj = _member_target(function)
        if not name:
            return None
        if obj == "super":
            return CallSite(file_path, name, SUPER_CALL, line, column, "super")
        return CallSite(file_path, name, METHOD_CALL, line, column, obj)
    return None


_SCOPE_TYPES = frozenset(
    {
        "function_definition",
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
    }
)
_MODULE_SCOPE = (-1, -1)
_TYPE_NAME = re.compile(r"^[A-Za-z_$][\w$]*$")


def _scope_chain(node: Node) -> list[tuple[int, int]]:
    """Spans of the enclosing function scopes, innermost first, then the module."""
    chain: list[tuple[int, int]] = []
    parent = node.parent
    while parent is not None:
        if parent.type in _SCOPE_TYPES:
            chain.append(span(parent))
        parent = parent.parent
    chain.append(_MODULE_SCOPE)
    return chain


def _annotated_type(annotation: Node | None) -> str | None:
    text = node_text(annotation).lstrip(":").strip()
    return text if _TYPE_NAME.match(text) else None


def _binding(family: str | None, node: Node) -> tuple[str, str | None] | None:
    """(variable, class) for a plain-name binding; class is None when unknown.

    Recognizes ``x = Cls(...)`` and ``x: Cls = ...`` in Python, and
    ``x = new Cls()`` and ``x: Cls = ...`` in JavaScript/TypeScript.
    """
    if family == "python" and node.type == "assignment":
        target, value = node.child_by_field_name("left"), node.child_by_field_name("right")
        declared = _annotated_type(node.child_by_field_name("type"))
        constructed = "call"
        callee_field = "function"
    elif family == "javascript" and node.type == "variable_declarator":
        target, value = node.child_by_field_name("name"), node.child_by_field_name("value")
        declared = _annotated_type(node.child_by_field_name("type"))
        constructed = "new_expression"
        callee_field = "constructor"
    elif family == "javascript" and node.type == "assignment_expression":
        target, value = node.child_by_field_name("left"), node.child_by_field_name("right")
        declared = None
        constructed = "new_expression"
        callee_field = "constructor"
    else:
        return None
    if target is None or target.type != "identifier":
        return None
    if declared:
        return node_text(target), declared
    if value is not None and value.type == constructed:
        callee = value.child_by_field_name(callee_field)
        if callee is not None and callee.type == "identifier":
            return node_text(target), node_text(callee)
    return node_text(target), None


def collect_call_sites(file_path: str, root: Node, language: str) -> list[CallSite]:
    """Call sites of a parsed file, in document order.

    Method calls on a variable bound by a constructor call earlier in the
    same or an enclosing scope carry that class as ``receiver_type``.
    """
    family = LANGUAGE_FAMILIES.get(language)
    sites: list[CallSite] = []
    bindings: dict[tuple[int, int], dict[str, str | None]] = {}
    for node in iter_nodes(root):
        binding = _binding(family, node)
        if binding is not None:
            variable, class_name = binding
            bindings.setdefault(_scope_chain(node)[0], {})[variable] = class_name
            continue

        site: CallSite | None = None
        if family == "python" and node.type == "call":
            site = _python_call(file_path, node)
        elif family == "javascript" and node.type in ("call_expression", "new_expression"):
            site = _javascript_call(file_path, node)
        if site is None or not site.name:
            continue
        if (
            site.call_type == METHOD_CALL
            and site.object_name
            and site.object_name not in SELF_RECEIVERS
        ):
            for scope in _scope_chain(node):
                names = bindings.get(scope, {})
                if site.object_name in names:
                    if names[site.object_name]:
                        site = replace(site, receiver_type=names[site.object_name])
                    break
        sites.append(site)
    return sites


_REGEX_CALL = re.compile(
    r"(?<![\w$.])(?P<new>new\s+)?(?P<callee>(?:[A-Za-z_$][\w$]*\.)*[A-Za-z_$][\w$]*)\s*\("
)
_REGEX_SUPER = re.compile(r"\bsuper(?:\(\s*\))?\.(?P<name>[A-Za-z_$][\w$]*)\s*\(")
_DEFINITION_PREFIX = re.compile(r"(?:\bdef|\bfunction\*?|\bclass)\s*$")
_NOT_CALLS = frozenset(
    {
        "if",
        "elif",
        "while",
        "for",
        "return",
        "switch",
        "catch",
        "with",
        "not",
        "and",
        "or",
        "in",
        "lambda",
        "yield",
        "await",
        "typeof",
        "function",
        "def",
        "class",
        "assert",
        "except",
        "del",
        "import",
        "from",
        "super",
    }
)


def scan_call_sites(file_path: str, content: str, language: str) -> list[CallSite]:
    """Regex call scan for files without a syntax tree."""
    comment = "#" if LANGUAGE_FAMILIES.get(language) == "python" else "//"
    sites: list[CallSite] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith(comment):
            continue
        for match in _REGEX_SUPER.finditer(line):
            sites.append(
                CallSite(
                    file_path, match.group("name"), SUPER_CALL, lineno, match.start() + 1, "super"
                )
            )
        for match in _REGEX_CALL.finditer(line):
            callee = match.group("callee")
            if callee in _NOT_CALLS or _DEFINITION_PREFIX.search(line[: match.start()]):
                continue
            obj, _, name = callee.rpartition(".")
            if match.group("new"):
                call_type = CONSTRUCTOR_CALL
            else:
                call_type = METHOD_CALL if obj else FUNCTION_CALL
            sites.append(
                CallSite(file_path, name, call_type, lineno, match.start() + 1, obj or None)
            )
    return sites


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@dataclass
class CallStats:
    """Counters for one resolve_all run."""

    total: int = 0
    resolved: int = 0
    unresolved: int = 0
    self_calls_skipped: int = 0
    edges_added: int = 0
    by_resolution: Counter[str] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "resolved": self.resolved,
            "unresolved": self.unresolved,
            "self_calls_skipped": self.self_calls_skipped,
            "edges_added": self.edges_added,
            "by_resolution": dict(sorted(self.by_resolution.items())),
        }


@dataclass
class _FileCalls:
    imports: list[ImportInfo]
    sites: list[CallSite]
    language: str
    # (start, end, entry) for Function/Method definitions, sorted by start
    scopes: list[tuple[int, int, SymbolEntry]] | None = None


@dataclass(frozen=True)
class _Target:
    node_id: str
    resolution: str
    confidence: str


class CallResolver:
    """Resolves registered call sites into CALLS edges.

    Usage::

        resolver = CallResolver(graph, registry, ModuleResolver(paths))
        resolver.register_file(path, imports, sites, "python")
        ...
        stats = resolver.resolve_all()
        resolver.link_imports()
    """

    def __init__(
        self,
        graph: KnowledgeGraph,
        registry: SymbolRegistry,
        modules: ModuleResolver,
    ) -> None:
        self._graph = graph
        self._registry = registry
        self._modules = modules
        self._files: dict[str, _FileCalls] = {}

    def register_file(
        self,
        file_path: str,
        imports: list[ImportInfo],
        call_sites: list[CallSite],
        language: str,
    ) -> None:
        self._files[file_path] = _FileCalls(list(imports), list(call_sites), language)

    def get_imports(self, file_path: str) -> list[ImportInfo]:
        data = self._files.get(file_path)
        return list(data.imports) if data else []

    def get_call_sites(self, file_path: str) -> list[CallSite]:
        data = self._files.get(file_path)
        return list(data.sites) if data else []

    # ------------------------------------------------------------------
    # Placeholder nodes
    # ------------------------------------------------------------------

    def _module_node(self, module: str, module_type: str) -> str:
        mid = node_id(NodeKind.MODULE, module, module)
        self._graph.add_node(
            GraphNode(
                id=mid,
                kind=NodeKind.MODULE,
                properties={"name": module, "type": module_type},
            )
        )
        return mid

    def _builtin_node(self, name: str, language: str) -> str:
        module_id = self._module_node(BUILTINS_MODULE, "builtin")
        fid = node_id(NodeKind.FUNCTION, BUILTINS_MODULE, name)
        self._graph.add_node(
            GraphNode(
                id=fid,
                kind=NodeKind.FUNCTION,
                properties={
                    "name": name,
                    "type": "builtin",
                    "module": BUILTINS_MODULE,
                    "language": LANGUAGE_FAMILIES.get(language, language),
                },
            )
        )
        self._graph.add_relationship(RelationshipKind.CONTAINS, module_id, fid)
        return fid

    def _imported_node(self, name: str, module: str, language: str) -> str:
        module_id = self._module_node(module, "external")
        fid = node_id(NodeKind.FUNCTION, module, name)
        self._graph.add_node(
            GraphNode(
                id=fid,
                kind=NodeKind.FUNCTION,
                properties={
                    "name": name,
                    "type": "imported",
                    "module": module,
                    "language": LANGUAGE_FAMILIES.get(language, language),
                },
            )
        )
        self._graph.add_relationship(RelationshipKind.CONTAINS, module_id, fid)
        return fid

    # ------------------------------------------------------------------
    # Caller lookup
    # ------------------------------------------------------------------

    def _scopes(self, file_path: str, data: _FileCalls) -> list[tuple[int, int, SymbolEntry]]:
        if data.scopes is None:
            entries = sorted(
                (
                    e
                    for e in self._registry.find_in_file(file_path)
                    if e.kind in (NodeKind.FUNCTION, NodeKind.METHOD)
                ),
                key=lambda e: e.start_line,
            )
            scopes: list[tuple[int, int, SymbolEntry]] = []
            for index, entry in enumerate(entries):
                end = entry.end_line
                if end is None:
                    # Regex-extracted: assume the body runs to the next definition
                    later = [
                        e.start_line
                        for e in entries[index + 1 :]
                        if e.start_line > entry.start_line
                    ]
                    end = later[0] - 1 if later else 1 << 30
                scopes.append((entry.start_line, end, entry))
            data.scopes = scopes
        return data.scopes

    def _caller(self, site: CallSite, data: _FileCalls) -> SymbolEntry | None:
        """Innermost Function/Method whose span contains the call line."""
        best: SymbolEntry | None = None
        best_width = 0
        for start, end, entry in self._scopes(site.file_path, data):
            if start > site.line:
                break
            if site.line <= end and (best is None or end - start <= best_width):
                best, best_width = entry, end - start
        return best

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _resolve_builtin(self, site: CallSite, language: str) -> _Target | None:
        family = LANGUAGE_FAMILIES.get(language)
        name: str | None = None
        if family == "python" and site.call_type == FUNCTION_CALL:
            if site.name in PYTHON_BUILTINS:
                name = site.name
        elif family == "javascript":
            if site.call_type in (FUNCTION_CALL, CONSTRUCTOR_CALL) and not site.object_name:
                if site.name in JS_GLOBALS:
                    name = site.name
            elif site.call_type == METHOD_CALL and site.object_name in JS_GLOBAL_OBJECTS:
                name = f"{site.object_name}.{site.name}"
        if name is None:
            return None
        return _Target(self._builtin_node(name, language), "builtin", _HIGH)

    def _definition_in_module(
        self, info: ImportInfo, name: str, language: str, submodule: bool
    ) -> SymbolEntry | None:
        modules = [info.from_module]
        if submodule and info.imported_name != NAMESPACE:
            sep = "" if info.from_module.endswith(".") else "."
            if LANGUAGE_FAMILIES.get(language) == "python":
                modules.insert(0, f"{info.from_module}{sep}{info.imported_name}")
        for module in modules:
            target_file = self._modules.resolve_module(module, info.file_path, language)
            if target_file is None:
                continue
            for entry in self._registry.find_in_file(target_file, name):
                if entry.kind in _IMPORTABLE_KINDS and entry.parent_class is None:
                    return entry
        return None

    def _resolve_import(self, site: CallSite, data: _FileCalls) -> _Target | None:
        for info in data.imports:
            if site.call_type in (FUNCTION_CALL, CONSTRUCTOR_CALL) and not site.object_name:
                if info.imported_name == NAMESPACE or info.local_name != site.name:
                    continue
                entry = self._definition_in_module(info, info.imported_name, data.language, False)
                if entry is not None:
                    return _Target(entry.node_id, "import", _HIGH)
                return _Target(
                    self._imported_node(site.name, info.from_module, data.language), "import", _HIGH
                )

            if site.call_type in (METHOD_CALL, CONSTRUCTOR_CALL) and site.object_name:
                receiver_names = {info.local_name}
                if info.import_kind == IMPORT and not info.alias:
                    receiver_names.add(info.imported_name)
                if site.object_name not in receiver_names:
                    continue
                # from pkg import mod; mod.f() looks inside pkg/mod
                entry = self._definition_in_module(
                    info, site.name, data.language, info.import_kind == FROM
                )
                if entry is not None:
                    return _Target(entry.node_id, "import", _HIGH)
                module = info.from_module
                if info.import_kind == FROM and info.imported_name != NAMESPACE:
                    module = f"{module}.{info.imported_name}"
                placeholder = self._imported_node(site.name, module, data.language)
                return _Target(placeholder, "import", _HIGH)
        return None

    def _class_node_for(self, caller: SymbolEntry) -> str | None:
        for entry in self._registry.find_in_file(caller.file_path, caller.parent_class):
            if (
                entry.kind in (NodeKind.CLASS, NodeKind.INTERFACE)
                and entry.start_line <= caller.start_line
            ):
                return entry.node_id
        return None

    def _resolve_super(self, site: CallSite, caller: SymbolEntry | None) -> _Target | None:
        if site.call_type != SUPER_CALL or caller is None or not caller.parent_class:
            return None
        start = self._class_node_for(caller)
        if start is None:
            return None

        seen = {start}
        frontier = [start]
        while frontier:
            next_frontier: list[str] = []
            for class_id in frontier:
                for rel in self._graph.outgoing(class_id, RelationshipKind.INHERITS):
                    base = self._graph.get_node(rel.target)
                    if base is None or base.id in seen:
                        continue
                    seen.add(base.id)
                    for entry in self._registry.find_in_file(base.file_path or "", site.name):
                        if entry.kind is NodeKind.METHOD and entry.parent_class == base.name:
                            return _Target(entry.node_id, "super", _HIGH)
                    next_frontier.append(base.id)
            frontier = next_frontier
        return None

    def _has_method(self, class_name: str, name: str) -> bool:
        return any(
            e.kind is NodeKind.METHOD and e.parent_class == class_name
            for e in self._registry.find_by_bare_name(name)
        )

    def _resolve_local(self, site: CallSite, caller: SymbolEntry | None) -> _Target | None:
        if site.call_type == SUPER_CALL:
            return None
        entries = [
            e
            for e in self._registry.find_in_file(site.file_path, site.name)
            if e.kind in _CALLABLE_KINDS
        ]
        if not entries:
            return None

        if site.call_type == METHOD_CALL:
            methods = [e for e in entries if e.kind is NodeKind.METHOD]
            if site.receiver_type:
                typed = [e for e in methods if e.parent_class == site.receiver_type]
                if typed:
                    return _Target(typed[0].node_id, "local", _HIGH)
                if self._has_method(site.receiver_type, site.name):
                    # Defined in another file; the global rule finds it
                    return None
            if site.object_name in SELF_RECEIVERS and caller is not None and caller.parent_class:
                own = [e for e in methods if e.parent_class == caller.parent_class]
                if own:
                    return _Target(own[0].node_id, "local", _HIGH)
            if methods:
                return _Target(methods[0].node_id, "local", _HIGH)
            return None

        if site.object_name:
            return None
        free = [e for e in entries if e.kind is not NodeKind.METHOD]
        if free:
            return _Target(free[0].node_id, "local", _HIGH)
        return None

    def _resolve_global(self, site: CallSite) -> _Target | None:
        if site.call_type != METHOD_CALL:
            return None
        candidates = [
            e for e in self._registry.find_by_bare_name(site.name) if e.kind is NodeKind.METHOD
        ]
        if site.receiver_type:
            typed = [e for e in candidates if e.parent_class == site.receiver_type]
            best = self._registry.best_candidate(typed, site.file_path)
            if best is not None:
                return _Target(best.node_id, "global", _HIGH)
        best = self._registry.best_candidate(candidates, site.file_path)
        return _Target(best.node_id, "global", _LOW) if best else None

    def _resolve(
        self, site: CallSite, data: _FileCalls, caller: SymbolEntry | None
    ) -> _Target | None:
        return (
            self._resolve_builtin(site, data.language)
            or self._resolve_import(site, data)
            or self._resolve_super(site, caller)
            or self._resolve_local(site, caller)
            or self._resolve_global(site)
        )

    def resolve_all(self) -> CallStats:
        """Resolve every registered call site into CALLS edges."""
        stats = CallStats()
        for file_path, data in self._files.items():
            file_id = file_node_id(file_path)
            for site in data.sites:
                stats.total += 1
                caller = self._caller(site, data)
                target = self._resolve(site, data, caller)
                if target is None:
                    stats.unresolved += 1
                    log.debug(
                        "call_unresolved",
                        path=file_path,
                        name=site.name,
                        line=site.line,
                        call_type=site.call_type,
                    )
                    continue

                caller_id = caller.node_id if caller is not None else file_id
                if (
                    caller is not None
                    and target.node_id == caller_id
                    and site.name != caller.bare_name
                ):
                    stats.self_calls_skipped += 1
                    continue

                stats.resolved += 1
                stats.by_resolution[target.resolution] += 1
                props: dict[str, Any] = {
                    "callType": site.call_type,
                    "line": site.line,
                    "column": site.column,
                    "resolution": target.resolution,
                    "confidence": target.confidence,
                }
                if site.object_name:
                    props["objectName"] = site.object_name
                if site.receiver_type:
                    props["receiverType"] = site.receiver_type
                if self._graph.add_relationship(
                    RelationshipKind.CALLS, caller_id, target.node_id, props
                ):
                    stats.edges_added += 1

        log.info(
            "calls_resolved",
            total=stats.total,
            resolved=stats.resolved,
            unresolved=stats.unresolved,
            edges=stats.edges_added,
        )
        return stats

    def link_imports(self) -> int:
        """IMPORTS edges: File -> File when indexed, File -> external Module otherwise."""
        added = 0
        for file_path, data in self._files.items():
            source_id = file_node_id(file_path)
            if not self._graph.has_node(source_id):
                continue
            for info in data.imports:
                target_file = self._modules.resolve(info, data.language)
                if target_file == file_path:
                    continue
                if target_file is not None and self._graph.has_node(file_node_id(target_file)):
                    target_id = file_node_id(target_file)
                else:
                    target_id = self._module_node(info.from_module, "external")
                props = {
                    "importedName": info.imported_name,
                    "fromModule": info.from_module,
                    "importType": info.import_kind,
                    "line": info.line,
                }
                if self._graph.add_relationship(
                    RelationshipKind.IMPORTS, source_id, target_id, props
                ):
                    added += 1
        return added
