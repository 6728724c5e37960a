"""Cypher-like query interpreter over an in-memory KnowledgeGraph.

Supported shapes, tried in this order (keywords are case-insensitive):

1. ``MATCH (v:Label {k:'v'}) WHERE v.p CONTAINS 'x' RETURN ...``
   (also ``v.p = 'x'``)
2. ``MATCH (a[:L])-[:REL*min..max]->(b[:L]) [RETURN ...]``
3. ``MATCH (v:Label {...}) RETURN COUNT(v) | COLLECT(v.p) | SUM(v.p) | AVG(v.p)``
4. ``MATCH (v:Label {...}) RETURN ...``
5. ``MATCH (a[:L])-[:REL]->(b[:L]) [RETURN ...]``

Anything else raises QueryParseError. Results are cached per
``(text, limit, offset, graph.version)``, so a mutated graph never serves
stale rows.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Union

import structlog

from codegraph.config.models import QueryConfig
from codegraph.core.errors import QueryParseError
from codegraph.graph.models import GraphNode, GraphRelationship, NodeKind, RelationshipKind

if TYPE_CHECKING:
    from codegraph.graph.knowledge import KnowledgeGraph
    from codegraph.index.cache import CacheService

log = structlog.get_logger(__name__)

_FLAGS = re.IGNORECASE | re.DOTALL
_NODE = r"\((?P<{v}>\w+):(?P<{l}>\w+)(?:\s*\{{(?P<{p}>[^}}]*)\}})?\)"
_SINGLE = _NODE.format(v="var", l="label", p="props")
_END = r"\s*;?\s*$"

_WHERE_RE = re.compile(
    rf"^\s*MATCH\s+{_SINGLE}\s+WHERE\s+(?P<where>.+?)\s+RETURN\s+(?P<ret>.+?){_END}", _FLAGS
)
_PATH_RE = re.compile(
    r"^\s*MATCH\s+\((?P<src>\w+)(?::(?P<src_label>\w+))?\)\s*"
    r"-\[:(?P<rel>\w+)\*(?P<min>\d+)\.\.(?P<max>\d+)\]->\s*"
    r"\((?P<dst>\w+)(?::(?P<dst_label>\w+))?\)"
    rf"(?:\s+RETURN\s+(?P<ret>.+?))?{_END}",
    _FLAGS,
)
_AGGREGATION_RE = re.compile(
    rf"^\s*MATCH\s+{_SINGLE}\s+RETURN\s+"
    rf"(?P<func>COUNT|COLLECT|AVG|SUM)\s*\(\s*(?P<target>[^)]+?)\s*\){_END}",
    _FLAGS,
)
_MATCH_RE = re.compile(rf"^\s*MATCH\s+{_SINGLE}\s+RETURN\s+(?P<ret>.+?){_END}", _FLAGS)
_RELATIONSHIP_RE = re.compile(
    r"^\s*MATCH\s+\((?P<src>\w+)(?::(?P<src_label>\w+))?\)\s*"
    r"-\[:(?P<rel>\w+)\]->\s*"
    r"\((?P<dst>\w+)(?::(?P<dst_label>\w+))?\)"
    rf"(?:\s+RETURN\s+(?P<ret>.+?))?{_END}",
    _FLAGS,
)

_PROPERTY_RE = re.compile(r"(\w+)\s*:\s*['\"]([^'\"]*)['\"]")
_RETURN_ITEM_RE = re.compile(
    r"^(?P<var>\w+)(?:\.(?P<prop>\w+))?(?:\s+AS\s+(?P<alias>\w+))?$", _FLAGS
)
_AGGREGATE_ITEM_RE = re.compile(
    r"^(?P<func>COUNT|COLLECT|AVG|SUM)\s*\(\s*(?P<var>\w+)(?:\.(?P<prop>\w+))?\s*\)$", _FLAGS
)
_CONTAINS_RE = r"{v}\.(\w+)\s+CONTAINS\s+['\"]([^'\"]*)['\"]"
_EQUALS_RE = r"{v}\.(\w+)\s*=\s*['\"]([^'\"]*)['\"]"


# ---------------------------------------------------------------------------
# Parsed forms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReturnItem:
    """``v``, ``v.prop`` or ``v.prop AS alias``."""

    variable: str
    prop: str | None = None
    alias: str | None = None

    def key(self, qualified: bool) -> str:
        if self.alias:
            return self.alias
        if self.prop is None:
            return self.variable if qualified else "node"
        return f"{self.variable}.{self.prop}" if qualified else self.prop


@dataclass(frozen=True)
class Aggregate:
    """``COUNT(v)``, ``COLLECT(v.prop)``, ``SUM(v.prop)``, ``AVG(v.prop)``."""

    function: str
    variable: str
    prop: str | None = None

    @property
    def key(self) -> str:
        target = f"{self.variable}.{self.prop}" if self.prop else self.variable
        return f"{self.function}({target})"


@dataclass(frozen=True)
class MatchQuery:
    variable: str
    label: str
    properties: dict[str, str]
    returns: tuple[ReturnItem, ...]


@dataclass(frozen=True)
class WhereQuery:
    variable: str
    label: str
    properties: dict[str, str]
    where: str
    returns: tuple[ReturnItem, ...]
    aggregate: Aggregate | None = None


@dataclass(frozen=True)
class AggregationQuery:
    variable: str
    label: str
    properties: dict[str, str]
    aggregate: Aggregate


@dataclass(frozen=True)
class PathQuery:
    source_var: str
    source_label: str | None
    relationship: str
    min_depth: int
    max_depth: int
    target_var: str
    target_label: str | None
    returns: tuple[ReturnItem, ...]


@dataclass(frozen=True)
class RelationshipQuery:
    source_var: str
    source_label: str | None
    relationship: str
    target_var: str
    target_label: str | None
    returns: tuple[ReturnItem, ...]


ParsedQuery = Union[MatchQuery, WhereQuery, AggregationQuery, PathQuery, RelationshipQuery]


def parse_properties(raw: str | None) -> dict[str, str]:
    if not raw or not raw.strip():
        return {}
    return {key: value for key, value in _PROPERTY_RE.findall(raw)}


def _parse_aggregate(text: str, query: str, variables: set[str]) -> Aggregate | None:
    match = _AGGREGATE_ITEM_RE.match(text.strip())
    if match is None:
        return None
    if match.group("var") not in variables:
        raise QueryParseError.unrecognized(query)
    function = match.group("func").upper()
    prop = match.group("prop")
    if function in ("SUM", "AVG") and prop is None:
        raise QueryParseError.unrecognized(query)
    return Aggregate(function, match.group("var"), prop)


def _parse_returns(raw: str | None, query: str, variables: list[str]) -> tuple[ReturnItem, ...]:
    if raw is None:
        return tuple(ReturnItem(v) for v in variables)
    items: list[ReturnItem] = []
    for part in raw.split(","):
        match = _RETURN_ITEM_RE.match(part.strip())
        if match is None or match.group("var") not in variables:
            raise QueryParseError.unrecognized(query)
        items.append(ReturnItem(match.group("var"), match.group("prop"), match.group("alias")))
    return tuple(items)


def parse_query(text: str) -> ParsedQuery:
    """Parse query text into one of the supported shapes.

    Raises:
        QueryParseError: if the text matches no supported shape.
    """
    match = _WHERE_RE.match(text)
    if match:
        variable = match.group("var")
        aggregate = _parse_aggregate(match.group("ret"), text, {variable})
        returns = () if aggregate else _parse_returns(match.group("ret"), text, [variable])
        return WhereQuery(
            variable=variable,
            label=match.group("label"),
            properties=parse_properties(match.group("props")),
            where=match.group("where").strip(),
            returns=returns,
            aggregate=aggregate,
        )

    match = _PATH_RE.match(text)
    if match:
        variables = [match.group("src"), match.group("dst")]
        return PathQuery(
            source_var=match.group("src"),
            source_label=match.group("src_label"),
            relationship=match.group("rel").upper(),
            min_depth=int(match.group("min")),
            max_depth=int(match.group("max")),
            target_var=match.group("dst"),
            target_label=match.group("dst_label"),
            returns=_parse_returns(match.group("ret"), text, variables),
        )

    match = _AGGREGATION_RE.match(text)
    if match:
        variable = match.group("var")
        aggregate = _parse_aggregate(
            f"{match.group('func')}({match.group('target')})", text, {variable}
        )
        if aggregate is not None:
            return AggregationQuery(
                variable=variable,
                label=match.group("label"),
                properties=parse_properties(match.group("props")),
                aggregate=aggregate,
            )

    match = _MATCH_RE.match(text)
    if match:
        variable = match.group("var")
        return MatchQuery(
            variable=variable,
            label=match.group("label"),
            properties=parse_properties(match.group("props")),
            returns=_parse_returns(match.group("ret"), text, [variable]),
        )

    match = _RELATIONSHIP_RE.match(text)
    if match:
        variables = [match.group("src"), match.group("dst")]
        return RelationshipQuery(
            source_var=match.group("src"),
            source_label=match.group("src_label"),
            relationship=match.group("rel").upper(),
            target_var=match.group("dst"),
            target_label=match.group("dst_label"),
            returns=_parse_returns(match.group("ret"), text, variables),
        )

    raise QueryParseError.unrecognized(text)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@dataclass
class QueryResult:
    """Matched nodes and relationships plus projected rows."""

    nodes: list[GraphNode] = field(default_factory=list)
    relationships: list[GraphRelationship] = field(default_factory=list)
    data: list[dict[str, Any]] = field(default_factory=list)

    def copy(self) -> QueryResult:
        """Copy the lists and rows so callers cannot alter a cached result."""
        return QueryResult(list(self.nodes), list(self.relationships), [dict(r) for r in self.data])

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "relationships": [r.to_dict() for r in self.relationships],
            "data": [
                {k: v.to_dict() if isinstance(v, GraphNode) else v for k, v in row.items()}
                for row in self.data
            ],
        }


def _node_label_matches(node: GraphNode, label: str | None) -> bool:
    return label is None or node.kind.value == label


def _properties_match(node: GraphNode, properties: dict[str, str]) -> bool:
    for key, expected in properties.items():
        actual = node.properties.get(key)
        if actual is None or str(actual) != expected:
            return False
    return True


def _evaluate_where(node: GraphNode, where: str, variable: str) -> bool:
    """One CONTAINS (case-insensitive) or equality condition; anything else passes."""
    var = re.escape(variable)
    contains = re.search(_CONTAINS_RE.format(v=var), where, re.IGNORECASE)
    if contains:
        value = node.properties.get(contains.group(1))
        return isinstance(value, str) and contains.group(2).lower() in value.lower()
    equals = re.search(_EQUALS_RE.format(v=var), where, re.IGNORECASE)
    if equals:
        value = node.properties.get(equals.group(1))
        return value is not None and str(value) == equals.group(2)
    return True


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _aggregate(nodes: list[GraphNode], aggregate: Aggregate) -> Any:
    if aggregate.function == "COUNT":
        if aggregate.prop is None:
            return len(nodes)
        return sum(1 for n in nodes if n.properties.get(aggregate.prop) is not None)
    if aggregate.function == "COLLECT":
        prop = aggregate.prop or "name"
        return [n.properties[prop] for n in nodes if n.properties.get(prop) not in (None, "")]
    values = [
        n.properties[aggregate.prop]
        for n in nodes
        if _is_number(n.properties.get(aggregate.prop or ""))
    ]
    if aggregate.function == "SUM":
        return sum(values)
    return sum(values) / len(values) if values else None


class QueryEngine:
    """Read-only query interface over a KnowledgeGraph.

    Usage::

        engine = QueryEngine(graph)
        result = engine.execute_query("MATCH (f:Function) RETURN f.name", limit=10)
        for row in result.data:
            print(row["name"])
    """

    def __init__(
        self,
        graph: KnowledgeGraph,
        config: QueryConfig | None = None,
        caches: CacheService | None = None,
    ) -> None:
        from codegraph.index.cache import CacheService

        self._graph = graph
        self._config = config or QueryConfig()
        self._cache = (caches or CacheService()).queries

    def execute_query(self, text: str, limit: int | None = None, offset: int = 0) -> QueryResult:
        """Run a query.

        Raises:
            QueryParseError: for unsupported text or negative limit/offset.
        """
        effective_limit = self._config.default_limit if limit is None else limit
        if effective_limit < 0 or offset < 0:
            raise QueryParseError.invalid_paging(effective_limit, offset)

        key = (text.strip(), effective_limit, offset, self._graph.version)
        cached = self._cache.get(key)
        if cached is not None:
            return cached.copy()

        parsed = parse_query(text)
        result = self._execute(parsed, effective_limit, offset)
        self._cache.put(key, result.copy())
        log.debug(
            "query_executed",
            shape=type(parsed).__name__,
            rows=len(result.data),
            limit=effective_limit,
            offset=offset,
        )
        return result

    def _execute(self, parsed: ParsedQuery, limit: int, offset: int) -> QueryResult:
        if isinstance(parsed, WhereQuery):
            return self._execute_where(parsed, limit, offset)
        if isinstance(parsed, PathQuery):
            return self._execute_path(parsed, limit, offset)
        if isinstance(parsed, AggregationQuery):
            nodes = self._match_nodes(parsed.label, parsed.properties)
            return QueryResult(data=[{parsed.aggregate.key: _aggregate(nodes, parsed.aggregate)}])
        if isinstance(parsed, MatchQuery):
            nodes = self._match_nodes(parsed.label, parsed.properties)
            return self._project_nodes(nodes[offset : offset + limit], parsed.returns)
        return self._execute_relationship(parsed, limit, offset)

    # ------------------------------------------------------------------
    # Node shapes
    # ------------------------------------------------------------------

    def _match_nodes(self, label: str, properties: dict[str, str]) -> list[GraphNode]:
        try:
            candidates = self._graph.nodes_of_kind(NodeKind(label))
        except ValueError:
            return []
        return [n for n in candidates if _properties_match(n, properties)]

    @staticmethod
    def _project_nodes(nodes: list[GraphNode], returns: tuple[ReturnItem, ...]) -> QueryResult:
        data: list[dict[str, Any]] = []
        for node in nodes:
            row: dict[str, Any] = {}
            for item in returns:
                row[item.key(False)] = node if item.prop is None else node.properties.get(item.prop)
            data.append(row)
        return QueryResult(nodes=nodes, data=data)

    def _execute_where(self, parsed: WhereQuery, limit: int, offset: int) -> QueryResult:
        nodes = [
            n
            for n in self._match_nodes(parsed.label, parsed.properties)
            if _evaluate_where(n, parsed.where, parsed.variable)
        ]
        if parsed.aggregate is not None:
            return QueryResult(data=[{parsed.aggregate.key: _aggregate(nodes, parsed.aggregate)}])
        return self._project_nodes(nodes[offset : offset + limit], parsed.returns)

    # ------------------------------------------------------------------
    # Edge shapes
    # ------------------------------------------------------------------

    def _endpoint_nodes(self, label: str | None) -> list[GraphNode]:
        if label is None:
            return list(self._graph.nodes)
        try:
            return self._graph.nodes_of_kind(NodeKind(label))
        except ValueError:
            return []

    @staticmethod
    def _project_pair(
        source: GraphNode,
        target: GraphNode,
        source_var: str,
        target_var: str,
        returns: tuple[ReturnItem, ...],
    ) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for item in returns:
            node = source if item.variable == source_var else target
            row[item.key(True)] = node if item.prop is None else node.properties.get(item.prop)
        return row

    def _adjacency(self, kind: RelationshipKind) -> dict[str, list[GraphRelationship]]:
        adjacency: dict[str, list[GraphRelationship]] = defaultdict(list)
        for rel in self._graph.relationships:
            if rel.kind == kind:
                adjacency[rel.source].append(rel)
        return adjacency

    def find_paths(
        self,
        adjacency: dict[str, list[GraphRelationship]],
        source_id: str,
        target_id: str,
        min_depth: int,
        max_depth: int,
    ) -> list[list[GraphRelationship]]:
        """Simple paths source -> target with ``min_depth <= length <= max_depth``.

        A node is never revisited within one path, so cycles terminate.
        """
        cap = self._config.max_paths_per_pair
        paths: list[list[GraphRelationship]] = []
        visited: set[str] = set()

        def dfs(current: str, path: list[GraphRelationship]) -> None:
            if len(paths) >= cap or len(path) > max_depth:
                return
            if current == target_id and len(path) >= min_depth:
                if path:
                    paths.append(list(path))
                return
            visited.add(current)
            for rel in adjacency.get(current, ()):
                if rel.target in visited:
                    continue
                path.append(rel)
                dfs(rel.target, path)
                path.pop()
            visited.discard(current)

        dfs(source_id, [])
        return paths

    def _execute_path(self, parsed: PathQuery, limit: int, offset: int) -> QueryResult:
        try:
            kind = RelationshipKind(parsed.relationship)
        except ValueError:
            return QueryResult()
        cap = self._config.max_path_candidates
        sources = self._endpoint_nodes(parsed.source_label)[:cap]
        targets = self._endpoint_nodes(parsed.target_label)[:cap]
        adjacency = self._adjacency(kind)

        wanted = offset + limit
        found: list[tuple[GraphNode, GraphNode, list[GraphRelationship]]] = []
        for source in sources:
            if source.id not in adjacency:
                continue
            for target in targets:
                if source.id == target.id:
                    continue
                for path in self.find_paths(
                    adjacency, source.id, target.id, parsed.min_depth, parsed.max_depth
                ):
                    found.append((source, target, path))
                if len(found) >= wanted:
                    break
            if len(found) >= wanted:
                break

        page = found[offset:wanted]
        result = QueryResult()
        for source, target, path in page:
            row = self._project_pair(
                source, target, parsed.source_var, parsed.target_var, parsed.returns
            )
            row["pathLength"] = len(path)
            result.data.append(row)
            result.nodes.extend((source, target))
            result.relationships.extend(path)
        return result

    def _execute_relationship(
        self, parsed: RelationshipQuery, limit: int, offset: int
    ) -> QueryResult:
        try:
            kind = RelationshipKind(parsed.relationship)
        except ValueError:
            return QueryResult()
        matches: list[tuple[GraphNode, GraphNode, GraphRelationship]] = []
        for rel in self._graph.relationships:
            if rel.kind != kind:
                continue
            source = self._graph.get_node(rel.source)
            target = self._graph.get_node(rel.target)
            if source is None or target is None:
                continue
            if not _node_label_matches(source, parsed.source_label):
                continue
            if not _node_label_matches(target, parsed.target_label):
                continue
            matches.append((source, target, rel))

        result = QueryResult()
        for source, target, rel in matches[offset : offset + limit]:
            result.data.append(
                self._project_pair(
                    source, target, parsed.source_var, parsed.target_var, parsed.returns
                )
            )
            result.nodes.extend((source, target))
            result.relationships.append(rel)
        return result

    # ------------------------------------------------------------------
    # Supplementary lookups
    # ------------------------------------------------------------------

    def search_nodes(self, term: str, kind: NodeKind | None = None) -> list[GraphNode]:
        """Case-insensitive substring search over name, filePath and qualifiedName."""
        needle = term.lower()
        candidates = self._graph.nodes_of_kind(kind) if kind else self._graph.nodes
        found: list[GraphNode] = []
        for node in candidates:
            for key in ("name", "filePath", "qualifiedName"):
                value = node.properties.get(key)
                if isinstance(value, str) and needle in value.lower():
                    found.append(node)
                    break
        return found

    def get_node_relationships(self, node_id: str) -> dict[str, list[GraphRelationship]]:
        return {
            "incoming": self._graph.incoming(node_id),
            "outgoing": self._graph.outgoing(node_id),
        }

    def stats(self) -> dict[str, Any]:
        summary = self._graph.summary()
        summary["cache"] = asdict(self._cache.stats())
        return summary
