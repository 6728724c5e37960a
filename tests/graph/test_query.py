"""Tests for the Cypher-like query engine."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from codegraph.config.models import CacheConfig, QueryConfig
from codegraph.core.errors import ErrorCode, QueryParseError
from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind
from codegraph.graph.query import (
    AggregationQuery,
    MatchQuery,
    PathQuery,
    QueryEngine,
    RelationshipQuery,
    WhereQuery,
    parse_query,
)
from codegraph.index.cache import CacheService

AddNode = Callable[..., GraphNode]


class TestParseQuery:
    """Shape recognition."""

    @pytest.mark.parametrize(
        ("text", "shape"),
        [
            ("MATCH (f:Function) WHERE f.name CONTAINS 'x' RETURN f.name", WhereQuery),
            ("MATCH (a:Function)-[:CALLS*1..3]->(b:Function) RETURN a.name", PathQuery),
            ("MATCH (a)-[:CALLS*1..2]->(b)", PathQuery),
            ("MATCH (f:Function) RETURN COUNT(f)", AggregationQuery),
            ("MATCH (f:Function {name:'x'}) RETURN f.name, f.filePath", MatchQuery),
            ("MATCH (c:Class)-[:INHERITS]->(b:Class) RETURN c.name, b.name", RelationshipQuery),
            ("MATCH (c)-[:CONTAINS]->(m:Method)", RelationshipQuery),
        ],
    )
    def test_shapes(self, text: str, shape: type) -> None:
        assert isinstance(parse_query(text), shape)

    def test_keywords_are_case_insensitive(self) -> None:
        parsed = parse_query("match (f:Function) return count(f)")
        assert isinstance(parsed, AggregationQuery)
        assert parsed.aggregate.key == "COUNT(f)"

    def test_path_bounds(self) -> None:
        parsed = parse_query("MATCH (a:Function)-[:calls*2..4]->(b:Function)")
        assert isinstance(parsed, PathQuery)
        assert (parsed.relationship, parsed.min_depth, parsed.max_depth) == ("CALLS", 2, 4)

    def test_property_map(self) -> None:
        parsed = parse_query("MATCH (f:Function {name:'helper', filePath: \"a/x.py\"}) RETURN f")
        assert isinstance(parsed, MatchQuery)
        assert parsed.properties == {"name": "helper", "filePath": "a/x.py"}

    def test_where_with_aggregate_return(self) -> None:
        parsed = parse_query("MATCH (f:Function) WHERE f.name CONTAINS 't' RETURN COUNT(f)")
        assert isinstance(parsed, WhereQuery)
        assert parsed.aggregate is not None
        assert parsed.returns == ()

    @pytest.mark.parametrize(
        "text",
        [
            "DELETE (n)",
            "MATCH f RETURN f",
            "MATCH (f:Function) RETURN g.name",
            "MATCH (f:Function) RETURN SUM(f)",
            "",
        ],
    )
    def test_unrecognized_raises(self, text: str) -> None:
        with pytest.raises(QueryParseError) as exc_info:
            parse_query(text)
        assert exc_info.value.code == ErrorCode.QUERY_PARSE_ERROR
        assert exc_info.value.details["query"] == text


class TestAggregation:
    """COUNT / COLLECT / SUM / AVG."""

    def test_count_functions_ignores_methods(self, call_graph: KnowledgeGraph) -> None:
        """7 Function nodes and 3 Method nodes count as 7."""
        result = QueryEngine(call_graph).execute_query("MATCH (f:Function) RETURN COUNT(f)")
        assert result.data == [{"COUNT(f)": 7}]

    def test_count_property_skips_missing(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        result = engine.execute_query("MATCH (m:Method) RETURN COUNT(m.parentClass)")
        assert result.data == [{"COUNT(m.parentClass)": 3}]
        result = engine.execute_query("MATCH (f:Function) RETURN COUNT(f.parentClass)")
        assert result.data == [{"COUNT(f.parentClass)": 0}]

    def test_collect(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (m:Method) RETURN COLLECT(m.name)")
        assert result.data == [{"COLLECT(m.name)": ["save", "load", "close"]}]

    def test_sum_and_avg(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        total = engine.execute_query("MATCH (f:Function) RETURN SUM(f.size)")
        average = engine.execute_query("MATCH (f:Function) RETURN AVG(f.size)")
        assert total.data == [{"SUM(f.size)": 280}]
        assert average.data == [{"AVG(f.size)": 40.0}]

    def test_avg_of_nothing_is_none(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (m:Method) RETURN AVG(m.size)")
        assert result.data == [{"AVG(m.size)": None}]

    def test_unknown_label_counts_zero(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (x:Widget) RETURN COUNT(x)")
        assert result.data == [{"COUNT(x)": 0}]


class TestNodeQueries:
    """MATCH and WHERE projections."""

    def test_property_filter(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function {name:'helper'}) RETURN f.name, f.startLine"
        )
        assert result.data == [{"name": "helper", "startLine": 6}]
        assert [n.name for n in result.nodes] == ["helper"]

    def test_property_filter_compares_as_text(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function {startLine:'7'}) RETURN f.name"
        )
        assert result.data == [{"name": "main"}]

    def test_bare_variable_returns_node(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (m:Method {name:'save'}) RETURN m")
        row = result.data[0]
        assert isinstance(row["node"], GraphNode)
        assert result.to_dict()["data"][0]["node"]["properties"]["name"] == "save"

    def test_alias(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function {name:'main'}) RETURN f.name AS fn"
        )
        assert result.data == [{"fn": "main"}]

    def test_where_contains_is_case_insensitive(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function) WHERE f.name CONTAINS 'TEST' RETURN f.name"
        )
        assert result.data == [{"name": "test_alpha"}, {"name": "test_beta"}]

    def test_where_equals_is_exact(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        exact = engine.execute_query("MATCH (f:Function) WHERE f.name = 'main' RETURN f.name")
        other_case = engine.execute_query("MATCH (f:Function) WHERE f.name = 'MAIN' RETURN f.name")
        assert exact.data == [{"name": "main"}]
        assert other_case.data == []

    def test_where_with_count(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function) WHERE f.name CONTAINS 'test' RETURN COUNT(f)"
        )
        assert result.data == [{"COUNT(f)": 2}]


class TestPaging:
    """limit / offset handling."""

    def test_limit_and_offset(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (f:Function) RETURN f.name", limit=2, offset=1
        )
        assert result.data == [{"name": "b"}, {"name": "c"}]

    def test_default_limit_from_config(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph, QueryConfig(default_limit=3))
        assert len(engine.execute_query("MATCH (f:Function) RETURN f.name").data) == 3

    @pytest.mark.parametrize(("limit", "offset"), [(-1, 0), (5, -2)])
    def test_negative_paging_raises(
        self, call_graph: KnowledgeGraph, limit: int, offset: int
    ) -> None:
        with pytest.raises(QueryParseError) as exc_info:
            QueryEngine(call_graph).execute_query(
                "MATCH (f:Function) RETURN f.name", limit=limit, offset=offset
            )
        assert exc_info.value.code == ErrorCode.QUERY_INVALID_PAGING


class TestRelationshipQueries:
    """Single-hop edge matches."""

    def test_two_variable_projection(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Function)-[:CALLS]->(b:Function) RETURN a.name, b.name"
        )
        assert result.data == [
            {"a.name": "a", "b.name": "b"},
            {"a.name": "b", "b.name": "c"},
            {"a.name": "c", "b.name": "a"},
        ]
        assert len(result.relationships) == 3

    def test_without_return_projects_both_nodes(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (a)-[:CALLS]->(b)", limit=1)
        row = result.data[0]
        assert set(row) == {"a", "b"}
        assert row["a"].name == "a"

    def test_label_mismatch_filters(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Method)-[:CALLS]->(b:Function) RETURN a.name"
        )
        assert result.data == []

    def test_unknown_relationship_kind(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query("MATCH (a)-[:LIKES]->(b) RETURN a.name")
        assert result.data == []


class TestPathQueries:
    """Variable-length path search."""

    def test_depth_bounds_on_cycle(self, call_graph: KnowledgeGraph) -> None:
        """Depth 1..2 over a 3-cycle: no depth-0 or depth-3 paths, and it terminates."""
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Function)-[:CALLS*1..2]->(b:Function)"
        )
        lengths = sorted(row["pathLength"] for row in result.data)
        assert lengths == [1, 1, 1, 2, 2, 2]
        for row in result.data:
            assert row["a"].id != row["b"].id

    def test_cycle_never_closes_on_source(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Function)-[:CALLS*3..10]->(b:Function) RETURN a.name, b.name"
        )
        assert result.data == []

    def test_projection_keys(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Function)-[:CALLS*2..2]->(b:Function) RETURN a.name, b.name"
        )
        assert {"a.name": "a", "b.name": "c", "pathLength": 2} in result.data

    def test_paths_per_pair_cap(self, graph: KnowledgeGraph, add_node: AddNode) -> None:
        source = add_node(graph, NodeKind.FUNCTION, "s", start_line=1)
        target = add_node(graph, NodeKind.FUNCTION, "t", start_line=2)
        for i in range(5):
            middle = add_node(graph, NodeKind.METHOD, f"m{i}", start_line=10 + i)
            graph.add_relationship(RelationshipKind.CALLS, source.id, middle.id)
            graph.add_relationship(RelationshipKind.CALLS, middle.id, target.id)

        engine = QueryEngine(graph, QueryConfig(max_paths_per_pair=2))
        result = engine.execute_query("MATCH (a:Function)-[:CALLS*2..2]->(b:Function)")
        assert len(result.data) == 2
        assert len(result.relationships) == 4

    def test_candidate_cap(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph, QueryConfig(max_path_candidates=2))
        result = engine.execute_query(
            "MATCH (a:Function)-[:CALLS*1..2]->(b:Function) RETURN a.name, b.name"
        )
        assert result.data == [
            {"a.name": "a", "b.name": "b", "pathLength": 1},
            {"a.name": "b", "b.name": "a", "pathLength": 2},
        ]

    def test_limit_stops_search(self, call_graph: KnowledgeGraph) -> None:
        result = QueryEngine(call_graph).execute_query(
            "MATCH (a:Function)-[:CALLS*1..2]->(b:Function)", limit=2, offset=1
        )
        assert len(result.data) == 2


class TestEngine:
    """Caching and supplementary lookups."""

    def test_results_are_cached_per_graph_version(
        self, call_graph: KnowledgeGraph, add_node: AddNode
    ) -> None:
        engine = QueryEngine(call_graph)
        query = "MATCH (f:Function) RETURN COUNT(f)"
        first = engine.execute_query(query)
        second = engine.execute_query(f"  {query} ")
        assert second.data == first.data
        assert engine.stats()["cache"]["hits"] == 1

        add_node(call_graph, NodeKind.FUNCTION, "late", start_line=50)
        assert engine.execute_query(query).data == [{"COUNT(f)": 8}]

    def test_cached_result_survives_caller_mutation(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        query = "MATCH (m:Method) RETURN m.name"
        first = engine.execute_query(query)
        first.data.clear()
        first.nodes.clear()

        second = engine.execute_query(query)
        assert [row["name"] for row in second.data] == ["save", "load", "close"]
        assert len(second.nodes) == 3
        second.data[0]["name"] = "changed"
        assert engine.execute_query(query).data[0]["name"] == "save"
        assert engine.stats()["cache"]["hits"] == 2

    def test_query_cache_bounded_by_config(self, call_graph: KnowledgeGraph) -> None:
        caches = CacheService(CacheConfig(query_size=2))
        engine = QueryEngine(call_graph, caches=caches)
        for label in ("Function", "Method", "File"):
            engine.execute_query(f"MATCH (n:{label}) RETURN COUNT(n)")
        assert len(caches.queries) == 2
        assert caches.queries.stats().evictions == 1

    def test_engine_usable_after_parse_error(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        with pytest.raises(QueryParseError):
            engine.execute_query("nonsense")
        assert engine.execute_query("MATCH (f:Function) RETURN COUNT(f)").data == [
            {"COUNT(f)": 7}
        ]

    def test_search_nodes(self, call_graph: KnowledgeGraph) -> None:
        engine = QueryEngine(call_graph)
        assert [n.name for n in engine.search_nodes("TEST")] == ["test_alpha", "test_beta"]
        assert [n.name for n in engine.search_nodes("o", NodeKind.METHOD)] == ["load", "close"]

    def test_get_node_relationships(self, call_graph: KnowledgeGraph) -> None:
        a = call_graph.nodes_of_kind(NodeKind.FUNCTION)[0]
        rels = QueryEngine(call_graph).get_node_relationships(a.id)
        assert len(rels["outgoing"]) == 1
        assert len(rels["incoming"]) == 1

    def test_stats(self, call_graph: KnowledgeGraph) -> None:
        stats = QueryEngine(call_graph).stats()
        assert stats["node_kinds"]["Function"] == 7
        assert stats["cache"]["size"] == 0
