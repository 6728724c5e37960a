"""Tests for the error taxonomy."""

from __future__ import annotations

import pytest

from codegraph.core.errors import (
    CodeGraphError,
    ConfigError,
    ErrorCode,
    GraphInvariantError,
    IndexingError,
    InternalError,
    QueryParseError,
)


class TestErrorCodes:
    """Error code ranges."""

    @pytest.mark.parametrize(
        ("code", "low", "high"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000, 2999),
            (ErrorCode.GRAMMAR_UNAVAILABLE, 3000, 3999),
            (ErrorCode.QUERY_PARSE_ERROR, 4000, 4999),
            (ErrorCode.GRAPH_INVARIANT, 9000, 9999),
        ],
    )
    def test_code_in_range(self, code: ErrorCode, low: int, high: int) -> None:
        assert low <= code.value <= high


class TestCodeGraphError:
    """Base error behaviour."""

    def test_str_includes_code_and_name(self) -> None:
        err = ConfigError.missing_required("index.batch_size")
        assert str(err) == (
            "[2003] CONFIG_MISSING_REQUIRED: Missing required config field: index.batch_size"
        )

    def test_to_dict(self) -> None:
        err = IndexingError.parse_failed("src/app.py", "boom")
        data = err.to_dict()
        assert data["code"] == ErrorCode.PARSE_FAILED.value
        assert data["error"] == "PARSE_FAILED"
        assert data["retryable"] is False
        assert data["details"] == {"path": "src/app.py", "reason": "boom"}

    def test_is_raisable(self) -> None:
        with pytest.raises(CodeGraphError) as exc_info:
            raise ConfigError.file_not_found("/tmp/missing.yaml")
        assert exc_info.value.error_name == "CONFIG_FILE_NOT_FOUND"


class TestQueryParseError:
    """Query errors are retryable and carry the query text."""

    def test_unrecognized(self) -> None:
        err = QueryParseError.unrecognized("DELETE (n)")
        assert err.code == ErrorCode.QUERY_PARSE_ERROR
        assert err.retryable is True
        assert err.details["query"] == "DELETE (n)"

    def test_invalid_paging(self) -> None:
        err = QueryParseError.invalid_paging(-1, 0)
        assert err.code == ErrorCode.QUERY_INVALID_PAGING
        assert err.details == {"limit": -1, "offset": 0}


class TestGraphInvariantError:
    """Graph invariant errors are internal errors."""

    def test_subclasses_internal_error(self) -> None:
        err = GraphInvariantError.dangling_edges(["calls:1", "calls:2"])
        assert isinstance(err, InternalError)
        assert err.code == ErrorCode.GRAPH_INVARIANT
        assert "2 relationship(s)" in err.message

    def test_dangling_edge_ids_are_capped(self) -> None:
        err = GraphInvariantError.dangling_edges([f"e{i}" for i in range(50)])
        assert len(err.details["edge_ids"]) == 20

    def test_duplicate_node(self) -> None:
        err = GraphInvariantError.duplicate_node("function:abc", "Function", "Class")
        assert err.details["existing_kind"] == "Function"
        assert err.details["incoming_kind"] == "Class"
