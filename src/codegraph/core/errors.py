"""codegraph error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Index
- 4xxx: Query
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Index (3xxx)
    GRAMMAR_UNAVAILABLE = 3001
    PARSE_FAILED = 3002

    # Query (4xxx)
    QUERY_PARSE_ERROR = 4001
    QUERY_INVALID_PAGING = 4002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    GRAPH_INVARIANT = 9003


@dataclass(frozen=True, slots=True)
class CodeGraphError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'QUERY_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CodeGraphError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class IndexingError(CodeGraphError):
    """Per-file indexing failures. Caught by the pipeline, never fatal to a run."""

    @classmethod
    def grammar_unavailable(cls, language: str, reason: str = "") -> "IndexingError":
        return cls(
            code=ErrorCode.GRAMMAR_UNAVAILABLE,
            message=f"Grammar not available for language: {language}",
            details={"language": language, "reason": reason},
        )

    @classmethod
    def parse_failed(cls, path: str, reason: str) -> "IndexingError":
        return cls(
            code=ErrorCode.PARSE_FAILED,
            message=f"Failed to parse {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class QueryParseError(CodeGraphError):
    """Query text did not match any supported query shape.

    Retryable: callers may regenerate the query and try again.
    """

    @classmethod
    def unrecognized(cls, query: str) -> "QueryParseError":
        return cls(
            code=ErrorCode.QUERY_PARSE_ERROR,
            message=f"Unrecognized query: {query}",
            retryable=True,
            details={"query": query},
        )

    @classmethod
    def invalid_paging(cls, limit: int, offset: int) -> "QueryParseError":
        return cls(
            code=ErrorCode.QUERY_INVALID_PAGING,
            message=f"limit and offset must be non-negative (limit={limit}, offset={offset})",
            retryable=True,
            details={"limit": limit, "offset": offset},
        )


class InternalError(CodeGraphError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )


class GraphInvariantError(InternalError):
    """The builder produced a malformed graph. Always a bug, never bad input."""

    @classmethod
    def dangling_edges(cls, edge_ids: list[str]) -> "GraphInvariantError":
        return cls(
            code=ErrorCode.GRAPH_INVARIANT,
            message=f"{len(edge_ids)} relationship(s) reference missing nodes",
            details={"edge_ids": edge_ids[:20]},
        )

    @classmethod
    def duplicate_node(cls, node_id: str, existing: str, incoming: str) -> "GraphInvariantError":
        return cls(
            code=ErrorCode.GRAPH_INVARIANT,
            message=f"Node id {node_id} already used by a {existing} node, cannot add {incoming}",
            details={"node_id": node_id, "existing_kind": existing, "incoming_kind": incoming},
        )
