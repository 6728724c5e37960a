"""Core module exports."""

from codegraph.core.errors import (
    CodeGraphError,
    ConfigError,
    ErrorCode,
    GraphInvariantError,
    IndexingError,
    InternalError,
    QueryParseError,
)
from codegraph.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    run_scope,
    set_run_id,
)

__all__ = [
    # Errors
    "CodeGraphError",
    "ConfigError",
    "ErrorCode",
    "GraphInvariantError",
    "IndexingError",
    "InternalError",
    "QueryParseError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "run_scope",
    "set_run_id",
]
