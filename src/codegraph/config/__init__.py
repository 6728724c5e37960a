"""Config module exports."""

from codegraph.config.loader import load_config
from codegraph.config.models import (
    CacheConfig,
    CodeGraphConfig,
    IndexConfig,
    LoggingConfig,
    QueryConfig,
)

__all__ = [
    "load_config",
    "CodeGraphConfig",
    "CacheConfig",
    "IndexConfig",
    "LoggingConfig",
    "QueryConfig",
]
