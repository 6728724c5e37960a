"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CODEGRAPH__SECTION__KEY)
3. Repo YAML (.codegraph/config.yaml)
4. Global YAML (~/.config/codegraph/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CODEGRAPH__<SECTION>__<KEY>=<VALUE>

Examples:
    CODEGRAPH__LOGGING__LEVEL=DEBUG
    CODEGRAPH__INDEX__BATCH_SIZE=25
    CODEGRAPH__QUERY__MAX_PATHS_PER_PAIR=20
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CODEGRAPH__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every unresolved call and base type.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Indexing pipeline configuration.

    Env vars:
        CODEGRAPH__INDEX__BATCH_SIZE: Files parsed per batch
        CODEGRAPH__INDEX__BATCH_PAUSE_SEC: Pause between batches
        CODEGRAPH__INDEX__MAX_FILE_CHARS: Skip parsing files larger than this
        CODEGRAPH__INDEX__GENERATED_LINE_THRESHOLD: First-line length marking generated code
    """

    batch_size: int = Field(
        default=10,
        description="Files parsed per batch. Bounds peak memory held by syntax trees.",
    )
    batch_pause_sec: float = Field(
        default=0.01,
        description="Cooperative pause between batches. 0 disables the pause.",
    )
    max_file_chars: int = Field(
        default=500_000,
        description="Files longer than this (characters) get a File node but are not parsed.",
    )
    generated_line_threshold: int = Field(
        default=1000,
        description="A first line longer than this marks the file as generated/minified.",
    )

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"batch_size must be >= 1, got {v}")
        return v

    @field_validator("batch_pause_sec")
    @classmethod
    def validate_pause(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"batch_pause_sec must be >= 0, got {v}")
        return v


class CacheConfig(BaseModel):
    """Bounded cache sizes (least-recently-used eviction).

    Env vars:
        CODEGRAPH__CACHE__AST_SIZE: Syntax trees kept for source preview
        CODEGRAPH__CACHE__PARSER_SIZE: Per-language parser objects
        CODEGRAPH__CACHE__QUERY_SIZE: Query results kept per graph version
    """

    ast_size: int = Field(
        default=20,
        description="Syntax trees retained after parsing. Eviction only affects get_ast().",
    )
    parser_size: int = Field(
        default=8,
        description="Parser objects retained, one per language.",
    )
    query_size: int = Field(
        default=100,
        description="Query results retained. Entries are keyed by graph version.",
    )

    @field_validator("ast_size", "parser_size", "query_size")
    @classmethod
    def validate_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Cache size must be >= 1, got {v}")
        return v


class QueryConfig(BaseModel):
    """Query engine limits.

    Env vars:
        CODEGRAPH__QUERY__DEFAULT_LIMIT: Rows returned when no limit is given
        CODEGRAPH__QUERY__MAX_PATH_CANDIDATES: Source/target nodes considered per path query
        CODEGRAPH__QUERY__MAX_PATHS_PER_PAIR: Paths returned per (source, target) pair
    """

    default_limit: int = Field(
        default=100,
        description="Rows returned when the caller passes no limit.",
    )
    max_path_candidates: int = Field(
        default=50,
        description="Candidate nodes considered on each side of a variable-length path query. "
        "TRADEOFF: path search cost grows with the square of this value.",
    )
    max_paths_per_pair: int = Field(
        default=10,
        description="Paths reported per (source, target) pair.",
    )

    @field_validator("default_limit", "max_path_candidates", "max_paths_per_pair")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Query limits must be >= 1, got {v}")
        return v


class CodeGraphConfig(BaseModel):
    """Root configuration for codegraph.

    All settings can be configured via:
    1. Environment variables: CODEGRAPH__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
