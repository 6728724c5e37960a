"""Tests for config models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from codegraph.config.models import (
    CacheConfig,
    CodeGraphConfig,
    IndexConfig,
    LogOutputConfig,
    QueryConfig,
)


class TestDefaults:
    """Documented defaults."""

    def test_index_defaults(self) -> None:
        config = IndexConfig()
        assert config.batch_size == 10
        assert config.batch_pause_sec == 0.01
        assert config.generated_line_threshold == 1000

    def test_cache_defaults(self) -> None:
        config = CacheConfig()
        assert (config.ast_size, config.parser_size, config.query_size) == (20, 8, 100)

    def test_query_defaults(self) -> None:
        config = QueryConfig()
        assert config.default_limit == 100
        assert config.max_path_candidates == 50
        assert config.max_paths_per_pair == 10

    def test_root_config_builds_every_section(self) -> None:
        config = CodeGraphConfig()
        assert config.logging.level == "INFO"
        assert config.index.batch_size == 10


class TestValidation:
    """Field validators."""

    def test_batch_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="batch_size must be >= 1"):
            IndexConfig(batch_size=0)

    def test_pause_cannot_be_negative(self) -> None:
        with pytest.raises(ValidationError):
            IndexConfig(batch_pause_sec=-0.5)

    def test_cache_sizes_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="Cache size"):
            CacheConfig(query_size=0)

    def test_query_limits_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            QueryConfig(max_paths_per_pair=0)

    def test_file_destination_must_be_absolute(self) -> None:
        with pytest.raises(ValidationError, match="absolute"):
            LogOutputConfig(destination="relative/log.txt")

    def test_stream_destinations_accepted(self) -> None:
        assert LogOutputConfig(destination="stdout").destination == "stdout"
