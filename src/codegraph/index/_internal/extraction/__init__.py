"""Definition extraction: tree extractors, regex fallback, config files."""

from codegraph.index._internal.extraction.config_files import (
    extract_config_definitions,
    has_config_extractor,
)
from codegraph.index._internal.extraction.extractor import (
    STRATEGIES,
    DefinitionExtractor,
    LanguageStrategy,
    strategy_for,
)
from codegraph.index._internal.extraction.generated import generated_reason, is_generated_file
from codegraph.index._internal.extraction.models import (
    CONTAINER_KINDS,
    Definition,
    DefinitionKind,
    ExtractionResult,
)

__all__ = [
    "CONTAINER_KINDS",
    "STRATEGIES",
    "Definition",
    "DefinitionExtractor",
    "DefinitionKind",
    "ExtractionResult",
    "LanguageStrategy",
    "extract_config_definitions",
    "generated_reason",
    "has_config_extractor",
    "is_generated_file",
    "strategy_for",
]
