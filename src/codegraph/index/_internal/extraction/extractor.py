"""Language-agnostic entry point for definition extraction.

A per-family strategy table maps each grammar language onto a tree
extractor and a regex fallback scanner. Output is always a list of
Definition records in source order, with anonymous definitions dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import structlog

from codegraph.config.constants import LANGUAGE_FAMILIES
from codegraph.index._internal.extraction.fallback import scan_javascript, scan_python
from codegraph.index._internal.extraction.javascript import JavaScriptDefinitionExtractor
from codegraph.index._internal.extraction.models import Definition, ExtractionResult
from codegraph.index._internal.extraction.python import PythonDefinitionExtractor

if TYPE_CHECKING:
    from collections.abc import Callable

    from tree_sitter import Node, Tree

log = structlog.get_logger(__name__)


class TreeExtractor(Protocol):
    language_family: str

    def extract(self, root: Node) -> list[Definition]: ...


@dataclass(frozen=True)
class LanguageStrategy:
    """How one language family is mined, with and without a syntax tree."""

    family: str
    tree_extractor: TreeExtractor
    fallback: Callable[[str], list[Definition]]


STRATEGIES: dict[str, LanguageStrategy] = {
    "python": LanguageStrategy("python", PythonDefinitionExtractor(), scan_python),
    "javascript": LanguageStrategy("javascript", JavaScriptDefinitionExtractor(), scan_javascript),
}


def strategy_for(language: str) -> LanguageStrategy | None:
    family = LANGUAGE_FAMILIES.get(language)
    return STRATEGIES.get(family) if family else None


def _named(definitions: list[Definition]) -> list[Definition]:
    return [d for d in definitions if d.name and d.name.strip()]


class DefinitionExtractor:
    """Extracts definitions from one file.

    Usage::

        extractor = DefinitionExtractor()
        result = extractor.extract("src/app.py", content, "python", tree)
        for definition in result:
            ...
    """

    def extract(
        self,
        file_path: str,
        content: str,
        language: str,
        tree: Tree | None,
    ) -> ExtractionResult:
        """Definitions from the tree when given, else from the regex scanner."""
        strategy = strategy_for(language)
        if strategy is None:
            log.debug("no_extraction_strategy", path=file_path, language=language)
            return ExtractionResult()

        if tree is not None:
            definitions = strategy.tree_extractor.extract(tree.root_node)
            return ExtractionResult(definitions=_named(definitions))

        definitions = strategy.fallback(content)
        log.debug("fallback_extraction", path=file_path, definitions=len(definitions))
        return ExtractionResult(definitions=_named(definitions), used_fallback=True)
