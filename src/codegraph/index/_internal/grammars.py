"""Tree-sitter grammar registry.

Maps file extensions to grammar languages and loads each grammar binding at
most once per registry. A grammar that fails to load is remembered as
unavailable (logged once); files in that language fall back to the regex
extractor instead of aborting the run.
"""

from __future__ import annotations

import importlib
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

import structlog
import tree_sitter

from codegraph.config.constants import EXTENSION_LANGUAGES
from codegraph.core.errors import IndexingError

if TYPE_CHECKING:
    from codegraph.index.cache import CacheService

log = structlog.get_logger(__name__)

# language -> (grammar module, language function)
GRAMMAR_MODULES: dict[str, tuple[str, str]] = {
    "python": ("tree_sitter_python", "language"),
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
}


def language_for_path(path: str) -> str | None:
    """Grammar language for a path, from its extension."""
    return EXTENSION_LANGUAGES.get(PurePosixPath(path).suffix.lower())


class GrammarRegistry:
    """Lazily loaded tree-sitter languages plus cached parsers.

    Usage::

        registry = GrammarRegistry(cache)
        language = registry.language_for_path("src/app.ts")  # "typescript"
        tree = registry.parse(language, source_text)
    """

    def __init__(self, cache: CacheService) -> None:
        self._cache = cache
        self._languages: dict[str, tree_sitter.Language] = {}
        self._unavailable: dict[str, str] = {}

    language_for_path = staticmethod(language_for_path)

    def get_language(self, language: str) -> tree_sitter.Language | None:
        """Load (once) and return the grammar for a language, or None."""
        if language in self._languages:
            return self._languages[language]
        if language in self._unavailable:
            return None

        spec = GRAMMAR_MODULES.get(language)
        if spec is None:
            self._unavailable[language] = "no grammar registered"
            return None

        module_name, func_name = spec
        try:
            mod = importlib.import_module(module_name)
            lang = tree_sitter.Language(getattr(mod, func_name)())
        except (ImportError, AttributeError, TypeError, ValueError) as err:
            self._unavailable[language] = str(err)
            log.warning(
                "grammar_unavailable",
                language=language,
                module=module_name,
                error=str(err),
            )
            return None

        self._languages[language] = lang
        log.debug("grammar_loaded", language=language)
        return lang

    def is_available(self, language: str) -> bool:
        return self.get_language(language) is not None

    def available_languages(self) -> list[str]:
        """Registered languages whose grammar loads."""
        return [lang for lang in GRAMMAR_MODULES if self.is_available(lang)]

    def unavailable_languages(self) -> dict[str, str]:
        """Languages that failed to load, with the reason."""
        return dict(self._unavailable)

    def _get_parser(self, language: str) -> Any:
        parser = self._cache.parsers.get(language)
        if parser is not None:
            return parser
        lang = self.get_language(language)
        if lang is None:
            raise IndexingError.grammar_unavailable(
                language, self._unavailable.get(language, "")
            )
        parser = tree_sitter.Parser(lang)
        self._cache.parsers.put(language, parser)
        return parser

    def parse(self, language: str, content: str) -> tree_sitter.Tree:
        """Parse source text.

        Raises:
            IndexingError: when the grammar for ``language`` is unavailable.
        """
        parser = self._get_parser(language)
        return parser.parse(content.encode("utf-8"))
