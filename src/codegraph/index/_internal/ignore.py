"""Path eligibility and batch scheduling.

Single place deciding which discovered paths get indexed:

- Ignore set: VCS internals, dependency directories, build output, caches,
  IDE metadata (see config.constants.IGNORED_SEGMENTS)
- Hidden directories, except the allow-listed ones (.github)
- Installed-package fragments (site-packages/, .egg-info/)
- Optional user filters: directory substrings and an extension allow-list

Eligible paths are split into source files (known language extension) and
config files (manifest/build allow-list).
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from codegraph.config.constants import (
    ALLOWED_HIDDEN_DIRS,
    CONFIG_FILE_NAMES,
    EXTENSION_LANGUAGES,
    IGNORED_FILE_NAMES,
    IGNORED_SEGMENTS,
    IGNORED_SUBSTRINGS,
)

__all__ = [
    "FilterResult",
    "PathFilter",
    "is_config_file",
    "is_ignored_path",
    "is_source_file",
    "iter_batches",
    "normalize_path",
    "parse_filter_list",
]


def normalize_path(path: str) -> str:
    """Forward slashes, no leading './' or '/'."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def is_ignored_path(path: str) -> bool:
    """True when any directory segment or fragment of the path is ignored."""
    normalized = normalize_path(path)
    lowered = normalized.lower()
    if any(fragment in lowered for fragment in IGNORED_SUBSTRINGS):
        return True

    segments = [s for s in normalized.split("/") if s]
    if not segments:
        return True
    if segments[-1].lower() in IGNORED_FILE_NAMES:
        return True

    for segment in segments[:-1]:
        lower = segment.lower()
        if lower in IGNORED_SEGMENTS:
            return True
        if segment.startswith(".") and lower not in ALLOWED_HIDDEN_DIRS:
            return True
    return False


def is_source_file(path: str) -> bool:
    return PurePosixPath(path).suffix.lower() in EXTENSION_LANGUAGES


def is_config_file(path: str) -> bool:
    return PurePosixPath(path).name.lower() in CONFIG_FILE_NAMES


def parse_filter_list(raw: str | Sequence[str] | None) -> list[str]:
    """Split a comma-separated filter into lowercase, non-empty entries."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    return [item.strip().lower() for item in items if item and item.strip()]


@dataclass
class FilterResult:
    """Outcome of path filtering."""

    source_files: list[str] = field(default_factory=list)
    config_files: list[str] = field(default_factory=list)
    ignored_count: int = 0

    @property
    def all_files(self) -> list[str]:
        return sorted(set(self.source_files) | set(self.config_files))


class PathFilter:
    """Selects indexable paths from a discovered inventory.

    Args:
        directory_filter: Comma-separated directory substrings. When given, a
            path must contain at least one of them.
        extension_filter: Comma-separated extensions (with or without the
            leading dot). When given, a path must end with one of them.
    """

    def __init__(
        self,
        directory_filter: str | Sequence[str] | None = None,
        extension_filter: str | Sequence[str] | None = None,
    ) -> None:
        self._dirs = parse_filter_list(directory_filter)
        self._exts = [
            ext if ext.startswith(".") else f".{ext}" for ext in parse_filter_list(extension_filter)
        ]

    def _passes_user_filters(self, path: str) -> bool:
        lowered = path.lower()
        if self._dirs and not any(d in lowered for d in self._dirs):
            return False
        return not (self._exts and not any(lowered.endswith(ext) for ext in self._exts))

    def filter(self, file_paths: Sequence[str], file_contents: Mapping[str, str]) -> FilterResult:
        """Apply ignore rules, content presence, and user filters; then partition.

        Never raises: an empty result is a valid outcome. Output lists are
        sorted so downstream ordering does not depend on discovery order.
        """
        result = FilterResult()
        seen: set[str] = set()
        for raw in file_paths:
            path = normalize_path(raw)
            if path in seen:
                continue
            seen.add(path)

            if is_ignored_path(path):
                result.ignored_count += 1
                continue
            if file_contents.get(raw, file_contents.get(path)) is None:
                result.ignored_count += 1
                continue
            if not self._passes_user_filters(path):
                result.ignored_count += 1
                continue

            source = is_source_file(path)
            config = is_config_file(path)
            if source:
                result.source_files.append(path)
            if config:
                result.config_files.append(path)
            if not source and not config:
                result.ignored_count += 1

        result.source_files.sort()
        result.config_files.sort()
        return result


def iter_batches(
    paths: Sequence[str], batch_size: int, pause_sec: float = 0.0
) -> Iterator[list[str]]:
    """Yield fixed-size batches, pausing between them.

    The pause is the pipeline's cooperative yield point: it runs after a
    batch has been consumed and before the next one is produced, never
    after the last batch.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    for start in range(0, len(paths), batch_size):
        if start and pause_sec > 0:
            time.sleep(pause_sec)
        yield list(paths[start : start + batch_size])
