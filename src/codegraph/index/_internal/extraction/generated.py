"""Detection of generated and minified files.

Such files are never tree-parsed: their definitions are bundler artifacts
and a single multi-kilobyte line makes parsing slow for no useful output.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from codegraph.config.constants import (
    GENERATED_NAME_MARKERS,
    GENERATED_PREAMBLE_WINDOW,
    GENERATED_PREAMBLES,
)


def first_line_length(content: str) -> int:
    end = content.find("\n")
    return len(content) if end == -1 else len(content[:end].rstrip("\r"))


def generated_reason(file_path: str, content: str, line_threshold: int) -> str | None:
    """Why the file looks generated, or None if it does not."""
    name = PurePosixPath(file_path).name.lower()
    for marker in GENERATED_NAME_MARKERS:
        if marker in name:
            return f"name:{marker}"
    if first_line_length(content) > line_threshold:
        return "long_first_line"
    head = content[:GENERATED_PREAMBLE_WINDOW]
    for preamble in GENERATED_PREAMBLES:
        if preamble in head:
            return f"preamble:{preamble}"
    return None


def is_generated_file(file_path: str, content: str, line_threshold: int = 1000) -> bool:
    return generated_reason(file_path, content, line_threshold) is not None
