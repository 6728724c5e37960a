"""Line-scanning extractor used when no syntax tree is available.

Recognizes the common declaration idioms of each language family with one
regex per idiom. Fidelity is reduced compared to the tree extractors: no
base types, no end lines, and decorators are only recorded as names on the
definition that follows them.
"""

from __future__ import annotations

import re

from codegraph.index._internal.extraction.models import Definition, DefinitionKind

_PY_DEF = re.compile(r"^(?P<indent>[ \t]*)(?:async[ \t]+)?def[ \t]+(?P<name>\w+)[ \t]*\(")
_PY_CLASS = re.compile(r"^(?P<indent>[ \t]*)class[ \t]+(?P<name>\w+)[ \t]*(?:\(.*\))?[ \t]*:")
_PY_DECORATOR = re.compile(r"^[ \t]*@(?P<name>[\w.]+)")

_JS_PATTERNS: tuple[tuple[re.Pattern[str], DefinitionKind], ...] = (
    (re.compile(r"\bfunction\s*\*?\s*(?P<name>[A-Za-z_$][\w$]*)\s*\("), DefinitionKind.FUNCTION),
    (
        re.compile(
            r"\b(?:const|let|var)\s+(?P<name>[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*(?:async\s*)?"
            r"(?:\([^)]*\)|[A-Za-z_$][\w$]*)\s*(?::[^=]+)?=>"
        ),
        DefinitionKind.FUNCTION,
    ),
    (
        re.compile(
            r"\b(?:const|let|var)\s+(?P<name>[A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?function\b"
        ),
        DefinitionKind.FUNCTION,
    ),
    (re.compile(r"\bclass\s+(?P<name>[A-Za-z_$][\w$]*)"), DefinitionKind.CLASS),
    (re.compile(r"\binterface\s+(?P<name>[A-Za-z_$][\w$]*)"), DefinitionKind.INTERFACE),
    (re.compile(r"\btype\s+(?P<name>[A-Za-z_$][\w$]*)\s*(?:<[^>]*>)?\s*="), DefinitionKind.CLASS),
    (re.compile(r"\benum\s+(?P<name>[A-Za-z_$][\w$]*)"), DefinitionKind.ENUM),
)


def _indent_width(indent: str) -> int:
    return len(indent.expandtabs(4))


def scan_python(content: str) -> list[Definition]:
    """Functions, classes, methods (by indentation) and decorator names."""
    definitions: list[Definition] = []
    # (indent, name, is_class) of blocks still open at the current line
    open_blocks: list[tuple[int, str, bool]] = []
    pending_decorators: list[str] = []

    for lineno, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        width = _indent_width(line[: len(line) - len(line.lstrip())])
        while open_blocks and open_blocks[-1][0] >= width:
            open_blocks.pop()

        decorator = _PY_DECORATOR.match(line)
        if decorator:
            pending_decorators.append(decorator.group("name"))
            continue

        class_match = _PY_CLASS.match(line)
        if class_match:
            name = class_match.group("name")
            definitions.append(
                Definition(
                    name=name,
                    kind=DefinitionKind.CLASS,
                    start_line=lineno,
                    decorators=pending_decorators,
                )
            )
            open_blocks.append((width, name, True))
            pending_decorators = []
            continue

        def_match = _PY_DEF.match(line)
        if def_match:
            name = def_match.group("name")
            is_async = stripped.startswith("async")
            if width == 0:
                definitions.append(
                    Definition(
                        name=name,
                        kind=DefinitionKind.FUNCTION,
                        start_line=lineno,
                        decorators=pending_decorators,
                        is_async=is_async,
                    )
                )
            elif open_blocks and open_blocks[-1][2]:
                definitions.append(
                    Definition(
                        name=name,
                        kind=DefinitionKind.METHOD,
                        start_line=lineno,
                        parent_class=open_blocks[-1][1],
                        decorators=pending_decorators,
                        is_async=is_async,
                    )
                )
            open_blocks.append((width, name, False))
        pending_decorators = []

    return definitions


def scan_javascript(content: str) -> list[Definition]:
    """Declarations of the JavaScript/TypeScript family, one per line at most."""
    definitions: list[Definition] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(("//", "*", "/*")):
            continue
        for pattern, kind in _JS_PATTERNS:
            match = pattern.search(line)
            if match:
                definitions.append(
                    Definition(name=match.group("name"), kind=kind, start_line=lineno)
                )
                break
    return definitions

