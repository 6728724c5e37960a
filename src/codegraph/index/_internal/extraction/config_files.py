"""Definitions mined from manifest and build files.

Each format maps onto the same Definition shape as source code:
runnable entries (package.json scripts, pyproject scripts) become
functions, everything else (dependencies, compiler options, services,
base images, environment keys) becomes a variable with a ``variableType``.

Malformed files raise IndexingError; the pipeline flags the File node and
moves on.
"""

from __future__ import annotations

import json
import re
import tomllib
from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Any

import yaml

from codegraph.core.errors import IndexingError
from codegraph.index._internal.extraction.models import Definition, DefinitionKind


class ConfigFileError(ValueError):
    """A config file could not be decoded. Converted to IndexingError at the module boundary."""


_REQUIREMENT = re.compile(r"^(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)(?:\[[^\]]*\])?\s*(?P<spec>.*)$")
_DOCKER_FROM = re.compile(r"^\s*FROM\s+(?:--platform=\S+\s+)?(?P<image>\S+)", re.IGNORECASE)
_ENV_LINE = re.compile(r"^\s*(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=")


def _line_of(content: str, needle: str) -> int:
    """1-based line of the first occurrence of needle, or 1."""
    index = content.find(needle)
    return content.count("\n", 0, index) + 1 if index >= 0 else 1


def _variable(name: str, line: int, variable_type: str, **extra: Any) -> Definition:
    return Definition(
        name=name,
        kind=DefinitionKind.VARIABLE,
        start_line=line,
        variable_type=variable_type,
        extra={k: v for k, v in extra.items() if v is not None},
    )


def _mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigFileError(f"'{key}' must be a mapping")
    return value


def _sequence(value: Any, label: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigFileError(f"'{label}' must be an array")
    return value


def _load_json(content: str) -> dict[str, Any]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigFileError(str(e)) from e
    if not isinstance(data, dict):
        raise ConfigFileError("top-level value must be an object")
    return data


def _package_json(content: str) -> list[Definition]:
    data = _load_json(content)
    definitions: list[Definition] = []
    for name, command in _mapping(data, "scripts").items():
        definitions.append(
            Definition(
                name=name,
                kind=DefinitionKind.FUNCTION,
                start_line=_line_of(content, f'"{name}"'),
                extra={"command": str(command), "configType": "script"},
            )
        )
    for scope in ("dependencies", "devDependencies", "peerDependencies"):
        for name, version in _mapping(data, scope).items():
            definitions.append(
                _variable(
                    name,
                    _line_of(content, f'"{name}"'),
                    "dependency",
                    version=str(version),
                    scope=scope,
                )
            )
    return definitions


def _tsconfig(content: str) -> list[Definition]:
    # tsconfig allows comments; drop full-line // comments before decoding
    cleaned = "\n".join(
        "" if line.lstrip().startswith("//") else line for line in content.splitlines()
    )
    data = _load_json(cleaned)
    options = _mapping(data, "compilerOptions")
    return [
        _variable(
            key,
            _line_of(content, f'"{key}"'),
            "compilerOption",
            value=json.dumps(value) if not isinstance(value, str) else value,
        )
        for key, value in options.items()
    ]


def _requirements(content: str) -> list[Definition]:
    definitions: list[Definition] = []
    for lineno, raw in enumerate(content.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line or line.startswith(("-", "git+", "http")):
            continue
        match = _REQUIREMENT.match(line)
        if match:
            definitions.append(
                _variable(
                    match.group("name"),
                    lineno,
                    "dependency",
                    version=match.group("spec").strip() or None,
                    scope="requirements",
                )
            )
    return definitions


def _pyproject(content: str) -> list[Definition]:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(str(e)) from e
    project = _mapping(data, "project")
    definitions: list[Definition] = []

    def add_requirements(requirements: list[str], scope: str) -> None:
        for requirement in requirements:
            if not isinstance(requirement, str):
                continue
            match = _REQUIREMENT.match(requirement.strip())
            if match:
                definitions.append(
                    _variable(
                        match.group("name"),
                        _line_of(content, requirement),
                        "dependency",
                        version=match.group("spec").strip() or None,
                        scope=scope,
                    )
                )

    add_requirements(_sequence(project.get("dependencies"), "dependencies"), "dependencies")
    for extra, requirements in _mapping(project, "optional-dependencies").items():
        group = _sequence(requirements, f"optional-dependencies.{extra}")
        add_requirements(group, f"optional:{extra}")
    for name, target in _mapping(project, "scripts").items():
        definitions.append(
            Definition(
                name=name,
                kind=DefinitionKind.FUNCTION,
                start_line=_line_of(content, name),
                extra={"command": str(target), "configType": "script"},
            )
        )
    return definitions


def _docker_compose(content: str) -> list[Definition]:
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigFileError(str(e)) from e
    if not isinstance(data, dict):
        raise ConfigFileError("top-level value must be a mapping")
    definitions: list[Definition] = []
    for name, service in _mapping(data, "services").items():
        image = service.get("image") if isinstance(service, dict) else None
        definitions.append(
            _variable(str(name), _line_of(content, f"{name}:"), "service", image=image)
        )
    return definitions


def _sanitize_image(image: str) -> str:
    return re.sub(r"[^A-Za-z0-9_]", "_", image)


def _dockerfile(content: str) -> list[Definition]:
    definitions: list[Definition] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _DOCKER_FROM.match(line)
        if match:
            image = match.group("image")
            definitions.append(
                _variable(f"FROM_{_sanitize_image(image)}", lineno, "baseImage", image=image)
            )
    return definitions


def _dotenv(content: str) -> list[Definition]:
    definitions: list[Definition] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith("#"):
            continue
        match = _ENV_LINE.match(line)
        if match:
            # Values may be secrets and are never stored
            definitions.append(_variable(match.group("key"), lineno, "environment"))
    return definitions


_EXTRACTORS: dict[str, Callable[[str], list[Definition]]] = {
    "package.json": _package_json,
    "tsconfig.json": _tsconfig,
    "tsconfig.base.json": _tsconfig,
    "requirements.txt": _requirements,
    "pyproject.toml": _pyproject,
    "docker-compose.yml": _docker_compose,
    "docker-compose.yaml": _docker_compose,
    "dockerfile": _dockerfile,
    ".env": _dotenv,
    ".env.example": _dotenv,
    ".env.local": _dotenv,
}


def has_config_extractor(file_path: str) -> bool:
    return PurePosixPath(file_path).name.lower() in _EXTRACTORS


def extract_config_definitions(file_path: str, content: str) -> list[Definition]:
    """Definitions for an allow-listed config file; empty for unknown formats.

    Raises:
        IndexingError: when a JSON/TOML/YAML file cannot be decoded.
    """
    extractor = _EXTRACTORS.get(PurePosixPath(file_path).name.lower())
    if extractor is None:
        return []
    try:
        return extractor(content)
    except ConfigFileError as e:
        raise IndexingError.parse_failed(file_path, str(e)) from e
