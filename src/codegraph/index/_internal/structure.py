"""Project / Folder / File skeleton of the graph.

Every selected file gets a File node; every directory on the way to it
gets a Folder node. CONTAINS edges run Project -> top-level folders and
files, and Folder -> children, so each Folder has exactly one parent.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass, field

from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind, node_id
from codegraph.index._internal.grammars import language_for_path


def project_node_id(project_name: str) -> str:
    return node_id(NodeKind.PROJECT, "", project_name)


def folder_node_id(folder_path: str) -> str:
    return node_id(NodeKind.FOLDER, folder_path, posixpath.basename(folder_path))


def file_node_id(file_path: str) -> str:
    return node_id(NodeKind.FILE, file_path, posixpath.basename(file_path))


@dataclass
class StructureResult:
    """Ids created by one structure pass."""

    project_id: str
    folder_ids: dict[str, str] = field(default_factory=dict)
    file_ids: dict[str, str] = field(default_factory=dict)


def _folders_of(file_paths: Iterable[str]) -> list[str]:
    folders: set[str] = set()
    for path in file_paths:
        parent = posixpath.dirname(path)
        while parent and parent not in folders:
            folders.add(parent)
            parent = posixpath.dirname(parent)
    return sorted(folders)


class StructureBuilder:
    """Adds the Project, Folder and File nodes for a set of files."""

    def __init__(self, graph: KnowledgeGraph) -> None:
        self._graph = graph

    def build(self, project_name: str, file_paths: Iterable[str]) -> StructureResult:
        files = sorted(set(file_paths))
        project = self._graph.add_node(
            GraphNode(
                id=project_node_id(project_name),
                kind=NodeKind.PROJECT,
                properties={"name": project_name},
            )
        )
        result = StructureResult(project_id=project.id)

        for folder in _folders_of(files):
            folder_id = folder_node_id(folder)
            self._graph.add_node(
                GraphNode(
                    id=folder_id,
                    kind=NodeKind.FOLDER,
                    properties={
                        "name": posixpath.basename(folder),
                        "path": folder,
                        "depth": folder.count("/") + 1,
                    },
                )
            )
            result.folder_ids[folder] = folder_id
            self._contain(result, folder, folder_id)

        for path in files:
            file_id = file_node_id(path)
            properties: dict[str, object] = {
                "name": posixpath.basename(path),
                "filePath": path,
                "extension": posixpath.splitext(path)[1].lower(),
            }
            language = language_for_path(path)
            if language:
                properties["language"] = language
            self._graph.add_node(GraphNode(id=file_id, kind=NodeKind.FILE, properties=properties))
            result.file_ids[path] = file_id
            self._contain(result, path, file_id)

        return result

    def _contain(self, result: StructureResult, path: str, child_id: str) -> None:
        parent = posixpath.dirname(path)
        parent_id = result.folder_ids.get(parent) if parent else result.project_id
        if parent_id is not None:
            self._graph.add_relationship(RelationshipKind.CONTAINS, parent_id, child_id)
