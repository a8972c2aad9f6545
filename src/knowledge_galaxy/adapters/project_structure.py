from __future__ import annotations

from typing import Any, Mapping

from ..graph.models import Connection, ConnectionKind, GraphData, Node, NodeKind, visual_for
from ..records import ProjectFileRecord
from .base import HttpSourceAdapter, RefreshCapability, StatisticsCapability

# (path fragment, role) pairs, checked in order against the lower-cased path
_ROLE_RULES: list[tuple[str, str]] = [
    ("/api/", "api"),
    ("/components/scene/", "scene-component"),
    ("/components/", "ui-component"),
    ("/services/", "service"),
    ("/stores/", "store"),
    ("/utils/", "util"),
    ("/types/", "type"),
]

_CATEGORY_RULES: list[tuple[tuple[str, ...], str]] = [
    (("components",), "Components"),
    (("pages", "app"), "Pages"),
    (("api",), "API"),
    (("services",), "Services"),
    (("stores",), "State"),
    (("utils",), "Utils"),
    (("types",), "Types"),
]


def node_id(path: str) -> str:
    return "file-" + path.replace("/", "-")


def parent_path(path: str) -> str | None:
    segments = path.split("/")
    if len(segments) <= 1:
        return None
    return "/".join(segments[:-1])


def extension(filename: str) -> str:
    parts = filename.split(".")
    return parts[-1] if len(parts) > 1 else ""


def file_role(rec: ProjectFileRecord) -> str:
    if rec.type == "folder":
        return "folder"
    p = rec.path.lower()
    if "/pages/" in p or ("/app/" in p and p.endswith("page.tsx")):
        return "page"
    for fragment, role in _ROLE_RULES:
        if fragment in p:
            return role
    if p.endswith(".d.ts"):
        return "type"
    return "file"


def infer_category(path: str) -> str:
    segments = path.split("/")
    for names, category in _CATEGORY_RULES:
        if any(n in segments for n in names):
            return category
    return "Other"


class ProjectStructureAdapter(StatisticsCapability, RefreshCapability, HttpSourceAdapter):
    """Project files and folders with parent and import relationships.

    Folders become category nodes, files become documents; the finer file
    role (page, service, store, ...) is kept in `metadata["role"]`.
    """

    name = "project-structure"
    display_name = "Project Structure"
    description = "Visualize project files and dependencies"
    source_type = "api"
    cache_key = "project-structure-data"
    default_endpoint = "/api/project-structure"

    def validate_data(self, raw: Any) -> bool:
        return (
            isinstance(raw, Mapping)
            and isinstance(raw.get("files"), list)
            and isinstance(raw.get("rootPath"), str)
        )

    def transform(self, raw: Mapping[str, Any]) -> GraphData:
        root = raw["rootPath"]
        records = self._parse_each(raw["files"], ProjectFileRecord.model_validate, "file")
        nodes: list[Node] = []
        connections: list[Connection] = []

        for rec in records:
            node = self.parse_node(rec)
            nodes.append(node)

            parent = parent_path(rec.path)
            if parent and parent != root:
                connections.append(Connection(node.id, node_id(parent), ConnectionKind.CHILD_OF, 1.0))
            for imp in rec.imports:
                connections.append(Connection(node.id, node_id(imp), ConnectionKind.IMPORTS, 0.5))

        return GraphData(nodes=nodes, connections=connections)

    def parse_node(self, raw: Any) -> Node:
        rec = raw if isinstance(raw, ProjectFileRecord) else ProjectFileRecord.model_validate(raw)
        role = file_role(rec)
        kind = NodeKind.CATEGORY if role == "folder" else NodeKind.DOCUMENT
        return Node(
            id=node_id(rec.path),
            kind=kind,
            title=rec.name,
            description=rec.path,
            source_path=rec.path,
            metadata={
                "category": rec.category or infer_category(rec.path),
                "role": role,
                "path": rec.path,
                "file_type": rec.type,
                "extension": extension(rec.name),
            },
            visual=visual_for(kind),
        )

    def categories(self, data: GraphData) -> list[str]:
        out: list[str] = []
        for n in data.nodes:
            ext = n.metadata.get("extension")
            if n.metadata.get("role") != "folder" and ext and ext not in out:
                out.append(ext)
        return out
