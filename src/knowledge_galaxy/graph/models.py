from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable

Position = tuple[float, float, float]
ORIGIN: Position = (0.0, 0.0, 0.0)


class NodeKind(str, Enum):
    """Closed set of visualizable entity kinds."""

    DOCUMENT = "document"
    CATEGORY = "category"
    ERROR = "error"
    MCP = "mcp"
    SKILL = "skill"
    PLUGIN = "plugin"
    CONFIG = "config"


class ConnectionKind(str, Enum):
    BELONGS_TO = "belongsTo"
    CHILD_OF = "childOf"
    IMPORTS = "imports"
    REFERENCE = "reference"
    PARENT_CHILD = "parentChild"
    DEPENDENCY = "dependency"
    RELATED = "related"


class NodeTier(str, Enum):
    """Coarse size/shape class, distinct from the orbit a node sits on."""

    CORE_SKILL = "CoreSkill"
    SKILL = "Skill"
    ITEM = "Item"


class ShapeType(str, Enum):
    SPHERE = "sphere"
    CUBE = "cube"
    CYLINDER = "cylinder"
    OCTAHEDRON = "octahedron"
    TORUS = "torus"
    DODECAHEDRON = "dodecahedron"


@dataclass(frozen=True, slots=True)
class Visual:
    """Render hints consumed by the presentation layer.

    `size` is also the collision radius basis of the force layout.
    """

    color: str = "#3B82F6"
    size: float = 1.0
    shape: ShapeType = ShapeType.SPHERE
    glow: bool = False
    icon: str = "file"


_KIND_VISUALS: dict[NodeKind, Visual] = {
    NodeKind.DOCUMENT: Visual("#3B82F6", 1.0, ShapeType.SPHERE, True, "file"),
    NodeKind.CATEGORY: Visual("#8B5CF6", 1.0, ShapeType.CUBE, False, "folder"),
    NodeKind.ERROR: Visual("#EF4444", 1.0, ShapeType.OCTAHEDRON, True, "alert"),
    NodeKind.MCP: Visual("#06B6D4", 1.0, ShapeType.CYLINDER, False, "server"),
    NodeKind.SKILL: Visual("#10B981", 1.0, ShapeType.TORUS, True, "zap"),
    NodeKind.PLUGIN: Visual("#F59E0B", 1.0, ShapeType.DODECAHEDRON, False, "puzzle"),
    NodeKind.CONFIG: Visual("#6B7280", 1.0, ShapeType.CUBE, False, "settings"),
}


def visual_for(kind: NodeKind) -> Visual:
    return _KIND_VISUALS.get(kind, _KIND_VISUALS[NodeKind.DOCUMENT])


@dataclass(frozen=True, slots=True)
class Node:
    """A visualizable graph entity.

    `id` is stable across ingestion runs for the same source item.
    `position` is meaningless until a layout pass assigns it.
    """

    id: str
    kind: NodeKind
    title: str = ""
    description: str = ""
    source_path: str = ""
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    tier: NodeTier | None = None
    orbit: int | None = None
    position: Position = ORIGIN
    importance: float = 0.0
    enabled: bool = True
    content: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    visual: Visual = field(default_factory=Visual)

    def with_position(self, x: float, y: float, z: float, **changes: Any) -> Node:
        return replace(self, position=(float(x), float(y), float(z)), **changes)


@dataclass(frozen=True, slots=True)
class Connection:
    """A directed, typed, weighted edge between two node ids."""

    source: str
    target: str
    kind: ConnectionKind = ConnectionKind.RELATED
    strength: float = 1.0

    @property
    def id(self) -> str:
        return f"{self.source}-{self.target}"


@dataclass(slots=True)
class GraphData:
    """A batch of nodes and connections produced by one source."""

    nodes: list[Node] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def without_dangling(self) -> GraphData:
        """Drop connections whose source or target is not a node of this batch."""
        ids = self.node_ids()
        kept = [c for c in self.connections if c.source in ids and c.target in ids]
        return GraphData(nodes=list(self.nodes), connections=kept)

    @classmethod
    def merge(cls, batches: Iterable[GraphData]) -> GraphData:
        # Plain concatenation: the same name from two sources is two nodes.
        out = cls()
        for b in batches:
            out.nodes.extend(b.nodes)
            out.connections.extend(b.connections)
        return out


def node_map(nodes: Iterable[Node]) -> dict[str, Node]:
    return {n.id: n for n in nodes}
