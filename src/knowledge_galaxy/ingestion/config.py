from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Sequence

from ..graph.models import (
    ORIGIN,
    Connection,
    ConnectionKind,
    GraphData,
    Node,
    NodeKind,
    Position,
    ShapeType,
    Visual,
)
from ..records import McpServerRecord, PluginRecord, SkillRecord
from .manifests import ConfigSnapshot, ManifestLoader

logger = logging.getLogger(__name__)

ROOT_ID = "center"
CATEGORY_RADIUS = 15.0
ITEM_RADIUS = 25.0
SECTOR = 2 * math.pi / 3
DISABLED_COLOR = "#666666"

ConfigRecord = SkillRecord | McpServerRecord | PluginRecord


@dataclass(frozen=True, slots=True)
class _Category:
    id: str
    title: str
    kind: NodeKind
    color: str
    angle: float
    shape: ShapeType


_CATEGORIES = (
    _Category("category-skills", "Skills", NodeKind.SKILL, "#10B981", 0.0, ShapeType.TORUS),
    _Category("category-mcp", "MCP Servers", NodeKind.MCP, "#06B6D4", SECTOR, ShapeType.CYLINDER),
    _Category("category-plugins", "Plugins", NodeKind.PLUGIN, "#F59E0B", 2 * SECTOR, ShapeType.DODECAHEDRON),
)


def spherical(radius: float, theta: float, phi: float = math.pi / 2) -> Position:
    """theta is the azimuth in [0, 2pi), phi the polar angle in [0, pi]."""
    return (
        radius * math.sin(phi) * math.cos(theta),
        radius * math.sin(phi) * math.sin(theta),
        radius * math.cos(phi),
    )


def sector_angle(start: float, count: int, index: int) -> float:
    """Angle of item `index` of `count`, spread evenly inside a 120 degree sector."""
    return start + SECTOR / (count + 1) * (index + 1)


def root_node() -> Node:
    return Node(
        id=ROOT_ID,
        kind=NodeKind.CONFIG,
        title="Agent System",
        description="Central agent configuration hub",
        tags=("center", "system"),
        position=ORIGIN,
        importance=1.0,
        visual=Visual("#0066ff", 2.0, ShapeType.SPHERE, True, "settings"),
    )


def _category_node(cat: _Category) -> Node:
    return Node(
        id=cat.id,
        kind=NodeKind.CATEGORY,
        title=cat.title,
        description=f"{cat.title} configuration",
        tags=("category",),
        position=spherical(CATEGORY_RADIUS, cat.angle),
        importance=1.0,
        visual=Visual(cat.color, 1.5, ShapeType.CUBE, True, "folder"),
    )


def _item_node(cat: _Category, rec: ConfigRecord, position: Position) -> Node:
    kind = cat.kind
    return Node(
        id=f"{kind.value}-{rec.name}",
        kind=kind,
        title=rec.name,
        description=rec.description or f"{kind.value}: {rec.name}",
        source_path=getattr(rec, "path", "") or "",
        tags=(kind.value,),
        position=position,
        importance=0.8 if rec.enabled else 0.3,
        enabled=rec.enabled,
        content=rec.model_dump_json(indent=2),
        metadata={"category": cat.id},
        visual=Visual(
            cat.color if rec.enabled else DISABLED_COLOR,
            1.0 if rec.enabled else 0.6,
            cat.shape,
            rec.enabled,
            kind.value,
        ),
    )


def build_graph(snapshot: ConfigSnapshot) -> GraphData:
    """Root, three category nodes and one node per item, with fixed positions.

    All three categories are emitted even when empty.
    """
    nodes = [root_node()]
    connections: list[Connection] = []
    groups: Sequence[tuple[_Category, Sequence[ConfigRecord]]] = (
        (_CATEGORIES[0], snapshot.skills),
        (_CATEGORIES[1], snapshot.mcps),
        (_CATEGORIES[2], snapshot.plugins),
    )

    for cat, _ in groups:
        nodes.append(_category_node(cat))
        connections.append(Connection(ROOT_ID, cat.id, ConnectionKind.PARENT_CHILD, 1.0))

    for cat, items in groups:
        for i, rec in enumerate(items):
            pos = spherical(ITEM_RADIUS, sector_angle(cat.angle, len(items), i))
            node = _item_node(cat, rec, pos)
            nodes.append(node)
            connections.append(Connection(cat.id, node.id, ConnectionKind.PARENT_CHILD, 0.6))

    return GraphData(nodes=nodes, connections=connections)


@dataclass(frozen=True, slots=True)
class ConfigGraph:
    """Graph built from one manifest load, paired with the records behind it."""

    graph: GraphData
    snapshot: ConfigSnapshot


class ConfigIngestionService:
    """Agent configuration (skills, MCP servers, plugins) as a radial graph."""

    def __init__(self, loader: ManifestLoader):
        self.loader = loader

    async def ingest(self, root: str) -> ConfigGraph:
        snapshot = await self.loader.load(os.path.expanduser(root))
        graph = build_graph(snapshot)
        logger.info("Generated %d config nodes, %d connections", len(graph.nodes), len(graph.connections))
        return ConfigGraph(graph=graph, snapshot=snapshot)
