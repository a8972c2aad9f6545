from __future__ import annotations

import logging
from typing import Sequence

from ..graph.models import Connection, Node
from .base import LayoutResult

logger = logging.getLogger(__name__)

LEVEL_SPACING = 10.0
NODE_SPACING = 5.0


def assign_levels(nodes: Sequence[Node], connections: Sequence[Connection]) -> list[list[str]]:
    """Breadth-level topological order (Kahn).

    Level 0 is every node without incoming edges, or the first node when a
    cycle covers everything. Nodes never reached end up in one last level.
    Edges with an unknown endpoint and repeated edges are ignored.
    """
    ids = list(dict.fromkeys(n.id for n in nodes))
    if not ids:
        return []

    adjacency: dict[str, list[str]] = {i: [] for i in ids}
    in_degree = dict.fromkeys(ids, 0)
    seen: set[tuple[str, str]] = set()
    for c in connections:
        if c.source not in adjacency or c.target not in adjacency:
            continue
        edge = (c.source, c.target)
        if edge in seen:
            continue
        seen.add(edge)
        adjacency[c.source].append(c.target)
        in_degree[c.target] += 1

    queue = [i for i in ids if in_degree[i] == 0]
    if not queue:
        logger.debug("No root node; seeding hierarchy with %s", ids[0])
        queue = [ids[0]]

    levels: list[list[str]] = []
    placed: set[str] = set()
    while queue:
        level = [i for i in queue if i not in placed]
        if not level:
            break
        placed.update(level)
        levels.append(level)
        queue = []
        for i in level:
            for target in adjacency[i]:
                in_degree[target] -= 1
                if in_degree[target] == 0 and target not in placed:
                    queue.append(target)

    remainder = [i for i in ids if i not in placed]
    if remainder:
        levels.append(remainder)
    return levels


def compute_hierarchical_layout(
    nodes: Sequence[Node],
    connections: Sequence[Connection] = (),
    *,
    level_spacing: float = LEVEL_SPACING,
    node_spacing: float = NODE_SPACING,
) -> LayoutResult:
    slots: dict[str, tuple[int, int, int]] = {}
    for depth, level in enumerate(assign_levels(nodes, connections)):
        for pos, node_id in enumerate(level):
            slots[node_id] = (depth, pos, len(level))

    out = []
    for node in nodes:
        depth, pos, width = slots[node.id]
        out.append(node.with_position((pos - (width - 1) / 2) * node_spacing, -depth * level_spacing, 0.0))
    return LayoutResult.from_nodes(out)
