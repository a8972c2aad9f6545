from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..graph.models import Node, node_map


@dataclass(slots=True)
class LayoutResult:
    """Positioned nodes plus an id lookup over exactly those nodes.

    An empty result is a valid outcome, not a failure.
    """

    nodes: list[Node] = field(default_factory=list)
    node_map: dict[str, Node] = field(default_factory=dict)

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> LayoutResult:
        nodes = list(nodes)
        return cls(nodes=nodes, node_map=node_map(nodes))

    @classmethod
    def empty(cls) -> LayoutResult:
        return cls()

    def __len__(self) -> int:
        return len(self.nodes)
