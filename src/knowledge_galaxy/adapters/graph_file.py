from __future__ import annotations

import json
from typing import Any

from ..errors import InvalidSourceFormat, SourceUnavailable
from ..fs import FileSystem, LocalFileSystem
from ..graph.models import GraphData, Node, NodeKind, visual_for
from ..records import RawNode
from .base import AdapterConfig, RefreshCapability, SourceAdapter, StatisticsCapability


class GraphFileAdapter(StatisticsCapability, RefreshCapability, SourceAdapter):
    """A graph already in canonical shape, stored as JSON on disk."""

    name = "graph-file"
    display_name = "Graph File"
    description = "Load a {nodes, connections} JSON document"
    source_type = "file"
    cache_key = "graph-file-data"

    def __init__(self, config: AdapterConfig | None = None, *, fs: FileSystem | None = None):
        super().__init__(config)
        self.fs = fs or LocalFileSystem()

    async def load_raw(self) -> Any:
        path = self.config.file_path
        if not path:
            raise SourceUnavailable(self.name, "no file_path configured")
        try:
            text = await self.fs.read_text(path)
        except OSError as e:
            raise SourceUnavailable(self.name, f"cannot read {path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidSourceFormat(self.name, f"{path} is not JSON: {e}") from e

    def transform(self, raw: dict[str, Any]) -> GraphData:
        nodes = self._parse_each(raw["nodes"], self.parse_node, "node")
        connections = self._parse_each(raw["connections"], self.parse_connection, "connection")
        return GraphData(nodes=nodes, connections=connections)

    def parse_node(self, raw: Any) -> Node:
        rec = RawNode.model_validate(raw)
        kind = NodeKind(rec.kind)
        return Node(
            id=rec.id,
            kind=kind,
            title=rec.title,
            description=rec.description,
            source_path=rec.source_path,
            tags=tuple(dict.fromkeys(rec.tags)),
            links=tuple(rec.links),
            importance=rec.importance,
            enabled=rec.enabled,
            metadata=dict(rec.metadata),
            visual=visual_for(kind),
        )

    def categories(self, data: GraphData) -> list[str]:
        return list(dict.fromkeys(n.kind.value for n in data.nodes))
