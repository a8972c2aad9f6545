from __future__ import annotations

from typing import Any, Mapping

from ..graph.models import Connection, ConnectionKind, GraphData, Node, NodeKind, visual_for
from ..records import McpServerRecord, PluginRecord, SkillRecord
from .base import HttpSourceAdapter, RefreshCapability, StatisticsCapability

PLUGIN_CATEGORY = "plugin"
MCP_CATEGORY = "mcp-server"

_RECORD_TYPES = {
    NodeKind.SKILL: SkillRecord,
    NodeKind.PLUGIN: PluginRecord,
    NodeKind.MCP: McpServerRecord,
}


def category_id(name: str) -> str:
    return f"category-{name}"


class AgentConfigAdapter(StatisticsCapability, RefreshCapability, HttpSourceAdapter):
    """Skills, plugins and MCP servers served as one JSON document.

    Expected payload::

        {"skills": [...], "plugins": [...], "mcpServers": [...]}

    Skills hang off one category node per distinct `category`; plugins and
    MCP servers hang off a fixed category each.
    """

    name = "agent-config"
    display_name = "Agent Configuration"
    description = "Visualize configured skills, plugins, and MCP servers"
    source_type = "api"
    cache_key = "agent-config-data"
    default_endpoint = "/api/agent-config"

    def validate_data(self, raw: Any) -> bool:
        return (
            isinstance(raw, Mapping)
            and isinstance(raw.get("skills"), list)
            and isinstance(raw.get("plugins"), list)
            and isinstance(raw.get("mcpServers"), list)
        )

    def transform(self, raw: Mapping[str, Any]) -> GraphData:
        skills = self._parse_each(raw["skills"], lambda r: self.parse_node({**r, "nodeType": "skill"}), "skill")
        plugins = self._parse_each(raw["plugins"], lambda r: self.parse_node({**r, "nodeType": "plugin"}), "plugin")
        mcps = self._parse_each(raw["mcpServers"], lambda r: self.parse_node({**r, "nodeType": "mcp"}), "mcp server")

        categories: list[str] = []
        for s in skills:
            cat = s.metadata.get("category")
            if cat and cat not in categories:
                categories.append(cat)
        if plugins and PLUGIN_CATEGORY not in categories:
            categories.append(PLUGIN_CATEGORY)
        if mcps and MCP_CATEGORY not in categories:
            categories.append(MCP_CATEGORY)

        nodes = [
            Node(
                id=category_id(cat),
                kind=NodeKind.CATEGORY,
                title=cat,
                description=f"{cat} category",
                tags=(cat,),
                metadata={"category": cat},
                visual=visual_for(NodeKind.CATEGORY),
            )
            for cat in categories
        ]
        connections: list[Connection] = []

        for s in skills:
            nodes.append(s)
            cat = s.metadata.get("category")
            if cat:
                connections.append(Connection(s.id, category_id(cat), ConnectionKind.BELONGS_TO, 1.0))
        for p in plugins:
            nodes.append(p)
            connections.append(Connection(p.id, category_id(PLUGIN_CATEGORY), ConnectionKind.BELONGS_TO, 1.0))
        for m in mcps:
            nodes.append(m)
            connections.append(Connection(m.id, category_id(MCP_CATEGORY), ConnectionKind.BELONGS_TO, 1.0))

        return GraphData(nodes=nodes, connections=connections)

    def parse_node(self, raw: Any) -> Node:
        kind = NodeKind(raw.get("nodeType") or "skill")
        rec = _RECORD_TYPES[kind].model_validate(raw)
        # uncategorized skills keep category=None and get no belongsTo edge
        metadata: dict[str, Any] = {"category": kind.value}
        if isinstance(rec, SkillRecord):
            metadata.update(category=rec.category, plugin=rec.plugin, subagent_type=rec.subagent_type)
        elif isinstance(rec, McpServerRecord):
            metadata.update(tools=list(rec.tools))
        elif isinstance(rec, PluginRecord):
            metadata.update(skills=list(rec.skills))
        return Node(
            id=f"{kind.value}-{rec.name}",
            kind=kind,
            title=rec.name,
            description=rec.description or "",
            source_path=getattr(rec, "path", "") or "",
            tags=(kind.value,),
            enabled=rec.enabled,
            metadata=metadata,
            visual=visual_for(kind),
        )

    def categories(self, data: GraphData) -> list[str]:
        out: list[str] = []
        for n in data.nodes:
            cat = n.metadata.get("category")
            if n.kind is NodeKind.SKILL and cat and cat not in out:
                out.append(cat)
        return out
