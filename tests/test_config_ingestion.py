from __future__ import annotations

import json
import math

import pytest

from knowledge_galaxy.graph.models import ConnectionKind, NodeKind
from knowledge_galaxy.ingestion import ConfigIngestionService, ManifestLoader, build_graph
from knowledge_galaxy.ingestion.manifests import ConfigSnapshot, sample_snapshot
from knowledge_galaxy.records import McpServerRecord, PluginRecord, SkillRecord

from conftest import MemoryFileSystem

CFG = {
    "/cfg/skills/alpha/skill.json": json.dumps({"description": "Alpha skill", "category": "automation", "enabled": False}),
    "/cfg/skills/beta/notes.md": "# beta",
    "/cfg/skills/gamma/skill.json": "{not json",
    "/cfg/mcp-local/mcp-config.json": json.dumps(
        {"mcpServers": {"playwright": {"command": "npx", "args": ["@playwright/mcp"]}, "fs": {"enabled": False}}}
    ),
    "/cfg/mcp-remote/mcp-config.json": json.dumps({"mcpServers": {"playwright": {"command": "uvx", "description": "remote"}}}),
    "/cfg/mcp-broken/mcp-config.json": json.dumps({"servers": {}}),
    "/cfg/plugins/backend/package.json": json.dumps({"version": "2.1.0", "description": "Backend", "claudeConfig": {"x": 1}}),
    "/cfg/plugins/frontend/index.js": "",
}


def _xyz(node):
    return pytest.approx(node.position, abs=1e-9)


class TestManifestLoader:
    @pytest.mark.asyncio
    async def test_loads_all_three_categories(self):
        snap = await ManifestLoader(MemoryFileSystem(files=dict(CFG))).load("/cfg")

        assert [s.name for s in snap.skills] == ["alpha", "beta"]
        alpha, beta = snap.skills
        assert (alpha.category, alpha.enabled, alpha.path) == ("automation", False, "/cfg/skills/alpha")
        assert (beta.description, beta.category, beta.enabled) == ("Skill: beta", "general", True)

        assert [p.name for p in snap.plugins] == ["backend", "frontend"]
        backend, frontend = snap.plugins
        assert (backend.version, backend.config) == ("2.1.0", {"x": 1})
        assert (frontend.version, frontend.description) == ("1.0.0", "Plugin: frontend")

    @pytest.mark.asyncio
    async def test_mcp_servers_dedupe_last_wins(self):
        snap = await ManifestLoader(MemoryFileSystem(files=dict(CFG))).load("/cfg")

        assert [m.name for m in snap.mcps] == ["playwright", "fs"]
        playwright, fs = snap.mcps
        assert (playwright.command, playwright.source, playwright.description) == ("uvx", "mcp-remote", "remote")
        assert fs.enabled is False

    @pytest.mark.asyncio
    async def test_missing_directories_yield_nothing(self):
        snap = await ManifestLoader(MemoryFileSystem(files={"/empty/readme.md": "x"})).load("/empty")
        assert snap == ConfigSnapshot()

    @pytest.mark.asyncio
    async def test_stats(self):
        snap = await ManifestLoader(MemoryFileSystem(files=dict(CFG))).load("/cfg")
        stats = snap.stats()
        assert (stats.total_skills, stats.enabled_skills) == (2, 1)
        assert (stats.total_mcps, stats.enabled_mcps) == (2, 1)
        assert (stats.total_plugins, stats.enabled_plugins) == (2, 2)


@pytest.fixture()
def snapshot() -> ConfigSnapshot:
    return ConfigSnapshot(
        skills=[SkillRecord(name="one"), SkillRecord(name="two", enabled=False)],
        mcps=[],
        plugins=[PluginRecord(name="tools", path="/p/tools")],
    )


class TestBuildGraph:
    def test_root_and_categories(self, snapshot):
        data = build_graph(snapshot)
        nodes = {n.id: n for n in data.nodes}

        root = data.nodes[0]
        assert root.id == "center" and root.kind is NodeKind.CONFIG
        assert root.position == (0.0, 0.0, 0.0)

        assert _xyz(nodes["category-skills"]) == (15.0, 0.0, 0.0)
        assert _xyz(nodes["category-mcp"]) == (15 * math.cos(2 * math.pi / 3), 15 * math.sin(2 * math.pi / 3), 0.0)
        assert _xyz(nodes["category-plugins"]) == (15 * math.cos(4 * math.pi / 3), 15 * math.sin(4 * math.pi / 3), 0.0)
        # empty category still present
        assert nodes["category-mcp"].kind is NodeKind.CATEGORY

    def test_items_subdivide_their_sector(self, snapshot):
        nodes = {n.id: n for n in build_graph(snapshot).nodes}
        step = (2 * math.pi / 3) / 3
        assert _xyz(nodes["skill-one"]) == (25 * math.cos(step), 25 * math.sin(step), 0.0)
        assert _xyz(nodes["skill-two"]) == (25 * math.cos(2 * step), 25 * math.sin(2 * step), 0.0)
        plugin_angle = 4 * math.pi / 3 + (2 * math.pi / 3) / 2
        assert _xyz(nodes["plugin-tools"]) == (25 * math.cos(plugin_angle), 25 * math.sin(plugin_angle), 0.0)
        assert nodes["plugin-tools"].source_path == "/p/tools"

    def test_connections_and_strengths(self, snapshot):
        data = build_graph(snapshot)
        assert len(data.nodes) == 7
        assert all(c.kind is ConnectionKind.PARENT_CHILD for c in data.connections)
        top = [(c.source, c.target, c.strength) for c in data.connections[:3]]
        assert top == [
            ("center", "category-skills", 1.0),
            ("center", "category-mcp", 1.0),
            ("center", "category-plugins", 1.0),
        ]
        leaves = [(c.source, c.target, c.strength) for c in data.connections[3:]]
        assert leaves == [
            ("category-skills", "skill-one", 0.6),
            ("category-skills", "skill-two", 0.6),
            ("category-plugins", "plugin-tools", 0.6),
        ]

    def test_enabled_flag_drives_visuals(self, snapshot):
        nodes = {n.id: n for n in build_graph(snapshot).nodes}
        on, off = nodes["skill-one"], nodes["skill-two"]
        assert (on.importance, on.visual.color, on.visual.size, on.visual.glow) == (0.8, "#10B981", 1.0, True)
        assert (off.importance, off.visual.color, off.visual.size, off.visual.glow) == (0.3, "#666666", 0.6, False)
        assert off.enabled is False

    def test_same_input_same_output(self, snapshot):
        assert build_graph(snapshot) == build_graph(snapshot)

    def test_mcp_item_color(self):
        snap = ConfigSnapshot(mcps=[McpServerRecord(name="fs")])
        node = next(n for n in build_graph(snap).nodes if n.id == "mcp-fs")
        assert node.kind is NodeKind.MCP
        assert node.visual.color == "#06B6D4"


@pytest.mark.asyncio
async def test_service_returns_graph_with_its_snapshot():
    svc = ConfigIngestionService(ManifestLoader(MemoryFileSystem(files=dict(CFG))))
    result = await svc.ingest("/cfg")
    assert [s.name for s in result.snapshot.skills] == ["alpha", "beta"]
    assert result.graph == build_graph(result.snapshot)
    assert {"skill-alpha", "skill-beta", "mcp-playwright", "mcp-fs", "plugin-backend"} <= result.graph.node_ids()


def test_sample_snapshot_is_usable():
    data = build_graph(sample_snapshot())
    assert len(data.nodes) == 1 + 3 + 3 + 2 + 2
