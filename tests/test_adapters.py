from __future__ import annotations

import json
import logging

import httpx
import pytest

from knowledge_galaxy.adapters import (
    AdapterConfig,
    AgentConfigAdapter,
    GraphFileAdapter,
    ProjectStructureAdapter,
    RefreshCapability,
    StatisticsCapability,
    TTLCache,
    build_default_registry,
)
from knowledge_galaxy.errors import InvalidSourceFormat, SourceUnavailable, UnknownAdapter
from knowledge_galaxy.graph.models import ConnectionKind, NodeKind

from conftest import MemoryFileSystem

AGENT_PAYLOAD = {
    "skills": [
        {"name": "browse", "category": "automation", "subagentType": "web"},
        {"name": "draw", "category": "creative", "enabled": False},
        {"name": "loose"},
        {"description": "no name"},
    ],
    "plugins": [{"name": "backend", "skills": ["browse"]}],
    "mcpServers": [{"name": "playwright", "tools": ["click"]}],
}


class Endpoint:
    """MockTransport handler that serves one response and counts calls."""

    def __init__(self, status: int = 200, payload=None, text: str | None = None, exc: Exception | None = None):
        self.status = status
        self.payload = payload
        self.text = text
        self.exc = exc
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.payload)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://galaxy.test")


def _agent(handler, **config) -> AgentConfigAdapter:
    config.setdefault("custom", {"retries": 1})
    return AgentConfigAdapter(AdapterConfig(**config), client=_client(handler))


class TestAgentConfigAdapter:
    @pytest.mark.asyncio
    async def test_transform_groups_by_category(self):
        endpoint = Endpoint(payload=AGENT_PAYLOAD)
        data = await _agent(endpoint).fetch_data()

        assert endpoint.calls[0].url.path == "/api/agent-config"
        ids = [n.id for n in data.nodes]
        assert ids == [
            "category-automation",
            "category-creative",
            "category-plugin",
            "category-mcp-server",
            "skill-browse",
            "skill-draw",
            "skill-loose",
            "plugin-backend",
            "mcp-playwright",
        ]
        edges = [(c.source, c.target) for c in data.connections]
        assert edges == [
            ("skill-browse", "category-automation"),
            ("skill-draw", "category-creative"),
            ("plugin-backend", "category-plugin"),
            ("mcp-playwright", "category-mcp-server"),
        ]
        assert all(c.kind is ConnectionKind.BELONGS_TO and c.strength == 1.0 for c in data.connections)

        nodes = {n.id: n for n in data.nodes}
        assert nodes["skill-draw"].enabled is False
        assert nodes["skill-browse"].metadata["subagent_type"] == "web"
        assert nodes["mcp-playwright"].metadata["tools"] == ["click"]
        assert nodes["plugin-backend"].kind is NodeKind.PLUGIN

    @pytest.mark.asyncio
    async def test_cache_serves_second_fetch(self):
        endpoint = Endpoint(payload=AGENT_PAYLOAD)
        adapter = _agent(endpoint)
        first = await adapter.fetch_data()
        first.nodes.clear()
        second = await adapter.fetch_data()
        assert len(endpoint.calls) == 1
        assert len(second.nodes) == 9

    @pytest.mark.asyncio
    async def test_cache_can_be_disabled(self):
        endpoint = Endpoint(payload=AGENT_PAYLOAD)
        adapter = _agent(endpoint, cache_enabled=False)
        await adapter.fetch_data()
        await adapter.fetch_data()
        assert len(endpoint.calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_refetches(self):
        endpoint = Endpoint(payload=AGENT_PAYLOAD)
        adapter = _agent(endpoint)
        assert isinstance(adapter, RefreshCapability)
        await adapter.fetch_data()
        assert await adapter.refresh() is True
        assert len(endpoint.calls) == 2

    @pytest.mark.asyncio
    async def test_refresh_reports_failure(self):
        adapter = _agent(Endpoint(status=500, payload={}))
        assert await adapter.refresh() is False

    @pytest.mark.asyncio
    async def test_statistics(self):
        adapter = _agent(Endpoint(payload=AGENT_PAYLOAD))
        assert isinstance(adapter, StatisticsCapability)
        stats = await adapter.get_statistics()
        assert (stats.node_count, stats.connection_count) == (9, 4)
        assert stats.categories == ["automation", "creative"]
        assert stats.last_updated is not None

    @pytest.mark.asyncio
    async def test_invalid_structure(self):
        with pytest.raises(InvalidSourceFormat) as exc:
            await _agent(Endpoint(payload={"skills": "nope", "plugins": [], "mcpServers": []})).fetch_data()
        assert exc.value.source == "agent-config"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        with pytest.raises(InvalidSourceFormat):
            await _agent(Endpoint(text="<html>oops</html>")).fetch_data()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        with pytest.raises(SourceUnavailable):
            await _agent(Endpoint(status=500, payload={"error": "boom"})).fetch_data()

    @pytest.mark.asyncio
    async def test_transport_error_after_retries(self):
        endpoint = Endpoint(exc=httpx.ConnectError("refused"))
        with pytest.raises(SourceUnavailable):
            await _agent(endpoint, custom={"retries": 1}).fetch_data()
        assert len(endpoint.calls) == 1

    @pytest.mark.asyncio
    async def test_explicit_endpoint_wins(self):
        endpoint = Endpoint(payload=AGENT_PAYLOAD)
        await _agent(endpoint, api_endpoint="/v2/config").fetch_data()
        assert endpoint.calls[0].url.path == "/v2/config"


class TestProjectStructureAdapter:
    PAYLOAD = {
        "rootPath": "src",
        "files": [
            {"path": "src/components", "name": "components", "type": "folder"},
            {"path": "src/components/Button.tsx", "name": "Button.tsx", "imports": ["src/utils/colors.ts"]},
            {"path": "src/utils/colors.ts", "name": "colors.ts"},
            {"name": "bad"},
        ],
    }

    @pytest.mark.asyncio
    async def test_files_folders_and_edges(self):
        adapter = ProjectStructureAdapter(AdapterConfig(custom={"retries": 1}), client=_client(Endpoint(payload=self.PAYLOAD)))
        data = await adapter.fetch_data()

        nodes = {n.id: n for n in data.nodes}
        assert list(nodes) == ["file-src-components", "file-src-components-Button.tsx", "file-src-utils-colors.ts"]
        assert nodes["file-src-components"].kind is NodeKind.CATEGORY
        button = nodes["file-src-components-Button.tsx"]
        assert button.kind is NodeKind.DOCUMENT
        assert (button.metadata["role"], button.metadata["category"]) == ("ui-component", "Components")
        assert nodes["file-src-utils-colors.ts"].metadata["role"] == "util"

        edges = [(c.source, c.target, c.kind, c.strength) for c in data.connections]
        assert edges == [
            ("file-src-components-Button.tsx", "file-src-components", ConnectionKind.CHILD_OF, 1.0),
            ("file-src-components-Button.tsx", "file-src-utils-colors.ts", ConnectionKind.IMPORTS, 0.5),
            ("file-src-utils-colors.ts", "file-src-utils", ConnectionKind.CHILD_OF, 1.0),
        ]
        assert (await adapter.get_statistics()).categories == ["tsx", "ts"]

    @pytest.mark.asyncio
    async def test_root_path_required(self):
        adapter = ProjectStructureAdapter(
            AdapterConfig(custom={"retries": 1}), client=_client(Endpoint(payload={"files": []}))
        )
        with pytest.raises(InvalidSourceFormat):
            await adapter.fetch_data()


class TestGraphFileAdapter:
    DOC = {
        "nodes": [
            {"id": "a", "type": "skill", "title": "A", "importance": 0.5, "tags": ["x", "x"]},
            {"id": "b", "type": "nonsense"},
            {"id": "c", "importance": 3},
        ],
        "connections": [
            {"source": "a", "target": "c", "type": "dependency", "strength": 0.3},
            {"source": "a"},
            {"source": "a", "target": "a", "type": "whatever"},
        ],
    }

    @pytest.mark.asyncio
    async def test_malformed_items_are_skipped(self):
        fs = MemoryFileSystem(files={"/g.json": json.dumps(self.DOC)})
        data = await GraphFileAdapter(AdapterConfig(file_path="/g.json"), fs=fs).fetch_data()

        assert [n.id for n in data.nodes] == ["a"]
        assert data.nodes[0].tags == ("x",)
        assert [(c.target, c.kind, c.strength) for c in data.connections] == [
            ("c", ConnectionKind.DEPENDENCY, 0.3),
            ("a", ConnectionKind.RELATED, 1.0),
        ]

    @pytest.mark.asyncio
    async def test_missing_file(self):
        adapter = GraphFileAdapter(AdapterConfig(file_path="/nope.json"), fs=MemoryFileSystem())
        with pytest.raises(SourceUnavailable):
            await adapter.fetch_data()

    @pytest.mark.asyncio
    async def test_no_path_configured(self):
        with pytest.raises(SourceUnavailable):
            await GraphFileAdapter(fs=MemoryFileSystem()).fetch_data()

    @pytest.mark.asyncio
    async def test_bad_json(self):
        fs = MemoryFileSystem(files={"/g.json": "{"})
        with pytest.raises(InvalidSourceFormat):
            await GraphFileAdapter(AdapterConfig(file_path="/g.json"), fs=fs).fetch_data()

    @pytest.mark.parametrize(
        "doc",
        [
            {"nodes": {}, "connections": []},
            {"nodes": "x", "connections": []},
            {"nodes": [{"id": "a"}], "connections": {"a": "b"}},
            {"nodes": []},
            [{"id": "a"}],
        ],
    )
    @pytest.mark.asyncio
    async def test_arrays_must_be_lists(self, doc):
        fs = MemoryFileSystem(files={"/g.json": json.dumps(doc)})
        adapter = GraphFileAdapter(AdapterConfig(file_path="/g.json"), fs=fs)
        assert adapter.validate_data(doc) is False
        with pytest.raises(InvalidSourceFormat):
            await adapter.fetch_data()

    def test_empty_lists_are_valid(self):
        adapter = GraphFileAdapter(fs=MemoryFileSystem())
        assert adapter.validate_data({"nodes": [], "connections": []}) is True

    @pytest.mark.asyncio
    async def test_cache_avoids_reread(self):
        fs = MemoryFileSystem(files={"/g.json": json.dumps(self.DOC)})
        adapter = GraphFileAdapter(AdapterConfig(file_path="/g.json"), fs=fs)
        await adapter.fetch_data()
        await adapter.get_statistics()
        assert fs.reads == 1


class TestRegistry:
    def test_default_registry(self):
        registry = build_default_registry()
        assert registry.list() == ["agent-config", "project-structure", "graph-file"]
        assert registry.has("graph-file") and not registry.has("nope")
        assert [i.source_type for i in registry.describe()] == ["api", "api", "file"]

    def test_get_builds_fresh_adapters_with_config(self):
        registry = build_default_registry()
        a = registry.get("graph-file", AdapterConfig(file_path="/x.json"))
        b = registry.get("graph-file")
        assert a is not b
        assert a.config.file_path == "/x.json"

    def test_unknown_adapter(self):
        with pytest.raises(UnknownAdapter) as exc:
            build_default_registry().get("nope")
        assert exc.value.name == "nope"
        assert isinstance(exc.value, KeyError)
        assert str(exc.value) == "Adapter 'nope' not found"

    def test_overwrite_warns(self, caplog):
        registry = build_default_registry()
        with caplog.at_level(logging.WARNING):
            registry.register("graph-file", lambda config: GraphFileAdapter(config))
        assert "already registered" in caplog.text


class TestTTLCache:
    def test_expires_lazily(self):
        now = [0.0]
        cache: TTLCache[str] = TTLCache(ttl_ms=1000, clock=lambda: now[0])
        cache.set("k", "v")
        now[0] = 0.5
        assert cache.get("k") == "v"
        now[0] = 1.5
        assert len(cache) == 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_disabled_cache_stores_nothing(self):
        cache: TTLCache[str] = TTLCache(ttl_ms=1000, enabled=False)
        cache.set("k", "v")
        assert cache.get("k") is None
        assert len(cache) == 0
