"""Aggregation store: merges ingestion outputs and keeps the laid-out graph.

All state lives in one immutable GraphSnapshot that is replaced wholesale,
so readers never see a half-updated graph and a failed load leaves the
previous snapshot untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .errors import GalaxyError
from .fs import Watch
from .graph.models import Connection, GraphData, Node
from .ingestion.config import ConfigIngestionService
from .ingestion.documents import DocumentIngestionService
from .ingestion.manifests import ConfigSnapshot, ConfigStats
from .layout import LayoutAlgorithm, LayoutResult, compute_layout
from .settings import settings

logger = logging.getLogger(__name__)



@dataclass(frozen=True, slots=True)
class GraphSnapshot:
    root: str | None = None
    algorithm: LayoutAlgorithm = LayoutAlgorithm.ORBITAL
    config: GraphData = field(default_factory=GraphData)
    documents: GraphData = field(default_factory=GraphData)
    config_snapshot: ConfigSnapshot | None = None
    layout: LayoutResult = field(default_factory=LayoutResult)
    # connections whose endpoints both survived layout
    connections: list[Connection] = field(default_factory=list)


class GalaxyStore:
    def __init__(
        self,
        documents: DocumentIngestionService,
        config: ConfigIngestionService,
        *,
        layout: LayoutAlgorithm | str | None = None,
        layout_options: Mapping[LayoutAlgorithm, Mapping[str, Any]] | None = None,
    ):
        self.documents = documents
        self.config = config
        self._algorithm = LayoutAlgorithm(layout or settings.layout)
        self._layout_options = {LayoutAlgorithm(k): dict(v) for k, v in (layout_options or {}).items()}
        self._snapshot = GraphSnapshot(algorithm=self._algorithm)
        self._loading = False
        self._watch: Watch | None = None
        self.error: Exception | None = None

    # --- read side ---

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    @property
    def nodes(self) -> list[Node]:
        return self._snapshot.layout.nodes

    @property
    def connections(self) -> list[Connection]:
        return self._snapshot.connections

    @property
    def node_map(self) -> dict[str, Node]:
        return self._snapshot.layout.node_map

    @property
    def layout(self) -> LayoutAlgorithm:
        return self._algorithm

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def config_snapshot(self) -> ConfigSnapshot | None:
        return self._snapshot.config_snapshot

    @property
    def config_stats(self) -> ConfigStats | None:
        snap = self._snapshot.config_snapshot
        return snap.stats() if snap is not None else None

    def search(self, query: str) -> list[Node]:
        """Case-insensitive substring match over title, description, content and tags."""
        if not query.strip():
            return list(self.nodes)
        q = query.lower()
        return [
            n
            for n in self.nodes
            if q in n.title.lower()
            or q in n.description.lower()
            or q in n.content.lower()
            or any(q in t.lower() for t in n.tags)
        ]

    # --- write side ---

    async def load(self, root: str | None = None) -> bool:
        """Ingest documents and config concurrently, merge, lay out, swap.

        Returns False without doing anything while another load is running.
        """
        if self._loading:
            logger.warning("Load already in progress; ignoring load(%s)", root)
            return False

        root = root or settings.root_path
        failure: Exception | None = None
        self._loading = True
        try:
            # a failing source cancels its sibling
            async with asyncio.TaskGroup() as tg:
                docs_task = tg.create_task(self.documents.ingest(root))
                config_task = tg.create_task(self.config.ingest(root))
            docs, config = docs_task.result(), config_task.result()
            snapshot = self._build(root, config.graph, docs, config.snapshot)
        except* Exception as eg:
            failure = eg.exceptions[0]
        finally:
            self._loading = False

        if failure is not None:
            return self._fail(f"Failed to load {root}", failure)

        self._snapshot = snapshot
        self.error = None
        logger.info(
            "Loaded %d nodes (%d config + %d documents), %d connections",
            len(self.nodes),
            len(config.graph.nodes),
            len(docs.nodes),
            len(self.connections),
        )
        return True

    async def handle_change(self, paths: Sequence[str] = ()) -> bool:
        """Re-ingest documents only and re-merge with the last config output."""
        if self._loading:
            logger.info("Load in progress; ignoring change notification")
            return False
        root = self._snapshot.root
        if root is None:
            logger.debug("Change notification before first load; ignored")
            return False

        logger.debug("Reloading documents after %d changed paths", len(paths))
        prev = self._snapshot
        self._loading = True
        try:
            docs = await self.documents.ingest(root)
            snapshot = self._build(root, prev.config, docs, prev.config_snapshot)
        except Exception as e:
            return self._fail(f"Failed to reload documents from {root}", e)
        finally:
            self._loading = False

        self._snapshot = snapshot
        self.error = None
        return True

    def set_layout(self, algorithm: LayoutAlgorithm | str) -> None:
        self._algorithm = LayoutAlgorithm(algorithm)
        prev = self._snapshot
        self._snapshot = self._build(prev.root, prev.config, prev.documents, prev.config_snapshot)

    def watch(self, root: str | None = None) -> Watch:
        root = root or self._snapshot.root or settings.root_path
        self.close()
        self._watch = self.documents.watch(root, self.handle_change)
        return self._watch

    def close(self) -> None:
        if self._watch is not None:
            self._watch.close()
            self._watch = None

    def _fail(self, message: str, e: Exception) -> bool:
        """Record a failed load; the previous snapshot stays in place."""
        self.error = e
        if isinstance(e, (GalaxyError, OSError)):
            logger.error("%s: %s", message, e)
        else:
            logger.error("%s", message, exc_info=e)
        return False

    def _build(
        self,
        root: str | None,
        config: GraphData,
        documents: GraphData,
        config_snapshot: ConfigSnapshot | None,
    ) -> GraphSnapshot:
        merged = GraphData.merge([config, documents])
        linked = merged.without_dangling()
        dangling = len(merged.connections) - len(linked.connections)
        if dangling:
            logger.debug("Dropped %d dangling connections", dangling)

        result = compute_layout(
            self._algorithm,
            linked.nodes,
            linked.connections,
            **self._layout_options.get(self._algorithm, {}),
        )
        placed = result.node_map
        return GraphSnapshot(
            root=root,
            algorithm=self._algorithm,
            config=config,
            documents=documents,
            config_snapshot=config_snapshot,
            layout=result,
            connections=[c for c in linked.connections if c.source in placed and c.target in placed],
        )
