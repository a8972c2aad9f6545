from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Iterable

from ..errors import SourceUnavailable
from ..fs import ChangeCallback, FileEntry, FileSystem, Watch, relative_posix
from ..graph.models import Connection, ConnectionKind, GraphData, Node, visual_for
from .markdown import (
    FrontMatterError,
    classify,
    count_headings,
    extract_description,
    extract_links,
    extract_tags,
    extract_title,
    importance_score,
    split_front_matter,
)

logger = logging.getLogger(__name__)

SOURCE_NAME = "documents"
DOCUMENT_SUFFIX = ".md"
DEFAULT_DENYLIST = frozenset({"node_modules"})
REFERENCE_STRENGTH = 0.8


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


def find_link_target(link: str, nodes: list[Node]) -> Node | None:
    """Resolve a raw link to a node.

    1. case-insensitive containment between link and node id, either way
    2. exact match of the link's last segment against a node's filename
    """
    normalized = link.replace("\\", "/").lower()
    if not normalized.strip():
        return None
    for n in nodes:
        nid = n.id.lower()
        if normalized in nid or nid in normalized:
            return n

    filename = link.split("/")[-1]
    if filename:
        for n in nodes:
            if _basename(n.source_path) == filename:
                return n
    return None


def resolve_links(nodes: list[Node], *, strength: float = REFERENCE_STRENGTH) -> list[Connection]:
    """One `reference` connection per resolved (source, target) pair; misses are dropped."""
    seen: set[tuple[str, str]] = set()
    out: list[Connection] = []
    for node in nodes:
        for link in node.links:
            target = find_link_target(link, nodes)
            if target is None:
                continue
            key = (node.id, target.id)
            if key in seen:
                continue
            seen.add(key)
            out.append(Connection(node.id, target.id, ConnectionKind.REFERENCE, strength))
    return out


def build_document_node(path: str, root: str, text: str) -> Node:
    """Parse one markdown file into a node. Raises FrontMatterError on bad front-matter."""
    rel = relative_posix(path, root)
    fm, body = split_front_matter(text)
    links = extract_links(body)
    kind = classify(rel, fm)
    return Node(
        id=rel,
        kind=kind,
        title=str(fm.get("title") or extract_title(body, path)),
        description=str(fm.get("description") or extract_description(body)),
        source_path=path,
        tags=tuple(extract_tags(body, fm)),
        links=tuple(links),
        importance=importance_score(len(body), len(links), count_headings(body)),
        content=body,
        metadata={"size": len(text)},
        visual=visual_for(kind),
    )


@dataclass
class DocumentIngestionService:
    """Walks a markdown tree and builds document nodes plus link connections.

    Every run rebuilds the whole output; nothing is patched incrementally.
    """

    fs: FileSystem
    denylist: frozenset[str] = field(default=DEFAULT_DENYLIST)
    suffix: str = DOCUMENT_SUFFIX

    async def ingest(self, root: str) -> GraphData:
        root = os.path.expanduser(root)
        t0 = time.perf_counter()
        files = await self.scan(root)

        # No cap on the fan-out; descriptor limits belong to the fs layer.
        loaded = await asyncio.gather(*(self._load(p, root) for p in files))
        nodes = [n for n in loaded if n is not None]
        connections = resolve_links(nodes)

        logger.info(
            "Loaded %d documents (%d skipped) and %d connections from %s in %.1fms",
            len(nodes),
            len(files) - len(nodes),
            len(connections),
            root,
            (time.perf_counter() - t0) * 1000.0,
        )
        return GraphData(nodes=nodes, connections=connections)

    async def scan(self, root: str) -> list[str]:
        """All document paths under root, in sorted directory order.

        Hidden entries and denylisted directories are skipped at every depth.
        A root that cannot be listed is SourceUnavailable; an unreadable
        subdirectory is logged and skipped.
        """
        try:
            entries = await self.fs.list_directory(root)
        except OSError as e:
            raise SourceUnavailable(SOURCE_NAME, f"cannot list {root}: {e}") from e
        return await self._collect(sorted(entries, key=lambda e: e.name))

    async def _collect(self, entries: Iterable[FileEntry]) -> list[str]:
        files: list[str] = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_directory:
                if entry.name in self.denylist:
                    continue
                try:
                    children = await self.fs.list_directory(entry.path)
                except OSError as e:
                    logger.warning("Failed to scan directory %s: %s", entry.path, e)
                    continue
                files.extend(await self._collect(sorted(children, key=lambda e: e.name)))
            elif entry.name.endswith(self.suffix):
                files.append(entry.path)
        return files

    async def _load(self, path: str, root: str) -> Node | None:
        try:
            text = await self.fs.read_text(path)
            return build_document_node(path, root, text)
        except (OSError, FrontMatterError, UnicodeDecodeError) as e:
            logger.warning("Failed to load file %s: %s", path, e)
            return None

    def watch(self, root: str, on_change: ChangeCallback) -> Watch:
        return self.fs.watch(os.path.expanduser(root), on_change)
