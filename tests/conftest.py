"""Shared fixtures: an in-memory FileSystem and node builders."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Sequence

import pytest

from knowledge_galaxy.fs import ChangeCallback, FileEntry
from knowledge_galaxy.graph.models import Node, NodeKind, visual_for


@dataclass
class FakeWatch:
    path: str
    callback: ChangeCallback
    closed: bool = False

    async def fire(self, paths: Sequence[str] = ()) -> object:
        res = self.callback(list(paths))
        if inspect.isawaitable(res):
            return await res
        return res

    def close(self) -> None:
        self.closed = True


@dataclass
class MemoryFileSystem:
    """Files keyed by absolute POSIX path; directories are implied by them."""

    files: dict[str, str] = field(default_factory=dict)
    unreadable: set[str] = field(default_factory=set)
    unlistable: set[str] = field(default_factory=set)
    watches: list[FakeWatch] = field(default_factory=list)
    reads: int = 0

    async def list_directory(self, path: str) -> list[FileEntry]:
        path = path.rstrip("/")
        if path in self.unlistable:
            raise PermissionError(f"cannot list {path}")
        prefix = path + "/"
        children: dict[str, bool] = {}
        for f in self.files:
            if not f.startswith(prefix):
                continue
            name, sep, _ = f[len(prefix):].partition("/")
            children[name] = children.get(name, False) or bool(sep)
        if not children:
            raise FileNotFoundError(path)
        return [
            FileEntry(name=name, path=prefix + name, is_directory=is_dir)
            for name, is_dir in sorted(children.items())
        ]

    async def read_text(self, path: str) -> str:
        self.reads += 1
        if path in self.unreadable:
            raise PermissionError(f"cannot read {path}")
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def exists(self, path: str) -> bool:
        p = path.rstrip("/")
        return p in self.files or any(f.startswith(p + "/") for f in self.files)

    def watch(self, path: str, callback: ChangeCallback) -> FakeWatch:
        w = FakeWatch(path, callback)
        self.watches.append(w)
        return w


@pytest.fixture()
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


def make_node(node_id: str, kind: NodeKind = NodeKind.DOCUMENT, **kwargs) -> Node:
    kwargs.setdefault("title", node_id)
    kwargs.setdefault("visual", visual_for(kind))
    return Node(id=node_id, kind=kind, **kwargs)


def make_nodes(kind: NodeKind, count: int, prefix: str | None = None) -> list[Node]:
    prefix = prefix or kind.value
    return [make_node(f"{prefix}-{i:02d}", kind) for i in range(count)]
