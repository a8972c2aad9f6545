from __future__ import annotations

import asyncio
import inspect
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..settings import settings
from .base import ChangeCallback, FileEntry

logger = logging.getLogger(__name__)


def _entry(p: Path) -> FileEntry:
    st = p.stat()
    return FileEntry(
        name=p.name,
        path=str(p),
        is_directory=p.is_dir(),
        size=st.st_size,
        modified=st.st_mtime,
    )


def snapshot_tree(root: str) -> dict[str, str]:
    """path -> "mtime:<ns>-size:<bytes>" for every visible file under root."""
    out: dict[str, str] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in filenames:
            if name.startswith("."):
                continue
            p = os.path.join(dirpath, name)
            try:
                st = os.stat(p)
            except OSError:
                continue
            out[p] = f"mtime:{st.st_mtime_ns}-size:{st.st_size}"
    return out


def diff_snapshots(before: dict[str, str], after: dict[str, str]) -> list[str]:
    changed = [p for p, rev in after.items() if before.get(p) != rev]
    changed.extend(p for p in before if p not in after)
    return sorted(changed)


@dataclass
class PollingWatch:
    """Polls a directory tree and reports changed paths to a callback.

    Revisions are mtime+size fingerprints, so a rewrite with identical
    content and timestamp is not reported.
    """

    root: str
    callback: ChangeCallback
    interval: float = 1.0
    _task: asyncio.Task | None = field(default=None, init=False, repr=False)

    def start(self) -> PollingWatch:
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    async def _run(self) -> None:
        previous = await asyncio.to_thread(snapshot_tree, self.root)
        while True:
            await asyncio.sleep(self.interval)
            current = await asyncio.to_thread(snapshot_tree, self.root)
            changed = diff_snapshots(previous, current)
            previous = current
            if not changed:
                continue
            logger.debug("Watcher %s: %d changed paths", self.root, len(changed))
            try:
                res = self.callback(changed)
                if inspect.isawaitable(res):
                    await res
            except Exception:
                logger.exception("Change callback failed for %s", self.root)

    def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


class LocalFileSystem:
    """FileSystem over the local disk; blocking calls run in worker threads."""

    def __init__(self, watch_interval: float | None = None):
        self.watch_interval = watch_interval if watch_interval is not None else settings.watch_interval_s

    async def list_directory(self, path: str) -> list[FileEntry]:
        def _list() -> list[FileEntry]:
            root = Path(path).expanduser()
            out: list[FileEntry] = []
            for p in sorted(root.iterdir(), key=lambda p: p.name):
                try:
                    out.append(_entry(p))
                except OSError as e:
                    # dangling symlinks and entries removed mid-listing
                    logger.warning("Skipping unreadable entry %s: %s", p, e)
            return out

        return await asyncio.to_thread(_list)

    async def read_text(self, path: str) -> str:
        return await asyncio.to_thread(Path(path).expanduser().read_text, encoding="utf-8", errors="replace")

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).expanduser().exists)

    def watch(self, path: str, callback: ChangeCallback) -> PollingWatch:
        root = str(Path(path).expanduser())
        logger.info("Started watching %s", root)
        return PollingWatch(root=root, callback=callback, interval=self.watch_interval).start()


def relative_posix(path: str, root: str) -> str:
    """Root-relative path with forward slashes and a leading slash."""
    return "/" + os.path.relpath(path, root).replace(os.sep, "/")
