from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Sequence

ChangeCallback = Callable[[Sequence[str]], Awaitable[None] | None]


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    is_directory: bool
    size: int = 0
    modified: float | None = None


class Watch(Protocol):
    def close(self) -> None: ...


class FileSystem(Protocol):
    """File-system capability consumed by the ingestion services.

    Implementations raise OSError subclasses on read failures; the services
    translate them into the galaxy error taxonomy.
    """

    async def list_directory(self, path: str) -> list[FileEntry]: ...

    async def read_text(self, path: str) -> str: ...

    async def exists(self, path: str) -> bool: ...

    def watch(self, path: str, callback: ChangeCallback) -> Watch: ...
