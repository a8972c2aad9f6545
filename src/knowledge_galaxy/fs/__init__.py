"""File-system capability used by ingestion services."""

from .base import ChangeCallback, FileEntry, FileSystem, Watch
from .local import LocalFileSystem, PollingWatch, relative_posix

__all__ = [
    "ChangeCallback",
    "FileEntry",
    "FileSystem",
    "LocalFileSystem",
    "PollingWatch",
    "Watch",
    "relative_posix",
]
