from .config import ConfigGraph, ConfigIngestionService, build_graph
from .documents import DocumentIngestionService, find_link_target, resolve_links
from .manifests import ConfigSnapshot, ConfigStats, ManifestLoader, sample_snapshot

__all__ = [
    "ConfigGraph",
    "ConfigIngestionService",
    "ConfigSnapshot",
    "ConfigStats",
    "DocumentIngestionService",
    "ManifestLoader",
    "build_graph",
    "find_link_target",
    "resolve_links",
    "sample_snapshot",
]
