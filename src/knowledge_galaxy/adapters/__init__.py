"""Pluggable translators from raw source formats to the canonical graph."""

from .agent_config import AgentConfigAdapter
from .base import (
    AdapterConfig,
    AdapterStatistics,
    HttpSourceAdapter,
    RefreshCapability,
    SourceAdapter,
    StatisticsCapability,
    TTLCache,
)
from .graph_file import GraphFileAdapter
from .project_structure import ProjectStructureAdapter
from .registry import AdapterFactory, AdapterInfo, AdapterRegistry


def build_default_registry() -> AdapterRegistry:
    """A fresh registry with every built-in adapter registered."""
    registry = AdapterRegistry()
    registry.register(AgentConfigAdapter.name, lambda config: AgentConfigAdapter(config))
    registry.register(ProjectStructureAdapter.name, lambda config: ProjectStructureAdapter(config))
    registry.register(GraphFileAdapter.name, lambda config: GraphFileAdapter(config))
    return registry


__all__ = [
    "AdapterConfig",
    "AdapterFactory",
    "AdapterInfo",
    "AdapterRegistry",
    "AdapterStatistics",
    "AgentConfigAdapter",
    "GraphFileAdapter",
    "HttpSourceAdapter",
    "ProjectStructureAdapter",
    "RefreshCapability",
    "SourceAdapter",
    "StatisticsCapability",
    "TTLCache",
    "build_default_registry",
]
