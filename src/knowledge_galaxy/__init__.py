"""Knowledge Galaxy: normalize config and document sources into one graph and lay it out in 3D."""

from .graph.models import Connection, ConnectionKind, GraphData, Node, NodeKind
from .layout import LayoutAlgorithm, LayoutResult, compute_layout
from .store import GalaxyStore

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionKind",
    "GalaxyStore",
    "GraphData",
    "LayoutAlgorithm",
    "LayoutResult",
    "Node",
    "NodeKind",
    "compute_layout",
]
