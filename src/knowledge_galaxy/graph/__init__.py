"""Canonical node/connection graph shared by every source and layout."""

from .models import (
    ORIGIN,
    Connection,
    ConnectionKind,
    GraphData,
    Node,
    NodeKind,
    NodeTier,
    Position,
    ShapeType,
    Visual,
    node_map,
    visual_for,
)

__all__ = [
    "ORIGIN",
    "Connection",
    "ConnectionKind",
    "GraphData",
    "Node",
    "NodeKind",
    "NodeTier",
    "Position",
    "ShapeType",
    "Visual",
    "node_map",
    "visual_for",
]
