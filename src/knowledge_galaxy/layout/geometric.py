"""Deterministic closed-form layouts: sphere and spiral."""

from __future__ import annotations

import math
from typing import Sequence

from ..graph.models import Connection, Node
from .base import LayoutResult

SPHERE_RADIUS = 20.0
SPIRAL_SPACING = 3.0
SPIRAL_ANGLE_STEP = 0.5
SPIRAL_BASE_RADIUS = 10.0
SPIRAL_RADIUS_STEP = 0.8

_GOLDEN = math.pi * (1 + math.sqrt(5))


def compute_sphere_layout(
    nodes: Sequence[Node],
    connections: Sequence[Connection] = (),
    *,
    radius: float = SPHERE_RADIUS,
) -> LayoutResult:
    """Golden-spiral points on a sphere: even density, no clustering at the poles."""
    n = len(nodes)
    out = []
    for i, node in enumerate(nodes):
        phi = math.acos(1 - 2 * (i + 0.5) / n)
        theta = _GOLDEN * i
        out.append(
            node.with_position(
                radius * math.sin(phi) * math.cos(theta),
                radius * math.sin(phi) * math.sin(theta),
                radius * math.cos(phi),
            )
        )
    return LayoutResult.from_nodes(out)


def compute_spiral_layout(
    nodes: Sequence[Node],
    connections: Sequence[Connection] = (),
    *,
    spacing: float = SPIRAL_SPACING,
) -> LayoutResult:
    n = len(nodes)
    out = []
    for i, node in enumerate(nodes):
        angle = i * SPIRAL_ANGLE_STEP
        r = SPIRAL_BASE_RADIUS + i * SPIRAL_RADIUS_STEP
        out.append(node.with_position(math.cos(angle) * r, i * spacing - n * spacing / 2, math.sin(angle) * r))
    return LayoutResult.from_nodes(out)
