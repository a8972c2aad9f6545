from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Sequence

from ..graph.models import Connection, Node, NodeKind, NodeTier, node_map
from .base import LayoutResult

logger = logging.getLogger(__name__)

ANGLE_JITTER = 0.5  # total width, so +-0.25 rad
HEIGHT_STEP = 2.0
HEIGHT_JITTER = 1.0


@dataclass(frozen=True, slots=True)
class Orbit:
    id: int
    radius: float
    capacity: int | None
    tier: NodeTier


ORBITS: tuple[Orbit, ...] = (
    Orbit(1, 17.5, 12, NodeTier.CORE_SKILL),
    Orbit(2, 30.0, 24, NodeTier.SKILL),
    Orbit(3, 47.5, None, NodeTier.ITEM),
)


def classify_orbit(node: Node) -> int:
    if node.kind is NodeKind.CATEGORY:
        return 1
    if node.kind in (NodeKind.SKILL, NodeKind.MCP):
        return 2
    return 3


@dataclass(slots=True)
class OrbitPlacement:
    orbit: Orbit
    nodes: list[Node]
    dropped: int = 0


@dataclass(slots=True)
class OrbitalLayoutResult(LayoutResult):
    orbits: list[OrbitPlacement] = field(default_factory=list)

    @property
    def dropped(self) -> int:
        return sum(o.dropped for o in self.orbits)


def compute_orbital_layout(
    nodes: Sequence[Node],
    connections: Sequence[Connection] = (),
    *,
    rng: random.Random | None = None,
) -> OrbitalLayoutResult:
    """Place nodes on three concentric rings by kind.

    An orbit over capacity keeps its first `capacity` nodes in input order;
    the rest are left out of the result and counted in `dropped`.
    Connections do not affect placement.
    """
    rng = rng or random.Random()
    buckets: dict[int, list[Node]] = {o.id: [] for o in ORBITS}
    for n in nodes:
        buckets[classify_orbit(n)].append(n)

    placed: list[Node] = []
    orbits: list[OrbitPlacement] = []
    for orbit in ORBITS:
        members = buckets[orbit.id]
        kept = members
        if orbit.capacity is not None and len(members) > orbit.capacity:
            logger.warning(
                "Orbit %d over capacity: %d > %d, dropping %d nodes",
                orbit.id,
                len(members),
                orbit.capacity,
                len(members) - orbit.capacity,
            )
            kept = members[: orbit.capacity]

        step = 2 * math.pi / len(kept) if kept else 0.0
        ring: list[Node] = []
        for i, n in enumerate(kept):
            angle = i * step + (rng.random() - 0.5) * ANGLE_JITTER
            y = (orbit.id - 2) * HEIGHT_STEP + (rng.random() - 0.5) * HEIGHT_JITTER
            ring.append(
                n.with_position(
                    orbit.radius * math.cos(angle),
                    y,
                    orbit.radius * math.sin(angle),
                    orbit=orbit.id,
                    tier=orbit.tier,
                )
            )
        placed.extend(ring)
        orbits.append(OrbitPlacement(orbit=orbit, nodes=ring, dropped=len(members) - len(kept)))
        logger.debug("Orbit %d: %d nodes (radius %.1f)", orbit.id, len(ring), orbit.radius)

    return OrbitalLayoutResult(nodes=placed, node_map=node_map(placed), orbits=orbits)
