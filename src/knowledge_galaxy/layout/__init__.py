from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Iterable

from ..graph.models import Connection, Node
from .base import LayoutResult
from .force import ForceOptions, compute_force_layout
from .geometric import compute_sphere_layout, compute_spiral_layout
from .hierarchical import assign_levels, compute_hierarchical_layout
from .orbital import ORBITS, OrbitalLayoutResult, Orbit, OrbitPlacement, classify_orbit, compute_orbital_layout

logger = logging.getLogger(__name__)


class LayoutAlgorithm(str, Enum):
    ORBITAL = "orbital"
    FORCE = "force"
    SPHERE = "sphere"
    SPIRAL = "spiral"
    HIERARCHICAL = "hierarchical"


_ALGORITHMS: dict[LayoutAlgorithm, Callable[..., LayoutResult]] = {
    LayoutAlgorithm.ORBITAL: compute_orbital_layout,
    LayoutAlgorithm.FORCE: compute_force_layout,
    LayoutAlgorithm.SPHERE: compute_sphere_layout,
    LayoutAlgorithm.SPIRAL: compute_spiral_layout,
    LayoutAlgorithm.HIERARCHICAL: compute_hierarchical_layout,
}


def compute_layout(
    algorithm: LayoutAlgorithm | str,
    nodes: Iterable[Node],
    connections: Iterable[Connection] = (),
    **options: Any,
) -> LayoutResult:
    """Position nodes with the selected algorithm.

    Layouts are synchronous and never mutate their input. Zero nodes gives
    an empty result. Raises ValueError for an unknown algorithm name.
    """
    algorithm = LayoutAlgorithm(algorithm)
    nodes = list(nodes)
    if not nodes:
        logger.debug("Layout %s: no nodes", algorithm.value)
        return LayoutResult.empty()
    return _ALGORITHMS[algorithm](nodes, list(connections), **options)


__all__ = [
    "ORBITS",
    "ForceOptions",
    "LayoutAlgorithm",
    "LayoutResult",
    "Orbit",
    "OrbitPlacement",
    "OrbitalLayoutResult",
    "assign_levels",
    "classify_orbit",
    "compute_force_layout",
    "compute_hierarchical_layout",
    "compute_layout",
    "compute_orbital_layout",
    "compute_sphere_layout",
    "compute_spiral_layout",
]
