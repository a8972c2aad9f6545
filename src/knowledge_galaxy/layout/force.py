"""Force-directed layout, a numpy port of the d3-force velocity Verlet scheme.

Each tick applies link springs, many-body charge, centering and collision,
then integrates velocities with a constant decay. Alpha cools geometrically
as in d3, so the default run is a fixed number of steps with no
convergence check. `tolerance` opts into stopping early once every velocity
component falls below it.

Pairwise forces are evaluated directly, O(n^2) in time and memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

import numpy as np

from ..graph.models import Connection, Node
from .base import LayoutResult

logger = logging.getLogger(__name__)

INIT_SPREAD = 10.0
ALPHA_MIN = 0.001
# d3 cools alpha from 1 to ALPHA_MIN in 300 ticks
ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)
DISTANCE_MIN2 = 1.0


@dataclass(frozen=True, slots=True)
class ForceOptions:
    attraction: float = 0.05
    repulsion: float = 300.0
    iterations: int = 300
    center_strength: float = 0.05
    collision_radius: float = 2.0
    link_distance: float = 10.0
    velocity_decay: float = 0.4
    tolerance: float | None = None
    seed: int | None = None


def _jiggle(a: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    zero = a == 0.0
    if zero.any():
        a = a.copy()
        a[zero] = (rng.random(int(zero.sum())) - 0.5) * 1e-6
    return a


def initial_positions(nodes: Sequence[Node], rng: np.random.Generator) -> np.ndarray:
    """Existing coordinates; a zero coordinate counts as unset and is randomized."""
    pos = np.array([n.position for n in nodes], dtype=float).reshape(len(nodes), 3)
    unset = pos == 0.0
    pos[unset] = rng.uniform(-INIT_SPREAD, INIT_SPREAD, size=int(unset.sum()))
    return pos


class _Links:
    def __init__(self, nodes: Sequence[Node], connections: Sequence[Connection], attraction: float):
        index = {n.id: i for i, n in enumerate(nodes)}
        src, tgt, strength = [], [], []
        for c in connections:
            s, t = index.get(c.source), index.get(c.target)
            if s is None or t is None or s == t:
                continue
            src.append(s)
            tgt.append(t)
            strength.append(attraction * c.strength)
        self.src = np.array(src, dtype=int)
        self.tgt = np.array(tgt, dtype=int)
        self.strength = np.array(strength, dtype=float)

        count = np.bincount(self.src, minlength=len(nodes)) + np.bincount(self.tgt, minlength=len(nodes))
        if len(self.src):
            self.bias = count[self.src] / (count[self.src] + count[self.tgt])
        else:
            self.bias = np.zeros(0)

    def __len__(self) -> int:
        return len(self.src)

    def apply(self, pos, vel, alpha, distance, rng) -> None:
        if not len(self):
            return
        d = pos[self.tgt] + vel[self.tgt] - pos[self.src] - vel[self.src]
        d = _jiggle(d, rng)
        length = np.linalg.norm(d, axis=1)
        k = (length - distance) / length * alpha * self.strength
        d *= k[:, None]
        np.add.at(vel, self.tgt, -d * self.bias[:, None])
        np.add.at(vel, self.src, d * (1 - self.bias)[:, None])


def _apply_charge(pos: np.ndarray, vel: np.ndarray, strength: float, alpha: float) -> None:
    # delta[i, j] points from i to j
    delta = pos[None, :, :] - pos[:, None, :]
    d2 = np.einsum("ijk,ijk->ij", delta, delta)
    np.fill_diagonal(d2, np.inf)
    d2 = np.maximum(d2, DISTANCE_MIN2)
    vel += np.einsum("ijk,ij->ik", delta, strength * alpha / d2)


def _apply_center(pos: np.ndarray, strength: float) -> None:
    pos -= pos.mean(axis=0) * strength


def _apply_collision(pos: np.ndarray, vel: np.ndarray, radii: np.ndarray, rng: np.random.Generator) -> None:
    n = len(pos)
    if n < 2:
        return
    i, j = np.triu_indices(n, k=1)
    p = pos + vel
    d = p[i] - p[j]
    dist = np.linalg.norm(d, axis=1)
    r = radii[i] + radii[j]
    hit = dist < r
    if not hit.any():
        return
    i, j, r = i[hit], j[hit], r[hit]
    # coincident nodes get a random nudge so they can separate
    d = _jiggle(d[hit], rng)
    dist = np.linalg.norm(d, axis=1)
    dist = np.maximum(dist, 1e-9)
    x = d * ((r - dist) / dist)[:, None]
    ri2, rj2 = radii[i] ** 2, radii[j] ** 2
    w = rj2 / (ri2 + rj2)
    np.add.at(vel, i, x * w[:, None])
    np.add.at(vel, j, -x * (1 - w)[:, None])


def compute_force_layout(
    nodes: Sequence[Node],
    connections: Sequence[Connection] = (),
    *,
    options: ForceOptions | None = None,
    **overrides,
) -> LayoutResult:
    """Run the simulation and return nodes at their final positions.

    Keyword overrides are ForceOptions fields, e.g. ``seed=7, iterations=50``.
    """
    opts = options or ForceOptions()
    if overrides:
        opts = replace(opts, **overrides)
    if not nodes:
        return LayoutResult.empty()

    rng = np.random.default_rng(opts.seed)
    pos = initial_positions(nodes, rng)
    vel = np.zeros_like(pos)
    radii = np.array([n.visual.size * opts.collision_radius for n in nodes], dtype=float)
    links = _Links(nodes, connections, opts.attraction)

    alpha = 1.0
    ticks = 0
    for ticks in range(1, opts.iterations + 1):
        alpha += -alpha * ALPHA_DECAY
        links.apply(pos, vel, alpha, opts.link_distance, rng)
        _apply_charge(pos, vel, -opts.repulsion, alpha)
        _apply_center(pos, opts.center_strength)
        _apply_collision(pos, vel, radii, rng)
        vel *= 1 - opts.velocity_decay
        pos += vel
        if opts.tolerance is not None and np.abs(vel).max() < opts.tolerance:
            break

    logger.debug("Force layout: %d nodes, %d links, %d ticks", len(nodes), len(links), ticks)
    return LayoutResult.from_nodes(n.with_position(*pos[i]) for i, n in enumerate(nodes))
