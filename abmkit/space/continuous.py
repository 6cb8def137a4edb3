"""Continuous space with a bucketed index for neighbor queries.

Positions are tuples of floats in ``[0, extent)``. The extent is tiled by a
regular grid of buckets; a neighbor query gathers candidates from the buckets
overlapping the search ball and filters them by exact Euclidean distance, so
results never depend on the bucket spacing.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from itertools import product
from random import Random
from typing import Any

import numpy as np

from abmkit.agent import Agent
from abmkit.errors import ConfigurationError, InvalidPosition
from abmkit.space.base import Space, dedupe

Position = tuple[float, ...]

PAIR_METHODS = ("nearest", "all", "types")


class ContinuousSpace(Space):
    """A bounded or periodic continuous space.

    Attributes:
        extent (tuple[float, ...]): the size of the space in each dimension
        spacing (float): the requested bucket size
        periodic (bool): whether the space wraps around at its edges

    """

    def __init__(
        self,
        extent: Sequence[float],
        spacing: float | None = None,
        periodic: bool = False,
    ) -> None:
        """Create a continuous space.

        Args:
            extent: the size of the space in each dimension
            spacing: bucket size of the index; defaults to a twentieth of the smallest extent
            periodic: whether the space wraps around at its edges
        """
        super().__init__()
        try:
            self.extent: Position = tuple(float(e) for e in extent)
        except (TypeError, ValueError):
            raise ConfigurationError("extent", "must be a sequence of numbers") from None
        if not self.extent or not all(e > 0 and math.isfinite(e) for e in self.extent):
            raise ConfigurationError("extent", "must contain positive finite numbers")
        if spacing is None:
            spacing = min(self.extent) / 20
        if not spacing > 0:
            raise ConfigurationError("spacing", "must be positive")
        if not isinstance(periodic, bool):
            raise ConfigurationError("periodic", "must be a boolean")

        self.spacing = float(spacing)
        self.periodic = periodic
        self._ndims = len(self.extent)
        self._extent = np.array(self.extent)
        # the buckets tile the extent exactly, so their width may be a bit below spacing
        self._n_buckets = tuple(max(1, math.ceil(e / self.spacing)) for e in self.extent)
        self._bucket_width = tuple(e / n for e, n in zip(self.extent, self._n_buckets))
        self._buckets: dict[tuple[int, ...], dict[int, None]] = {}
        self._positions: dict[int, Position] = {}

    def validate(self, pos: Any) -> Position:
        """Return ``pos`` as a tuple of floats, wrapped if the space is periodic."""
        try:
            coord = tuple(float(c) for c in pos)
        except (TypeError, ValueError):
            raise InvalidPosition(pos, "positions are sequences of numbers") from None
        if len(coord) != self._ndims:
            raise InvalidPosition(pos, f"expected {self._ndims} coordinates")
        if not all(math.isfinite(c) for c in coord):
            raise InvalidPosition(pos, "coordinates must be finite")
        if self.periodic:
            return tuple(c % e for c, e in zip(coord, self.extent))
        if not all(0 <= c < e for c, e in zip(coord, self.extent)):
            raise InvalidPosition(pos, f"outside extent {self.extent}")
        return coord

    def random_position(self, random: Random) -> Position:
        """Return a uniformly drawn position."""
        return tuple(random.random() * e for e in self.extent)

    def bucket_of(self, pos: Position) -> tuple[int, ...]:
        """Return the index of the bucket containing ``pos``."""
        return tuple(
            min(int(c // w), n - 1)
            for c, w, n in zip(pos, self._bucket_width, self._n_buckets)
        )

    def _insert(self, unique_id: int, pos: Position) -> None:
        self._buckets.setdefault(self.bucket_of(pos), {})[unique_id] = None
        self._positions[unique_id] = pos

    def _delete(self, unique_id: int, pos: Position) -> None:
        bucket_index = self.bucket_of(pos)
        bucket = self._buckets[bucket_index]
        del bucket[unique_id]
        if not bucket:
            del self._buckets[bucket_index]
        del self._positions[unique_id]

    def displacement(self, pos_a: Any, pos_b: Any) -> np.ndarray:
        """Return the shortest vector pointing from ``pos_a`` to ``pos_b``."""
        delta = np.asarray(pos_b, dtype=float) - np.asarray(pos_a, dtype=float)
        if self.periodic:
            delta = (delta + self._extent / 2) % self._extent - self._extent / 2
        return delta

    def distance(self, pos_a: Any, pos_b: Any) -> float:
        """Return the Euclidean distance between two positions."""
        if not self.periodic:
            return math.dist(pos_a, pos_b)
        total = 0.0
        for a, b, e in zip(pos_a, pos_b, self.extent):
            d = abs(a - b)
            d = min(d, e - d)
            total += d * d
        return math.sqrt(total)

    def direction(self, pos_a: Any, pos_b: Any) -> np.ndarray:
        """Return the unit vector pointing from ``pos_a`` to ``pos_b``.

        A zero vector is returned for coinciding positions.
        """
        delta = self.displacement(pos_a, pos_b)
        norm = float(np.linalg.norm(delta))
        if norm == 0:
            return delta
        return delta / norm

    def _candidate_buckets(self, pos: Position, radius: float) -> list[tuple[int, ...]]:
        center = self.bucket_of(pos)
        ranges = []
        for c, w, n in zip(center, self._bucket_width, self._n_buckets):
            reach = math.floor(radius / w) + 1
            if self.periodic:
                if 2 * reach + 1 >= n:
                    ranges.append(range(n))
                else:
                    ranges.append(dedupe((c + k) % n for k in range(-reach, reach + 1)))
            else:
                ranges.append(range(max(0, c - reach), min(n, c + reach + 1)))
        return list(product(*ranges))

    def neighbors_of_position(self, pos: Any, radius: float) -> list[int]:
        """Return the identifiers of all agents within Euclidean distance ``radius`` of ``pos``."""
        if radius < 0:
            raise ValueError("radius must be non-negative")
        pos = self.validate(pos)
        positions = self._positions
        ids = []
        for bucket_index in self._candidate_buckets(pos, radius):
            for unique_id in self._buckets.get(bucket_index, ()):
                if self.distance(pos, positions[unique_id]) <= radius:
                    ids.append(unique_id)
        return ids

    def agents_at(self, pos: Any) -> list[int]:
        """Return the identifiers of the agents exactly at ``pos``."""
        pos = self.validate(pos)
        bucket = self._buckets.get(self.bucket_of(pos), ())
        return [unique_id for unique_id in bucket if self._positions[unique_id] == pos]

    def position_of(self, unique_id: int) -> Position:
        """Return the indexed position of an agent identifier."""
        return self._positions[unique_id]

    def nearest_neighbor(self, agent: Agent, radius: float) -> int | None:
        """Return the identifier of the closest other agent within ``radius``, or None."""
        candidates = self.neighbors(agent, radius)
        if not candidates:
            return None
        pos = agent.pos
        return min(
            candidates,
            key=lambda other: (self.distance(pos, self._positions[other]), other),
        )

    def interacting_pairs(
        self, radius: float, method: str = "nearest", kinds: dict[int, Any] | None = None
    ) -> list[tuple[int, int]]:
        """Return unordered pairs of agents that are within ``radius`` of each other.

        Args:
            radius: the interaction radius
            method: "all" reports every pair within ``radius`` once; "nearest"
                pairs every agent with its nearest neighbor at most once,
                closest pairs first; "types" reports every pair of agents of different kinds
            kinds: mapping from identifier to kind, required for "types"

        Returns:
            pairs ``(i, j)`` with ``i < j``
        """
        if method not in PAIR_METHODS:
            raise ValueError(f"Unknown method {method!r}, use one of {PAIR_METHODS}")
        if method == "types" and kinds is None:
            raise ValueError("method 'types' requires the kinds of the agents")
        if method == "nearest":
            return self._nearest_pairs(radius)

        candidates = []
        positions = self._positions
        for unique_id in sorted(positions):
            pos = positions[unique_id]
            for other in self.neighbors_of_position(pos, radius):
                if other <= unique_id:
                    continue
                if method == "types" and kinds[unique_id] == kinds[other]:
                    continue
                candidates.append((unique_id, other))
        return sorted(candidates)

    def _nearest_pairs(self, radius: float) -> list[tuple[int, int]]:
        # every agent proposes its nearest neighbor; closest proposals win
        positions = self._positions
        candidates = set()
        for unique_id in sorted(positions):
            pos = positions[unique_id]
            best = None
            for other in self.neighbors_of_position(pos, radius):
                if other == unique_id:
                    continue
                key = (self.distance(pos, positions[other]), other)
                if best is None or key < best:
                    best = key
            if best is not None:
                distance, other = best
                candidates.add((distance, min(unique_id, other), max(unique_id, other)))

        paired: set[int] = set()
        pairs = []
        for _, i, j in sorted(candidates):
            if i in paired or j in paired:
                continue
            paired.update((i, j))
            pairs.append((i, j))
        return pairs

    def walk_target(self, agent: Agent, dt: float = 1.0) -> Position:
        """Return where ``agent`` ends up when moving along its velocity for ``dt``.

        Periodic spaces wrap around; bounded spaces stop the agent at the edge.
        """
        if agent.vel is None:
            raise ValueError(f"Agent {agent.unique_id} has no velocity")
        target = np.asarray(agent.pos) + np.asarray(agent.vel, dtype=float) * dt
        if self.periodic:
            target = target % self._extent
        else:
            target = np.clip(target, 0.0, np.nextafter(self._extent, 0.0))
        return tuple(float(c) for c in target)

    def walk(self, agent: Agent, dt: float = 1.0) -> Position:
        """Move ``agent`` along its velocity for ``dt`` and return the new position."""
        return self.move(agent, self.walk_target(agent, dt))

    def elastic_collision(
        self, agent_a: Agent, agent_b: Agent, mass_attr: str | None = None
    ) -> bool:
        """Resolve an elastic collision between two agents by updating their velocities.

        Agents only collide if they move towards each other. An agent whose
        mass is infinite acts as a fixed obstacle and must have zero velocity.

        Args:
            agent_a: first agent
            agent_b: second agent
            mass_attr: name of the payload field holding the mass; equal masses if None

        Returns:
            whether the velocities were changed
        """
        v1 = np.asarray(agent_a.vel, dtype=float)
        v2 = np.asarray(agent_b.vel, dtype=float)
        # r1 points from b to a
        r1 = self.displacement(agent_b.pos, agent_a.pos)
        r2 = -r1
        if mass_attr is None:
            m1 = m2 = 1.0
        else:
            m1, m2 = getattr(agent_a, mass_attr), getattr(agent_b, mass_attr)

        if math.isinf(m1) and math.isinf(m2):
            return False
        if math.isinf(m1):
            if np.dot(r1, v2) <= 0:
                return False
            v1 = np.zeros_like(v1)
            f1, f2 = 0.0, 2.0
        elif math.isinf(m2):
            if np.dot(r2, v1) <= 0:
                return False
            v2 = np.zeros_like(v2)
            f1, f2 = 2.0, 0.0
        else:
            # the disks only collide when they approach each other
            if np.dot(r2, v1 - v2) <= 0:
                return False
            f1 = 2 * m2 / (m1 + m2)
            f2 = 2 * m1 / (m1 + m2)

        n = float(np.dot(r1, r1))
        if n == 0:
            return False
        new_v1 = v1 - f1 * (np.dot(v1 - v2, r1) / n) * r1
        new_v2 = v2 - f2 * (np.dot(v2 - v1, r2) / n) * r2
        agent_a.vel = tuple(float(v) for v in new_v1)
        agent_b.vel = tuple(float(v) for v in new_v2)
        return True

    def _check_property_shape(self, name: str, array: np.ndarray) -> None:
        # property arrays are rasters laid over the extent
        if array.ndim != self._ndims:
            raise ConfigurationError(
                name, f"raster must have {self._ndims} dimensions, got {array.ndim}"
            )

    def property_value(self, name: str, pos: Any) -> Any:
        """Return the value of raster ``name`` in the raster cell containing ``pos``."""
        array = self.properties[name]
        pos = self.validate(pos)
        index = tuple(
            min(int(c / e * s), s - 1) for c, e, s in zip(pos, self.extent, array.shape)
        )
        return array[index]

    def __repr__(self) -> str:  # noqa: D105
        return (
            f"ContinuousSpace(extent={self.extent}, spacing={self.spacing}, "
            f"periodic={self.periodic})"
        )
