"""Grid-based spaces with integer coordinates.

Provides two grid types:
- GridSpace: any number of agents per cell
- GridSpaceSingle: at most one agent per cell, backed by a numpy occupancy array

Both support periodic (torus) or bounded edges, and three metrics for
neighborhoods: "chebyshev" (Moore, (2r+1)^n - 1 cells), "manhattan"
(von Neumann) and "euclidean" (integer offsets within a circle of radius r).
"""

from __future__ import annotations

import math
import operator
from collections.abc import Iterator, Sequence
from itertools import product
from random import Random
from typing import Any

import numpy as np

from abmkit.errors import CellOccupied, ConfigurationError, InvalidPosition
from abmkit.space.base import Space, dedupe

Coordinate = tuple[int, ...]

METRICS = ("chebyshev", "euclidean", "manhattan")


class GridSpace(Space):
    """A grid where every cell may hold any number of agents.

    Attributes:
        dims (tuple[int, ...]): the extent of the grid in each dimension
        periodic (bool): whether the grid wraps around at its edges
        metric (str): the metric used for neighborhoods

    Notes:
        width and height are accessible via properties, higher dimensions can be retrieved via dims

    """

    def __init__(
        self,
        dims: Sequence[int],
        periodic: bool = False,
        metric: str = "chebyshev",
    ) -> None:
        """Initialise the grid.

        Args:
            dims: the dimensions of the space
            periodic: whether the space wraps
            metric: one of "chebyshev", "euclidean" or "manhattan"
        """
        super().__init__()
        self.dims: Coordinate = tuple(dims)
        self.periodic = periodic
        self.metric = metric
        self._ndims = len(self.dims)
        self._validate_parameters()
        self._cells: dict[Coordinate, dict[int, None]] = {}
        self._offsets: dict[float, list[Coordinate]] = {}

    @property
    def width(self) -> int:
        """Convenience access to the width of the grid."""
        return self.dims[0]

    @property
    def height(self) -> int:
        """Convenience access to the height of the grid."""
        return self.dims[1]

    def _validate_parameters(self) -> None:
        if not self.dims or not all(
            isinstance(dim, int | np.integer) and dim > 0 for dim in self.dims
        ):
            raise ConfigurationError("dims", "must be a sequence of positive integers")
        if not isinstance(self.periodic, bool):
            raise ConfigurationError("periodic", "must be a boolean")
        if self.metric not in METRICS:
            raise ConfigurationError("metric", f"must be one of {METRICS}")
        self.dims = tuple(int(dim) for dim in self.dims)

    def validate(self, pos: Any) -> Coordinate:
        """Return ``pos`` as a tuple of ints, wrapped if the grid is periodic."""
        try:
            coord = tuple(operator.index(c) for c in pos)
        except TypeError:
            raise InvalidPosition(pos, "grid positions are tuples of integers") from None
        if len(coord) != self._ndims:
            raise InvalidPosition(pos, f"expected {self._ndims} coordinates")
        if self.periodic:
            return tuple(c % d for c, d in zip(coord, self.dims))
        if not all(0 <= c < d for c, d in zip(coord, self.dims)):
            raise InvalidPosition(pos, f"outside grid dimensions {self.dims}")
        return coord

    def positions(self) -> Iterator[Coordinate]:
        """Iterate over all positions of the grid."""
        return product(*(range(dim) for dim in self.dims))

    def random_position(self, random: Random) -> Coordinate:
        """Return a uniformly drawn cell."""
        return tuple(random.randrange(dim) for dim in self.dims)

    def offsets(self, radius: float) -> list[Coordinate]:
        """Return the offsets within ``radius`` of the origin, excluding the origin.

        Offsets are computed once per radius and cached.
        """
        try:
            return self._offsets[radius]
        except KeyError:
            pass
        if radius < 0:
            raise ValueError("radius must be non-negative")
        reach = math.floor(radius)
        offsets = []
        for offset in product(range(-reach, reach + 1), repeat=self._ndims):
            if not any(offset):
                continue
            if self.metric == "manhattan":
                within = sum(abs(o) for o in offset) <= radius
            elif self.metric == "euclidean":
                within = sum(o * o for o in offset) <= radius * radius
            else:
                within = True
            if within:
                offsets.append(offset)
        self._offsets[radius] = offsets
        return offsets

    def nearby_positions(
        self, pos: Any, radius: float = 1, include_center: bool = False
    ) -> list[Coordinate]:
        """Return the valid positions within ``radius`` of ``pos``.

        Periodic grids wrap around; positions that wrap onto the same cell
        are reported once.
        """
        pos = self.validate(pos)
        dims = self.dims
        result = [pos] if include_center else []
        for offset in self.offsets(radius):
            coord = tuple(p + o for p, o in zip(pos, offset))
            if self.periodic:
                coord = tuple(c % d for c, d in zip(coord, dims))
            elif not all(0 <= c < d for c, d in zip(coord, dims)):
                continue
            result.append(coord)
        if self.periodic:
            result = dedupe(result)
            if not include_center and pos in result:
                result.remove(pos)
        return result

    def _ids_at(self, pos: Coordinate) -> list[int]:
        return list(self._cells.get(pos, ()))

    def agents_at(self, pos: Any) -> list[int]:
        """Return the identifiers of the agents in cell ``pos``."""
        return self._ids_at(self.validate(pos))

    def neighbors_of_position(self, pos: Any, radius: float = 1) -> list[int]:
        """Return the identifiers of the agents in all cells within ``radius`` of ``pos``."""
        ids = []
        for coord in self.nearby_positions(pos, radius, include_center=True):
            ids.extend(self._ids_at(coord))
        return ids

    def empty_positions(self) -> list[Coordinate]:
        """Return all cells without agents."""
        return [pos for pos in self.positions() if not self._ids_at(pos)]

    def _insert(self, unique_id: int, pos: Coordinate) -> None:
        self._cells.setdefault(pos, {})[unique_id] = None

    def _delete(self, unique_id: int, pos: Coordinate) -> None:
        cell = self._cells[pos]
        del cell[unique_id]
        if not cell:
            del self._cells[pos]

    def _check_property_shape(self, name: str, array: np.ndarray) -> None:
        if tuple(array.shape) != self.dims:
            raise ConfigurationError(
                name,
                f"array shape {array.shape} does not match grid dimensions {self.dims}",
            )

    def create_property(
        self, name: str, default_value: Any = 0.0, dtype: Any = float
    ) -> np.ndarray:
        """Create a property array filled with ``default_value`` and attach it."""
        return self.add_property(name, np.full(self.dims, default_value, dtype=dtype))

    def __repr__(self) -> str:  # noqa: D105
        return (
            f"{type(self).__name__}(dims={self.dims}, periodic={self.periodic}, "
            f"metric={self.metric!r})"
        )


class GridSpaceSingle(GridSpace):
    """A grid where every cell holds at most one agent.

    Occupancy is stored in a numpy array of agent identifiers, 0 meaning empty
    (identifiers start at 1).
    """

    def __init__(
        self,
        dims: Sequence[int],
        periodic: bool = False,
        metric: str = "chebyshev",
    ) -> None:
        """Initialise the single occupancy grid.

        Args:
            dims: the dimensions of the space
            periodic: whether the space wraps
            metric: one of "chebyshev", "euclidean" or "manhattan"
        """
        super().__init__(dims, periodic=periodic, metric=metric)
        self._occupancy = np.zeros(self.dims, dtype=np.int64)

    @property
    def occupancy(self) -> np.ndarray:
        """Read-only view of the occupancy array."""
        view = self._occupancy.view()
        view.flags.writeable = False
        return view

    def _ids_at(self, pos: Coordinate) -> list[int]:
        occupant = int(self._occupancy[pos])
        return [occupant] if occupant else []

    def id_at(self, pos: Any) -> int | None:
        """Return the identifier of the agent at ``pos``, or None if the cell is empty."""
        occupant = int(self._occupancy[self.validate(pos)])
        return occupant or None

    def _check_can_place(self, pos: Coordinate) -> None:
        occupant = int(self._occupancy[pos])
        if occupant:
            raise CellOccupied(pos, occupant)

    def _insert(self, unique_id: int, pos: Coordinate) -> None:
        self._occupancy[pos] = unique_id

    def _delete(self, unique_id: int, pos: Coordinate) -> None:
        self._occupancy[pos] = 0

    def empty_positions(self) -> list[Coordinate]:
        """Return all cells without agents."""
        return [tuple(int(c) for c in coord) for coord in np.argwhere(self._occupancy == 0)]

    def random_empty(self, random: Random, max_tries: int = 50) -> Coordinate | None:
        """Return a random empty cell, or None when the grid is full.

        Random probing is tried first, which is fast on sparsely filled grids.
        After ``max_tries`` misses the empty cells are enumerated instead.
        """
        for _ in range(max_tries):
            pos = self.random_position(random)
            if not self._occupancy[pos]:
                return pos

        empties = np.argwhere(self._occupancy == 0)
        if len(empties) == 0:
            return None
        return tuple(int(c) for c in empties[random.randrange(len(empties))])

    def random_empty_nearby(
        self, pos: Any, radius: float, random: Random, max_tries: int = 50
    ) -> Coordinate | None:
        """Return a random empty cell within ``radius`` of ``pos``.

        At most ``max_tries`` distinct candidate cells are inspected; None is
        returned if all of them are occupied.
        """
        candidates = self.nearby_positions(pos, radius)
        for candidate in random.sample(candidates, min(max_tries, len(candidates))):
            if not self._occupancy[candidate]:
                return candidate
        return None
