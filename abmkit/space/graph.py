"""Graph space using arbitrary connection patterns.

Positions are the nodes of a fixed NetworkX graph, directed or undirected.
Any number of agents may share a node, and neighborhoods follow the edges of
the graph rather than any physical distance. Useful for modeling systems like
metapopulations of cities, social networks or transportation systems.
"""

from __future__ import annotations

from collections.abc import Hashable
from random import Random
from typing import Any

import networkx as nx
import numpy as np

from abmkit.errors import ConfigurationError, InvalidPosition
from abmkit.space.base import Space

NEIGHBOR_TYPES = ("default", "out", "in", "all")


class GraphSpace(Space):
    """A space whose positions are the nodes of a graph.

    Attributes:
        graph: the NetworkX graph, read-only after construction

    """

    def __init__(self, graph: nx.Graph) -> None:
        """Create a graph space.

        Args:
            graph: a NetworkX Graph or DiGraph instance with at least one node
        """
        super().__init__()
        if not isinstance(graph, nx.Graph):
            raise ConfigurationError("graph", "must be a networkx graph")
        if graph.number_of_nodes() == 0:
            raise ConfigurationError("graph", "must have at least one node")
        self.graph = graph
        self._nodes: list[Hashable] = list(graph.nodes)
        self._node_index: dict[Hashable, int] = {
            node: i for i, node in enumerate(self._nodes)
        }
        self._occupants: dict[Hashable, dict[int, None]] = {
            node: {} for node in self._nodes
        }

    @property
    def n_nodes(self) -> int:
        """The number of nodes of the graph."""
        return len(self._nodes)

    @property
    def nodes(self) -> list[Hashable]:
        """The nodes of the graph, in graph order."""
        return list(self._nodes)

    def validate(self, pos: Any) -> Hashable:
        """Return ``pos`` if it is a node of the graph."""
        try:
            if pos in self._node_index:
                return pos
        except TypeError:
            pass
        raise InvalidPosition(pos, "not a node of the graph")

    def random_position(self, random: Random) -> Hashable:
        """Return a uniformly drawn node."""
        return random.choice(self._nodes)

    def _view(self, neighbor_type: str) -> nx.Graph:
        if neighbor_type not in NEIGHBOR_TYPES:
            raise ValueError(
                f"Unknown neighbor_type {neighbor_type!r}, use one of {NEIGHBOR_TYPES}"
            )
        if not self.graph.is_directed() or neighbor_type in ("default", "out"):
            return self.graph
        if neighbor_type == "in":
            return self.graph.reverse(copy=False)
        return self.graph.to_undirected(as_view=True)

    def nearby_positions(
        self, pos: Any, radius: int = 1, neighbor_type: str = "default"
    ) -> list[Hashable]:
        """Return the nodes reachable from ``pos`` in at most ``radius`` hops.

        Args:
            pos: the starting node, not included in the result
            radius: the maximum number of hops
            neighbor_type: for directed graphs, follow outgoing edges
                ("default" or "out"), incoming edges ("in") or both ("all")
        """
        pos = self.validate(pos)
        if radius < 0:
            raise ValueError("radius must be non-negative")
        lengths = nx.single_source_shortest_path_length(
            self._view(neighbor_type), pos, cutoff=radius
        )
        return [node for node in lengths if node != pos]

    def agents_at(self, pos: Any) -> list[int]:
        """Return the identifiers of the agents on node ``pos``."""
        return list(self._occupants[self.validate(pos)])

    def neighbors_of_position(
        self, pos: Any, radius: int = 1, neighbor_type: str = "default"
    ) -> list[int]:
        """Return the identifiers of the agents on ``pos`` and on nodes within ``radius`` hops."""
        ids = self.agents_at(pos)
        for node in self.nearby_positions(pos, radius, neighbor_type):
            ids.extend(self._occupants[node])
        return ids

    def _insert(self, unique_id: int, pos: Hashable) -> None:
        self._occupants[pos][unique_id] = None

    def _delete(self, unique_id: int, pos: Hashable) -> None:
        del self._occupants[pos][unique_id]

    def _check_property_shape(self, name: str, array: np.ndarray) -> None:
        n = self.n_nodes
        if array.ndim == 1 and array.shape[0] == n:
            return
        if array.ndim == 2 and array.shape == (n, n):
            return
        raise ConfigurationError(
            name,
            f"per-node arrays must have shape ({n},) or ({n}, {n}), got {array.shape}",
        )

    def _property_index(self, pos: Hashable) -> int:
        return self._node_index[pos]

    def __repr__(self) -> str:  # noqa: D105
        kind = "directed" if self.graph.is_directed() else "undirected"
        return f"GraphSpace({kind}, n_nodes={self.n_nodes})"
