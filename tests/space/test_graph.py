"""Tests for GraphSpace."""

import random

import networkx as nx
import numpy as np
import pytest

from abmkit.agent import Agent
from abmkit.errors import ConfigurationError, InvalidPosition
from abmkit.space import GraphSpace


def place(space, unique_id, pos):
    agent = Agent(unique_id)
    space.add(agent, pos)
    return agent


class TestGraphSpace:
    """Tests for the graph space."""

    def test_initialization(self):
        """Test construction from a networkx graph."""
        graph = nx.path_graph(4)
        space = GraphSpace(graph)

        assert space.graph is graph
        assert space.n_nodes == 4
        assert space.nodes == [0, 1, 2, 3]

        with pytest.raises(ConfigurationError):
            GraphSpace(nx.Graph())
        with pytest.raises(ConfigurationError):
            GraphSpace([(0, 1)])

    def test_validate(self):
        """Test that only nodes are valid positions."""
        space = GraphSpace(nx.Graph([("a", "b")]))
        assert space.validate("a") == "a"
        with pytest.raises(InvalidPosition):
            space.validate("c")
        with pytest.raises(InvalidPosition):
            space.validate(["a"])

        rng = random.Random(1)
        assert space.random_position(rng) in ("a", "b")

    def test_occupants(self):
        """Test that nodes hold any number of agents."""
        space = GraphSpace(nx.path_graph(3))
        a = place(space, 1, 0)
        place(space, 2, 0)

        assert space.agents_at(0) == [1, 2]
        space.move(a, 2)
        assert space.agents_at(0) == [2]
        assert space.agents_at(2) == [1]

    def test_nearby_positions(self):
        """Test hop based neighborhoods."""
        space = GraphSpace(nx.path_graph(5))

        assert sorted(space.nearby_positions(2)) == [1, 3]
        assert sorted(space.nearby_positions(2, 2)) == [0, 1, 3, 4]
        assert space.nearby_positions(0, 0) == []
        with pytest.raises(ValueError):
            space.nearby_positions(0, -1)

    def test_directed_neighbor_types(self):
        """Test out, in and all neighborhoods on directed graphs."""
        space = GraphSpace(nx.DiGraph([(0, 1), (2, 0)]))

        assert space.nearby_positions(0) == [1]
        assert space.nearby_positions(0, neighbor_type="out") == [1]
        assert space.nearby_positions(0, neighbor_type="in") == [2]
        assert sorted(space.nearby_positions(0, neighbor_type="all")) == [1, 2]
        with pytest.raises(ValueError):
            space.nearby_positions(0, neighbor_type="sideways")

    def test_neighbors(self):
        """Test that neighbor queries include agents on the same node."""
        space = GraphSpace(nx.path_graph(4))
        agent = place(space, 1, 1)
        place(space, 2, 1)
        place(space, 3, 2)
        place(space, 4, 3)

        assert sorted(space.neighbors(agent)) == [2, 3]
        assert sorted(space.neighbors(agent, 2)) == [2, 3, 4]
        assert sorted(space.neighbors_of_position(3, 1)) == [3, 4]

    def test_property_arrays(self):
        """Test per node and per edge property arrays."""
        space = GraphSpace(nx.complete_graph(["x", "y", "z"]))
        space.add_property("population", [10, 20, 30])
        rates = np.eye(3)
        space.add_property("rates", rates)

        assert space.property_value("population", "y") == 20
        np.testing.assert_array_equal(space.property_value("rates", "z"), [0, 0, 1])

        with pytest.raises(ConfigurationError):
            space.add_property("bad", np.zeros(4))
        with pytest.raises(ConfigurationError):
            space.add_property("bad", np.zeros((3, 2)))
