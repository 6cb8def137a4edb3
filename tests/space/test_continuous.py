"""Tests for ContinuousSpace."""

import math
import random

import numpy as np
import pytest

from abmkit.agent import Agent
from abmkit.errors import ConfigurationError, InvalidPosition
from abmkit.space import ContinuousSpace


def place(space, unique_id, pos, **fields):
    agent = Agent(unique_id, **fields)
    space.add(agent, pos)
    return agent


def brute_force(space, positions, pos, radius):
    return sorted(
        unique_id
        for unique_id, other in positions.items()
        if space.distance(pos, other) <= radius
    )


class TestContinuousSpace:
    """Tests for the continuous space."""

    def test_parameters(self):
        """Test validation of the constructor arguments."""
        with pytest.raises(ConfigurationError):
            ContinuousSpace((0, 1))
        with pytest.raises(ConfigurationError):
            ContinuousSpace("ab")
        with pytest.raises(ConfigurationError):
            ContinuousSpace((1, 1), spacing=0)

        space = ContinuousSpace((10, 5))
        assert space.spacing == 0.25

    def test_validate(self):
        """Test bounds and wrapping."""
        space = ContinuousSpace((10, 10))
        assert space.validate([1, 2]) == (1.0, 2.0)
        with pytest.raises(InvalidPosition):
            space.validate((10, 0))
        with pytest.raises(InvalidPosition):
            space.validate((math.nan, 0))
        with pytest.raises(InvalidPosition):
            space.validate((1,))

        torus = ContinuousSpace((10, 10), periodic=True)
        assert torus.validate((12.5, -1)) == (2.5, 9.0)

    def test_distance(self):
        """Test euclidean and minimum image distances."""
        space = ContinuousSpace((10, 10))
        assert space.distance((1, 1), (4, 5)) == pytest.approx(5)

        torus = ContinuousSpace((10, 10), periodic=True)
        assert torus.distance((1, 1), (9, 9)) == pytest.approx(math.sqrt(8))
        np.testing.assert_allclose(torus.displacement((1, 1), (9, 9)), [-2, -2])
        np.testing.assert_allclose(torus.direction((1, 1), (9, 1)), [-1, 0])

    def test_add_move_remove(self):
        """Test that buckets follow the agents."""
        space = ContinuousSpace((10, 10), spacing=1)
        agent = place(space, 1, (0.5, 0.5))
        assert space.position_of(1) == (0.5, 0.5)
        assert space.agents_at((0.5, 0.5)) == [1]

        space.move(agent, (9.5, 9.5))
        assert agent.pos == (9.5, 9.5)
        assert space.neighbors_of_position((0.5, 0.5), 1) == []
        assert space.neighbors_of_position((9, 9), 1) == [1]

        space.remove(agent)
        assert space.neighbors_of_position((9, 9), 1) == []

    @pytest.mark.parametrize("periodic", [False, True])
    @pytest.mark.parametrize("spacing", [0.3, 1.0, 7.0])
    def test_neighbors_are_exact(self, periodic, spacing):
        """Test that neighbor queries match a brute force search for any spacing."""
        space = ContinuousSpace((10, 6), spacing=spacing, periodic=periodic)
        rng = random.Random(3)
        positions = {}
        for unique_id in range(1, 201):
            agent = place(space, unique_id, space.random_position(rng))
            positions[unique_id] = agent.pos

        for _ in range(20):
            pos = space.random_position(rng)
            for radius in (0.1, 0.75, 2.0, 4.5):
                found = sorted(space.neighbors_of_position(pos, radius))
                assert found == brute_force(space, positions, pos, radius)

    def test_nearest_neighbor(self):
        """Test the nearest neighbor lookup."""
        space = ContinuousSpace((10, 10))
        a = place(space, 1, (5, 5))
        place(space, 2, (6, 5))
        place(space, 3, (5, 5.5))

        assert space.nearest_neighbor(a, 2) == 3
        assert space.nearest_neighbor(a, 0.1) is None

    def test_interacting_pairs(self):
        """Test the three pairing methods."""
        space = ContinuousSpace((10, 10))
        place(space, 1, (1, 1), kind="a")
        place(space, 2, (1.5, 1), kind="a")
        place(space, 3, (1.8, 1), kind="b")
        place(space, 4, (8, 8), kind="b")

        assert space.interacting_pairs(1, "all") == [(1, 2), (1, 3), (2, 3)]
        # 2 and 3 are the closest, 1 is left without partner
        assert space.interacting_pairs(1, "nearest") == [(2, 3)]
        kinds = {1: "a", 2: "a", 3: "b", 4: "b"}
        assert space.interacting_pairs(1, "types", kinds=kinds) == [(1, 3), (2, 3)]

        # on a chain only mutual nearest proposals are paired
        chain = ContinuousSpace((10, 1))
        for unique_id, x in enumerate([1, 2, 3.2, 4.6, 5.9, 6.8], start=1):
            place(chain, unique_id, (x, 0.5))
        assert chain.interacting_pairs(1.5, "nearest") == [(5, 6), (1, 2)]
        assert (3, 4) in chain.interacting_pairs(1.5, "all")

        with pytest.raises(ValueError):
            space.interacting_pairs(1, "types")
        with pytest.raises(ValueError):
            space.interacting_pairs(1, "closest")

    def test_walk(self):
        """Test movement along the velocity."""
        space = ContinuousSpace((10, 10))
        agent = place(space, 1, (9, 5), vel=(2, 0))
        assert agent.vel == (2, 0)
        pos = space.walk(agent, 1)
        assert pos[0] < 10
        assert pos[0] == pytest.approx(10)
        assert pos[1] == 5

        torus = ContinuousSpace((10, 10), periodic=True)
        agent = place(torus, 1, (9, 5), vel=(2, -1))
        assert torus.walk(agent, 1.5) == pytest.approx((2, 3.5))

        with pytest.raises(ValueError, match="no velocity"):
            torus.walk(place(torus, 2, (1, 1)))

    def test_elastic_collision(self):
        """Test velocity exchange of equal masses and collisions with walls."""
        space = ContinuousSpace((10, 10))
        a = place(space, 1, (4, 5), vel=(1, 0))
        b = place(space, 2, (5, 5), vel=(-1, 0))
        assert space.elastic_collision(a, b)
        assert a.vel == pytest.approx((-1, 0))
        assert b.vel == pytest.approx((1, 0))

        # moving apart, nothing happens
        assert not space.elastic_collision(a, b)

        wall = place(space, 3, (6, 5), vel=(0, 0), mass=math.inf)
        ball = place(space, 4, (5.5, 5), vel=(1, 0), mass=1.0)
        assert space.elastic_collision(ball, wall, "mass")
        assert ball.vel == pytest.approx((-1, 0))
        assert wall.vel == (0.0, 0.0)

    def test_property_raster(self):
        """Test raster property arrays over the extent."""
        space = ContinuousSpace((10, 10))
        raster = np.arange(4).reshape(2, 2)
        space.add_property("zone", raster)

        assert space.property_value("zone", (1, 1)) == 0
        assert space.property_value("zone", (9, 1)) == 2
        assert space.property_value("zone", (9, 9)) == 3
        with pytest.raises(ConfigurationError):
            space.add_property("bad", np.zeros(3))
