"""Tests for the tick schedulers."""

import pytest

from abmkit import StandardModel
from abmkit.time import ById, ByKind, ByProperty, Partially, Randomly


def make_model(rng=42):
    model = StandardModel(rng=rng)
    for kind, size in [("a", 3), ("b", 1), ("a", 1), ("c", 2), ("b", 4)]:
        model.add_agent(kind=kind, size=size)
    return model


class TestSchedulers:
    """Tests for activation orders."""

    def test_by_id(self):
        """Test ascending identifier order."""
        model = make_model()
        model.remove_agent(2)
        assert ById()(model, model.all_agent_ids()) == [1, 3, 4, 5]

    def test_randomly(self):
        """Test that random orders are permutations drawn from the model rng."""
        model = make_model()
        order = Randomly()(model, model.all_agent_ids())
        assert sorted(order) == [1, 2, 3, 4, 5]

        orders = {tuple(Randomly()(model, model.all_agent_ids())) for _ in range(20)}
        assert len(orders) > 1

        # same seed, same orders
        first = make_model(7)
        second = make_model(7)
        assert [Randomly()(first, first.all_agent_ids()) for _ in range(5)] == [
            Randomly()(second, second.all_agent_ids()) for _ in range(5)
        ]

    def test_by_kind(self):
        """Test grouped activation by kind."""
        model = make_model()
        ids = model.all_agent_ids()

        order = ByKind(["b", "a", "c"], shuffle_kinds=False)(model, ids)
        assert order == [2, 5, 1, 3, 4]

        # kinds that are not listed are not activated
        assert ByKind(["c"], shuffle_kinds=False)(model, ids) == [4]

        order = ByKind()(model, ids)
        assert sorted(order) == [1, 2, 3, 4, 5]
        kinds = [model[i].kind for i in order]
        # every kind forms one contiguous block
        assert len([k for i, k in enumerate(kinds) if i == 0 or kinds[i - 1] != k]) == 3

        order = ByKind(["a"], shuffle_kinds=False, shuffle_agents=True)(model, ids)
        assert sorted(order) == [1, 3]

    def test_by_property(self):
        """Test ordering by a payload field or key function."""
        model = make_model()
        ids = model.all_agent_ids()

        assert ByProperty("size")(model, ids) == [2, 3, 4, 1, 5]
        assert ByProperty("size", reverse=True)(model, ids) == [5, 1, 4, 2, 3]
        assert ByProperty(lambda agent: -agent.unique_id)(model, ids) == [5, 4, 3, 2, 1]

    def test_partially(self):
        """Test activation of a random subset."""
        model = make_model()
        ids = model.all_agent_ids()

        assert Partially(1.0)(model, ids) == [1, 2, 3, 4, 5]
        assert Partially(0.0)(model, ids) == []
        order = Partially(0.5)(model, ids)
        assert order == sorted(order)
        with pytest.raises(ValueError):
            Partially(1.5)

    def test_reprs(self):
        """Test the scheduler reprs."""
        assert repr(ById()) == "ById()"
        assert repr(Randomly()) == "Randomly()"
        assert repr(Partially(0.5)) == "Partially(0.5)"
        assert "ByKind(['a']" in repr(ByKind(["a"]))
        assert repr(ByProperty("size")) == "ByProperty('size', reverse=False)"
