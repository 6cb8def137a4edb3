"""Tests for deferred additions and removals."""

import pytest

from abmkit import AgentEvent, EventQueueModel, GridSpaceSingle, StandardModel
from abmkit.agent import Agent
from abmkit.errors import CellOccupied, NotFound
from abmkit.mutations import MutationBuffer


class TestMutationBuffer:
    """Tests for the buffer itself."""

    def test_defer_and_cancel(self):
        """Test that removing a pending addition cancels it."""
        buffer = MutationBuffer(enabled=True)
        buffer.defer_add(Agent(5), (0, 0))
        assert buffer.is_pending_add(5)
        assert buffer.pending_positions() == [(0, 0)]

        buffer.defer_remove(5)
        assert not buffer.is_pending_add(5)
        assert not buffer.is_removed(5)
        assert len(buffer) == 0

    def test_double_removal(self):
        """Test that removing twice raises NotFound."""
        buffer = MutationBuffer(enabled=True)
        buffer.defer_remove(1)
        assert buffer.is_removed(1)
        with pytest.raises(NotFound):
            buffer.defer_remove(1)

    def test_exclusive_positions(self):
        """Test that exclusive pending additions cannot share a position."""
        buffer = MutationBuffer(enabled=True)
        buffer.defer_add(Agent(1), (0, 0), exclusive=True)
        with pytest.raises(CellOccupied):
            buffer.defer_add(Agent(2), (0, 0), exclusive=True)
        buffer.defer_add(Agent(3), (0, 0))
        assert len(buffer) == 2

    def test_discard(self):
        """Test dropping all pending changes."""
        buffer = MutationBuffer(enabled=True)
        buffer.defer_add(Agent(1), None)
        buffer.defer_remove(2)
        buffer.discard()
        assert len(buffer) == 0


class TestDeferredStandardModel:
    """Tests for deferred mutations in tick models."""

    def test_removal_is_logical_until_flush(self):
        """Test that deferred removals hide agents until the end of the tick."""
        seen = {}

        def agent_step(agent, model):
            if agent.unique_id == 1:
                model.remove_agent(2)
                seen["alive"] = model.is_alive(2)
                seen["stored"] = 2 in model.store
                seen["len"] = len(model)
                seen["ids"] = list(model.all_agent_ids())
                seen["at"] = model.agents_at((0, 1))
                seen["neighbors"] = model.neighbors(1)

        model = StandardModel(
            GridSpaceSingle((3, 3)), agent_step=agent_step, defer_mutations=True
        )
        model.add_agent((0, 0))
        model.add_agent((0, 1))
        model.add_agent((1, 0))
        model.step()

        assert seen == {
            "alive": False,
            "stored": True,
            "len": 2,
            "ids": [1, 3],
            "at": [],
            "neighbors": [3],
        }
        assert 2 not in model.store
        assert model.space.is_empty((0, 1))

    def test_removed_agents_are_skipped(self):
        """Test that deferred removed agents are not activated."""
        activated = []

        def agent_step(agent, model):
            activated.append(agent.unique_id)
            if agent.unique_id == 1:
                model.remove_agent(3)

        model = StandardModel(agent_step=agent_step, defer_mutations=True)
        for _ in range(3):
            model.add_agent()
        model.step()
        assert activated == [1, 2]
        assert len(model) == 2

    def test_additions_appear_after_flush(self):
        """Test that deferred additions reserve ids and appear after the tick."""
        seen = []

        def agent_step(agent, model):
            if agent.unique_id == 1 and model.steps == 0:
                new_id = model.add_agent((2, 2), kind="child")
                seen.append((new_id, new_id in model.store, model.space.is_empty((2, 2))))

        model = StandardModel(
            GridSpaceSingle((3, 3)), agent_step=agent_step, defer_mutations=True
        )
        model.add_agent((0, 0))
        model.step()

        assert seen == [(2, False, True)]
        assert model[2].pos == (2, 2)
        assert model[2].kind == "child"

    def test_pending_cell_is_reserved(self):
        """Test that two deferred additions cannot target one free cell."""

        def agent_step(agent, model):
            model.add_agent((2, 2))

        model = StandardModel(
            GridSpaceSingle((3, 3)), agent_step=agent_step, defer_mutations=True
        )
        model.add_agent((0, 0))
        model.add_agent((0, 1))
        with pytest.raises(CellOccupied):
            model.step()
        # the failed tick left nothing behind
        assert len(model) == 2
        assert len(model._mutations) == 0
        assert model.space.is_empty((2, 2))

    def test_add_then_remove_in_same_tick(self):
        """Test that removing a pending addition cancels it."""

        def model_step(model):
            new_id = model.add_agent()
            model.remove_agent(new_id)

        model = StandardModel(model_step=model_step, defer_mutations=True)
        model.step()
        assert len(model) == 0
        assert model.store.next_id == 2

    def test_immediate_outside_of_step(self):
        """Test that mutations outside of a step are always immediate."""
        model = StandardModel(defer_mutations=True)
        unique_id = model.add_agent()
        assert unique_id in model.store
        model.remove_agent(unique_id)
        assert unique_id not in model.store


class TestDeferredEventQueueModel:
    """Tests for deferred mutations in event-queue models."""

    def test_flush_after_each_event(self):
        """Test that deferred changes are applied after every firing."""
        observed = []

        def replicate(agent, model):
            child = model.replicate(agent.unique_id)
            observed.append(len(model.queue.events_of(child)))

        model = EventQueueModel(
            events=[AgentEvent(replicate)], defer_mutations=True, rng=1
        )
        model.add_agent()
        model.run_next_event()

        # the child is scheduled once it has been inserted
        assert observed == [0]
        assert len(model) == 2
        assert len(model.queue.events_of(2)) == 1

    def test_deferred_removal_purges_on_flush(self):
        """Test that removed agents lose their events when the buffer is flushed."""

        def kill_all_others(agent, model):
            for other in list(model.all_agent_ids()):
                if other != agent.unique_id:
                    model.remove_agent(other)

        model = EventQueueModel(
            events=[AgentEvent(kill_all_others)], defer_mutations=True, rng=1
        )
        for _ in range(5):
            model.add_agent()
        model.run_next_event()

        assert len(model) == 1
        assert len(model.queue) == 1
