"""Tests for running models with reporters."""

import pandas as pd
import pytest

from abmkit import AgentEvent, EventQueueModel, StandardModel, run


def grow(agent, model):
    agent.size += 1


def make_model():
    model = StandardModel(agent_step=grow, rng=1)
    model.add_agent(kind="a", size=0)
    model.add_agent(kind="b", size=10)
    return model


class TestRun:
    """Tests for collect.run."""

    def test_agent_and_model_data(self):
        """Test that every unit is sampled, including the initial state."""
        model = make_model()
        agent_df, model_df = run(
            model,
            3,
            agent_reporters={"size": "size", "double": lambda agent: 2 * agent.size},
            model_reporters={"n": len, "steps": "steps"},
        )

        assert isinstance(agent_df, pd.DataFrame)
        assert list(agent_df.columns) == ["time", "id", "size", "double"]
        assert len(agent_df) == 8
        assert agent_df[agent_df.id == 1]["size"].tolist() == [0, 1, 2, 3]
        assert (agent_df["double"] == 2 * agent_df["size"]).all()

        assert list(model_df.columns) == ["time", "n", "steps"]
        assert model_df["time"].tolist() == [0, 1, 2, 3]
        assert model_df["n"].tolist() == [2, 2, 2, 2]
        assert model.steps == 3

    def test_list_of_attributes(self):
        """Test that plain attribute names are accepted."""
        agent_df, model_df = run(make_model(), 1, agent_reporters=["size", "kind"])
        assert list(agent_df.columns) == ["time", "id", "size", "kind"]
        assert model_df.empty
        assert list(model_df.columns) == ["time"]

    def test_when(self):
        """Test the sampling cadences."""
        _, model_df = run(make_model(), 6, model_reporters={"t": "time"}, when=3)
        assert model_df["time"].tolist() == [0, 3, 6]

        _, model_df = run(make_model(), 6, model_reporters={"t": "time"}, when=[2, 5])
        assert model_df["time"].tolist() == [2, 5]

        _, model_df = run(
            make_model(), 6, model_reporters={"t": "time"}, when=lambda m, t: t % 2 == 1
        )
        assert model_df["time"].tolist() == [1, 3, 5]

        _, model_df = run(make_model(), 6, model_reporters={"t": "time"}, when=False)
        assert model_df.empty

    def test_real_valued_cadence(self):
        """Test sampling every half time unit while stepping in small increments."""
        model = EventQueueModel(events=[AgentEvent(grow)], rng=2)
        model.add_agent(size=0)
        _, model_df = run(model, 2.0, model_reporters={"n": len}, when=0.5, dt=0.01)

        assert model_df["time"].tolist() == pytest.approx([0, 0.5, 1.0, 1.5, 2.0])

    def test_listed_times_with_small_steps(self):
        """Test that listed times are sampled although the clock never hits them exactly."""
        model = EventQueueModel(events=[AgentEvent(grow)], rng=2)
        model.add_agent(size=0)
        _, model_df = run(
            model, 1.0, model_reporters={"n": len}, when=[0.5, 1.0, -3], dt=0.01
        )

        assert model_df["time"].tolist() == pytest.approx([0.5, 1.0])

    def test_agent_filter(self):
        """Test that only matching agents are sampled."""
        agent_df, _ = run(
            make_model(),
            2,
            agent_reporters=["size"],
            agent_filter=lambda agent: agent.kind == "b",
        )
        assert set(agent_df["id"]) == {2}
        assert agent_df["size"].tolist() == [10, 11, 12]

    def test_predicate_duration(self):
        """Test running until a predicate holds."""
        model = make_model()
        _, model_df = run(model, lambda m, t: m[1].size >= 4, model_reporters={"n": len})
        assert model.steps == 4
        assert len(model_df) == 5

    def test_event_queue_with_dt(self):
        """Test sampling an event-queue model on a regular time grid."""
        model = EventQueueModel(events=[AgentEvent(grow)], rng=2)
        model.add_agent(size=0)
        agent_df, model_df = run(
            model,
            2.0,
            agent_reporters=["size"],
            model_reporters={"queued": lambda m: len(m.queue)},
            dt=0.5,
        )

        assert model_df["time"].tolist() == pytest.approx([0, 0.5, 1.0, 1.5, 2.0])
        assert model.time == pytest.approx(2.0)
        assert agent_df["size"].is_monotonic_increasing

    def test_via_model(self):
        """Test the run method of the model."""
        _, model_df = make_model().run(2, model_reporters={"n": len})
        assert len(model_df) == 3

    def test_invalid(self):
        """Test invalid arguments."""
        with pytest.raises(ValueError):
            run(make_model(), 2, dt=0)
        with pytest.raises(ValueError):
            run(make_model(), -1)
        with pytest.raises(ValueError):
            run(make_model(), 2, when=0)
        with pytest.raises(TypeError):
            run(make_model(), 2, model_reporters={"bad": 3})
