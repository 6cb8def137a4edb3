"""The model classes for abmkit.

Core Objects: Model, StandardModel, EventQueueModel

A model owns the agent store, the space, the random number generators, the
shared properties and the clock. ``StandardModel`` advances in discrete ticks
during which agents are activated in the order given by a tick scheduler;
``EventQueueModel`` advances in continuous time by firing agent events.
"""

# Postpone annotation evaluation to avoid NameError from forward references (PEP 563).
from __future__ import annotations

import copy
import random
from collections.abc import Callable, Hashable, Iterable, Sequence
from enum import Enum
from typing import Any

import numpy as np

from abmkit.abm_logging import create_module_logger, method_logger
from abmkit.agent import Agent
from abmkit.errors import ConfigurationError, ExhaustedRetries, NotFound
from abmkit.mutations import MutationBuffer
from abmkit.properties import Properties
from abmkit.space import ContinuousSpace, GridSpaceSingle, Space
from abmkit.storage import AgentIds, AgentStore
from abmkit.time.eventlist import EventList, ScheduledEvent
from abmkit.time.events import AgentEvent, EventScheduler
from abmkit.time.schedulers import ById

SeedLike = int | np.integer | Sequence[int] | np.random.SeedSequence
RNGLike = np.random.Generator | np.random.BitGenerator

_abm_logger = create_module_logger()


class Phase(Enum):
    """Where a model is within a unit of work."""

    IDLE = "idle"
    SCHEDULING = "scheduling"
    ACTIVATING = "activating"


class Model:
    """Base class for models.

    Holds everything that is shared between tick-based and event-based models:
    agent storage, the space, randomness and the mutation protocol.

    Attributes:
        space: the spatial index, or None for models without space
        store: the AgentStore with all agent records
        properties: shared model parameters, never written by the core
        rng: a seeded numpy.random.Generator
        random: a seeded python random.Random
        time: the current simulation time
        steps: the number of units of work executed (ticks or fired events)
        phase: the current Phase
        running: a flag users may set to stop ``run_model``

    Notes:
        Two models built with the same seed and the same action code produce
        identical trajectories; all randomness of the core is drawn from
        ``rng`` and ``random``.

    """

    @method_logger(__name__)
    def __init__(
        self,
        space: Space | None = None,
        *,
        rng: RNGLike | SeedLike | None = None,
        properties: Properties | dict | None = None,
        defer_mutations: bool = False,
    ) -> None:
        """Create a new model.

        Args:
            space: the space agents live in, or None
            rng: Pseudorandom number generator state. When `rng` is None, a new `numpy.random.Generator` is created
                  using entropy from the operating system. Types other than `numpy.random.Generator` are passed to
                  `numpy.random.default_rng` to instantiate a `Generator`.
            properties: shared model parameters
            defer_mutations: defer additions and removals requested while
                agents are activated to the end of the unit of work
        """
        if space is not None and not isinstance(space, Space):
            raise ConfigurationError("space", f"expected a Space, got {type(space).__name__}")
        self.space = space
        self.running: bool = True
        self.steps: int = 0
        self.time: float = 0
        self.phase = Phase.IDLE

        self._seed_random_sources(rng)

        if not isinstance(properties, Properties):
            properties = Properties(properties or {})
        self.properties = properties
        properties.model = self

        self.store = AgentStore()
        self._mutations = MutationBuffer(enabled=defer_mutations)

    # introspection
    def __getitem__(self, unique_id: int) -> Agent:
        """Return the agent with identifier ``unique_id``; raises NotFound."""
        return self.store.get(unique_id)

    def __len__(self) -> int:
        """Return the number of agents in the model."""
        return len(self.store) - sum(
            1 for unique_id in self._mutations._removals if unique_id in self.store
        )

    def __contains__(self, unique_id: object) -> bool:  # noqa: D105
        return self.is_alive(unique_id)

    def is_alive(self, unique_id: object) -> bool:
        """Return whether the agent exists and has no pending removal."""
        return unique_id in self.store and not self._mutations.is_removed(unique_id)

    @property
    def agents(self) -> list[Agent]:
        """All live agents, in insertion order."""
        return [agent for agent in self.store if not self._mutations.is_removed(agent.unique_id)]

    def all_agent_ids(self) -> AgentIds:
        """Return a lazy snapshot of the identifiers of all live agents."""
        ids = self.store.iterate_all()
        if not self._mutations._removals:
            return ids
        return AgentIds(
            self.store, [unique_id for unique_id in ids if not self._mutations.is_removed(unique_id)]
        )

    def agents_of_kind(self, kind: Hashable) -> list[Agent]:
        """Return the live agents of the given kind."""
        return [self.store.get(i) for i in self.store.ids_of_kind(kind) if self.is_alive(i)]

    def _live(self, unique_id: int) -> Agent:
        agent = self.store.get(unique_id)
        if self._mutations.is_removed(unique_id):
            raise NotFound(unique_id, "model")
        return agent

    def _require_space(self, kind: type[Space] = Space) -> Space:
        if not isinstance(self.space, kind):
            raise TypeError(f"This operation requires a {kind.__name__}, model has {self.space!r}")
        return self.space

    @property
    def _deferring(self) -> bool:
        return self._mutations.enabled and self.phase is not Phase.IDLE

    # population
    def add_agent(
        self,
        pos: Any = None,
        kind: Hashable | None = None,
        vel: Sequence[float] | None = None,
        **payload: Any,
    ) -> int:
        """Create a new agent and return its identifier.

        Args:
            pos: the position; a random position is drawn if None and the model has a space
            kind: the variant tag
            vel: the velocity, for continuous spaces
            payload: any user defined fields

        Raises:
            InvalidPosition: if ``pos`` is not valid in the space
            CellOccupied: if ``pos`` is taken in a single occupancy space
        """
        if self.space is None and pos is not None:
            raise ValueError("Cannot place an agent: the model has no space")
        agent = self.store.create(kind=kind, vel=vel, **payload)
        if self.space is not None and pos is None:
            pos = self.space.random_position(self.random)

        if self._deferring:
            exclusive = isinstance(self.space, GridSpaceSingle)
            if self.space is not None:
                pos = self.space.validate(pos)
                self.space._check_can_place(pos)
            self._mutations.defer_add(agent, pos, exclusive=exclusive)
            return agent.unique_id
        return self._insert_agent(agent, pos)

    def add_agent_single(self, kind: Hashable | None = None, **payload: Any) -> int:
        """Create a new agent in a random empty cell of a single occupancy grid.

        Raises:
            ExhaustedRetries: if the grid has no empty cell
        """
        space = self._require_space(GridSpaceSingle)
        pos = space.random_empty(self.random)
        if pos is None:
            raise ExhaustedRetries(space.occupancy.size, "an empty cell")
        return self.add_agent(pos, kind=kind, **payload)

    def _insert_agent(self, agent: Agent, pos: Any) -> int:
        if self.space is not None:
            # the space validates before mutating, so a failure leaves no trace
            self.space.add(agent, pos)
        self.store.insert(agent)
        _abm_logger.debug(
            f"registered agent {agent.unique_id} of kind {agent.kind!r} at {agent.pos!r}"
        )
        self._on_agent_added(agent)
        return agent.unique_id

    def remove_agent(self, unique_id: int) -> None:
        """Remove an agent from the model.

        Raises:
            NotFound: if there is no such agent
        """
        if self._deferring:
            if not self._mutations.is_pending_add(unique_id):
                self.store.get(unique_id)
            self._mutations.defer_remove(unique_id)
            return
        self._delete_agent(self.store.get(unique_id))

    def _delete_agent(self, agent: Agent) -> None:
        if self.space is not None:
            self.space.remove(agent)
        self.store.remove(agent.unique_id)
        self._on_agent_removed(agent.unique_id)
        _abm_logger.debug(f"deregistered agent with agent_id {agent.unique_id}")

    def remove_all_agents(self) -> None:
        """Remove all agents from the model."""
        for unique_id in self.all_agent_ids():
            if not self._mutations.is_removed(unique_id):
                self.remove_agent(unique_id)

    def replicate(self, unique_id: int, pos: Any = None, **overrides: Any) -> int:
        """Add a copy of an agent and return the identifier of the copy.

        The copy gets deep copies of the kind, velocity and payload of the
        original, updated with ``overrides``. It is placed at ``pos``, or at
        the position of the original if ``pos`` is None.
        """
        parent = self._live(unique_id)
        fields = copy.deepcopy(parent.copy_payload())
        fields.update(overrides)
        return self.add_agent(parent.pos if pos is None else pos, **fields)

    def _on_agent_added(self, agent: Agent) -> None:
        """Hook called after an agent has been stored and placed."""

    def _on_agent_removed(self, unique_id: int) -> None:
        """Hook called after an agent has been removed."""

    def _flush(self) -> None:
        self._mutations.flush(self)

    # movement
    def move_agent(self, unique_id: int, pos: Any) -> Any:
        """Move an agent to ``pos`` and return the normalized position.

        Raises:
            NotFound: if there is no such agent
            InvalidPosition: if ``pos`` is not valid
            CellOccupied: if ``pos`` is taken in a single occupancy space
        """
        agent = self._live(unique_id)
        return self._require_space().move(agent, pos)

    def move_agent_random(self, unique_id: int, radius: float | None = None) -> Any:
        """Move an agent to a random position and return it.

        Args:
            unique_id: the agent to move
            radius: if given, only positions within ``radius`` of the current
                position are considered

        Returns:
            the new position, or None if no admissible position was found
            (single occupancy grids only move agents into empty cells)
        """
        agent = self._live(unique_id)
        space = self._require_space()
        if isinstance(space, GridSpaceSingle):
            if radius is None:
                target = space.random_empty(self.random)
            else:
                target = space.random_empty_nearby(agent.pos, radius, self.random)
        elif radius is None:
            target = space.random_position(self.random)
        else:
            target = self.random_nearby_position(agent.pos, radius)
        if target is None:
            return None
        return space.move(agent, target)

    def swap_agents(self, unique_id_a: int, unique_id_b: int) -> None:
        """Exchange the positions of two agents."""
        agent_a, agent_b = self._live(unique_id_a), self._live(unique_id_b)
        self._require_space().swap(agent_a, agent_b)

    def walk(self, unique_id: int, dt: float = 1.0) -> Any:
        """Move an agent along its velocity for ``dt`` in a continuous space."""
        agent = self._live(unique_id)
        return self._require_space(ContinuousSpace).walk(agent, dt)

    # queries
    def neighbors(
        self, unique_id: int, radius: float = 1, include_self: bool = False, **kwargs
    ) -> list[int]:
        """Return the identifiers of the agents within ``radius`` of an agent.

        Args:
            unique_id: the agent at the center of the query
            radius: search radius, in the metric of the space
            include_self: whether to include the agent itself
            kwargs: space specific options, e.g. ``neighbor_type`` for graph spaces
        """
        agent = self._live(unique_id)
        ids = self._require_space().neighbors(agent, radius, include_self=include_self, **kwargs)
        return self._filter_removed(ids)

    def agents_at(self, pos: Any) -> list[int]:
        """Return the identifiers of the agents at ``pos``."""
        return self._filter_removed(self._require_space().agents_at(pos))

    def _filter_removed(self, ids: list[int]) -> list[int]:
        if not self._mutations._removals:
            return ids
        return [unique_id for unique_id in ids if not self._mutations.is_removed(unique_id)]

    def interacting_pairs(self, radius: float, method: str = "nearest") -> list[tuple[int, int]]:
        """Return pairs of agents within ``radius`` of each other.

        See ``ContinuousSpace.interacting_pairs`` for the methods.
        """
        space = self._require_space(ContinuousSpace)
        kinds = None
        if method == "types":
            kinds = {agent.unique_id: agent.kind for agent in self.store}
        pairs = space.interacting_pairs(radius, method, kinds=kinds)
        if not self._mutations._removals:
            return pairs
        return [(i, j) for i, j in pairs if self.is_alive(i) and self.is_alive(j)]

    def random_agent(self, predicate: Callable[[Agent], bool] | None = None) -> int | None:
        """Return the identifier of a random live agent satisfying ``predicate``, or None."""
        candidates = [
            agent.unique_id for agent in self.agents if predicate is None or predicate(agent)
        ]
        if not candidates:
            return None
        return self.random.choice(candidates)

    def random_nearby_agent(self, unique_id: int, radius: float = 1, **kwargs) -> int | None:
        """Return the identifier of a random other agent within ``radius``, or None."""
        candidates = self.neighbors(unique_id, radius, **kwargs)
        if not candidates:
            return None
        return self.random.choice(candidates)

    def random_nearby_position(
        self,
        pos: Any,
        radius: float = 1,
        predicate: Callable[[Any], bool] | None = None,
        max_tries: int = 50,
    ) -> Any:
        """Return a random position within ``radius`` of ``pos`` satisfying ``predicate``.

        At most ``max_tries`` candidates are inspected.

        Returns:
            the position, or None if no candidate satisfied ``predicate``
        """
        space = self._require_space()
        if isinstance(space, ContinuousSpace):
            for _ in range(max_tries):
                candidate = self._random_point_in_ball(space, pos, radius)
                if candidate is not None and (predicate is None or predicate(candidate)):
                    return candidate
            return None

        candidates = space.nearby_positions(pos, radius)
        for candidate in self.random.sample(candidates, min(max_tries, len(candidates))):
            if predicate is None or predicate(candidate):
                return candidate
        return None

    def _random_point_in_ball(self, space: ContinuousSpace, pos: Any, radius: float) -> Any:
        center = np.asarray(space.validate(pos))
        while True:
            offset = np.array([self.random.uniform(-radius, radius) for _ in center])
            if np.dot(offset, offset) <= radius * radius:
                break
        candidate = center + offset
        if not space.periodic and not all(0 <= c < e for c, e in zip(candidate, space.extent)):
            return None
        return space.validate(candidate)

    # running
    def step(self, n: int | float | Callable = 1) -> None:
        """Advance the model. Overridden by the concrete model classes."""
        raise NotImplementedError

    def run_model(self) -> None:
        """Step the model until ``running`` is set to False.

        Overload as needed.
        """
        while self.running:
            self.step(1)

    def run(self, duration: int | float | Callable, **kwargs: Any):
        """Step the model while sampling collectors; see ``abmkit.collect.run``."""
        from abmkit.collect import run

        return run(self, duration, **kwargs)

    def _seed_random_sources(self, rng: RNGLike | SeedLike | None) -> None:
        self.rng: np.random.Generator = np.random.default_rng(rng)
        try:
            self.random = random.Random(rng)
        except TypeError:
            seed = int(self.rng.integers(np.iinfo(np.int32).max))
            self.random = random.Random(seed)
        # this allows for reproducing both random sources
        self._rng = self.rng.bit_generator.state
        self._random_state = self.random.getstate()

    def reset_rng(self, rng: RNGLike | SeedLike | None = None) -> None:
        """Reset the random number generators of the model.

        Both ``rng`` and ``random`` are reset, so a reset model replays the
        same trajectory.

        Args:
            rng: A new seed for the RNG; if None, reset using the current seed
        """
        if rng is None:
            # Restore from saved initial state
            bg_class = getattr(np.random, self._rng["bit_generator"])
            bg = bg_class()
            bg.state = self._rng
            self.rng = np.random.Generator(bg)
            self.random.setstate(self._random_state)
        else:
            self._seed_random_sources(rng)


class StandardModel(Model):
    """A model that advances in discrete ticks.

    Every tick the scheduler orders the agents present at the start of the
    tick, each live agent is passed to the agent step, and the model step is
    run once (after the agents by default).

    Agent and model behavior is given either as callables
    ``agent_step(agent, model)`` and ``model_step(model)``, or by overriding
    the ``agent_step(self, agent)`` and ``model_step(self)`` methods.
    """

    def __init__(
        self,
        space: Space | None = None,
        *,
        scheduler: Callable | None = None,
        agent_step: Callable[[Agent, Model], Any] | None = None,
        model_step: Callable[[Model], Any] | None = None,
        agents_first: bool = True,
        rng: RNGLike | SeedLike | None = None,
        properties: Properties | dict | None = None,
        defer_mutations: bool = False,
    ) -> None:
        """Create a new tick-based model.

        Args:
            space: the space agents live in, or None
            scheduler: the activation order, ``ById()`` by default
            agent_step: callable applied to every scheduled agent each tick
            model_step: callable applied to the model each tick
            agents_first: run the agent steps before the model step
            rng: seed or generator for the model's random sources
            properties: shared model parameters
            defer_mutations: defer additions and removals to the end of the tick
        """
        super().__init__(
            space, rng=rng, properties=properties, defer_mutations=defer_mutations
        )
        self.scheduler = scheduler if scheduler is not None else ById()
        if not callable(self.scheduler):
            raise ConfigurationError("scheduler", "must be callable")
        self._agent_step_fn = agent_step
        self._model_step_fn = model_step
        self.agents_first = agents_first
        self.time = 0

    def agent_step(self, agent: Agent) -> None:
        """Activate a single agent. Override, or pass ``agent_step`` to the constructor."""

    def model_step(self) -> None:
        """Update the model once per tick. Override, or pass ``model_step`` to the constructor."""

    def _activate(self, order: Iterable[int]) -> None:
        agents = self.store._agents
        for unique_id in order:
            # agents removed earlier in this tick are skipped
            if unique_id not in agents or self._mutations.is_removed(unique_id):
                continue
            if self._agent_step_fn is not None:
                self._agent_step_fn(agents[unique_id], self)
            else:
                self.agent_step(agents[unique_id])

    def _run_model_step(self) -> None:
        if self._model_step_fn is not None:
            self._model_step_fn(self)
        else:
            self.model_step()

    def _tick(self) -> None:
        self.phase = Phase.SCHEDULING
        try:
            order = self.scheduler(self, self.store.iterate_all())
            self.phase = Phase.ACTIVATING
            if self.agents_first:
                self._activate(order)
                self._run_model_step()
            else:
                self._run_model_step()
                self._activate(order)
            self._flush()
        except BaseException:
            self._mutations.discard()
            raise
        finally:
            self.phase = Phase.IDLE
        self.steps += 1
        self.time = self.steps

    def step(self, n: int | Callable[[Model, int], bool] = 1) -> None:
        """Advance the model.

        Args:
            n: the number of ticks, or a predicate ``f(model, steps)`` checked
                after every tick; stepping stops once it returns True
        """
        if callable(n):
            while True:
                self._tick()
                if n(self, self.steps):
                    break
            return
        if n < 0:
            raise ValueError("Cannot step a negative number of ticks")
        for _ in range(int(n)):
            self._tick()


class EventQueueModel(Model):
    """A model that advances in continuous time by firing agent events.

    When an agent is added, the first occurrence of every AgentEvent that
    applies to its kind is scheduled. When an event fires, its action runs
    and, if the agent survived, the next occurrence of the same event is
    scheduled. Removing an agent purges all of its pending events.
    """

    def __init__(
        self,
        space: Space | None = None,
        *,
        events: Iterable[AgentEvent] = (),
        autogenerate_on_add: bool = True,
        autogenerate_after_action: bool = True,
        rng: RNGLike | SeedLike | None = None,
        properties: Properties | dict | None = None,
        defer_mutations: bool = False,
    ) -> None:
        """Create a new event-queue model.

        Args:
            space: the space agents live in, or None
            events: the AgentEvents of the model
            autogenerate_on_add: schedule events for agents when they are added
            autogenerate_after_action: re-arm events after they fired
            rng: seed or generator for the model's random sources
            properties: shared model parameters
            defer_mutations: defer additions and removals to the end of each firing
        """
        super().__init__(
            space, rng=rng, properties=properties, defer_mutations=defer_mutations
        )
        self.time = 0.0
        self.autogenerate_on_add = autogenerate_on_add
        self.scheduler = EventScheduler(
            self, events, autogenerate_after_action=autogenerate_after_action
        )

    @property
    def events(self) -> tuple[AgentEvent, ...]:
        """The registered AgentEvents."""
        return self.scheduler.events

    @property
    def queue(self) -> EventList:
        """The event list of the model."""
        return self.scheduler.event_list

    def _on_agent_added(self, agent: Agent) -> None:
        if self.autogenerate_on_add:
            self.scheduler.schedule_agent(agent)

    def _on_agent_removed(self, unique_id: int) -> None:
        self.scheduler.purge(unique_id)

    def add_event(
        self, unique_id: int, event: AgentEvent | int, delay: float | None = None
    ) -> ScheduledEvent | None:
        """Schedule an occurrence of ``event`` for an agent.

        Args:
            unique_id: the agent
            event: a registered AgentEvent or its index
            delay: fixed delay from now; drawn from the event's timing if None
        """
        return self.scheduler.schedule(self._live(unique_id), event, delay)

    def _fire(self, entry: ScheduledEvent) -> None:
        self.phase = Phase.ACTIVATING
        try:
            self.time = entry.time
            self.scheduler.fire(entry)
            self._flush()
        except BaseException:
            self._mutations.discard()
            raise
        finally:
            self.phase = Phase.IDLE
        self.steps += 1

    def run_next_event(self) -> bool:
        """Fire the next event.

        Returns:
            bool: True if an event was fired, False if the queue is empty
        """
        try:
            entry = self.queue.pop()
        except IndexError:
            return False
        self._fire(entry)
        return True

    def step_events(self, n: int) -> int:
        """Fire ``n`` events, or fewer if the queue runs empty; return how many fired."""
        if n < 0:
            raise ValueError("Cannot fire a negative number of events")
        fired = 0
        while fired < n and self.run_next_event():
            fired += 1
        return fired

    def run_until(self, end_time: float) -> None:
        """Fire all events scheduled up to and including ``end_time``.

        The clock ends at ``end_time``; events after it stay queued.
        """
        if end_time < self.time:
            raise ValueError(
                f"Cannot run backwards in time (current time: {self.time}, end time: {end_time})"
            )
        queue = self.queue
        while not queue.is_empty() and queue.peek().time <= end_time:
            self._fire(queue.pop())
        self.time = end_time

    def step(self, t: float | Callable[[Model, float], bool] = 1.0) -> None:
        """Advance the model.

        Args:
            t: the amount of time to advance, or a predicate ``f(model, time)``
                checked after every fired event; stepping stops once it returns
                True or the queue runs empty
        """
        if callable(t):
            while self.run_next_event():
                if t(self, self.time):
                    break
            return
        if t < 0:
            raise ValueError("Cannot step a negative amount of time")
        self.run_until(self.time + t)


def current_time(model: Model) -> float:
    """Return the current time of ``model``."""
    return model.time


def agent_count(model: Model) -> int:
    """Return the number of live agents in ``model``."""
    return len(model)


def all_agent_ids(model: Model) -> AgentIds:
    """Return a lazy snapshot of the agent identifiers of ``model``."""
    return model.all_agent_ids()
