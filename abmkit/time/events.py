"""Continuous-time agent events.

Core classes:
- AgentEvent: an action that recurs for every eligible agent at a given propensity
- EventScheduler: keeps the event list of a model in sync with its agents

Every agent has, for each action applicable to its kind, one pending
occurrence at ``now + delay``. The delay defaults to an exponential draw with
rate equal to the propensity (Gillespie semantics); a custom timing function
may replace it. Propensities are evaluated when an occurrence is scheduled,
not when it fires, so later state changes do not reschedule queued events.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Hashable, Iterable
from numbers import Real
from typing import TYPE_CHECKING, Any

from abmkit.abm_logging import create_module_logger
from abmkit.errors import NotFound
from abmkit.time.eventlist import EventList, ScheduledEvent

if TYPE_CHECKING:
    from abmkit.agent import Agent
    from abmkit.model import EventQueueModel

    Action = Callable[[Agent, EventQueueModel], Any]
    Propensity = Real | Callable[[Agent, EventQueueModel], float]
    Timing = Callable[[Agent, EventQueueModel, float], float]

_logger = create_module_logger()


class AgentEvent:
    """An action applied to agents in continuous time.

    Attributes:
        action: callable ``action(agent, model)`` performing the event
        propensity: a constant rate, or callable ``propensity(agent, model)``
        kinds: the agent kinds the event applies to, None for all kinds
        timing: callable ``timing(agent, model, propensity)`` returning the delay
            until the next occurrence; None for exponential delays
        name: a label used in logs and reprs

    Examples:
        attack = AgentEvent(attack, propensity=1.0)
        move = AgentEvent(move, propensity=0.5, kinds=("paper", "scissors"), timing=movement_time)
    """

    def __init__(
        self,
        action: Action,
        propensity: Propensity = 1.0,
        kinds: Hashable | Iterable[Hashable] | None = None,
        timing: Timing | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize an AgentEvent."""
        if not callable(action):
            raise TypeError("action must be callable")
        if not callable(propensity) and not isinstance(propensity, Real):
            raise TypeError("propensity must be a number or a callable")
        self.action = action
        self.propensity = propensity
        self.kinds = _normalize_kinds(kinds)
        self.timing = timing
        self.name = name if name is not None else getattr(action, "__name__", "event")

    def applies_to(self, agent: Agent) -> bool:
        """Return whether this event is scheduled for ``agent``."""
        return self.kinds is None or agent.kind in self.kinds

    def rate(self, agent: Agent, model: EventQueueModel) -> float:
        """Evaluate the propensity for ``agent`` at the current model state."""
        if callable(self.propensity):
            return float(self.propensity(agent, model))
        return float(self.propensity)

    def delay(self, agent: Agent, model: EventQueueModel, propensity: float) -> float:
        """Draw the time until the next occurrence.

        Raises:
            ValueError: if a custom timing function returns a negative or non finite delay
        """
        if self.timing is None:
            return float(model.rng.exponential(1.0 / propensity))
        delay = float(self.timing(agent, model, propensity))
        if not (delay >= 0 and math.isfinite(delay)):
            raise ValueError(
                f"timing of event '{self.name}' returned invalid delay {delay}"
            )
        return delay

    def __repr__(self) -> str:  # noqa: D105
        return f"AgentEvent({self.name!r}, propensity={self.propensity!r}, kinds={self.kinds!r})"


def _normalize_kinds(kinds) -> frozenset | None:
    if kinds is None:
        return None
    if isinstance(kinds, str | bytes) or not isinstance(kinds, Iterable):
        return frozenset((kinds,))
    return frozenset(kinds)


class EventScheduler:
    """Schedules, fires and purges agent events for an event-queue model.

    Attributes:
        model: the model whose agents are scheduled
        events: the registered AgentEvents, addressed by index
        event_list: the underlying priority queue
        autogenerate_after_action: whether fired actions re-arm themselves

    """

    def __init__(
        self,
        model: EventQueueModel,
        events: Iterable[AgentEvent],
        autogenerate_after_action: bool = True,
    ) -> None:
        """Initialize the scheduler.

        Args:
            model: the model instance to schedule events for
            events: the AgentEvents of the model
            autogenerate_after_action: re-arm an action after it fired
        """
        self.model = model
        self.events: tuple[AgentEvent, ...] = tuple(events)
        for event in self.events:
            if not isinstance(event, AgentEvent):
                raise TypeError(f"expected AgentEvent, got {type(event).__name__}")
        self.event_list = EventList()
        self.autogenerate_after_action = autogenerate_after_action

    def index_of(self, event: AgentEvent | int) -> int:
        """Return the index of ``event`` among the registered events."""
        if isinstance(event, int):
            if not 0 <= event < len(self.events):
                raise IndexError(f"No event with index {event}")
            return event
        try:
            return self.events.index(event)
        except ValueError:
            raise ValueError(f"{event!r} is not registered with the model") from None

    def schedule(
        self, agent: Agent, event: AgentEvent | int, delay: float | None = None
    ) -> ScheduledEvent | None:
        """Schedule the next occurrence of ``event`` for ``agent``.

        Args:
            agent: the agent the action will be applied to
            event: the AgentEvent or its index
            delay: fixed delay from now; drawn from the event's timing if None

        Returns:
            the scheduled entry, or None if the propensity is not positive
        """
        index = self.index_of(event)
        agent_event = self.events[index]
        propensity = agent_event.rate(agent, self.model)
        if delay is None:
            if not propensity > 0:
                return None
            delay = agent_event.delay(agent, self.model, propensity)
        elif delay < 0:
            raise ValueError(
                f"Cannot schedule event in the past (current time: {self.model.time}, "
                f"requested delay: {delay})"
            )
        return self.event_list.add(
            self.model.time + delay, agent.unique_id, index, propensity
        )

    def schedule_agent(self, agent: Agent) -> list[ScheduledEvent]:
        """Schedule the first occurrence of every event applicable to ``agent``."""
        scheduled = []
        for index, event in enumerate(self.events):
            if event.applies_to(agent):
                entry = self.schedule(agent, index)
                if entry is not None:
                    scheduled.append(entry)
        return scheduled

    def purge(self, agent_id: int) -> int:
        """Tombstone all pending events of an agent."""
        n = self.event_list.purge_agent(agent_id)
        if n:
            _logger.debug(f"purged {n} events of agent {agent_id}")
        return n

    def fire(self, entry: ScheduledEvent) -> None:
        """Apply the action of ``entry`` and re-arm it if the agent survived.

        An agent whose kind changed during the action is only re-armed if
        the event still applies to the new kind.

        The model clock must already be advanced to ``entry.time``.
        """
        model = self.model
        try:
            agent = model.store.get(entry.agent_id)
        except NotFound:
            raise NotFound(entry.agent_id, "event queue") from None
        event = self.events[entry.event_index]
        _logger.debug(
            f"firing '{event.name}' for agent {entry.agent_id} at time {entry.time}"
        )
        event.action(agent, model)
        if (
            self.autogenerate_after_action
            and model.is_alive(entry.agent_id)
            and event.applies_to(agent)
        ):
            self.schedule(agent, entry.event_index)
