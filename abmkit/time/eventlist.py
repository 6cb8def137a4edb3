"""Priority queue of agent events.

Core classes:
- ScheduledEvent: one pending occurrence of an action for an agent
- EventList: binary heap ordered by scheduled time

Cancellation uses tombstones: a canceled entry stays in the heap and is
discarded when it reaches the top. A secondary index from agent identifier to
its live entries allows purging all events of an agent without searching
the heap.
"""

from __future__ import annotations

from heapq import heapify, heappop, heappush


class ScheduledEvent:
    """A pending occurrence of an action for an agent.

    Attributes:
        time (float): the absolute simulation time at which the event fires
        agent_id (int): the agent the action is applied to
        event_index (int): index of the action in the model's event tuple
        propensity (float): the propensity the delay was drawn with
        canceled (bool): whether the event has been tombstoned

    Events scheduled for the same time fire in the order in which they were
    scheduled.
    """

    __slots__ = ("_seq", "agent_id", "canceled", "event_index", "propensity", "time")

    def __init__(
        self,
        time: float,
        agent_id: int,
        event_index: int,
        propensity: float,
        seq: int = 0,
    ) -> None:
        """Initialize a scheduled event."""
        self.time = time
        self.agent_id = agent_id
        self.event_index = event_index
        self.propensity = propensity
        self.canceled = False
        self._seq = seq

    def __lt__(self, other: ScheduledEvent) -> bool:  # noqa: D105
        return (self.time, self._seq) < (other.time, other._seq)

    def __repr__(self) -> str:  # noqa: D105
        state = ", canceled" if self.canceled else ""
        return (
            f"ScheduledEvent(time={self.time}, agent_id={self.agent_id}, "
            f"event_index={self.event_index}{state})"
        )


class EventList:
    """A heap of scheduled events with tombstoned cancellation.

    ``len`` reports live events only; the heap may additionally hold
    canceled entries until they surface or the heap is compacted.
    """

    # compact once tombstones outnumber live entries and the heap is not tiny
    _COMPACT_MIN_SIZE = 64

    def __init__(self) -> None:
        """Initialize an empty event list."""
        self._events: list[ScheduledEvent] = []
        self._by_agent: dict[int, dict[ScheduledEvent, None]] = {}
        self._n_live = 0
        self._next_seq = 0
        heapify(self._events)

    def add(
        self, time: float, agent_id: int, event_index: int, propensity: float
    ) -> ScheduledEvent:
        """Create and insert a new event."""
        event = ScheduledEvent(time, agent_id, event_index, propensity, self._next_seq)
        self._next_seq += 1
        heappush(self._events, event)
        self._by_agent.setdefault(agent_id, {})[event] = None
        self._n_live += 1
        return event

    def _discard_canceled(self) -> None:
        events = self._events
        while events and events[0].canceled:
            heappop(events)

    def peek(self) -> ScheduledEvent:
        """Return the earliest live event without removing it.

        Raises:
            IndexError: if the list holds no live events
        """
        self._discard_canceled()
        if not self._events:
            raise IndexError("Event list is empty")
        return self._events[0]

    def pop(self) -> ScheduledEvent:
        """Remove and return the earliest live event.

        Raises:
            IndexError: if the list holds no live events
        """
        self._discard_canceled()
        if not self._events:
            raise IndexError("Event list is empty")
        event = heappop(self._events)
        self._forget(event)
        return event

    def _forget(self, event: ScheduledEvent) -> None:
        entries = self._by_agent[event.agent_id]
        del entries[event]
        if not entries:
            del self._by_agent[event.agent_id]
        self._n_live -= 1

    def cancel(self, event: ScheduledEvent) -> None:
        """Tombstone ``event``; canceling twice or after firing is a no-op."""
        entries = self._by_agent.get(event.agent_id)
        if event.canceled or entries is None or event not in entries:
            return
        event.canceled = True
        self._forget(event)
        self._maybe_compact()

    def purge_agent(self, agent_id: int) -> int:
        """Tombstone all pending events of an agent and return how many there were."""
        entries = self._by_agent.pop(agent_id, {})
        for event in entries:
            event.canceled = True
        self._n_live -= len(entries)
        self._maybe_compact()
        return len(entries)

    def events_of(self, agent_id: int) -> list[ScheduledEvent]:
        """Return the live events of an agent, earliest first."""
        return sorted(self._by_agent.get(agent_id, ()))

    def _maybe_compact(self) -> None:
        n_events = len(self._events)
        if n_events > self._COMPACT_MIN_SIZE and n_events > 2 * self._n_live:
            self._events = [event for event in self._events if not event.canceled]
            heapify(self._events)

    @property
    def heap_size(self) -> int:
        """Number of entries in the heap, tombstones included."""
        return len(self._events)

    def is_empty(self) -> bool:
        """Return whether there are no live events."""
        return self._n_live == 0

    def __len__(self) -> int:  # noqa: D105
        return self._n_live

    def __contains__(self, event: object) -> bool:  # noqa: D105
        if not isinstance(event, ScheduledEvent) or event.canceled:
            return False
        return event in self._by_agent.get(event.agent_id, ())

    def __iter__(self):
        """Iterate over the live events, earliest first."""
        return iter(sorted(event for event in self._events if not event.canceled))

    def clear(self) -> None:
        """Remove all events."""
        self._events.clear()
        self._by_agent.clear()
        self._n_live = 0
