"""Storage of agent records.

Provides:
- AgentStore: id -> Agent mapping with monotonically assigned identifiers
- AgentIds: a lazy snapshot of identifiers that skips stale entries

Insert, lookup and removal are dict operations and thus amortized O(1).
"""

from __future__ import annotations

from collections.abc import Hashable, Iterator, Sequence
from typing import Any, overload

from abmkit.abm_logging import create_module_logger
from abmkit.agent import Agent
from abmkit.errors import NotFound

_logger = create_module_logger()


class AgentIds(Sequence):
    """Snapshot of agent identifiers taken at a given moment.

    Iteration yields the identifiers in the order in which they were captured,
    skipping any identifier that has been removed from the store since. Agents
    inserted after the snapshot was taken are never yielded.

    Indexing and ``len`` operate on the raw snapshot, which may contain stale
    identifiers; use iteration or ``alive`` when only live agents matter.
    """

    __slots__ = ("_ids", "_store")

    def __init__(self, store: AgentStore, ids: list[int]):
        self._store = store
        self._ids = ids

    def __iter__(self) -> Iterator[int]:  # noqa: D105
        agents = self._store._agents
        for unique_id in self._ids:
            if unique_id in agents:
                yield unique_id

    @overload
    def __getitem__(self, index: int) -> int: ...

    @overload
    def __getitem__(self, index: slice) -> list[int]: ...

    def __getitem__(self, index):  # noqa: D105
        return self._ids[index]

    def __len__(self) -> int:  # noqa: D105
        return len(self._ids)

    def __contains__(self, unique_id: object) -> bool:  # noqa: D105
        return unique_id in self._store._agents and unique_id in self._ids

    def alive(self) -> list[int]:
        """Return the identifiers of the snapshot that are still alive."""
        return list(self)

    def __repr__(self) -> str:  # noqa: D105
        return f"AgentIds({self._ids!r})"


class AgentStore:
    """Owns all agent records of a model.

    Attributes:
        next_id (int): the identifier that will be handed out next

    """

    def __init__(self) -> None:
        """Create an empty store. Identifiers start at 1."""
        self._agents: dict[int, Agent] = {}
        self._by_kind: dict[Hashable, dict[int, None]] = {}
        self.next_id: int = 1

    def reserve_id(self) -> int:
        """Hand out a fresh identifier without storing anything yet."""
        unique_id = self.next_id
        self.next_id += 1
        return unique_id

    def create(self, unique_id: int | None = None, **fields: Any) -> Agent:
        """Build an agent record with a fresh (or reserved) identifier.

        The record is not stored, call ``insert`` for that.
        """
        if unique_id is None:
            unique_id = self.reserve_id()
        return Agent(unique_id, **fields)

    def insert(self, agent: Agent) -> int:
        """Store ``agent`` and return its identifier.

        Args:
            agent: the record to store, usually obtained from ``create``

        Raises:
            ValueError: if the identifier is already in use or was never handed out
        """
        unique_id = agent.unique_id
        if unique_id in self._agents:
            raise ValueError(f"Agent id {unique_id} is already in use")
        if unique_id >= self.next_id:
            raise ValueError(f"Agent id {unique_id} was not handed out by this store")
        self._agents[unique_id] = agent
        self._by_kind.setdefault(agent.kind, {})[unique_id] = None
        agent._store = self
        _logger.debug(f"stored agent {unique_id} of kind {agent.kind!r}")
        return unique_id

    def remove(self, unique_id: int) -> Agent:
        """Remove an agent and return its record.

        Raises:
            NotFound: if there is no such agent
        """
        try:
            agent = self._agents.pop(unique_id)
        except KeyError:
            raise NotFound(unique_id, "storage") from None
        self._unindex_kind(unique_id, agent.kind)
        agent._store = None
        _logger.debug(f"removed agent {unique_id}")
        return agent

    def _unindex_kind(self, unique_id: int, kind: Hashable) -> None:
        kind_ids = self._by_kind[kind]
        del kind_ids[unique_id]
        if not kind_ids:
            del self._by_kind[kind]

    def _rekind(self, agent: Agent, old_kind: Hashable) -> None:
        """Move ``agent`` from the index of ``old_kind`` to that of its current kind."""
        self._unindex_kind(agent.unique_id, old_kind)
        self._by_kind.setdefault(agent.kind, {})[agent.unique_id] = None

    def get(self, unique_id: int) -> Agent:
        """Return the agent with identifier ``unique_id``.

        Raises:
            NotFound: if there is no such agent
        """
        try:
            return self._agents[unique_id]
        except KeyError:
            raise NotFound(unique_id, "storage") from None

    __getitem__ = get

    def __contains__(self, unique_id: object) -> bool:  # noqa: D105
        return unique_id in self._agents

    def __len__(self) -> int:  # noqa: D105
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        """Iterate over a snapshot of the agents, skipping removed ones."""
        agents = self._agents
        for unique_id in list(agents):
            agent = agents.get(unique_id)
            if agent is not None:
                yield agent

    def iterate_all(self) -> AgentIds:
        """Return a snapshot of all identifiers, in insertion order."""
        return AgentIds(self, list(self._agents))

    def ids_of_kind(self, kind: Hashable) -> list[int]:
        """Return the identifiers of all agents with the given kind."""
        return list(self._by_kind.get(kind, ()))

    def kinds(self) -> list[Hashable]:
        """Return the kinds present in the store, in order of first appearance."""
        return list(self._by_kind)

    def clear(self) -> None:
        """Remove all records. Identifiers are not reset."""
        for agent in self._agents.values():
            agent._store = None
        self._agents.clear()
        self._by_kind.clear()
