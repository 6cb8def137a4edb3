"""Base class for all spatial indices.

Space provides the bookkeeping shared by all spaces:
- membership tracking of agent identifiers
- add / remove / move / swap with validation before mutation
- neighbor queries relative to an agent
- property arrays attached to the space

Concrete spaces implement position validation, the position -> identifiers
mapping and the neighborhood geometry.
"""

from __future__ import annotations

import abc
from collections.abc import Hashable, Iterable
from random import Random
from typing import Any

import numpy as np

from abmkit.agent import Agent
from abmkit.errors import ConfigurationError, NotFound


class Space(abc.ABC):
    """Base class for all spaces.

    Attributes:
        properties (dict[str, np.ndarray]): the property arrays of the space

    Notes:
        A space only holds identifiers and positions, never agent payloads.
        The position stored on the agent record is written exclusively by the
        space, which keeps both in sync.

    """

    def __init__(self) -> None:
        """Instantiate a Space."""
        self._members: set[int] = set()
        self.properties: dict[str, np.ndarray] = {}

    # position handling, implemented by subclasses
    @abc.abstractmethod
    def validate(self, pos: Any) -> Any:
        """Return the normalized form of ``pos``.

        Raises:
            InvalidPosition: if ``pos`` is out of bounds or malformed
        """

    @abc.abstractmethod
    def random_position(self, random: Random) -> Any:
        """Return a uniformly drawn valid position."""

    @abc.abstractmethod
    def agents_at(self, pos: Any) -> list[int]:
        """Return the identifiers of the agents exactly at ``pos``."""

    @abc.abstractmethod
    def neighbors_of_position(self, pos: Any, radius: float, **kwargs) -> list[int]:
        """Return the identifiers of all agents within ``radius`` of ``pos``."""

    @abc.abstractmethod
    def _insert(self, unique_id: int, pos: Any) -> None: ...

    @abc.abstractmethod
    def _delete(self, unique_id: int, pos: Any) -> None: ...

    def _check_can_place(self, pos: Any) -> None:
        """Raise if ``pos`` cannot take another agent; unlimited by default."""

    # membership
    def __contains__(self, unique_id: object) -> bool:  # noqa: D105
        return unique_id in self._members

    def __len__(self) -> int:  # noqa: D105
        return len(self._members)

    def _require_member(self, agent: Agent) -> None:
        if agent.unique_id not in self._members:
            raise NotFound(agent.unique_id, "space")

    def add(self, agent: Agent, pos: Any) -> Any:
        """Place ``agent`` at ``pos`` and return the normalized position.

        Raises:
            ValueError: if the agent is already placed in this space
            InvalidPosition: if ``pos`` is not valid
            CellOccupied: if the space does not allow another agent at ``pos``
        """
        if agent.unique_id in self._members:
            raise ValueError(f"Agent {agent.unique_id} is already in the space")
        pos = self.validate(pos)
        self._check_can_place(pos)
        self._insert(agent.unique_id, pos)
        self._members.add(agent.unique_id)
        agent._pos = pos
        return pos

    def remove(self, agent: Agent) -> None:
        """Remove ``agent`` from the space.

        Raises:
            NotFound: if the agent is not in this space
        """
        self._require_member(agent)
        self._delete(agent.unique_id, agent._pos)
        self._members.discard(agent.unique_id)
        agent._pos = None

    def move(self, agent: Agent, pos: Any) -> Any:
        """Move ``agent`` to ``pos`` and return the normalized position.

        All checks happen before the index is touched, so a failed move leaves
        the agent where it was.
        """
        self._require_member(agent)
        pos = self.validate(pos)
        if pos == agent._pos:
            return pos
        self._check_can_place(pos)
        self._delete(agent.unique_id, agent._pos)
        self._insert(agent.unique_id, pos)
        agent._pos = pos
        return pos

    def swap(self, agent_a: Agent, agent_b: Agent) -> None:
        """Exchange the positions of two agents."""
        self._require_member(agent_a)
        self._require_member(agent_b)
        pos_a, pos_b = agent_a._pos, agent_b._pos
        self._delete(agent_a.unique_id, pos_a)
        self._delete(agent_b.unique_id, pos_b)
        self._insert(agent_a.unique_id, pos_b)
        self._insert(agent_b.unique_id, pos_a)
        agent_a._pos, agent_b._pos = pos_b, pos_a

    def neighbors(
        self, agent: Agent, radius: float = 1, include_self: bool = False, **kwargs
    ) -> list[int]:
        """Return the identifiers of the agents within ``radius`` of ``agent``.

        Args:
            agent: the agent at the center of the query
            radius: the search radius, interpreted by the concrete space
            include_self: whether ``agent`` itself is part of the result
            kwargs: space specific query options
        """
        self._require_member(agent)
        ids = self.neighbors_of_position(agent._pos, radius, **kwargs)
        if include_self:
            return ids
        return [unique_id for unique_id in ids if unique_id != agent.unique_id]

    def is_empty(self, pos: Any) -> bool:
        """Return whether no agent is exactly at ``pos``."""
        return not self.agents_at(pos)

    # property arrays
    def _check_property_shape(self, name: str, array: np.ndarray) -> None:
        raise ConfigurationError(
            name, f"{type(self).__name__} does not support property arrays"
        )

    def add_property(self, name: str, array: Iterable | np.ndarray) -> np.ndarray:
        """Attach an existing array as a named property.

        Raises:
            ConfigurationError: if a property of that name exists or the shape does not fit the space
        """
        if name in self.properties:
            raise ConfigurationError(name, "property already exists")
        array = np.asarray(array)
        self._check_property_shape(name, array)
        self.properties[name] = array
        return array

    def remove_property(self, name: str) -> None:
        """Remove a property array."""
        if name not in self.properties:
            raise KeyError(f"No property named '{name}'.")
        del self.properties[name]

    def property_value(self, name: str, pos: Any) -> Any:
        """Return the value of property ``name`` at ``pos``."""
        return self.properties[name][self._property_index(self.validate(pos))]

    def _property_index(self, pos: Any) -> Any:
        return pos


def dedupe(items: Iterable[Hashable]) -> list:
    """Return the items in order of first appearance, without duplicates."""
    return list(dict.fromkeys(items))
