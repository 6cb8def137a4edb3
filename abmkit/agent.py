"""The agent record for abmkit.

Core Objects: Agent

An agent is a plain record: an immutable identifier, a position owned by the
space the agent lives in, an optional ``kind`` tag and any number of user
defined payload fields. Heterogeneous populations are expressed through the
``kind`` tag rather than through a class hierarchy, e.g.::

    model.add_agent((3, 4), kind="rock", energy=10)

"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any

_RESERVED = frozenset(
    {"unique_id", "pos", "kind", "vel", "_pos", "_unique_id", "_kind", "_store"}
)


class Agent:
    """An agent in a model.

    Attributes:
        unique_id (int): identifier, assigned by the model and never reused
        pos: the position in the model's space, None when the model has no space
        kind (Hashable | None): the variant tag of the agent
        vel (tuple[float, ...] | None): velocity, used by continuous spaces

    Notes:
        ``pos`` cannot be assigned. Move agents through ``Model.move_agent`` so
        that the spatial index and the stored position never disagree.

    """

    def __init__(
        self,
        unique_id: int,
        pos: Any = None,
        kind: Hashable | None = None,
        vel: tuple[float, ...] | None = None,
        **payload: Any,
    ) -> None:
        """Create a new agent record.

        Args:
            unique_id: the identifier handed out by the agent store
            pos: initial position; normally left at None and set by the space
            kind: the variant tag
            vel: initial velocity for continuous spaces
            payload: any user defined fields
        """
        self._unique_id = unique_id
        self._pos = pos
        self._store = None
        self._kind = kind
        self.vel = tuple(vel) if vel is not None else None
        for key in payload:
            if key in _RESERVED:
                raise ValueError(f"'{key}' is a reserved agent field")
        self.__dict__.update(payload)

    @property
    def unique_id(self) -> int:
        """The identifier of the agent."""
        return self._unique_id

    @property
    def pos(self) -> Any:
        """The position of the agent, maintained by its space."""
        return self._pos

    @pos.setter
    def pos(self, value: Any) -> None:
        raise AttributeError(
            "Agent positions are owned by the space, use model.move_agent instead."
        )

    @property
    def kind(self) -> Hashable | None:
        """The variant tag of the agent.

        Assigning a new kind keeps the per-kind index of the store in sync.
        """
        return self._kind

    @kind.setter
    def kind(self, value: Hashable | None) -> None:
        old, self._kind = self._kind, value
        if self._store is not None and old != value:
            self._store._rekind(self, old)

    @property
    def variant(self) -> Hashable | None:
        """Alias for ``kind``."""
        return self.kind

    @property
    def payload(self) -> dict[str, Any]:
        """Return the user defined fields of this agent."""
        return {
            k: v
            for k, v in self.__dict__.items()
            if k not in _RESERVED and not k.startswith("_")
        }

    def copy_payload(self, **overrides: Any) -> dict[str, Any]:
        """Return kind, velocity and payload, updated with ``overrides``.

        Used to create offspring that share all fields with their parent.
        """
        fields = {"kind": self.kind, "vel": self.vel, **self.payload}
        fields.update(overrides)
        return fields

    def __repr__(self) -> str:  # noqa: D105
        kind = f", kind={self.kind!r}" if self.kind is not None else ""
        return f"Agent({self._unique_id}, pos={self._pos!r}{kind})"
