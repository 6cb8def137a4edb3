"""Activation orders for tick-based models.

A scheduler is any callable ``scheduler(model, ids) -> list[int]`` where
``ids`` is the snapshot of agent identifiers taken at the start of the step.
The order is computed once per step; agents added during the step are not
part of it and agents removed during the step are skipped by the model.

Examples:
    model = StandardModel(space, scheduler=Randomly())

    # activate rocks first, then paper, then scissors
    model = StandardModel(space, scheduler=ByKind(["rock", "paper", "scissors"], shuffle_kinds=False))
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from operator import attrgetter
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from abmkit.model import Model
    from abmkit.storage import AgentIds


class ById:
    """Activate agents in ascending identifier order."""

    def __call__(self, model: Model, ids: AgentIds) -> list[int]:  # noqa: D102
        return sorted(ids)

    def __repr__(self) -> str:  # noqa: D105
        return "ById()"


class Randomly:
    """Activate agents in a fresh uniformly random order every step."""

    def __call__(self, model: Model, ids: AgentIds) -> list[int]:  # noqa: D102
        order = list(ids)
        model.random.shuffle(order)
        return order

    def __repr__(self) -> str:  # noqa: D105
        return "Randomly()"


class ByKind:
    """Activate agents grouped by kind.

    Args:
        kinds: the kinds to activate, in this order. Agents of other kinds are
            not activated. If None, all kinds present in the step are used in
            order of first appearance.
        shuffle_kinds: draw a new order of the kinds every step
        shuffle_agents: shuffle agents within each kind, otherwise by identifier
    """

    def __init__(
        self,
        kinds: Iterable[Hashable] | None = None,
        shuffle_kinds: bool = True,
        shuffle_agents: bool = False,
    ) -> None:
        """Initialize the scheduler."""
        self.kinds = list(kinds) if kinds is not None else None
        self.shuffle_kinds = shuffle_kinds
        self.shuffle_agents = shuffle_agents

    def __call__(self, model: Model, ids: AgentIds) -> list[int]:  # noqa: D102
        groups: dict[Hashable, list[int]] = {}
        if self.kinds is not None:
            groups = {kind: [] for kind in self.kinds}
        for unique_id in ids:
            kind = model[unique_id].kind
            if self.kinds is None:
                groups.setdefault(kind, []).append(unique_id)
            elif kind in groups:
                groups[kind].append(unique_id)

        kinds = list(groups)
        if self.shuffle_kinds:
            model.random.shuffle(kinds)

        order = []
        for kind in kinds:
            members = groups[kind]
            if self.shuffle_agents:
                model.random.shuffle(members)
            else:
                members.sort()
            order.extend(members)
        return order

    def __repr__(self) -> str:  # noqa: D105
        return (
            f"ByKind({self.kinds!r}, shuffle_kinds={self.shuffle_kinds}, "
            f"shuffle_agents={self.shuffle_agents})"
        )


class ByProperty:
    """Activate agents sorted by a payload field or a key function.

    Ties are broken by identifier.

    Args:
        key: name of an agent attribute or a callable ``key(agent)``
        reverse: sort in descending order
    """

    def __init__(self, key: str | Callable[[Any], Any], reverse: bool = False):
        """Initialize the scheduler."""
        self.key = key
        self.reverse = reverse
        self._getter = attrgetter(key) if isinstance(key, str) else key

    def __call__(self, model: Model, ids: AgentIds) -> list[int]:  # noqa: D102
        getter = self._getter
        ranked = sorted(ids, key=lambda unique_id: (getter(model[unique_id]), unique_id))
        if self.reverse:
            # keep identifier order among ties
            ranked = sorted(
                ranked, key=lambda unique_id: getter(model[unique_id]), reverse=True
            )
        return ranked

    def __repr__(self) -> str:  # noqa: D105
        return f"ByProperty({self.key!r}, reverse={self.reverse})"


class Partially:
    """Activate each agent with probability ``p``, in identifier order."""

    def __init__(self, p: float):
        """Initialize the scheduler."""
        if not 0 <= p <= 1:
            raise ValueError("p must be between 0 and 1")
        self.p = p

    def __call__(self, model: Model, ids: AgentIds) -> list[int]:  # noqa: D102
        random = model.random
        return [unique_id for unique_id in sorted(ids) if random.random() < self.p]

    def __repr__(self) -> str:  # noqa: D105
        return f"Partially({self.p})"
