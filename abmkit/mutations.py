"""Deferred structural changes.

While a model is activating agents, additions and removals can either be
applied immediately or collected in a MutationBuffer and applied at the next
safe point (the end of a tick, or the end of an event firing).

Deferred removals take effect logically right away: the agent is reported as
dead and skipped by the running traversal and by neighbor queries, while its
record and position stay in place until the flush. Deferred additions
reserve their identifier immediately but only become visible after the flush.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from abmkit.abm_logging import create_module_logger
from abmkit.errors import CellOccupied, NotFound

if TYPE_CHECKING:
    from abmkit.agent import Agent
    from abmkit.model import Model

_logger = create_module_logger()


class MutationBuffer:
    """Collects agent additions and removals until they are flushed.

    Attributes:
        enabled (bool): whether changes requested during activation are deferred

    """

    def __init__(self, enabled: bool = False) -> None:
        """Initialize an empty buffer."""
        self.enabled = enabled
        self._adds: dict[int, tuple[Agent, Any]] = {}
        self._removals: dict[int, None] = {}

    def defer_add(self, agent: Agent, pos: Any, exclusive: bool = False) -> None:
        """Record that ``agent`` should be placed at ``pos`` on flush.

        Args:
            agent: the new agent record
            pos: the validated target position
            exclusive: whether positions hold at most one agent

        Raises:
            CellOccupied: if ``exclusive`` and another pending addition already targets ``pos``
        """
        if exclusive:
            for other, other_pos in self._adds.values():
                if other_pos == pos:
                    raise CellOccupied(pos, other.unique_id)
        self._adds[agent.unique_id] = (agent, pos)

    def defer_remove(self, unique_id: int) -> None:
        """Record that agent ``unique_id`` should be removed on flush.

        Removing an agent whose addition is still pending cancels the addition.

        Raises:
            NotFound: if the removal has already been requested
        """
        if unique_id in self._adds:
            del self._adds[unique_id]
            return
        if unique_id in self._removals:
            raise NotFound(unique_id, "model")
        self._removals[unique_id] = None

    def is_removed(self, unique_id: int) -> bool:
        """Return whether a removal of ``unique_id`` is pending."""
        return unique_id in self._removals

    def is_pending_add(self, unique_id: int) -> bool:
        """Return whether an addition of ``unique_id`` is pending."""
        return unique_id in self._adds

    def pending_positions(self) -> list[Any]:
        """Positions targeted by pending additions."""
        return [pos for _, pos in self._adds.values()]

    def __len__(self) -> int:  # noqa: D105
        return len(self._adds) + len(self._removals)

    def flush(self, model: Model) -> None:
        """Apply all pending changes to ``model``: removals first, then additions."""
        if not self._adds and not self._removals:
            return
        removals, self._removals = self._removals, {}
        adds, self._adds = self._adds, {}
        _logger.debug(
            f"flushing {len(removals)} removals and {len(adds)} additions"
        )
        for unique_id in removals:
            model._delete_agent(model.store.get(unique_id))
        for agent, pos in adds.values():
            model._insert_agent(agent, pos)

    def discard(self) -> None:
        """Drop all pending changes without applying them."""
        if self._adds or self._removals:
            _logger.debug(f"discarding {len(self)} pending mutations")
        self._adds.clear()
        self._removals.clear()
