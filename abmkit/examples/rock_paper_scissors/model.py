"""Spatial rock-paper-scissors in continuous time.

Agents are rocks, papers or scissors on a periodic grid with at most one
agent per cell. Three events recur for every agent:

- attack: pick a random neighbor; if it loses the game it is removed
- reproduce: copy yourself into a random empty neighboring cell
- move: step to a random neighboring cell, swapping with its occupant if
  there is one. Rocks do not move, and movement takes about one time unit.
"""

import math

from abmkit import AgentEvent, EventQueueModel, GridSpaceSingle

KINDS = ("rock", "paper", "scissors")
BEATS = {"rock": "scissors", "scissors": "paper", "paper": "rock"}


def attack(agent, model):
    contender = model.random_nearby_agent(agent.unique_id)
    if contender is None:
        return
    if BEATS[agent.kind] == model[contender].kind:
        model.remove_agent(contender)


def move(agent, model):
    pos = model.random_nearby_position(agent.pos)
    if pos is None:
        return
    occupant = model.space.id_at(pos)
    if occupant is None:
        model.move_agent(agent.unique_id, pos)
    else:
        model.swap_agents(agent.unique_id, occupant)


def reproduce(agent, model):
    pos = model.random_nearby_position(agent.pos, 1, model.space.is_empty)
    if pos is None:
        return
    model.replicate(agent.unique_id, pos)


def reproduction_propensity(agent, model):
    return math.cos(model.time) ** 2


def movement_time(agent, model, propensity):
    # around one time unit
    return max(0.0, 0.1 * model.rng.standard_normal() + 1)


attack_event = AgentEvent(attack, propensity=1.0)
reproduction_event = AgentEvent(reproduce, propensity=reproduction_propensity)
movement_event = AgentEvent(
    move, propensity=0.5, kinds=("paper", "scissors"), timing=movement_time
)


class RockPaperScissors(EventQueueModel):
    """Event-based rock-paper-scissors model."""

    def __init__(self, width: int = 100, height: int = 100, rng=None):
        """Create a new model with every cell holding a random rock, paper or scissors.

        Args:
            width: Width of the grid
            height: Height of the grid
            rng: Seed for reproducibility
        """
        super().__init__(
            GridSpaceSingle((width, height), periodic=True),
            events=(attack_event, reproduction_event, movement_event),
            rng=rng,
        )
        for pos in self.space.positions():
            self.add_agent(pos, kind=self.random.choice(KINDS))

    def count(self, kind):
        """Return the number of agents of ``kind``."""
        return len(self.store.ids_of_kind(kind))
