"""Social distancing: agents as balls bumping into each other in continuous space.

Every tick each agent moves along its velocity. The model step then finds
pairs of agents closer than ``interaction_radius`` and resolves them as
elastic collisions. Immobile agents have infinite mass and zero velocity.
An optional SIR layer lets infection travel along the collisions.
"""

import math

from abmkit import ContinuousSpace, StandardModel


class BallModel(StandardModel):
    """Balls moving and colliding in the unit square."""

    def __init__(
        self,
        n_agents: int = 500,
        speed: float = 0.002,
        interaction_radius: float = 0.01,
        isolated: float = 0.0,
        collisions: bool = True,
        dt: float = 1.0,
        rng=None,
    ):
        """Create a new ball model.

        Args:
            n_agents: Number of agents
            speed: Speed of the mobile agents
            interaction_radius: Distance at which two agents collide
            isolated: Fraction of agents that do not move
            collisions: Whether agents collide at all
            dt: Time step used for movement
            rng: Seed for reproducibility
        """
        super().__init__(
            ContinuousSpace((1, 1), spacing=0.02, periodic=True),
            rng=rng,
            properties={"interaction_radius": interaction_radius, "dt": dt},
        )
        self.collisions = collisions
        for n in range(n_agents):
            pos = (self.random.random(), self.random.random())
            if n < isolated * n_agents:
                mass, vel = math.inf, (0.0, 0.0)
            else:
                angle = 2 * math.pi * self.random.random()
                mass, vel = 1.0, (math.cos(angle) * speed, math.sin(angle) * speed)
            self.add_agent(pos, vel=vel, **self.agent_fields(n), mass=mass)

    def agent_fields(self, n):
        """Extra payload of agent number ``n``; none for plain balls."""
        return {}

    def agent_step(self, agent):
        self.walk(agent.unique_id, self.properties.dt)

    def model_step(self):
        if not self.collisions:
            return
        for a, b in self.interacting_pairs(self.properties.interaction_radius, "nearest"):
            self.collide(self[a], self[b])

    def collide(self, agent_a, agent_b):
        self.space.elastic_collision(agent_a, agent_b, "mass")


class SIRBallModel(BallModel):
    """Balls that pass an infection on when they collide.

    Infected agents recover after ``infection_period`` ticks, or die with
    probability ``death_rate``. Recovered agents are reinfected with
    probability ``reinfection_probability``.
    """

    def __init__(
        self,
        n_agents: int = 1000,
        initial_infected: int = 5,
        infection_period: int = 30 * 24,
        reinfection_probability: float = 0.05,
        death_rate: float = 0.044,
        beta_min: float = 0.4,
        beta_max: float = 0.8,
        interaction_radius: float = 0.012,
        **kwargs,
    ):
        """Create a new SIR ball model.

        Args:
            n_agents: Number of agents
            initial_infected: Number of agents infected at the start
            infection_period: Ticks until an infected agent recovers or dies
            reinfection_probability: Chance for a recovered agent to be infected again
            death_rate: Chance to die at the end of the infection
            beta_min: Minimum transmission probability of an agent
            beta_max: Maximum transmission probability of an agent
            interaction_radius: Distance at which two agents collide
            kwargs: passed on to BallModel
        """
        self.n_susceptible = n_agents - initial_infected
        self.beta_range = (beta_min, beta_max)
        super().__init__(n_agents=n_agents, interaction_radius=interaction_radius, **kwargs)
        self.properties.update(
            infection_period=infection_period,
            reinfection_probability=reinfection_probability,
            death_rate=death_rate,
        )

    def agent_fields(self, n):
        beta_min, beta_max = self.beta_range
        return {
            "status": "S" if n < self.n_susceptible else "I",
            "days_infected": 0,
            "beta": (beta_max - beta_min) * self.random.random() + beta_min,
        }

    def collide(self, agent_a, agent_b):
        self.transmit(agent_a, agent_b)
        super().collide(agent_a, agent_b)

    def transmit(self, agent_a, agent_b):
        # only one of the two may be infected
        if (agent_a.status == "I") == (agent_b.status == "I"):
            return
        infected, healthy = (agent_a, agent_b) if agent_a.status == "I" else (agent_b, agent_a)
        if self.random.random() > infected.beta:
            return
        if (
            healthy.status == "R"
            and self.random.random() > self.properties.reinfection_probability
        ):
            return
        healthy.status = "I"

    def agent_step(self, agent):
        super().agent_step(agent)
        if agent.status != "I":
            return
        agent.days_infected += 1
        if agent.days_infected >= self.properties.infection_period:
            if self.random.random() <= self.properties.death_rate:
                self.remove_agent(agent.unique_id)
            else:
                agent.status = "R"
                agent.days_infected = 0

    def count(self, status):
        """Return the number of agents with the given status."""
        return sum(1 for agent in self.agents if agent.status == status)
