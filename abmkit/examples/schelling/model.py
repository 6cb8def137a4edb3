from abmkit import GridSpaceSingle, Randomly, StandardModel


class Schelling(StandardModel):
    """Model class for the Schelling segregation model.

    Agents belong to one of two groups. An agent with fewer than
    ``min_to_be_happy`` neighbors of its own group moves to a random empty
    cell; otherwise it is happy.
    """

    def __init__(
        self,
        width: int = 20,
        height: int = 20,
        n_agents: int = 320,
        min_to_be_happy: int = 3,
        radius: int = 1,
        rng=None,
    ):
        """Create a new Schelling model.

        Args:
            width: Width of the grid
            height: Height of the grid
            n_agents: Number of agents, half of them in each group
            min_to_be_happy: Minimum number of similar neighbors needed for happiness
            radius: Search radius for checking neighbor similarity
            rng: Seed for reproducibility
        """
        super().__init__(
            GridSpaceSingle((width, height), periodic=False),
            scheduler=Randomly(),
            rng=rng,
            properties={"min_to_be_happy": min_to_be_happy, "radius": radius},
        )
        self.happy = 0

        for n in range(n_agents):
            group = 0 if n < n_agents / 2 else 1
            self.add_agent_single(group=group, mood=False)

    def agent_step(self, agent):
        """Count similar neighbors and move if unhappy."""
        similar = sum(
            1
            for other in self.neighbors(agent.unique_id, self.properties.radius)
            if self[other].group == agent.group
        )
        if similar >= self.properties.min_to_be_happy:
            agent.mood = True
            self.happy += 1
        else:
            agent.mood = False
            self.move_agent_random(agent.unique_id)

    def model_step(self):
        """Stop once every agent is happy."""
        self.running = self.happy < len(self)
        self.happy = 0

    @property
    def pct_happy(self):
        if len(self) > 0:
            return sum(agent.mood for agent in self.agents) / len(self) * 100
        return 0
