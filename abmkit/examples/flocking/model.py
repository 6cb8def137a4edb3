"""Flocking birds in continuous space.

Each bird follows three rules within its visual distance:

- cohesion: fly towards the average position of its neighbors
- separation: keep a minimum distance from the other birds
- alignment: fly in the average direction of its neighbors

Velocities are kept at unit length; a bird covers ``speed`` per tick.
"""

import numpy as np

from abmkit import ContinuousSpace, Randomly, StandardModel


class Flocking(StandardModel):
    """Boids flocking model."""

    def __init__(
        self,
        n_birds: int = 100,
        speed: float = 1.5,
        cohere_factor: float = 0.1,
        separation: float = 2.0,
        separate_factor: float = 0.25,
        match_factor: float = 0.04,
        visual_distance: float = 5.0,
        extent=(100, 100),
        rng=None,
    ):
        """Create a new flocking model.

        Args:
            n_birds: Number of birds
            speed: Distance a bird covers per tick
            cohere_factor: Weight of flying towards the neighbors
            separation: Minimum distance to keep from other birds
            separate_factor: Weight of moving away from close birds
            match_factor: Weight of matching the heading of the neighbors
            visual_distance: Radius in which a bird sees its neighbors
            extent: Size of the periodic space
            rng: Seed for reproducibility
        """
        super().__init__(
            ContinuousSpace(extent, spacing=visual_distance / 1.5, periodic=True),
            scheduler=Randomly(),
            rng=rng,
        )
        for _ in range(n_birds):
            vel = self.rng.random(2) * 2 - 1
            self.add_agent(
                vel=vel,
                speed=speed,
                cohere_factor=cohere_factor,
                separation=separation,
                separate_factor=separate_factor,
                match_factor=match_factor,
                visual_distance=visual_distance,
            )
        self.average_heading = None
        self.update_average_heading()

    def agent_step(self, bird):
        neighbors = self.neighbors(bird.unique_id, bird.visual_distance)
        cohere = np.zeros(2)
        separate = np.zeros(2)
        match = np.zeros(2)
        for other_id in neighbors:
            other = self[other_id]
            heading = self.space.displacement(bird.pos, other.pos)
            cohere += heading
            if self.space.distance(bird.pos, other.pos) < bird.separation:
                separate -= heading
            match += other.vel

        n = max(len(neighbors), 1)
        vel = (
            np.asarray(bird.vel)
            + cohere / n * bird.cohere_factor
            + separate / n * bird.separate_factor
            + match / n * bird.match_factor
        ) / 2
        norm = np.linalg.norm(vel)
        if norm > 0:
            vel = vel / norm
        bird.vel = tuple(float(v) for v in vel)
        self.walk(bird.unique_id, bird.speed)

    def model_step(self):
        self.update_average_heading()

    def update_average_heading(self):
        """Calculate the average heading (direction) of all birds."""
        if len(self) == 0:
            self.average_heading = 0
            return
        headings = np.array([agent.vel for agent in self.agents])
        mean_heading = np.mean(headings, axis=0)
        self.average_heading = float(np.arctan2(mean_heading[1], mean_heading[0]))
