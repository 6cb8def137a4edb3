"""SIR epidemic spreading between cities.

Every city is a node of a complete directed graph, and the migration rates
between cities are stored as an (n, n) property array on the graph space.
Each tick an agent may migrate, infected agents infect a Poisson distributed
number of contacts in their city, and after ``infection_period`` days an
infected agent recovers or dies. Infected agents that have been detected
(after ``detection_time`` days) transmit at the lower rate ``beta_det``.
"""

import networkx as nx
import numpy as np

from abmkit import ConfigurationError, GraphSpace, StandardModel


def make_params(n_cities: int, max_travel_rate: float, seed=None) -> dict:
    """Draw city populations, transmission and migration rates.

    People in small cities tend to migrate to bigger cities.
    """
    rng = np.random.default_rng(seed)
    populations = rng.integers(50, 5001, n_cities)
    beta_und = rng.choice(np.arange(0.3, 0.61, 0.02), n_cities)
    beta_det = beta_und / 10

    migration_rates = (populations[:, None] + populations[None, :]) / populations[:, None]
    migration_rates = migration_rates * max_travel_rate / migration_rates.max()
    np.fill_diagonal(migration_rates, 1.0)
    return {
        "populations": populations.tolist(),
        "beta_und": beta_und,
        "beta_det": beta_det,
        "migration_rates": migration_rates,
    }


class SIRGraph(StandardModel):
    """SIR model on a graph of cities."""

    def __init__(
        self,
        populations,
        migration_rates,
        beta_und,
        beta_det,
        infection_period: int = 30,
        reinfection_probability: float = 0.05,
        detection_time: int = 14,
        death_rate: float = 0.02,
        initial_infected=None,
        rng=None,
    ):
        """Create a new SIR graph model.

        Args:
            populations: Number of people per city
            migration_rates: Square matrix of rates of moving from one city to another
            beta_und: Transmission rate of infected but undetected people, per city
            beta_det: Transmission rate of infected and detected people, per city
            infection_period: Days until an infected agent recovers or dies
            reinfection_probability: Chance for a recovered agent to be infected again
            detection_time: Days until an infection is detected
            death_rate: Chance to die at the end of the infection
            initial_infected: Number of infected people per city, one in the last city by default
            rng: Seed for reproducibility
        """
        n_cities = len(populations)
        if initial_infected is None:
            initial_infected = [0] * (n_cities - 1) + [1]
        migration_rates = np.array(migration_rates, dtype=float)
        if migration_rates.shape != (n_cities, n_cities):
            raise ConfigurationError(
                "migration_rates",
                f"must be a {n_cities} x {n_cities} matrix, got shape {migration_rates.shape}",
            )
        for name, values in (
            ("beta_und", beta_und),
            ("beta_det", beta_det),
            ("initial_infected", initial_infected),
        ):
            if len(values) != n_cities:
                raise ConfigurationError(
                    name, f"must have one entry per city ({n_cities}), got {len(values)}"
                )
        # rows become the probabilities of the destination city
        migration_rates /= migration_rates.sum(axis=1, keepdims=True)

        space = GraphSpace(nx.complete_graph(n_cities, create_using=nx.DiGraph))
        space.add_property("migration_rates", migration_rates)
        space.add_property("beta_und", beta_und)
        space.add_property("beta_det", beta_det)

        super().__init__(
            space,
            rng=rng,
            properties={
                "infection_period": infection_period,
                "reinfection_probability": reinfection_probability,
                "detection_time": detection_time,
                "death_rate": death_rate,
            },
        )

        for city in range(n_cities):
            for _ in range(populations[city]):
                self.add_agent(city, days_infected=0, status="S")
        for city in range(n_cities):
            for unique_id in self.agents_at(city)[: initial_infected[city]]:
                self[unique_id].status = "I"
                self[unique_id].days_infected = 1

    def agent_step(self, agent):
        self.migrate(agent)
        self.transmit(agent)
        if agent.status == "I":
            agent.days_infected += 1
        self.recover_or_die(agent)

    def migrate(self, agent):
        rates = self.space.property_value("migration_rates", agent.pos)
        destination = int(self.rng.choice(len(rates), p=rates))
        if destination != agent.pos:
            self.move_agent(agent.unique_id, destination)

    def transmit(self, agent):
        if agent.status != "I":
            return
        if agent.days_infected < self.properties.detection_time:
            rate = self.space.property_value("beta_und", agent.pos)
        else:
            rate = self.space.property_value("beta_det", agent.pos)
        n = self.rng.poisson(rate)
        if n == 0:
            return
        for contact_id in self.agents_at(agent.pos):
            contact = self[contact_id]
            if contact.status == "S" or (
                contact.status == "R"
                and self.random.random() <= self.properties.reinfection_probability
            ):
                contact.status = "I"
                n -= 1
                if n == 0:
                    return

    def recover_or_die(self, agent):
        if agent.days_infected < self.properties.infection_period:
            return
        if self.random.random() <= self.properties.death_rate:
            self.remove_agent(agent.unique_id)
        else:
            agent.status = "R"
            agent.days_infected = 0

    def count(self, status, city=None):
        """Return the number of agents with ``status``, optionally in one city."""
        ids = self.all_agent_ids() if city is None else self.agents_at(city)
        return sum(1 for unique_id in ids if self[unique_id].status == status)
