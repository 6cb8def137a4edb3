from abmkit.examples.flocking.model import Flocking
from abmkit.examples.rock_paper_scissors.model import RockPaperScissors
from abmkit.examples.schelling.model import Schelling
from abmkit.examples.sir_graph.model import SIRGraph
from abmkit.examples.social_distancing.model import BallModel, SIRBallModel

__all__ = [
    "BallModel",
    "Flocking",
    "RockPaperScissors",
    "SIRBallModel",
    "SIRGraph",
    "Schelling",
]
