"""Spatial indices for abmkit models.

All spaces share the same contract: agents are added at, removed from and
moved between positions, and neighbor queries return agent identifiers.

- GridSpace / GridSpaceSingle: integer coordinates, optionally periodic
- ContinuousSpace: real coordinates with a bucketed proximity index
- GraphSpace: the nodes of a NetworkX graph
"""

from abmkit.space.base import Space
from abmkit.space.continuous import ContinuousSpace
from abmkit.space.graph import GraphSpace
from abmkit.space.grid import GridSpace, GridSpaceSingle

__all__ = [
    "ContinuousSpace",
    "GraphSpace",
    "GridSpace",
    "GridSpaceSingle",
    "Space",
]
