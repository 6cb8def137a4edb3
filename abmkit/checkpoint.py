"""Saving and restoring the complete state of a model.

A checkpoint is an opaque pickle blob holding the agent store, the space, the
clock, the event queue and the state of both random sources. A restored
model continues exactly as the original would have.

Notes:
    Everything reachable from the model is pickled, so agent and model step
    functions, event actions, propensities and timing functions must be
    module-level callables rather than lambdas or closures.
"""

from __future__ import annotations

import os
import pickle

from abmkit.abm_logging import create_module_logger
from abmkit.model import Model

__all__ = ["dumps", "load", "loads", "save"]

_logger = create_module_logger()


def dumps(model: Model) -> bytes:
    """Serialize ``model`` into a checkpoint blob.

    Raises:
        ValueError: if the model is in the middle of a unit of work
    """
    if not isinstance(model, Model):
        raise TypeError(f"Expected a Model, got {type(model).__name__}")
    if len(model._mutations):
        raise ValueError("Cannot checkpoint a model with pending mutations")
    blob = pickle.dumps(model, protocol=pickle.HIGHEST_PROTOCOL)
    _logger.debug(
        f"checkpointed {type(model).__name__} at time {model.time} ({len(blob)} bytes)"
    )
    return blob


def loads(blob: bytes) -> Model:
    """Restore a model from a checkpoint blob.

    Only load blobs from trusted sources, unpickling can execute arbitrary code.
    """
    model = pickle.loads(blob)  # noqa: S301
    if not isinstance(model, Model):
        raise TypeError(f"Checkpoint does not contain a Model, got {type(model).__name__}")
    return model


def save(model: Model, path: str | os.PathLike) -> None:
    """Write a checkpoint of ``model`` to ``path``."""
    with open(path, "wb") as f:
        f.write(dumps(model))


def load(path: str | os.PathLike) -> Model:
    """Read a model checkpoint from ``path``."""
    with open(path, "rb") as f:
        return loads(f.read())
