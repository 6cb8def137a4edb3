"""Building models from plain parameters.

``new_model`` maps a space kind and a scheduler kind onto the space, scheduler
and model classes of abmkit, which is convenient when models are configured
from files or parameter sweeps.

Examples:
    model = new_model("grid_single", {"dims": (10, 10), "periodic": True}, "randomly", seed=42)
    model = new_model(None, None, "event_queue", seed=1, events=[AgentEvent(split)])
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from abmkit.abm_logging import function_logger
from abmkit.errors import ConfigurationError
from abmkit.model import EventQueueModel, Model, StandardModel
from abmkit.properties import Properties
from abmkit.space import ContinuousSpace, GraphSpace, GridSpace, GridSpaceSingle, Space
from abmkit.time.schedulers import ById, ByKind, ByProperty, Partially, Randomly

__all__ = ["SCHEDULER_KINDS", "SPACE_KINDS", "new_model"]

SPACE_KINDS: dict[str | None, type[Space] | None] = {
    None: None,
    "grid": GridSpace,
    "grid_single": GridSpaceSingle,
    "continuous": ContinuousSpace,
    "graph": GraphSpace,
}

SCHEDULER_KINDS: dict[str, Callable | None] = {
    "by_id": ById,
    "randomly": Randomly,
    "by_kind": ByKind,
    "by_property": ByProperty,
    "partially": Partially,
    "event_queue": None,
}


def _build(param_name: str, factory: Callable, params: Mapping[str, Any] | None):
    if params is None:
        params = {}
    if not isinstance(params, Mapping):
        raise ConfigurationError(param_name, "must be a mapping of keyword arguments")
    try:
        return factory(**params)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(param_name, str(e)) from e


@function_logger(__name__)
def new_model(
    space_kind: str | None = None,
    space_params: Mapping[str, Any] | None = None,
    scheduler_kind: str = "by_id",
    seed: Any = None,
    properties: Properties | Mapping | None = None,
    scheduler_params: Mapping[str, Any] | None = None,
    **model_kwargs: Any,
) -> Model:
    """Create a model from a space kind and a scheduler kind.

    Args:
        space_kind: one of None, "grid", "grid_single", "continuous" or "graph"
        space_params: keyword arguments for the space class
        scheduler_kind: one of "by_id", "randomly", "by_kind", "by_property",
            "partially" or "event_queue"
        seed: the seed of the model's random sources
        properties: shared model parameters
        scheduler_params: keyword arguments for the tick scheduler
        model_kwargs: further keyword arguments for the model class, e.g.
            ``agent_step`` for tick models or ``events`` for event-queue models

    Returns:
        a StandardModel, or an EventQueueModel if scheduler_kind is "event_queue"

    Raises:
        ConfigurationError: if a kind is unknown or parameters do not fit
    """
    try:
        space_cls = SPACE_KINDS[space_kind]
    except (KeyError, TypeError):
        raise ConfigurationError(
            "space_kind", f"unknown kind {space_kind!r}, use one of {list(SPACE_KINDS)}"
        ) from None
    if scheduler_kind not in SCHEDULER_KINDS:
        raise ConfigurationError(
            "scheduler_kind",
            f"unknown kind {scheduler_kind!r}, use one of {list(SCHEDULER_KINDS)}",
        )

    if space_cls is None:
        if space_params:
            raise ConfigurationError("space_params", "given without a space kind")
        space = None
    else:
        space = _build("space_params", space_cls, space_params)

    if scheduler_kind == "event_queue":
        if scheduler_params:
            raise ConfigurationError(
                "scheduler_params", "event-queue models take their events as 'events'"
            )
        model_cls = EventQueueModel
    else:
        scheduler = _build(
            "scheduler_params", SCHEDULER_KINDS[scheduler_kind], scheduler_params
        )
        model_kwargs["scheduler"] = scheduler
        model_cls = StandardModel

    try:
        return model_cls(space, rng=seed, properties=properties, **model_kwargs)
    except TypeError as e:
        raise ConfigurationError("model_kwargs", str(e)) from e
