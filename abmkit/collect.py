"""Running a model while sampling reporters into pandas DataFrames.

Reporters are either attribute names or callables. Agent reporters receive
the agent, model reporters receive the model. Every sample is a row tagged with
the current model time (and the agent identifier for agent rows); no
aggregation is performed.

Examples:
    agent_df, model_df = run(
        model,
        100,
        agent_reporters={"happy": "happy", "x": lambda a: a.pos[0]},
        model_reporters={"n": len},
        when=10,
    )
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable, Iterable, Mapping
from numbers import Real
from typing import TYPE_CHECKING, Any

import pandas as pd

from abmkit.abm_logging import create_module_logger, function_logger

if TYPE_CHECKING:
    from abmkit.agent import Agent
    from abmkit.model import Model

__all__ = ["run"]

_logger = create_module_logger()

Reporters = Mapping[str, str | Callable] | Iterable[str]


def _make_getters(reporters: Reporters | None) -> dict[str, Callable]:
    if reporters is None:
        return {}
    if isinstance(reporters, str):
        reporters = [reporters]
    if not isinstance(reporters, Mapping):
        reporters = {name: name for name in reporters}
    getters = {}
    for name, reporter in reporters.items():
        if isinstance(reporter, str):
            getters[name] = operator.attrgetter(reporter)
        elif callable(reporter):
            getters[name] = reporter
        else:
            raise TypeError(
                f"Reporter '{name}' must be an attribute name or a callable, got {reporter!r}"
            )
    return getters


def _reached(time: float, target: float) -> bool:
    return time > target or math.isclose(time, target, rel_tol=1e-9, abs_tol=1e-12)


class _Cadence:
    """Samples once every ``interval`` time units, starting at ``start``."""

    def __init__(self, interval: float, start: float):
        if not interval > 0:
            raise ValueError("when must be a positive interval")
        self.interval = interval
        self.start = start
        self._k = 0

    def __call__(self, model: Model, n: int) -> bool:
        if not _reached(model.time, self.start + self._k * self.interval):
            return False
        while _reached(model.time, self.start + self._k * self.interval):
            self._k += 1
        return True


class _AtTimes:
    """Samples at the first unit boundary at or after each listed time."""

    def __init__(self, times: Iterable[float], start: float):
        targets = sorted(times)
        # times before the start are never sampled
        self._targets = [t for t in targets if _reached(t, start)]

    def __call__(self, model: Model, n: int) -> bool:
        hit = False
        while self._targets and _reached(model.time, self._targets[0]):
            self._targets.pop(0)
            hit = True
        return hit


def _make_sampler(when, start: float) -> Callable[[Model, int], bool]:
    """Turn ``when`` into a predicate ``f(model, n_units)``."""
    if isinstance(when, bool):
        return lambda model, n: when
    if isinstance(when, Real):
        return _Cadence(when, start)
    if callable(when):
        return lambda model, n: bool(when(model, model.time))
    return _AtTimes(when, start)


class _Recorder:
    """Accumulates agent and model rows."""

    def __init__(self, agent_reporters, model_reporters, agent_filter):
        self.agent_getters = _make_getters(agent_reporters)
        self.model_getters = _make_getters(model_reporters)
        self.agent_filter: Callable[[Agent], bool] | None = agent_filter
        self.agent_rows: list[dict[str, Any]] = []
        self.model_rows: list[dict[str, Any]] = []

    def record(self, model: Model) -> None:
        time = model.time
        if self.agent_getters:
            for agent in model.agents:
                if self.agent_filter is not None and not self.agent_filter(agent):
                    continue
                row = {"time": time, "id": agent.unique_id}
                for name, getter in self.agent_getters.items():
                    row[name] = getter(agent)
                self.agent_rows.append(row)
        if self.model_getters:
            row = {"time": time}
            for name, getter in self.model_getters.items():
                row[name] = getter(model)
            self.model_rows.append(row)

    def dataframes(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        agent_columns = ["time", "id", *self.agent_getters]
        model_columns = ["time", *self.model_getters]
        return (
            pd.DataFrame(self.agent_rows, columns=agent_columns),
            pd.DataFrame(self.model_rows, columns=model_columns),
        )


@function_logger(__name__)
def run(
    model: Model,
    duration: int | float | Callable[[Model, float], bool],
    agent_reporters: Reporters | None = None,
    model_reporters: Reporters | None = None,
    when: bool | float | Iterable[float] | Callable[[Model, float], bool] = True,
    dt: int | float = 1,
    agent_filter: Callable[[Agent], bool] | None = None,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Step ``model`` and sample the reporters along the way.

    The model is advanced in units of ``model.step(dt)``. ``when`` is
    checked before the first unit and after every unit, and a sample is
    taken whenever it holds.

    Args:
        model: the model to run
        duration: the amount of time to advance (a multiple of ``dt`` plus an
            optional remainder), or a predicate ``f(model, time)`` checked
            after every unit
        agent_reporters: mapping of column name to attribute name or
            ``f(agent)``; a list of attribute names is also accepted
        model_reporters: mapping of column name to attribute name or ``f(model)``
        when: True or False to sample after every unit or never; a number
            to sample every ``when`` time units; a collection of times, each
            sampled at the first unit boundary that reaches it; or a
            predicate ``f(model, time)``
        dt: the size of each unit
        agent_filter: only agents for which ``agent_filter(agent)`` is True are sampled

    Returns:
        tuple of (agent data, model data) as DataFrames with a ``time`` column,
        and an ``id`` column for agent data
    """
    if not dt > 0:
        raise ValueError("dt must be positive")
    if not callable(duration) and duration < 0:
        raise ValueError("Cannot run for a negative duration")
    should_sample = _make_sampler(when, model.time)
    recorder = _Recorder(agent_reporters, model_reporters, agent_filter)

    n = 0
    if should_sample(model, n):
        recorder.record(model)

    if callable(duration):
        while True:
            model.step(dt)
            n += 1
            if should_sample(model, n):
                recorder.record(model)
            if duration(model, model.time):
                break
    else:
        n_units = math.floor(duration / dt)
        remainder = duration - n_units * dt
        for _ in range(n_units):
            model.step(dt)
            n += 1
            if should_sample(model, n):
                recorder.record(model)
        if remainder > 0:
            model.step(remainder)
            n += 1
            if should_sample(model, n):
                recorder.record(model)

    _logger.debug(
        f"run finished after {n} units at time {model.time}, "
        f"{len(recorder.agent_rows)} agent rows, {len(recorder.model_rows)} model rows"
    )
    return recorder.dataframes()
