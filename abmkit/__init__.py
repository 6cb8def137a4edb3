"""abmkit: a general purpose agent-based modeling core.

Core Objects: Model, StandardModel, EventQueueModel and Agent.
"""

import datetime

__title__ = "abmkit"
__version__ = "0.1.0"
__license__ = "Apache 2.0"
_this_year = datetime.datetime.now(tz=datetime.UTC).date().year
__copyright__ = f"Copyright {_this_year} abmkit developers"

import abmkit.space as space  # noqa: E402
import abmkit.time as time  # noqa: E402
from abmkit.agent import Agent  # noqa: E402
from abmkit.checkpoint import dumps, load, loads, save  # noqa: E402
from abmkit.collect import run  # noqa: E402
from abmkit.errors import (  # noqa: E402
    AbmError,
    CellOccupied,
    ConfigurationError,
    ExhaustedRetries,
    InvalidPosition,
    NotFound,
    SpaceError,
)
from abmkit.factory import new_model  # noqa: E402
from abmkit.model import (  # noqa: E402
    EventQueueModel,
    Model,
    Phase,
    StandardModel,
    agent_count,
    all_agent_ids,
    current_time,
)
from abmkit.properties import Properties  # noqa: E402
from abmkit.space import (  # noqa: E402
    ContinuousSpace,
    GraphSpace,
    GridSpace,
    GridSpaceSingle,
    Space,
)
from abmkit.storage import AgentIds, AgentStore  # noqa: E402
from abmkit.time import (  # noqa: E402
    AgentEvent,
    ById,
    ByKind,
    ByProperty,
    Partially,
    Randomly,
)

__all__ = [
    "AbmError",
    "Agent",
    "AgentEvent",
    "AgentIds",
    "AgentStore",
    "ById",
    "ByKind",
    "ByProperty",
    "CellOccupied",
    "ConfigurationError",
    "ContinuousSpace",
    "EventQueueModel",
    "ExhaustedRetries",
    "GraphSpace",
    "GridSpace",
    "GridSpaceSingle",
    "InvalidPosition",
    "Model",
    "NotFound",
    "Partially",
    "Phase",
    "Properties",
    "Randomly",
    "Space",
    "SpaceError",
    "StandardModel",
    "agent_count",
    "all_agent_ids",
    "current_time",
    "dumps",
    "load",
    "loads",
    "new_model",
    "run",
    "save",
    "space",
    "time",
]
