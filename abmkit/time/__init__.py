"""Time advancement for abmkit models.

- Tick schedulers decide the activation order within a discrete step.
- AgentEvent, EventScheduler and EventList drive continuous-time models.
"""

from abmkit.time.eventlist import EventList, ScheduledEvent
from abmkit.time.events import AgentEvent, EventScheduler
from abmkit.time.schedulers import ById, ByKind, ByProperty, Partially, Randomly

__all__ = [
    "AgentEvent",
    "ById",
    "ByKind",
    "ByProperty",
    "EventList",
    "EventScheduler",
    "Partially",
    "Randomly",
    "ScheduledEvent",
]
