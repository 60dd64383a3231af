from shiftwatch.models.activity_event import ActivityEvent
from shiftwatch.models.agent import Agent

__all__ = [
    "ActivityEvent",
    "Agent",
]
