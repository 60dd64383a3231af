from shiftwatch.services.activity_event_service import ActivityCorrelator
from shiftwatch.services.agent_service import AgentDirectory, AgentService

__all__ = [
    "ActivityCorrelator",
    "AgentDirectory",
    "AgentService",
]
