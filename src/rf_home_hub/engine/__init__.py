"""RF code association and notification engine."""

from rf_home_hub.engine.alarm import AlarmTriggerWorkflow
from rf_home_hub.engine.availability import AvailabilityResolver
from rf_home_hub.engine.ingestor import CodeIngestor, IngestResult, IngestState, parse_code_event
from rf_home_hub.engine.lifecycle import CardLifecycleManager, CascadeResult

__all__ = [
    "AvailabilityResolver",
    "AlarmTriggerWorkflow",
    "CardLifecycleManager",
    "CascadeResult",
    "CodeIngestor",
    "IngestResult",
    "IngestState",
    "parse_code_event",
]
