"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single pipeline observability event."""

    id: str
    event_type: str  # e.g. "turn_stage", "stage_degraded"
    actor: str  # component that recorded it
    data: dict  # turn_id, session_id, stage, ...
    timestamp: datetime
