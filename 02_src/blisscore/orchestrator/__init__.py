"""Orchestrator module."""

from .orchestrator import (
    REPROMPT_TEXT,
    IOrchestrator,
    Orchestrator,
    SessionNotFoundError,
)

__all__ = ["IOrchestrator", "Orchestrator", "SessionNotFoundError", "REPROMPT_TEXT"]
