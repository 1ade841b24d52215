"""
Observability for the solo oracle engine.

Provides a process-wide log of the deterministic events of a session:
campaign RNG draws, table executions, scene phase changes, location moves
and generated entities.
"""

from src.observability.run_log import (
    RunLog,
    LogEvent,
    EventType,
    RollEvent,
    TableLookupEvent,
    TransitionEvent,
    GenerationEvent,
    get_run_log,
    reset_run_log,
)

__all__ = [
    "RunLog",
    "LogEvent",
    "EventType",
    "RollEvent",
    "TableLookupEvent",
    "TransitionEvent",
    "GenerationEvent",
    "get_run_log",
    "reset_run_log",
]
