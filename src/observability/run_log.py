"""
Run Log for engine event tracking.

Captures the deterministic events of a session (oracle dice draws, table
executions, scene phase changes, location moves, generated entities) so a
session can be inspected, exported and compared against a replay with the
same seed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Callable
import json
import logging

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be logged."""

    ROLL = "roll"  # Oracle/dice draw against a campaign stream
    TABLE_LOOKUP = "table_lookup"  # Top-level table execution
    TRANSITION = "transition"  # Scene phase change or location move
    GENERATION = "generation"  # NPC, loot, location or travel event created
    CUSTOM = "custom"


@dataclass
class LogEvent:
    """Base class for all logged events."""

    # Subclasses set the correct event_type in __post_init__
    event_type: EventType = EventType.CUSTOM
    timestamp: datetime = field(default_factory=datetime.now)
    sequence_number: int = 0
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "sequence_number": self.sequence_number,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEvent":
        """Create from dictionary."""
        return cls(
            event_type=EventType(data["event_type"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
        )

    def __str__(self) -> str:
        name = self.context.get("event_name", self.event_type.value)
        return f"[{self.sequence_number}] {name.upper()} {self.context}"


@dataclass
class RollEvent(LogEvent):
    """A draw from a campaign RNG stream."""

    notation: str = ""
    total: int = 0
    reason: str = ""
    seed: Optional[int] = None
    rng_sequence: int = 0  # cursor after the draw

    def __post_init__(self):
        self.event_type = EventType.ROLL

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "notation": self.notation,
                "total": self.total,
                "reason": self.reason,
                "seed": self.seed,
                "rng_sequence": self.rng_sequence,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            notation=data.get("notation", ""),
            total=data.get("total", 0),
            reason=data.get("reason", ""),
            seed=data.get("seed"),
            rng_sequence=data.get("rng_sequence", 0),
        )

    def __str__(self) -> str:
        return (
            f"[{self.sequence_number}] ROLL {self.notation} = {self.total} "
            f"({self.reason}) @seq {self.rng_sequence}"
        )


@dataclass
class TableLookupEvent(LogEvent):
    """A top-level table execution."""

    table_id: str = ""
    table_name: str = ""
    roll_total: int = 0
    entry_range: str = ""
    result_text: str = ""
    nested_rolls: int = 0
    rng_sequence: int = 0

    def __post_init__(self):
        self.event_type = EventType.TABLE_LOOKUP

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "table_id": self.table_id,
                "table_name": self.table_name,
                "roll_total": self.roll_total,
                "entry_range": self.entry_range,
                "result_text": self.result_text,
                "nested_rolls": self.nested_rolls,
                "rng_sequence": self.rng_sequence,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableLookupEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            table_id=data.get("table_id", ""),
            table_name=data.get("table_name", ""),
            roll_total=data.get("roll_total", 0),
            entry_range=data.get("entry_range", ""),
            result_text=data.get("result_text", ""),
            nested_rolls=data.get("nested_rolls", 0),
            rng_sequence=data.get("rng_sequence", 0),
        )

    def __str__(self) -> str:
        text = f": {self.result_text}" if self.result_text else ""
        return (
            f"[{self.sequence_number}] TABLE {self.table_name} "
            f"({self.roll_total} -> {self.entry_range}){text}"
        )


@dataclass
class TransitionEvent(LogEvent):
    """A scene phase change or a move between location nodes."""

    from_state: str = ""
    to_state: str = ""
    trigger: str = ""

    def __post_init__(self):
        self.event_type = EventType.TRANSITION

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "from_state": self.from_state,
                "to_state": self.to_state,
                "trigger": self.trigger,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransitionEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            from_state=data.get("from_state", ""),
            to_state=data.get("to_state", ""),
            trigger=data.get("trigger", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] TRANSITION {self.from_state} -> {self.to_state} ({self.trigger})"


@dataclass
class GenerationEvent(LogEvent):
    """An entity produced by one of the generators."""

    generator: str = ""
    entity_id: Optional[str] = None
    summary: str = ""

    def __post_init__(self):
        self.event_type = EventType.GENERATION

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base.update(
            {
                "generator": self.generator,
                "entity_id": self.entity_id,
                "summary": self.summary,
            }
        )
        return base

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerationEvent":
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            sequence_number=data.get("sequence_number", 0),
            context=data.get("context", {}),
            generator=data.get("generator", ""),
            entity_id=data.get("entity_id"),
            summary=data.get("summary", ""),
        )

    def __str__(self) -> str:
        return f"[{self.sequence_number}] GENERATED {self.generator}: {self.summary}"


_EVENT_CLASSES: dict[EventType, type[LogEvent]] = {
    EventType.ROLL: RollEvent,
    EventType.TABLE_LOOKUP: TableLookupEvent,
    EventType.TRANSITION: TransitionEvent,
    EventType.GENERATION: GenerationEvent,
}


class RunLog:
    """
    Central run log for all engine events.

    Singleton pattern - use get_run_log() to access.
    """

    _instance: Optional["RunLog"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._events: list[LogEvent] = []
        self._sequence: int = 0
        self._seed: Optional[int] = None
        self._session_start: datetime = datetime.now()
        self._subscribers: list[Callable[[LogEvent], None]] = []
        self._paused: bool = False

    def reset(self) -> None:
        """Reset the log for a new session."""
        self._events = []
        self._sequence = 0
        self._seed = None
        self._session_start = datetime.now()
        logger.debug("RunLog reset")

    def set_seed(self, seed: int) -> None:
        """Record the campaign seed used for this session."""
        self._seed = seed
        logger.info(f"RunLog seed set: {seed}")

    def get_seed(self) -> Optional[int]:
        return self._seed

    def pause(self) -> None:
        """Pause logging."""
        self._paused = True

    def resume(self) -> None:
        """Resume logging."""
        self._paused = False

    def is_paused(self) -> bool:
        return self._paused

    def subscribe(self, callback: Callable[[LogEvent], None]) -> None:
        """Subscribe to receive events as they are logged."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[LogEvent], None]) -> None:
        """Unsubscribe from events."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _log_event(self, event: LogEvent) -> None:
        if self._paused:
            return

        self._sequence += 1
        event.sequence_number = self._sequence
        self._events.append(event)

        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Subscriber error: {e}")

    def log_roll(
        self,
        notation: str,
        total: int,
        reason: str = "",
        seed: Optional[int] = None,
        rng_sequence: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> RollEvent:
        """Log a draw from a campaign RNG stream."""
        event = RollEvent(
            notation=notation,
            total=total,
            reason=reason,
            seed=seed,
            rng_sequence=rng_sequence,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_table_lookup(
        self,
        table_id: str,
        table_name: str,
        roll_total: int,
        entry_range: str = "",
        result_text: str = "",
        nested_rolls: int = 0,
        rng_sequence: int = 0,
        context: Optional[dict[str, Any]] = None,
    ) -> TableLookupEvent:
        """Log a top-level table execution."""
        event = TableLookupEvent(
            table_id=table_id,
            table_name=table_name,
            roll_total=roll_total,
            entry_range=entry_range,
            result_text=result_text,
            nested_rolls=nested_rolls,
            rng_sequence=rng_sequence,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_transition(
        self,
        from_state: str,
        to_state: str,
        trigger: str,
        context: Optional[dict[str, Any]] = None,
    ) -> TransitionEvent:
        """Log a scene phase change or location move."""
        event = TransitionEvent(
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_generation(
        self,
        generator: str,
        summary: str,
        entity_id: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> GenerationEvent:
        """Log a generated entity."""
        event = GenerationEvent(
            generator=generator,
            entity_id=entity_id,
            summary=summary,
            context=context or {},
        )
        self._log_event(event)
        return event

    def log_custom(
        self,
        event_name: str,
        details: dict[str, Any],
    ) -> LogEvent:
        """Log a custom event."""
        event = LogEvent(
            event_type=EventType.CUSTOM,
            context={"event_name": event_name, **details},
        )
        self._log_event(event)
        return event

    def get_events(
        self,
        event_type: Optional[EventType] = None,
        since_sequence: int = 0,
    ) -> list[LogEvent]:
        """
        Get logged events.

        Args:
            event_type: Filter by event type (None = all)
            since_sequence: Only events after this sequence number

        Returns:
            List of events
        """
        events = [e for e in self._events if e.sequence_number > since_sequence]
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events

    def get_rolls(self) -> list[RollEvent]:
        return [e for e in self._events if isinstance(e, RollEvent)]

    def get_table_lookups(self) -> list[TableLookupEvent]:
        return [e for e in self._events if isinstance(e, TableLookupEvent)]

    def get_transitions(self) -> list[TransitionEvent]:
        return [e for e in self._events if isinstance(e, TransitionEvent)]

    def get_generations(self) -> list[GenerationEvent]:
        return [e for e in self._events if isinstance(e, GenerationEvent)]

    def get_event_count(self) -> int:
        return len(self._events)

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the run log."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "total_events": len(self._events),
            "rolls": len(self.get_rolls()),
            "table_lookups": len(self.get_table_lookups()),
            "transitions": len(self.get_transitions()),
            "generations": len(self.get_generations()),
            "last_sequence": self._sequence,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entire log to a dictionary."""
        return {
            "session_start": self._session_start.isoformat(),
            "seed": self._seed,
            "sequence": self._sequence,
            "events": [e.to_dict() for e in self._events],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def save(self, filepath: str) -> None:
        """Save the log to a file."""
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.to_json())
        logger.info(f"RunLog saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "RunLog":
        """Load a saved log into the global RunLog, replacing its events."""
        with open(filepath, "r", encoding="utf-8") as f:
            data = json.load(f)

        log = get_run_log()
        log.reset()
        log._session_start = datetime.fromisoformat(data["session_start"])
        log._seed = data.get("seed")
        log._sequence = data.get("sequence", 0)

        for event_data in data.get("events", []):
            event_cls = _EVENT_CLASSES.get(EventType(event_data["event_type"]), LogEvent)
            log._events.append(event_cls.from_dict(event_data))

        logger.info(f"RunLog loaded from {filepath}: {len(log._events)} events")
        return log

    def format_log(
        self,
        event_types: Optional[list[EventType]] = None,
        max_events: Optional[int] = None,
    ) -> str:
        """
        Format the log as a human-readable string.

        Args:
            event_types: Filter by event types (None = all)
            max_events: Maximum number of events to include, newest last

        Returns:
            Formatted log string
        """
        lines = [
            "=== Run Log ===",
            f"Session: {self._session_start.isoformat()}",
            f"Seed: {self._seed if self._seed is not None else 'not set'}",
            f"Total Events: {len(self._events)}",
            "",
        ]

        events = self._events
        if event_types:
            events = [e for e in events if e.event_type in event_types]
        if max_events:
            events = events[-max_events:]

        for event in events:
            lines.append(str(event))

        return "\n".join(lines)


# Singleton access
_run_log: Optional[RunLog] = None


def get_run_log() -> RunLog:
    """Get the global RunLog instance."""
    global _run_log
    if _run_log is None:
        _run_log = RunLog()
    return _run_log


def reset_run_log() -> RunLog:
    """Reset and return the global RunLog instance."""
    log = get_run_log()
    log.reset()
    return log
