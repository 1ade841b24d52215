"""
Table type definitions for the solo oracle engine.

A table maps die-roll ranges to ordered lists of outcome actions. Actions are
a closed set of frozen dataclasses, one per kind, plus UnknownAction which
carries any unrecognized content-pack action through untouched so it can be
ignored at execution time.

Field names in content-pack JSON are fixed camelCase (diceSpec, nodeType,
detectionDC, tableId, thenActions, ...); the from_dict/to_dict helpers here
translate between that wire format and the Python types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union

from src.data_models import DiceRoll


class ActionKind(str, Enum):
    """Outcome action kinds understood by the interpreter."""
    SPAWN_NODE = "spawnNode"
    SPAWN_EDGE = "spawnEdge"
    SPAWN_TRAP = "spawnTrap"
    ROLL_ON_TABLE = "rollOnTable"
    CONDITIONAL_ROLL = "conditionalRoll"
    LOG = "log"


# =============================================================================
# OUTCOME ACTIONS
# =============================================================================


@dataclass(frozen=True)
class SpawnNodeAction:
    """Spawn a location node."""
    node_type: Optional[str] = None
    summary: Optional[str] = None
    tags: tuple[str, ...] = ()

    kind = ActionKind.SPAWN_NODE.value


@dataclass(frozen=True)
class SpawnEdgeAction:
    """Spawn an edge template."""
    edge_type: Optional[str] = None
    summary: Optional[str] = None
    tags: tuple[str, ...] = ()

    kind = ActionKind.SPAWN_EDGE.value


@dataclass(frozen=True)
class SpawnTrapAction:
    """Spawn a trap; unspecified fields receive interpreter defaults."""
    category: Optional[str] = None
    trigger: Optional[str] = None
    detection_skill: Optional[str] = None
    detection_dc: Optional[int] = None
    disarm_skill: Optional[str] = None
    disarm_dc: Optional[int] = None
    save_skill: Optional[str] = None
    save_dc: Optional[int] = None
    effect: Optional[str] = None

    kind = ActionKind.SPAWN_TRAP.value


@dataclass(frozen=True)
class RollOnTableAction:
    """Roll on another table and merge its results."""
    table_id: Optional[str] = None

    kind = ActionKind.ROLL_ON_TABLE.value


@dataclass(frozen=True)
class ConditionalRollAction:
    """Roll dice_spec; run then_actions if total <= threshold, else else_actions."""
    dice_spec: Optional[str] = None
    threshold: Optional[int] = None
    then_actions: tuple["OutcomeAction", ...] = ()
    else_actions: tuple["OutcomeAction", ...] = ()

    kind = ActionKind.CONDITIONAL_ROLL.value


@dataclass(frozen=True)
class LogAction:
    """Append a literal message to the execution log."""
    message: Optional[str] = None

    kind = ActionKind.LOG.value


@dataclass(frozen=True)
class UnknownAction:
    """An action kind this engine does not understand. Always a no-op."""
    kind: str
    raw: dict[str, Any] = field(default_factory=dict, hash=False)


OutcomeAction = Union[
    SpawnNodeAction,
    SpawnEdgeAction,
    SpawnTrapAction,
    RollOnTableAction,
    ConditionalRollAction,
    LogAction,
    UnknownAction,
]


def _opt_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(tag) for tag in value)


def parse_action(data: dict[str, Any]) -> OutcomeAction:
    """
    Build an outcome action from its content-pack JSON form.

    Unknown 'type' values produce an UnknownAction rather than an error.

    Raises:
        ValueError: If the action is not a JSON object
    """
    if not isinstance(data, dict):
        raise ValueError(f"Action must be an object, got {type(data).__name__}")
    kind = str(data.get("type", ""))

    if kind == ActionKind.SPAWN_NODE.value:
        return SpawnNodeAction(
            node_type=_opt_str(data.get("nodeType")),
            summary=_opt_str(data.get("summary")),
            tags=_tags(data.get("tags")),
        )
    if kind == ActionKind.SPAWN_EDGE.value:
        return SpawnEdgeAction(
            edge_type=_opt_str(data.get("edgeType")),
            summary=_opt_str(data.get("summary")),
            tags=_tags(data.get("tags")),
        )
    if kind == ActionKind.SPAWN_TRAP.value:
        return SpawnTrapAction(
            category=_opt_str(data.get("category")),
            trigger=_opt_str(data.get("trigger")),
            detection_skill=_opt_str(data.get("detectionSkill")),
            detection_dc=_opt_int(data.get("detectionDC")),
            disarm_skill=_opt_str(data.get("disarmSkill")),
            disarm_dc=_opt_int(data.get("disarmDC")),
            save_skill=_opt_str(data.get("saveSkill")),
            save_dc=_opt_int(data.get("saveDC")),
            effect=_opt_str(data.get("effect")),
        )
    if kind == ActionKind.ROLL_ON_TABLE.value:
        return RollOnTableAction(table_id=_opt_str(data.get("tableId")))
    if kind == ActionKind.CONDITIONAL_ROLL.value:
        return ConditionalRollAction(
            dice_spec=_opt_str(data.get("diceSpec")),
            threshold=_opt_int(data.get("threshold")),
            then_actions=tuple(parse_action(a) for a in data.get("thenActions") or []),
            else_actions=tuple(parse_action(a) for a in data.get("elseActions") or []),
        )
    if kind == ActionKind.LOG.value:
        return LogAction(message=_opt_str(data.get("message")))

    return UnknownAction(kind=kind, raw=dict(data))


def action_to_dict(action: OutcomeAction) -> dict[str, Any]:
    """Serialize an action back to content-pack JSON form."""
    if isinstance(action, SpawnNodeAction):
        data = {"nodeType": action.node_type, "summary": action.summary,
                "tags": list(action.tags) or None}
    elif isinstance(action, SpawnEdgeAction):
        data = {"edgeType": action.edge_type, "summary": action.summary,
                "tags": list(action.tags) or None}
    elif isinstance(action, SpawnTrapAction):
        data = {
            "category": action.category,
            "trigger": action.trigger,
            "detectionSkill": action.detection_skill,
            "detectionDC": action.detection_dc,
            "disarmSkill": action.disarm_skill,
            "disarmDC": action.disarm_dc,
            "saveSkill": action.save_skill,
            "saveDC": action.save_dc,
            "effect": action.effect,
        }
    elif isinstance(action, RollOnTableAction):
        data = {"tableId": action.table_id}
    elif isinstance(action, ConditionalRollAction):
        data = {
            "diceSpec": action.dice_spec,
            "threshold": action.threshold,
            "thenActions": [action_to_dict(a) for a in action.then_actions],
            "elseActions": [action_to_dict(a) for a in action.else_actions],
        }
    elif isinstance(action, LogAction):
        data = {"message": action.message}
    else:
        return dict(action.raw)
    result = {"type": action.kind}
    result.update({k: v for k, v in data.items() if v is not None})
    return result


# =============================================================================
# TABLE DEFINITIONS
# =============================================================================


@dataclass(frozen=True)
class TableEntry:
    """A roll range [min_roll, max_roll] and the actions it triggers."""
    min_roll: int
    max_roll: int
    actions: tuple[OutcomeAction, ...] = ()

    def matches_roll(self, roll: int) -> bool:
        """Check if a roll value falls within this entry's range."""
        return self.min_roll <= roll <= self.max_roll

    @property
    def range_label(self) -> str:
        return f"{self.min_roll}-{self.max_roll}"

    @property
    def action_kinds(self) -> list[str]:
        return [action.kind for action in self.actions]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableEntry":
        if not isinstance(data, dict):
            raise ValueError(f"Table entry must be an object, got {type(data).__name__}")
        return cls(
            min_roll=int(data["min"]),
            max_roll=int(data["max"]),
            actions=tuple(parse_action(a) for a in data.get("actions") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "min": self.min_roll,
            "max": self.max_roll,
            "actions": [action_to_dict(a) for a in self.actions],
        }


@dataclass(frozen=True)
class TableDefinition:
    """
    A named roll table.

    Entries are expected not to overlap; the interpreter takes the first
    match and falls back to the first entry when nothing matches.
    """
    table_id: str
    name: str
    scope: str
    dice_spec: str
    entries: tuple[TableEntry, ...] = ()

    def resolve_entry(self, roll: int) -> Optional[TableEntry]:
        """Return the first entry whose range contains roll."""
        for entry in self.entries:
            if entry.matches_roll(roll):
                return entry
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableDefinition":
        return cls(
            table_id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            scope=str(data.get("scope", "system")),
            dice_spec=str(data.get("diceSpec", "d100")),
            entries=tuple(TableEntry.from_dict(e) for e in data.get("entries") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.table_id,
            "name": self.name,
            "scope": self.scope,
            "diceSpec": self.dice_spec,
            "entries": [e.to_dict() for e in self.entries],
        }


@dataclass(frozen=True)
class ContentPack:
    """A versioned bundle of table definitions."""
    pack_id: str
    version: str
    tables: tuple[TableDefinition, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.pack_id}@{self.version}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentPack":
        return cls(
            pack_id=str(data["id"]),
            version=str(data["version"]),
            tables=tuple(TableDefinition.from_dict(t) for t in data.get("tables") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.pack_id,
            "version": self.version,
            "tables": [t.to_dict() for t in self.tables],
        }


# =============================================================================
# EXECUTION TYPES
# =============================================================================


@dataclass(frozen=True)
class RollContext:
    """
    Ambient attribution for a table execution.

    Passed unchanged through nested calls apart from depth, which the
    interpreter bumps on every nested roll.
    """
    campaign_id: str
    scene_id: Optional[str] = None
    location_id: Optional[str] = None
    node_id: Optional[str] = None
    tags: tuple[str, ...] = ()
    danger_modifier: int = 0
    depth: int = 0

    def nested(self) -> "RollContext":
        return replace(self, depth=self.depth + 1)


@dataclass
class TableRollResult:
    """One die roll made during an execution and the entry it selected."""
    table_id: str
    entry: TableEntry
    roll: DiceRoll
    sequence: int
    seed: int


@dataclass
class TableSpawnNode:
    node_type: str
    summary: str
    tags: list[str] = field(default_factory=list)


@dataclass
class TableSpawnEdge:
    edge_type: str
    summary: str
    tags: list[str] = field(default_factory=list)


@dataclass
class TableSpawnTrap:
    category: str
    trigger: str
    detection_skill: str
    detection_dc: int
    disarm_skill: str
    disarm_dc: int
    effect: str
    save_skill: Optional[str] = None
    save_dc: Optional[int] = None


@dataclass
class TableExecution:
    """
    Everything produced by one top-level interpreter call.

    roll_results lists every roll in the call tree in execution order.
    """
    roll_results: list[TableRollResult] = field(default_factory=list)
    spawned_nodes: list[TableSpawnNode] = field(default_factory=list)
    spawned_edges: list[TableSpawnEdge] = field(default_factory=list)
    spawned_traps: list[TableSpawnTrap] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)

    def merge(self, other: "TableExecution") -> None:
        """Append another execution's results to this one."""
        self.roll_results.extend(other.roll_results)
        self.spawned_nodes.extend(other.spawned_nodes)
        self.spawned_edges.extend(other.spawned_edges)
        self.spawned_traps.extend(other.spawned_traps)
        self.logs.extend(other.logs)

    @property
    def max_sequence(self) -> Optional[int]:
        if not self.roll_results:
            return None
        return max(result.sequence for result in self.roll_results)

    @property
    def first_log(self) -> Optional[str]:
        return self.logs[0] if self.logs else None
