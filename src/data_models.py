"""
Shared data structures for the solo oracle engine.

The campaign aggregate defined here is the single mutable object every engine
reads and writes. Engines never keep their own copy of campaign-derived state
between calls; callers are responsible for persisting the aggregate.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Sequence
import time
import uuid


def _new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================


class NPCImportance(str, Enum):
    """How much detail a generated NPC receives."""
    MINOR = "minor"
    SUPPORTING = "supporting"
    MAJOR = "major"


class EdgeState(str, Enum):
    """Lifecycle of a location edge."""
    TEMPLATED = "templated"        # exists, but has not been described yet
    MATERIALIZED = "materialized"  # label/type rolled and fixed


# =============================================================================
# DICE AND RANDOMIZATION
# =============================================================================

MASK_64 = 0xFFFFFFFFFFFFFFFF
GOLDEN_GAMMA = 0x9E3779B97F4A7C15


class SeededRNG:
    """
    SplitMix64 generator.

    Produces a reproducible stream of 64-bit integers. A zero seed is
    replaced by the golden-ratio increment so the stream never degenerates.
    """

    def __init__(self, seed: int):
        seed &= MASK_64
        self.state = GOLDEN_GAMMA if seed == 0 else seed

    def next(self) -> int:
        self.state = (self.state + GOLDEN_GAMMA) & MASK_64
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & MASK_64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & MASK_64
        return z ^ (z >> 31)

    def next_int(self, bound: int) -> int:
        """Return next() modulo bound."""
        return self.next() % bound


@dataclass(frozen=True)
class DiceSpec:
    """Parsed form of '[count]d<sides>[+modifier]' dice notation."""
    count: int
    sides: int
    modifier: int = 0

    @classmethod
    def parse(cls, text: str) -> Optional["DiceSpec"]:
        """
        Parse dice notation such as 'd6', '2d6' or '1d20+3'.

        Returns None when the text has no 'd' or the sides are not positive.
        A malformed count is treated as 1 and a malformed modifier as 0.
        """
        normalized = (text or "").strip().lower()
        parts = normalized.split("d", 1)
        if len(parts) != 2:
            return None

        count = _parse_int(parts[0] or "1", 1)
        sides_part, _, modifier_part = parts[1].partition("+")
        sides = _parse_int(sides_part, 0)
        modifier = _parse_int(modifier_part, 0) if modifier_part else 0
        if sides <= 0:
            return None
        return cls(count=count, sides=sides, modifier=modifier)


DEFAULT_DICE_SPEC = DiceSpec(count=1, sides=100, modifier=0)


def _parse_int(text: str, default: int) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return default


@dataclass
class DiceRoll:
    """Result of a dice roll with full information."""
    spec: str
    rolls: list[int]
    modifier: int
    total: int

    def __str__(self) -> str:
        if self.modifier > 0:
            return f"{self.spec}: {self.rolls} + {self.modifier} = {self.total}"
        elif self.modifier < 0:
            return f"{self.spec}: {self.rolls} - {abs(self.modifier)} = {self.total}"
        return f"{self.spec}: {self.rolls} = {self.total}"


class DiceRoller:
    """
    Dice roller bound to a (seed, sequence) position.

    All randomness in the engine goes through this class. Constructing a
    roller skips the first `sequence` draws, so a (seed, sequence) pair is
    enough to reproduce any roll. Each die face consumes exactly one draw
    and advances `sequence` by one.
    """

    def __init__(self, seed: int, sequence: int = 0):
        self.seed = seed
        self._rng = SeededRNG(seed)
        self.sequence = max(0, sequence)
        for _ in range(self.sequence):
            self._rng.next()

    def roll(self, spec: str) -> DiceRoll:
        """
        Roll dice using notation like '2d6' or 'd20+1'.

        Unparseable notation falls back to 1d100.
        """
        dice = DiceSpec.parse(spec) or DEFAULT_DICE_SPEC
        rolls = []
        for _ in range(dice.count):
            rolls.append(self._rng.next_int(dice.sides) + 1)
            self.sequence += 1
        total = sum(rolls) + dice.modifier
        return DiceRoll(spec=spec, rolls=rolls, modifier=dice.modifier, total=total)

    def randint(self, a: int, b: int) -> int:
        """Return an integer in [a, b] using a single draw."""
        if b < a:
            raise ValueError(f"Empty range for randint: ({a}, {b})")
        value = a + self._rng.next_int(b - a + 1)
        self.sequence += 1
        return value

    def choice(self, seq: Sequence[Any]) -> Any:
        """Pick one element of a non-empty sequence using a single draw."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        index = self._rng.next_int(len(seq))
        self.sequence += 1
        return seq[index]


# =============================================================================
# CAMPAIGN RECORDS
# =============================================================================


@dataclass
class TableRollRecord:
    """Persisted audit record of one die roll made by the table interpreter."""
    table_id: str
    entry_range: str
    dice_spec: str
    roll_total: int
    modifier: int
    seed: int
    sequence: int
    context_summary: str
    outcome_summary: str
    record_id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class EventLogEntry:
    """A human-readable campaign history line with attribution ids."""
    summary: str
    scene_id: Optional[str] = None
    roll_ids: list[str] = field(default_factory=list)
    entity_ids: list[str] = field(default_factory=list)
    origin: str = "system"
    entry_id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class CharacterEntry:
    """A weighted character in the campaign's character list."""
    name: str
    key: str
    weight: int = 1
    entry_id: str = field(default_factory=_new_id)

    @classmethod
    def create(cls, name: str, weight: int = 1) -> "CharacterEntry":
        return cls(name=name, key=name.lower(), weight=weight)


@dataclass
class ThreadEntry:
    """A weighted plot thread in the campaign's thread list."""
    name: str
    key: str
    weight: int = 1
    entry_id: str = field(default_factory=_new_id)

    @classmethod
    def create(cls, name: str, weight: int = 1) -> "ThreadEntry":
        return cls(name=name, key=name.lower(), weight=weight)


@dataclass
class SceneInteraction:
    """One player/GM exchange inside a scene."""
    player_text: str
    gm_text: str
    turn_signal: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SkillCheckRecord:
    """A finalized skill check as stored on a scene."""
    player_action: str
    check_type: str
    skill: str
    advantage_state: str
    stakes: str
    reason: str
    ability_override: Optional[str] = None
    dc: Optional[int] = None
    opponent_skill: Optional[str] = None
    opponent_dc: Optional[int] = None
    partial_success_dc: Optional[int] = None
    partial_success_outcome: Optional[str] = None
    roll_result: Optional[int] = None
    modifier: Optional[int] = None
    total: Optional[int] = None
    outcome: Optional[str] = None
    consequence: Optional[str] = None
    record_id: str = field(default_factory=_new_id)


@dataclass
class FateQuestionRecord:
    """A resolved yes/no oracle question."""
    question: str
    likelihood: str
    chaos_factor: int
    roll: int
    target: int
    outcome: str
    record_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class CanonizationRecord:
    """A player assumption tested against the oracle before it becomes canon."""
    assumption: str
    likelihood: str
    chaos_factor: int
    roll: int
    target: int
    outcome: str
    record_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def accepted(self) -> bool:
        return self.outcome == "yes"


@dataclass
class SceneEntry:
    """
    Finalized, append-only record of a scene.

    Created once by SoloCampaignEngine.finalize_scene and never edited.
    """
    scene_number: int
    intent: str
    roll: int
    chaos_factor: int
    scene_type: str
    summary: str
    alteration_method: Optional[str] = None
    alteration_detail: Optional[str] = None
    random_event_focus: Optional[str] = None
    meaning_word1: Optional[str] = None
    meaning_word2: Optional[str] = None
    characters_added: list[str] = field(default_factory=list)
    characters_featured: list[str] = field(default_factory=list)
    characters_removed: list[str] = field(default_factory=list)
    threads_added: list[str] = field(default_factory=list)
    threads_featured: list[str] = field(default_factory=list)
    threads_removed: list[str] = field(default_factory=list)
    pcs_in_control: bool = False
    concluded: bool = False
    interactions: Optional[list[SceneInteraction]] = None
    skill_checks: Optional[list[SkillCheckRecord]] = None
    fate_questions: Optional[list[FateQuestionRecord]] = None
    places: list[str] = field(default_factory=list)
    curiosities: list[str] = field(default_factory=list)
    roll_highlights: list[str] = field(default_factory=list)
    location_id: Optional[str] = None
    generated_entity_ids: Optional[list[str]] = None
    canonizations: Optional[list[CanonizationRecord]] = None
    scene_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)


# =============================================================================
# LOCATION GRAPH
# =============================================================================


@dataclass
class TrapEntity:
    """A trap attached to a node (or edge)."""
    name: str
    category: str
    trigger: str
    detection_skill: str
    detection_dc: int
    disarm_skill: str
    disarm_dc: int
    effect_summary: str
    save_skill: Optional[str] = None
    save_dc: Optional[int] = None
    state: str = "hidden"
    is_resettable: bool = False
    origin: str = "system"
    location_node_id: Optional[str] = None
    location_edge_id: Optional[str] = None
    trap_id: str = field(default_factory=_new_id)


@dataclass
class LocationFeature:
    """A stable, inanimate feature worth remembering at a node."""
    name: str
    summary: str
    category: str = "feature"
    tags: list[str] = field(default_factory=list)
    origin: str = "system"
    location_node_id: Optional[str] = None
    feature_id: str = field(default_factory=_new_id)


@dataclass
class LocationNode:
    """A room, passage or other space inside a location."""
    node_type: str
    summary: str
    name: Optional[str] = None
    discovered: bool = False
    visited_count: int = 0
    notes: Optional[str] = None
    content_summary: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    origin: str = "system"
    traps: list[TrapEntity] = field(default_factory=list)
    features: list[LocationFeature] = field(default_factory=list)
    node_id: str = field(default_factory=_new_id)


@dataclass
class LocationEdge:
    """
    A directed connection between two nodes.

    An edge with no to_node_id is open (unexplored). An edge in the
    TEMPLATED state has not been described yet; it gets its label and
    type the first time someone walks it.
    """
    edge_type: str
    from_node_id: Optional[str] = None
    to_node_id: Optional[str] = None
    label: Optional[str] = None
    is_locked: bool = False
    lock_dc: Optional[int] = None
    is_trapped: bool = False
    requires_check_skill: Optional[str] = None
    requires_check_dc: Optional[int] = None
    one_way: bool = False
    origin: str = "system"
    state: EdgeState = EdgeState.TEMPLATED
    edge_id: str = field(default_factory=_new_id)

    def __post_init__(self):
        if self.label:
            self.state = EdgeState.MATERIALIZED

    @property
    def is_open(self) -> bool:
        return self.to_node_id is None

    @property
    def is_materialized(self) -> bool:
        return self.state == EdgeState.MATERIALIZED

    def materialize(
        self,
        label: str,
        edge_type: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> None:
        """Fix the label, type and flags of a templated edge."""
        self.label = label
        if edge_type and self.edge_type == "passage":
            self.edge_type = edge_type
        self.apply_tags(tags)
        self.state = EdgeState.MATERIALIZED

    def apply_tags(self, tags: Sequence[str]) -> None:
        self.is_locked = "locked" in tags
        if self.is_locked:
            self.lock_dc = LOCKED_EDGE_DC
        self.is_trapped = "trapped" in tags
        self.one_way = "oneWay" in tags

    def display_label(self) -> str:
        if self.label:
            return self.label
        return self.edge_type.capitalize()


LOCKED_EDGE_DC = 15


@dataclass
class LocationEntity:
    """A location (dungeon, site) owning a graph of nodes and edges."""
    name: str
    location_type: str
    tags: list[str] = field(default_factory=list)
    danger_modifier: int = 0
    theme_tags: list[str] = field(default_factory=list)
    origin: str = "system"
    nodes: list[LocationNode] = field(default_factory=list)
    edges: list[LocationEdge] = field(default_factory=list)
    location_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def get_node(self, node_id: Optional[str]) -> Optional[LocationNode]:
        if node_id is None:
            return None
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def edges_from(self, node_id: str) -> list[LocationEdge]:
        return [edge for edge in self.edges if edge.from_node_id == node_id]

    def edges_to(self, node_id: str) -> list[LocationEdge]:
        return [edge for edge in self.edges if edge.to_node_id == node_id]


# =============================================================================
# NPCS
# =============================================================================


@dataclass
class NPCGenerationRoll:
    """One table draw used while generating an NPC."""
    table_id: str
    roll_value: int
    picked_entry_id: str
    result_text: str


@dataclass
class NPCEntry:
    """A generated or hand-authored NPC."""
    name: str
    species: str
    role_tag: str
    importance: str = NPCImportance.MINOR.value
    origin: str = "generator"
    current_mood: Optional[str] = None
    speech_style: Optional[str] = None
    mannerisms: list[str] = field(default_factory=list)
    notable_features: list[str] = field(default_factory=list)
    quirks: list[str] = field(default_factory=list)
    flaws: list[str] = field(default_factory=list)
    goals_immediate: list[str] = field(default_factory=list)
    goals_long_term: list[str] = field(default_factory=list)
    backstory_key_events: list[str] = field(default_factory=list)
    appearance_short: Optional[str] = None
    generation_seed: Optional[str] = None
    generation_created_by: Optional[str] = None
    generation_rolls: list[NPCGenerationRoll] = field(default_factory=list)
    generation_version: Optional[str] = None
    npc_id: str = field(default_factory=_new_id)


# =============================================================================
# CAMPAIGN AGGREGATE
# =============================================================================


@dataclass
class Campaign:
    """
    The mutable campaign aggregate.

    Holds oracle state (chaos factor, scene counter), the weighted character
    and thread lists, generated content, the audit logs and the RNG cursor.
    rng_sequence only ever moves forward once play has started.
    """
    title: str = "Untitled Campaign"
    chaos_factor: int = 5
    scene_number: int = 1
    scenes: list[SceneEntry] = field(default_factory=list)
    characters: list[CharacterEntry] = field(default_factory=list)
    threads: list[ThreadEntry] = field(default_factory=list)
    npcs: list[NPCEntry] = field(default_factory=list)
    active_scene_id: Optional[str] = None
    active_location_id: Optional[str] = None
    active_node_id: Optional[str] = None
    last_node_id: Optional[str] = None
    locations: list[LocationEntity] = field(default_factory=list)
    event_log: list[EventLogEntry] = field(default_factory=list)
    table_rolls: list[TableRollRecord] = field(default_factory=list)
    rng_seed: Optional[int] = None
    rng_sequence: int = 0
    content_pack_version: Optional[str] = None
    campaign_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def ensure_seed(self) -> int:
        """Return the RNG seed, initializing it from the clock if unset."""
        if self.rng_seed is None:
            self.rng_seed = int(time.time())
        return self.rng_seed

    def get_location(self, location_id: Optional[str]) -> Optional[LocationEntity]:
        if location_id is None:
            return None
        for location in self.locations:
            if location.location_id == location_id:
                return location
        return None

    @property
    def active_location(self) -> Optional[LocationEntity]:
        return self.get_location(self.active_location_id)

    @property
    def active_node(self) -> Optional[LocationNode]:
        location = self.active_location
        if location is None:
            return None
        return location.get_node(self.active_node_id)

    def log_event(
        self,
        summary: str,
        roll_ids: Optional[list[str]] = None,
        entity_ids: Optional[list[str]] = None,
    ) -> EventLogEntry:
        """Append an entry to the campaign event log."""
        entry = EventLogEntry(
            summary=summary,
            scene_id=self.active_scene_id,
            roll_ids=list(roll_ids or []),
            entity_ids=list(entity_ids or []),
        )
        self.event_log.append(entry)
        return entry
