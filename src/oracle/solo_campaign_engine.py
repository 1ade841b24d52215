"""
Scene pacing state machine for solo play.

Drives one scene through its phases:

    RESOLVING -> (ALTERING) -> NARRATING -> BOOKKEEPING -> FINALIZED

resolve_scene() rolls the scene check, apply_alteration_method() reshapes an
altered scene, build_narration_context() assembles the read-only packet
handed to a narrator, and finalize_scene() folds the bookkeeping back into
the campaign. Fate questions, canonizations and skill checks are resolved
alongside.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional
import logging
import uuid

from src.data_models import (
    Campaign,
    CanonizationRecord,
    CharacterEntry,
    FateQuestionRecord,
    SceneEntry,
    SceneInteraction,
    SkillCheckRecord,
    ThreadEntry,
)
from src.observability.run_log import get_run_log
from src.oracle.dice_rng_adapter import CampaignRngAdapter
from src.oracle.mythic_gme import (
    AlterationMethod,
    FateLikelihood,
    MythicOracle,
    RandomEvent,
    SceneAdjustment,
    SceneType,
    fate_target,
)
from src.oracle.weighted_list import apply_list_updates
from src.resolution.skill_resolver import (
    AdvantageState,
    CheckRequest,
    CheckRequestDraft,
    CheckResult,
    SkillResolver,
    get_ruleset,
)
from src.config import DEFAULT_RECENT_SCENE_COUNT


logger = logging.getLogger(__name__)

MAX_NARRATED_FEATURES = 4


class ScenePhase(str, Enum):
    """Phases a scene moves through."""

    RESOLVING = "resolving"
    ALTERING = "altering"
    NARRATING = "narrating"
    BOOKKEEPING = "bookkeeping"
    FINALIZED = "finalized"


# =============================================================================
# SCENE DATA
# =============================================================================


@dataclass
class SceneRecord:
    """
    A scene in progress.

    Transient: alteration returns an updated copy, and only finalize_scene()
    turns it into a SceneEntry on the campaign.
    """

    scene_number: int
    expected_scene: str
    roll: int
    chaos_factor: int
    scene_type: SceneType
    alteration_method: Optional[AlterationMethod] = None
    alteration_detail: Optional[str] = None
    alteration_guidance: Optional[str] = None
    random_event: Optional[RandomEvent] = None
    phase: ScenePhase = ScenePhase.RESOLVING
    scene_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class BookkeepingInput:
    """What happened in a scene, as reported once narration is done."""

    summary: str
    new_characters: list[str] = field(default_factory=list)
    new_threads: list[str] = field(default_factory=list)
    featured_characters: list[str] = field(default_factory=list)
    featured_threads: list[str] = field(default_factory=list)
    removed_characters: list[str] = field(default_factory=list)
    removed_threads: list[str] = field(default_factory=list)
    pcs_in_control: bool = False
    concluded: bool = False
    interactions: list[SceneInteraction] = field(default_factory=list)
    skill_checks: list[SkillCheckRecord] = field(default_factory=list)
    fate_questions: list[FateQuestionRecord] = field(default_factory=list)
    places: list[str] = field(default_factory=list)
    curiosities: list[str] = field(default_factory=list)
    roll_highlights: list[str] = field(default_factory=list)
    location_id: Optional[str] = None
    generated_entity_ids: list[str] = field(default_factory=list)
    canonizations: list[CanonizationRecord] = field(default_factory=list)


@dataclass
class NarrationContextPacket:
    """
    Read-only snapshot handed to a narrator for one scene.
    """

    scene_number: int
    expected_scene: str
    chaos_factor: int
    roll: int
    scene_type: SceneType
    alteration_method: Optional[AlterationMethod]
    alteration_detail: Optional[str]
    alteration_guidance: Optional[str]
    random_event: Optional[RandomEvent]
    recent_scenes: list[SceneEntry]
    active_characters: list[CharacterEntry]
    active_threads: list[ThreadEntry]
    recent_places: list[str]
    recent_curiosities: list[str]
    recent_roll_highlights: list[str]
    current_location: Optional[str]
    current_node: Optional[str]
    current_exits: list[str]
    current_features: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form for an external text generator."""
        return {
            "scene_number": self.scene_number,
            "expected_scene": self.expected_scene,
            "chaos_factor": self.chaos_factor,
            "roll": self.roll,
            "scene_type": self.scene_type.value,
            "alteration_method": self.alteration_method.label if self.alteration_method else None,
            "alteration_detail": self.alteration_detail,
            "alteration_guidance": self.alteration_guidance,
            "random_event": {
                "focus": self.random_event.focus.value,
                "meaning_words": [
                    self.random_event.meaning_words.first,
                    self.random_event.meaning_words.second,
                ],
            } if self.random_event else None,
            "recent_scenes": [
                {
                    "scene_number": scene.scene_number,
                    "intent": scene.intent,
                    "scene_type": scene.scene_type,
                    "summary": scene.summary,
                }
                for scene in self.recent_scenes
            ],
            "characters": [
                {"name": entry.name, "weight": entry.weight} for entry in self.active_characters
            ],
            "threads": [
                {"name": entry.name, "weight": entry.weight} for entry in self.active_threads
            ],
            "recent_places": list(self.recent_places),
            "recent_curiosities": list(self.recent_curiosities),
            "recent_roll_highlights": list(self.recent_roll_highlights),
            "current_location": self.current_location,
            "current_node": self.current_node,
            "current_exits": list(self.current_exits),
            "current_features": list(self.current_features),
        }


def unique_strings(values: Iterable[str]) -> list[str]:
    """Trimmed, non-empty values with case-insensitive duplicates removed."""
    seen: set[str] = set()
    result = []
    for value in values:
        trimmed = value.strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(trimmed)
    return result


def _none_if_empty(values: list) -> Optional[list]:
    return list(values) if values else None


# =============================================================================
# ENGINE
# =============================================================================


class SoloCampaignEngine:
    """
    Runs scenes against a campaign.

    The engine keeps no campaign state between calls; everything it reads or
    writes lives on the Campaign passed in.

    Usage:
        engine = SoloCampaignEngine()
        scene = engine.resolve_scene(campaign, "The party reaches the ford")
        if scene.scene_type == SceneType.ALTERED:
            scene = engine.apply_alteration_method(scene, AlterationMethod.MEANING_WORDS)
        packet = engine.build_narration_context(campaign, scene)
        entry = engine.finalize_scene(campaign, scene, BookkeepingInput(summary="..."))
    """

    def __init__(
        self,
        oracle: Optional[MythicOracle] = None,
        skill_resolver: Optional[SkillResolver] = None,
        ruleset_id: Optional[str] = None,
        recent_scene_count: int = DEFAULT_RECENT_SCENE_COUNT,
    ):
        """
        Initialize the engine.

        Args:
            oracle: Fixed oracle to use; by default each call builds one on
                the campaign's dice stream
            skill_resolver: Resolver for skill checks
            ruleset_id: Ruleset for the default skill resolver
            recent_scene_count: Scenes included in narration context
        """
        self._oracle = oracle
        self.skill_resolver = skill_resolver or SkillResolver(get_ruleset(ruleset_id))
        self.recent_scene_count = recent_scene_count

    def _oracle_for(self, campaign: Campaign, reason_prefix: str = "Oracle") -> MythicOracle:
        if self._oracle is not None:
            return self._oracle
        return MythicOracle(rng=CampaignRngAdapter(campaign, reason_prefix=reason_prefix))

    def _transition(self, scene: SceneRecord, to_phase: ScenePhase, trigger: str) -> None:
        get_run_log().log_transition(
            from_state=scene.phase.value,
            to_state=to_phase.value,
            trigger=trigger,
            context={"scene_number": scene.scene_number, "scene_id": scene.scene_id},
        )
        logger.debug(f"Scene {scene.scene_number}: {scene.phase.value} -> {to_phase.value} ({trigger})")

    # =========================================================================
    # SCENE CHECK
    # =========================================================================

    def resolve_scene(self, campaign: Campaign, expected_scene: str) -> SceneRecord:
        """
        Roll the scene check for the next scene.

        Rolls 1d10 against the Chaos Factor. An interrupt draws a random event
        immediately; an altered scene waits in ALTERING for a method.
        """
        oracle = self._oracle_for(campaign, reason_prefix="Scene")
        roll = oracle.roll_d10()
        scene_type = oracle.classify_scene(campaign.chaos_factor, roll)

        scene = SceneRecord(
            scene_number=campaign.scene_number,
            expected_scene=expected_scene,
            roll=roll,
            chaos_factor=campaign.chaos_factor,
            scene_type=scene_type,
        )

        if scene_type == SceneType.INTERRUPT:
            scene.random_event = oracle.generate_random_event()

        next_phase = ScenePhase.ALTERING if scene_type == SceneType.ALTERED else ScenePhase.NARRATING
        self._transition(scene, next_phase, f"scene check {roll} vs chaos {scene.chaos_factor}: {scene_type.value}")
        scene.phase = next_phase
        campaign.active_scene_id = scene.scene_id

        logger.info(f"Scene {scene.scene_number} resolved as {scene_type.value} (roll {roll})")
        return scene

    def apply_alteration_method(
        self,
        scene: SceneRecord,
        method: AlterationMethod,
        adjustment: SceneAdjustment = SceneAdjustment.RAISE_STAKES,
        campaign: Optional[Campaign] = None,
    ) -> SceneRecord:
        """
        Apply an alteration method to an altered scene.

        Args:
            scene: The altered scene
            method: How to alter it
            adjustment: Used by SCENE_ADJUSTMENT
            campaign: Dice stream for MEANING_WORDS when the engine has no
                fixed oracle

        Returns:
            An updated copy of the scene, in NARRATING

        Raises:
            ValueError: If the scene is not altered or is already being
                bookkept
        """
        if scene.scene_type != SceneType.ALTERED:
            raise ValueError(f"Scene {scene.scene_number} is {scene.scene_type.value}, not altered")
        if scene.phase in (ScenePhase.BOOKKEEPING, ScenePhase.FINALIZED):
            raise ValueError(f"Scene {scene.scene_number} is already {scene.phase.value}")

        detail = None
        guidance = method.guidance
        if method == AlterationMethod.MEANING_WORDS:
            if self._oracle is None and campaign is None:
                raise ValueError("Meaning words need a campaign or a fixed oracle")
            oracle = self._oracle or self._oracle_for(campaign, reason_prefix="Alteration")
            detail = str(oracle.generate_meaning_words())
        elif method == AlterationMethod.SCENE_ADJUSTMENT:
            detail = adjustment.label
            guidance = adjustment.guidance

        if scene.phase != ScenePhase.NARRATING:
            self._transition(scene, ScenePhase.NARRATING, f"alteration: {method.label}")
        return replace(
            scene,
            alteration_method=method,
            alteration_detail=detail,
            alteration_guidance=guidance,
            phase=ScenePhase.NARRATING,
        )

    # =========================================================================
    # NARRATION CONTEXT
    # =========================================================================

    def build_narration_context(
        self,
        campaign: Campaign,
        scene: SceneRecord,
        recent_count: Optional[int] = None,
    ) -> NarrationContextPacket:
        """Assemble the narration packet. Does not modify the campaign."""
        count = self.recent_scene_count if recent_count is None else recent_count
        newest = sorted(campaign.scenes, key=lambda s: s.scene_number, reverse=True)[:count]
        recent_scenes = sorted(newest, key=lambda s: s.scene_number)

        return NarrationContextPacket(
            scene_number=scene.scene_number,
            expected_scene=scene.expected_scene,
            chaos_factor=scene.chaos_factor,
            roll=scene.roll,
            scene_type=scene.scene_type,
            alteration_method=scene.alteration_method,
            alteration_detail=scene.alteration_detail,
            alteration_guidance=scene.alteration_guidance,
            random_event=scene.random_event,
            recent_scenes=recent_scenes,
            active_characters=sorted(campaign.characters, key=lambda e: e.weight, reverse=True),
            active_threads=sorted(campaign.threads, key=lambda e: e.weight, reverse=True),
            recent_places=unique_strings(p for s in recent_scenes for p in s.places),
            recent_curiosities=unique_strings(c for s in recent_scenes for c in s.curiosities),
            recent_roll_highlights=unique_strings(r for s in recent_scenes for r in s.roll_highlights),
            current_location=self._location_summary(campaign),
            current_node=self._node_summary(campaign),
            current_exits=self._exit_summaries(campaign),
            current_features=self._feature_summaries(campaign),
        )

    def _location_summary(self, campaign: Campaign) -> Optional[str]:
        location = campaign.active_location
        if location is None:
            return None
        return f"{location.name} ({location.location_type})"

    def _node_summary(self, campaign: Campaign) -> Optional[str]:
        node = campaign.active_node
        return node.summary if node else None

    def _feature_summaries(self, campaign: Campaign) -> list[str]:
        node = campaign.active_node
        if node is None:
            return []
        return [f"{f.name}: {f.summary}" if f.summary else f.name for f in node.features[:MAX_NARRATED_FEATURES]]

    def _exit_summaries(self, campaign: Campaign) -> list[str]:
        location = campaign.active_location
        if location is None or campaign.active_node_id is None:
            return []

        exits = []
        for edge in location.edges_from(campaign.active_node_id):
            label = edge.display_label()
            target = location.get_node(edge.to_node_id)
            if target is not None:
                exits.append(f"{label} (Leads to: {target.summary})")
            else:
                exits.append(f"{label} (Unexplored)")
        return exits

    # =========================================================================
    # BOOKKEEPING
    # =========================================================================

    def apply_list_updates(self, campaign: Campaign, bookkeeping: BookkeepingInput) -> None:
        """Fold character and thread changes into the campaign's weighted lists."""
        apply_list_updates(
            campaign.characters,
            new=bookkeeping.new_characters,
            featured=bookkeeping.featured_characters,
            removed=bookkeeping.removed_characters,
            factory=CharacterEntry.create,
        )
        apply_list_updates(
            campaign.threads,
            new=bookkeeping.new_threads,
            featured=bookkeeping.featured_threads,
            removed=bookkeeping.removed_threads,
            factory=ThreadEntry.create,
        )

    def finalize_scene(
        self,
        campaign: Campaign,
        scene: SceneRecord,
        bookkeeping: BookkeepingInput,
    ) -> SceneEntry:
        """
        Close a scene and record it on the campaign.

        Updates the weighted lists, drifts the Chaos Factor, appends the
        SceneEntry and advances the scene counter unless the scene concluded
        the adventure.

        Raises:
            ValueError: If the scene was already finalized
        """
        if scene.phase == ScenePhase.FINALIZED:
            raise ValueError(f"Scene {scene.scene_number} is already finalized")

        self._transition(scene, ScenePhase.BOOKKEEPING, "bookkeeping submitted")
        scene.phase = ScenePhase.BOOKKEEPING

        self.apply_list_updates(campaign, bookkeeping)

        previous_chaos = campaign.chaos_factor
        campaign.chaos_factor = MythicOracle.update_chaos_factor(
            campaign.chaos_factor, bookkeeping.pcs_in_control
        )

        event = scene.random_event
        entry = SceneEntry(
            scene_number=scene.scene_number,
            intent=scene.expected_scene,
            roll=scene.roll,
            chaos_factor=scene.chaos_factor,
            scene_type=scene.scene_type.value,
            summary=bookkeeping.summary,
            alteration_method=scene.alteration_method.label if scene.alteration_method else None,
            alteration_detail=scene.alteration_detail,
            random_event_focus=event.focus.value if event else None,
            meaning_word1=event.meaning_words.first if event else None,
            meaning_word2=event.meaning_words.second if event else None,
            characters_added=list(bookkeeping.new_characters),
            characters_featured=list(bookkeeping.featured_characters),
            characters_removed=list(bookkeeping.removed_characters),
            threads_added=list(bookkeeping.new_threads),
            threads_featured=list(bookkeeping.featured_threads),
            threads_removed=list(bookkeeping.removed_threads),
            pcs_in_control=bookkeeping.pcs_in_control,
            concluded=bookkeeping.concluded,
            interactions=_none_if_empty(bookkeeping.interactions),
            skill_checks=_none_if_empty(bookkeeping.skill_checks),
            fate_questions=_none_if_empty(bookkeeping.fate_questions),
            places=list(bookkeeping.places),
            curiosities=list(bookkeeping.curiosities),
            roll_highlights=list(bookkeeping.roll_highlights),
            location_id=bookkeeping.location_id,
            generated_entity_ids=_none_if_empty(bookkeeping.generated_entity_ids),
            canonizations=_none_if_empty(bookkeeping.canonizations),
            scene_id=scene.scene_id,
        )
        campaign.scenes.append(entry)

        if not bookkeeping.concluded:
            campaign.scene_number += 1

        self._transition(scene, ScenePhase.FINALIZED, "scene entry recorded")
        scene.phase = ScenePhase.FINALIZED

        logger.info(
            f"Scene {entry.scene_number} finalized; chaos {previous_chaos} -> {campaign.chaos_factor}"
        )
        return entry

    # =========================================================================
    # FATE QUESTIONS
    # =========================================================================

    def resolve_fate_question(
        self,
        question: str,
        likelihood: FateLikelihood,
        chaos_factor: int,
        roll: int,
    ) -> FateQuestionRecord:
        """Resolve a fate question for a known d100 roll: yes iff roll <= target."""
        target = fate_target(likelihood, chaos_factor)
        return FateQuestionRecord(
            question=question,
            likelihood=likelihood.value,
            chaos_factor=chaos_factor,
            roll=roll,
            target=target,
            outcome="yes" if roll <= target else "no",
        )

    def ask_fate_question(
        self,
        campaign: Campaign,
        question: str,
        likelihood: FateLikelihood,
    ) -> FateQuestionRecord:
        """Roll d100 on the campaign's dice stream and resolve a fate question."""
        roll = self._oracle_for(campaign, reason_prefix="Fate").roll_d100()
        record = self.resolve_fate_question(question, likelihood, campaign.chaos_factor, roll)
        logger.debug(f"Fate question '{question}' ({likelihood.value}): {roll} vs {record.target} -> {record.outcome}")
        return record

    def resolve_canonization(
        self,
        campaign: Campaign,
        assumption: str,
        likelihood: FateLikelihood,
    ) -> CanonizationRecord:
        """
        Test whether an assumption about the world becomes canon.

        Rolled like a fate question; the assumption is accepted on "yes".
        """
        fate = self.ask_fate_question(campaign, assumption, likelihood)
        return CanonizationRecord(
            assumption=assumption,
            likelihood=fate.likelihood,
            chaos_factor=fate.chaos_factor,
            roll=fate.roll,
            target=fate.target,
            outcome=fate.outcome,
        )

    # =========================================================================
    # SKILL CHECKS
    # =========================================================================

    def finalize_check_request(self, draft: CheckRequestDraft) -> Optional[CheckRequest]:
        return self.skill_resolver.finalize_check_request(draft)

    def evaluate_check(self, request: CheckRequest, roll: int, modifier: int = 0) -> CheckResult:
        return self.skill_resolver.evaluate_check(request, roll, modifier)

    def roll_check(self, campaign: Campaign, request: CheckRequest, modifier: int = 0) -> CheckResult:
        """
        Roll a d20 on the campaign's dice stream and evaluate the check.

        Advantage rolls twice and keeps the higher die; disadvantage keeps the
        lower.
        """
        oracle_rng = CampaignRngAdapter(campaign, reason_prefix=f"Check ({request.skill_name})")
        first = oracle_rng.randint(1, 20)
        roll = first
        if request.advantage_state != AdvantageState.NORMAL:
            second = oracle_rng.randint(1, 20)
            if request.advantage_state == AdvantageState.ADVANTAGE:
                roll = max(first, second)
            else:
                roll = min(first, second)
        return self.evaluate_check(request, roll, modifier)
