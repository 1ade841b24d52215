"""
Skill Check Resolution System for the solo oracle engine.

Turns a loosely-typed check draft (as proposed by a narrator or a player)
into a validated CheckRequest against a d20 ruleset, then evaluates a roll
against it.

Skill Check Mechanics:
- Skill check: total >= DC succeeds; total >= partial DC is a partial success
- Contested check: total >= opponent DC succeeds
- DCs snap to the nearest band of the ruleset (5, 10, ..., 30)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from src.data_models import SkillCheckRecord


logger = logging.getLogger(__name__)


class CheckType(str, Enum):
    """Kinds of check a draft can request."""

    SKILL_CHECK = "skill_check"
    CONTESTED_CHECK = "contested_check"


class AdvantageState(str, Enum):
    """Advantage applied to the d20 roll."""

    ADVANTAGE = "advantage"
    DISADVANTAGE = "disadvantage"
    NORMAL = "normal"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["AdvantageState"]:
        """Case-insensitive lookup; None when the name is unknown."""
        if name is None:
            return None
        for state in cls:
            if state.value == name.strip().lower():
                return state
        return None


class CheckOutcome(str, Enum):
    """Possible outcomes of a check."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


# =============================================================================
# RULESET
# =============================================================================


@dataclass(frozen=True)
class SkillDefinition:
    """A skill and the ability it normally uses."""

    name: str
    default_ability: str


@dataclass(frozen=True)
class Ruleset:
    """
    The skills, abilities and DC bands a check is validated against.
    """

    ruleset_id: str
    display_name: str
    abilities: tuple[str, ...]
    skills: tuple[SkillDefinition, ...]
    dc_bands: tuple[int, ...]

    @property
    def skill_names(self) -> list[str]:
        return [skill.name for skill in self.skills]

    def find_skill(self, name: str) -> Optional[SkillDefinition]:
        """Case-insensitive skill lookup."""
        wanted = name.strip().lower()
        for skill in self.skills:
            if skill.name.lower() == wanted:
                return skill
        return None

    def find_ability(self, name: str) -> Optional[str]:
        """Case-insensitive ability lookup, returning the canonical spelling."""
        wanted = name.strip().lower()
        for ability in self.abilities:
            if ability.lower() == wanted:
                return ability
        return None

    def snap_dc(self, dc: Optional[int]) -> Optional[int]:
        """Snap a DC to the nearest band (the lower band wins ties)."""
        if dc is None:
            return None
        return min(self.dc_bands, key=lambda band: abs(band - dc))


_SRD_SKILLS = (
    ("Athletics", "Strength"),
    ("Acrobatics", "Dexterity"),
    ("Sleight of Hand", "Dexterity"),
    ("Stealth", "Dexterity"),
    ("Arcana", "Intelligence"),
    ("History", "Intelligence"),
    ("Investigation", "Intelligence"),
    ("Nature", "Intelligence"),
    ("Religion", "Intelligence"),
    ("Animal Handling", "Wisdom"),
    ("Insight", "Wisdom"),
    ("Medicine", "Wisdom"),
    ("Perception", "Wisdom"),
    ("Survival", "Wisdom"),
    ("Deception", "Charisma"),
    ("Intimidation", "Charisma"),
    ("Performance", "Charisma"),
    ("Persuasion", "Charisma"),
)

SRD_RULESET = Ruleset(
    ruleset_id="srd_5e",
    display_name="SRD 5e",
    abilities=("Strength", "Dexterity", "Constitution", "Intelligence", "Wisdom", "Charisma"),
    skills=tuple(SkillDefinition(name, ability) for name, ability in _SRD_SKILLS),
    dc_bands=(5, 10, 15, 20, 25, 30),
)

RULESETS: dict[str, Ruleset] = {SRD_RULESET.ruleset_id: SRD_RULESET}


def get_ruleset(ruleset_id: Optional[str]) -> Ruleset:
    """Look up a ruleset by id, falling back to the SRD."""
    if ruleset_id and ruleset_id in RULESETS:
        return RULESETS[ruleset_id]
    if ruleset_id:
        logger.warning(f"Unknown ruleset '{ruleset_id}', using {SRD_RULESET.ruleset_id}")
    return SRD_RULESET


# =============================================================================
# CHECK REQUESTS
# =============================================================================


@dataclass
class CheckRequestDraft:
    """
    An unvalidated proposal for a check.

    Fields are loosely typed strings as they would arrive from a narrator;
    finalize_check_request() validates them.
    """

    requires_roll: bool
    check_type: str
    skill: str
    stakes: str = ""
    reason: str = ""
    auto_outcome: Optional[str] = None
    ability_override: Optional[str] = None
    dc: Optional[int] = None
    opponent_skill: Optional[str] = None
    opponent_dc: Optional[int] = None
    advantage_state: str = "normal"
    partial_success_dc: Optional[int] = None
    partial_success_outcome: Optional[str] = None


@dataclass
class CheckRequest:
    """A validated check, ready to be rolled."""

    check_type: CheckType
    skill_name: str
    advantage_state: AdvantageState = AdvantageState.NORMAL
    stakes: str = ""
    reason: str = ""
    ability_override: Optional[str] = None
    dc: Optional[int] = None
    opponent_skill: Optional[str] = None
    opponent_dc: Optional[int] = None
    partial_success_dc: Optional[int] = None
    partial_success_outcome: Optional[str] = None


@dataclass
class CheckResult:
    """Result of evaluating a roll against a CheckRequest."""

    total: int
    outcome: CheckOutcome
    consequence: str
    roll: int = 0
    modifier: int = 0

    @property
    def success(self) -> bool:
        """Whether the check succeeded outright."""
        return self.outcome == CheckOutcome.SUCCESS


def default_partial_success_dc(dc: int) -> int:
    """Partial success sits five below the DC, never below 5."""
    return max(5, dc - 5)


def _strip_or_none(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    stripped = text.strip()
    return stripped or None


class SkillResolver:
    """
    Validates check drafts and evaluates rolls against a ruleset.
    """

    def __init__(self, ruleset: Ruleset = SRD_RULESET):
        self.ruleset = ruleset

    def finalize_check_request(self, draft: CheckRequestDraft) -> Optional[CheckRequest]:
        """
        Validate a draft into a CheckRequest.

        Returns:
            None when no roll is required, the check type is unknown, or the
            skill is empty or not part of the ruleset
        """
        if not draft.requires_roll:
            return None

        try:
            check_type = CheckType((draft.check_type or "").strip())
        except ValueError:
            logger.debug(f"Rejected check draft with type '{draft.check_type}'")
            return None

        skill_name = (draft.skill or "").strip()
        if not skill_name or self.ruleset.find_skill(skill_name) is None:
            logger.debug(f"Rejected check draft with skill '{draft.skill}'")
            return None

        override = _strip_or_none(draft.ability_override)
        ability_override = self.ruleset.find_ability(override) if override else None
        advantage = AdvantageState.from_name(draft.advantage_state) or AdvantageState.NORMAL

        dc = self.ruleset.snap_dc(draft.dc)
        opponent_dc = self.ruleset.snap_dc(draft.opponent_dc)

        partial_dc = self.ruleset.snap_dc(draft.partial_success_dc)
        if partial_dc is None and dc is not None and draft.partial_success_outcome:
            partial_dc = default_partial_success_dc(dc)

        is_skill = check_type == CheckType.SKILL_CHECK
        return CheckRequest(
            check_type=check_type,
            skill_name=skill_name,
            ability_override=ability_override,
            dc=(dc if dc is not None else 10) if is_skill else None,
            opponent_skill=None if is_skill else _strip_or_none(draft.opponent_skill),
            opponent_dc=None if is_skill else (opponent_dc if opponent_dc is not None else 10),
            advantage_state=advantage,
            stakes=(draft.stakes or "").strip(),
            partial_success_dc=partial_dc,
            partial_success_outcome=_strip_or_none(draft.partial_success_outcome),
            reason=(draft.reason or "").strip(),
        )

    def evaluate_check(self, request: CheckRequest, roll: int, modifier: int = 0) -> CheckResult:
        """
        Evaluate a roll against a request.

        Args:
            request: The validated check
            roll: The natural d20 result (after advantage is applied)
            modifier: Ability/proficiency modifier added to the roll

        Returns:
            CheckResult with the outcome and its consequence text
        """
        total = roll + modifier

        if request.check_type == CheckType.SKILL_CHECK:
            dc = request.dc if request.dc is not None else 10
            if total >= dc:
                outcome = CheckOutcome.SUCCESS
            elif request.partial_success_dc is not None and total >= request.partial_success_dc:
                outcome = CheckOutcome.PARTIAL_SUCCESS
            else:
                outcome = CheckOutcome.FAILURE
        else:
            opponent_dc = request.opponent_dc if request.opponent_dc is not None else 10
            outcome = CheckOutcome.SUCCESS if total >= opponent_dc else CheckOutcome.FAILURE

        if outcome == CheckOutcome.SUCCESS:
            consequence = "Success."
        elif outcome == CheckOutcome.PARTIAL_SUCCESS:
            consequence = request.partial_success_outcome or "Partial success."
        else:
            consequence = request.stakes

        return CheckResult(total=total, outcome=outcome, consequence=consequence, roll=roll, modifier=modifier)

    def build_record(
        self,
        player_action: str,
        request: CheckRequest,
        result: Optional[CheckResult] = None,
    ) -> SkillCheckRecord:
        """Build the SkillCheckRecord stored on a scene."""
        return SkillCheckRecord(
            player_action=player_action,
            check_type=request.check_type.value,
            skill=request.skill_name,
            advantage_state=request.advantage_state.value,
            stakes=request.stakes,
            reason=request.reason,
            ability_override=request.ability_override,
            dc=request.dc,
            opponent_skill=request.opponent_skill,
            opponent_dc=request.opponent_dc,
            partial_success_dc=request.partial_success_dc,
            partial_success_outcome=request.partial_success_outcome,
            roll_result=result.roll if result else None,
            modifier=result.modifier if result else None,
            total=result.total if result else None,
            outcome=result.outcome.value if result else None,
            consequence=result.consequence if result else None,
        )
