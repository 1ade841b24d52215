"""
Mythic-style oracle for the solo oracle engine.

Implements the scene-level oracle mechanics:
- Scene Check: d10 against the Chaos Factor decides expected/altered/interrupt
- Random Events: a focus plus two meaning words
- Meaning Words: one word from each of two lists, for interpretation
- Fate Questions: d100 yes/no against a likelihood target shifted by chaos
- Chaos Factor: drifts by one per scene, kept in [1, 9]

All randomness goes through an injected rng exposing randint/choice. In play
that is a CampaignRngAdapter, so every oracle draw comes from the campaign
stream.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence
import random


CHAOS_MIN = 1
CHAOS_MAX = 9
DEFAULT_CHAOS = 5

FATE_TARGET_MIN = 5
FATE_TARGET_MAX = 95


# =============================================================================
# ENUMS
# =============================================================================


class SceneType(str, Enum):
    """How a scene check changed the expected scene."""

    EXPECTED = "expected"
    ALTERED = "altered"
    INTERRUPT = "interrupt"

    @property
    def title(self) -> str:
        return self.value.capitalize()


class FateLikelihood(str, Enum):
    """Likelihood bands for fate questions."""

    IMPOSSIBLE = "impossible"
    UNLIKELY = "unlikely"
    FIFTY_FIFTY = "50_50"
    LIKELY = "likely"
    VERY_LIKELY = "veryLikely"
    NEARLY_CERTAIN = "nearlyCertain"

    @property
    def base(self) -> int:
        """Yes-target at Chaos Factor 5."""
        return FATE_BASE_TARGETS[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional["FateLikelihood"]:
        """
        Lenient lookup: "50/50", "50-50", "very likely" and "VeryLikely"
        all resolve. Returns None for unknown names.
        """
        if name is None:
            return None
        normalized = (
            name.strip().replace("/", "_").replace("-", "_").replace(" ", "").lower()
        )
        for likelihood in cls:
            if likelihood.value.lower() == normalized:
                return likelihood
        return None


FATE_BASE_TARGETS = {
    FateLikelihood.IMPOSSIBLE: 5,
    FateLikelihood.UNLIKELY: 25,
    FateLikelihood.FIFTY_FIFTY: 50,
    FateLikelihood.LIKELY: 70,
    FateLikelihood.VERY_LIKELY: 85,
    FateLikelihood.NEARLY_CERTAIN: 95,
}


class RandomEventFocus(str, Enum):
    """What a Random Event relates to."""

    NPC_ACTION = "NPC Action"
    NEW_NPC = "New NPC"
    REMOTE_EVENT = "Remote Event"
    MOVE_TOWARD_THREAD = "Move Toward a Thread"
    MOVE_AWAY_FROM_THREAD = "Move Away from a Thread"
    PC_NEGATIVE = "PC Negative"
    PC_POSITIVE = "PC Positive"


class AlterationMethod(str, Enum):
    """Ways to turn an altered scene into something new."""

    NEXT_MOST_LIKELY = "nextMostLikely"
    TWEAK_ONE_ELEMENT = "tweakOneElement"
    FATE_QUESTION = "fateQuestion"
    MEANING_WORDS = "meaningWords"
    SCENE_ADJUSTMENT = "sceneAdjustment"

    @property
    def label(self) -> str:
        return ALTERATION_TEXT[self][0]

    @property
    def guidance(self) -> str:
        return ALTERATION_TEXT[self][1]


ALTERATION_TEXT = {
    AlterationMethod.NEXT_MOST_LIKELY: (
        "Next Most Likely",
        "Go with the next most likely idea and proceed confidently.",
    ),
    AlterationMethod.TWEAK_ONE_ELEMENT: (
        "Tweak One Element (who/what/where/goal/complication)",
        "Adjust one element (who/what/where/goal/complication) to make the scene surprising.",
    ),
    AlterationMethod.FATE_QUESTION: (
        "Ask a Fate Question",
        "Frame a yes/no question, roll, and apply the answer to reshape the scene.",
    ),
    AlterationMethod.MEANING_WORDS: (
        "Meaning Words",
        "Interpret the two words as a prompt for what changes.",
    ),
    AlterationMethod.SCENE_ADJUSTMENT: (
        "Scene Adjustment",
        "Apply a small adjustment to shift the scene's direction.",
    ),
}


class SceneAdjustment(str, Enum):
    """Small adjustments used by the scene-adjustment alteration method."""

    RAISE_STAKES = "raiseStakes"
    SHIFT_LOCATION = "shiftLocation"
    DELAY_GOAL = "delayGoal"
    ADD_COMPLICATION = "addComplication"
    REVEAL_MOTIVATION = "revealMotivation"

    @property
    def label(self) -> str:
        return ADJUSTMENT_TEXT[self][0]

    @property
    def guidance(self) -> str:
        return ADJUSTMENT_TEXT[self][1]


ADJUSTMENT_TEXT = {
    SceneAdjustment.RAISE_STAKES: ("Raise the Stakes", "Something makes success costlier or riskier."),
    SceneAdjustment.SHIFT_LOCATION: ("Shift the Location", "Move the action to a nearby, more dramatic place."),
    SceneAdjustment.DELAY_GOAL: ("Delay the Goal", "A barrier forces a detour before the goal can be reached."),
    SceneAdjustment.ADD_COMPLICATION: ("Add a Complication", "Introduce a new obstacle or side effect."),
    SceneAdjustment.REVEAL_MOTIVATION: ("Reveal a Motivation", "Expose a hidden reason behind someone's actions."),
}


# =============================================================================
# MEANING WORDS
# =============================================================================

WORD_LIST_A = [
    "ancient", "bold", "broken", "calm", "chaotic", "cold", "distant", "eager",
    "fragile", "grim", "hidden", "honest", "jagged", "luminous", "muffled", "narrow",
    "ominous", "quiet", "restless", "scarred", "silent", "tangled", "urgent", "worn",
]

WORD_LIST_B = [
    "ally", "barrier", "bridge", "cargo", "crowd", "debt", "doorway", "echo",
    "fire", "garden", "hunger", "key", "memory", "message", "path", "promise",
    "refuge", "signal", "storm", "trail", "vault", "warning", "whisper", "wound",
]


@dataclass(frozen=True)
class WordLists:
    """The two lists meaning words are drawn from."""

    list_a: tuple[str, ...]
    list_b: tuple[str, ...]


DEFAULT_WORD_LISTS = WordLists(tuple(WORD_LIST_A), tuple(WORD_LIST_B))


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class MeaningWords:
    """A pair of words for interpretation."""

    first: str
    second: str

    def __str__(self) -> str:
        return f"{self.first} / {self.second}"


@dataclass(frozen=True)
class RandomEvent:
    """A randomly triggered event."""

    focus: RandomEventFocus
    meaning_words: MeaningWords

    def __str__(self) -> str:
        return f"{self.focus.value}: {self.meaning_words}"


# =============================================================================
# PURE RULES
# =============================================================================


def clamp_chaos(value: int) -> int:
    """Clamp a Chaos Factor to [1, 9]."""
    return max(CHAOS_MIN, min(CHAOS_MAX, value))


def classify_scene(chaos_factor: int, roll: int) -> SceneType:
    """
    Classify a scene check.

    A roll above the Chaos Factor leaves the scene as expected. Otherwise an
    even roll interrupts it and an odd roll alters it.
    """
    if roll > chaos_factor:
        return SceneType.EXPECTED
    if roll % 2 == 0:
        return SceneType.INTERRUPT
    return SceneType.ALTERED


def update_chaos_factor(current: int, pcs_in_control: bool) -> int:
    """Chaos drops when the PCs kept control of the scene and rises otherwise."""
    if pcs_in_control:
        return clamp_chaos(current - 1)
    return clamp_chaos(current + 1)


def fate_target(likelihood: FateLikelihood, chaos_factor: int) -> int:
    """Yes-target for a fate question: base + 5 per chaos point above 5, clamped."""
    target = likelihood.base + (chaos_factor - DEFAULT_CHAOS) * 5
    return max(FATE_TARGET_MIN, min(FATE_TARGET_MAX, target))


# =============================================================================
# ORACLE
# =============================================================================


class MythicOracle:
    """
    Scene oracle: dice, meaning words and random events.

    Usage:
        oracle = MythicOracle(rng=CampaignRngAdapter(campaign))
        roll = oracle.roll_d10()
        scene_type = oracle.classify_scene(campaign.chaos_factor, roll)
        if scene_type == SceneType.INTERRUPT:
            event = oracle.generate_random_event()
    """

    def __init__(
        self,
        rng: Optional[Any] = None,
        word_lists: WordLists = DEFAULT_WORD_LISTS,
        focus_options: Optional[Sequence[RandomEventFocus]] = None,
    ):
        """
        Initialize the oracle.

        Args:
            rng: Object with randint(a, b) and choice(seq); defaults to an
                unseeded random.Random
            word_lists: Lists meaning words are drawn from
            focus_options: Random event focuses to choose from (all by default)
        """
        self._rng = rng or random.Random()
        self.word_lists = word_lists
        self.focus_options = list(focus_options or RandomEventFocus)

    def roll_d10(self) -> int:
        return self._rng.randint(1, 10)

    def roll_d100(self) -> int:
        return self._rng.randint(1, 100)

    classify_scene = staticmethod(classify_scene)
    update_chaos_factor = staticmethod(update_chaos_factor)

    def generate_meaning_words(self) -> MeaningWords:
        """Draw one word from each list."""
        return MeaningWords(
            first=self._rng.choice(self.word_lists.list_a),
            second=self._rng.choice(self.word_lists.list_b),
        )

    def generate_random_event(self) -> RandomEvent:
        """Draw a focus, then a pair of meaning words."""
        focus = self._rng.choice(self.focus_options)
        return RandomEvent(focus=focus, meaning_words=self.generate_meaning_words())
