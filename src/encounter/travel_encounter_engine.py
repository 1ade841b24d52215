"""
Travel Encounter Engine for the solo oracle engine.

Resolves the periodic "does anything happen on the road?" check made while
travelling. Each environment has its own die, check interval and trigger
range; time of day and weather shift the roll. When the check triggers, a
travel event is rolled and its text decides which follow-up tables
(weather, obstacles, reactions, ...) are rolled as well.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

from src.data_models import Campaign, DiceRoller, TableRollRecord
from src.observability.run_log import get_run_log
from src.tables.table_manager import ensure_campaign_seed
from src.tables.table_oracle import TableOracle


logger = logging.getLogger(__name__)


class TravelEnvironment(str, Enum):
    """Kinds of terrain a party can travel through."""
    ROAD = "road"
    WILDERNESS = "wilderness"
    WILDS = "wilds"
    UNDERGROUND = "underground"
    CITY = "city"


class TravelTimeOfDay(str, Enum):
    DAY = "day"
    NIGHT = "night"


@dataclass(frozen=True)
class TravelConditions:
    """Conditions that modify the encounter check."""
    time_of_day: TravelTimeOfDay = TravelTimeOfDay.DAY
    bad_weather: bool = False

    @property
    def modifier(self) -> int:
        """Day -1, night +1, bad weather +2."""
        modifier = -1 if self.time_of_day == TravelTimeOfDay.DAY else 1
        if self.bad_weather:
            modifier += 2
        return modifier


@dataclass(frozen=True)
class EncounterFrequency:
    """How often and how likely encounters are in an environment."""
    die_spec: str
    interval_hours: int
    range_min: int
    range_max: int
    notes: str

    def contains(self, value: int) -> bool:
        return self.range_min <= value <= self.range_max


ENCOUNTER_FREQUENCIES: dict[TravelEnvironment, EncounterFrequency] = {
    TravelEnvironment.ROAD: EncounterFrequency("d20", 4, 18, 20, "Lower chance due to safety."),
    TravelEnvironment.WILDERNESS: EncounterFrequency("d20", 3, 15, 20, "Standard overland travel."),
    TravelEnvironment.WILDS: EncounterFrequency("d12", 2, 8, 12, "Denser terrain increases chances."),
    TravelEnvironment.UNDERGROUND: EncounterFrequency("d12", 1, 7, 12, "Frequent checks reflect confined danger."),
    TravelEnvironment.CITY: EncounterFrequency("d20", 6, 19, 20, "Rare encounters in civilized areas."),
}

# Keywords in a travel event that call for a follow-up table, in roll order
FOLLOW_UP_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("weather_conditions", ("weather",)),
    ("travel_obstacle", ("terrain", "hazard", "difficult")),
    ("npc_reaction", ("travellers", "traveler", "merchant", "patrol", "authorities")),
    ("animal_encounter", ("wildlife",)),
    ("quest_hook", ("clue", "quest", "lost item")),
    ("phenomenon", ("phenomenon",)),
    ("exploration_feature", ("discovery", "landmark", "ruin")),
]

COMBAT_KEYWORDS = ("ambush", "dangerous creature", "combat")


def follow_up_table_ids(event: str) -> list[str]:
    """Follow-up tables implied by the text of a travel event."""
    lower = event.lower()
    return [
        table_id
        for table_id, keywords in FOLLOW_UP_KEYWORDS
        if any(keyword in lower for keyword in keywords)
    ]


def requires_combat_intensity(event: str) -> bool:
    lower = event.lower()
    return any(keyword in lower for keyword in COMBAT_KEYWORDS)


@dataclass
class EncounterCheckOutcome:
    """Result of one encounter check."""
    environment: TravelEnvironment
    conditions: TravelConditions
    die_spec: str
    roll: int
    modifier: int
    frequency: EncounterFrequency

    @property
    def modified_roll(self) -> int:
        return self.roll + self.modifier

    @property
    def triggered(self) -> bool:
        return self.frequency.contains(self.modified_roll)

    @property
    def notes(self) -> str:
        return self.frequency.notes


@dataclass
class TravelEventOutcome:
    event: str
    follow_ups: list[str] = field(default_factory=list)
    encounter_intensity: Optional[str] = None


@dataclass
class TravelEventResolution:
    check: EncounterCheckOutcome
    event: Optional[TravelEventOutcome] = None


class TravelEncounterEngine:
    """Resolves travel encounter checks and rolls the resulting events."""

    def __init__(self, table_oracle: Optional[TableOracle] = None):
        self.table_oracle = table_oracle or TableOracle()

    @staticmethod
    def frequency(environment: TravelEnvironment) -> EncounterFrequency:
        """Get the encounter frequency for an environment."""
        return ENCOUNTER_FREQUENCIES[TravelEnvironment(environment)]

    def resolve_travel_event(
        self,
        campaign: Campaign,
        environment: TravelEnvironment,
        conditions: Optional[TravelConditions] = None,
        travel_modifier: int = 0,
    ) -> TravelEventResolution:
        """
        Make an encounter check and, if it triggers, roll the travel event.

        Args:
            campaign: Campaign whose RNG stream is used
            environment: Terrain being travelled through
            conditions: Time of day and weather
            travel_modifier: Extra modifier added to the check

        Returns:
            TravelEventResolution; event is None when nothing happens
        """
        environment = TravelEnvironment(environment)
        conditions = conditions or TravelConditions()
        freq = self.frequency(environment)
        modifier = conditions.modifier + travel_modifier

        roll = self._roll_encounter_check(campaign, freq.die_spec, modifier, environment)
        check = EncounterCheckOutcome(
            environment=environment,
            conditions=conditions,
            die_spec=freq.die_spec,
            roll=roll,
            modifier=modifier,
            frequency=freq,
        )
        logger.debug(
            f"Encounter check ({environment.value}): {roll}{modifier:+d} = {check.modified_roll}, "
            f"triggers on {freq.range_min}-{freq.range_max}"
        )

        if not check.triggered:
            return TravelEventResolution(check=check)

        event = self.table_oracle.roll_message(campaign, "travel_event", ["travel_event", environment.value])
        if event is None:
            return TravelEventResolution(check=check)

        follow_ups = []
        for table_id in follow_up_table_ids(event):
            result = self.table_oracle.roll_message(campaign, table_id, ["travel_followup", table_id])
            if result is not None:
                follow_ups.append(result)

        intensity = None
        if requires_combat_intensity(event):
            intensity = self.table_oracle.roll_message(
                campaign, "combat_encounter_intensity", ["combat_encounter", environment.value]
            )

        outcome = TravelEventOutcome(event=event, follow_ups=follow_ups, encounter_intensity=intensity)
        campaign.log_event(f"Travel event ({environment.value}): {event}")
        get_run_log().log_generation("travel_event", event)
        logger.info(f"Travel event in {environment.value}: {event}")
        return TravelEventResolution(check=check, event=outcome)

    def _roll_encounter_check(
        self,
        campaign: Campaign,
        die_spec: str,
        modifier: int,
        environment: TravelEnvironment,
    ) -> int:
        seed = ensure_campaign_seed(campaign)
        roller = DiceRoller(seed, campaign.rng_sequence)
        roll = roller.roll(die_spec)
        campaign.rng_sequence = roller.sequence
        campaign.table_rolls.append(
            TableRollRecord(
                table_id="encounter_check",
                entry_range="check",
                dice_spec=roll.spec,
                roll_total=roll.total,
                modifier=modifier,
                seed=seed,
                sequence=roller.sequence,
                context_summary=f"Travel encounter check ({environment.value})",
                outcome_summary="Encounter check roll",
            )
        )
        return roll.total

    # =========================================================================
    # CONVENIENCE ROLLS
    # =========================================================================

    def roll_exploration_feature(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "exploration_feature", ["exploration_feature"])

    def roll_weather(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "weather_conditions", ["weather"])

    def roll_obstacle(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "travel_obstacle", ["obstacle"])

    def roll_phenomenon(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "phenomenon", ["phenomenon"])

    def roll_npc_reaction(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "npc_reaction", ["npc_reaction"])

    def roll_animal_encounter(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "animal_encounter", ["animal_encounter"])

    def roll_quest_hook(self, campaign: Campaign) -> Optional[str]:
        return self.table_oracle.roll_message(campaign, "quest_hook", ["quest_hook"])
