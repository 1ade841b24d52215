"""
NPC Generator for the solo oracle engine.

Rolls a complete NPC from the npc_* tables of the content pack. The amount
of detail scales with importance:
- minor: one notable feature, a quirk and an immediate goal
- supporting: two features, plus a flaw and a long-term goal
- major: three features, plus a backstory event

Every draw is taken from the campaign's (seed, sequence) cursor and kept on
the NPC as an NPCGenerationRoll so the result can be audited later.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.data_models import Campaign, NPCEntry, NPCGenerationRoll, NPCImportance
from src.observability.run_log import get_run_log
from src.tables.table_manager import TableManager, ensure_campaign_seed
from src.tables.table_oracle import resolve_table_manager
from src.tables.table_types import RollContext


logger = logging.getLogger(__name__)

GENERATOR_VERSION = "solo_default@0.1"

NOTABLE_FEATURE_COUNT = {
    NPCImportance.MINOR: 1,
    NPCImportance.SUPPORTING: 2,
    NPCImportance.MAJOR: 3,
}

NAME_SUFFIX_TABLES = {
    "masc": "npc_name_suffix_masc",
    "femme": "npc_name_suffix_femme",
}


@dataclass
class NpcGenerationOptions:
    """Caller overrides for NPC generation; unset fields are rolled."""
    name: Optional[str] = None
    species: Optional[str] = None
    role_tag: Optional[str] = None
    importance: NPCImportance = NPCImportance.MINOR


class NpcGenerator:
    """Generates NPCs from content-pack tables."""

    def __init__(self, table_manager: Optional[TableManager] = None):
        self._table_manager = table_manager

    @property
    def table_manager(self) -> Optional[TableManager]:
        if self._table_manager is None:
            self._table_manager = resolve_table_manager(None)
        return self._table_manager

    def generate_npc(
        self,
        campaign: Campaign,
        options: Optional[NpcGenerationOptions] = None,
    ) -> Optional[NPCEntry]:
        """
        Generate an NPC and add it to campaign.npcs.

        Returns:
            The new NPCEntry, or None if no content pack is available
        """
        manager = self.table_manager
        if manager is None:
            return None
        options = options or NpcGenerationOptions()
        importance = NPCImportance(options.importance)

        seed = ensure_campaign_seed(campaign)
        context = RollContext(
            campaign_id=campaign.campaign_id,
            scene_id=campaign.active_scene_id,
            location_id=campaign.active_location_id,
            node_id=campaign.active_node_id,
            tags=("npc", importance.value),
        )
        rolls: list[NPCGenerationRoll] = []

        def roll_text(table_id: str) -> Optional[str]:
            execution = manager.execute(table_id, context, seed, campaign.rng_sequence)
            if not execution.roll_results:
                return None
            first = execution.roll_results[0]
            text = execution.first_log or ""
            rolls.append(
                NPCGenerationRoll(
                    table_id=table_id,
                    roll_value=first.roll.total,
                    picked_entry_id=first.entry.range_label,
                    result_text=text,
                )
            )
            campaign.rng_sequence = max(campaign.rng_sequence, execution.max_sequence)
            return text

        species = options.species or roll_text("npc_species") or "Unknown"
        role_tag = options.role_tag or roll_text("npc_role") or "Wanderer"
        mood = roll_text("npc_mood") or "neutral"
        voice = roll_text("npc_voice") or ""
        mannerism = roll_text("npc_mannerism") or ""

        notable_features: list[str] = []
        for _ in range(NOTABLE_FEATURE_COUNT[importance]):
            feature = roll_text("npc_notable_feature")
            if feature and feature not in notable_features:
                notable_features.append(feature)

        quirks = _non_empty(roll_text("npc_quirk"))
        flaws = [] if importance == NPCImportance.MINOR else _non_empty(roll_text("npc_flaw"))
        goals_immediate = _non_empty(roll_text("npc_goal"))
        goals_long_term = [] if importance == NPCImportance.MINOR else _non_empty(roll_text("npc_goal"))
        backstory = _non_empty(roll_text("npc_life_event")) if importance == NPCImportance.MAJOR else []

        name_override = (options.name or "").strip()
        name = name_override or self._generate_name(roll_text)

        npc = NPCEntry(
            name=name,
            species=species,
            role_tag=role_tag,
            importance=importance.value,
            current_mood=mood,
            speech_style=voice or None,
            mannerisms=_non_empty(mannerism),
            notable_features=notable_features,
            quirks=quirks,
            flaws=flaws,
            goals_immediate=goals_immediate,
            goals_long_term=goals_long_term,
            backstory_key_events=backstory,
            appearance_short=build_appearance_short(role_tag, species, notable_features),
            generation_seed=str(seed),
            generation_created_by="generator",
            generation_rolls=rolls,
            generation_version=GENERATOR_VERSION,
        )
        campaign.npcs.append(npc)
        campaign.log_event(f"Generated NPC: {npc.name} ({npc.appearance_short})", entity_ids=[npc.npc_id])
        get_run_log().log_generation("npc", f"{npc.name}, {npc.appearance_short}", entity_id=npc.npc_id)
        logger.info(f"Generated {importance.value} NPC {npc.name} from {len(rolls)} rolls")
        return npc

    @staticmethod
    def _generate_name(roll_text) -> str:
        core = roll_text("npc_name_core") or "Rin"
        style = roll_text("npc_name_style") or "nb"
        suffix = roll_text(NAME_SUFFIX_TABLES.get(style, "npc_name_suffix_nb")) or ""
        return f"{core}{suffix}"


def build_appearance_short(role_tag: str, species: str, features: list[str]) -> str:
    """Short appearance line: role, species and the first notable feature."""
    if not features:
        return f"{role_tag} {species}".strip()
    return f"{role_tag} {species} with {features[0].lower()}".strip()


def _non_empty(text: Optional[str]) -> list[str]:
    return [text] if text else []
