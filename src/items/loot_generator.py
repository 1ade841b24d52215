"""
Loot generation for the solo oracle engine.

Picks a magic item rarity appropriate to the character level, rolls the
matching loot_magic_* table, and falls back to mundane equipment when no
magic item comes up.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from src.data_models import Campaign
from src.observability.run_log import get_run_log
from src.oracle.dice_rng_adapter import CampaignRngAdapter
from src.tables.table_oracle import TableOracle


logger = logging.getLogger(__name__)

FALLBACK_ITEM = "Mundane trinket"


class MagicItemRarity(str, Enum):
    """Magic item rarity bands."""
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    VERY_RARE = "veryRare"
    LEGENDARY = "legendary"


RARITY_TABLES = {
    MagicItemRarity.COMMON: "loot_magic_common",
    MagicItemRarity.UNCOMMON: "loot_magic_uncommon",
    MagicItemRarity.RARE: "loot_magic_rare",
    MagicItemRarity.VERY_RARE: "loot_magic_very_rare",
    MagicItemRarity.LEGENDARY: "loot_magic_legendary",
}


def rarities_for_level(level: int) -> list[MagicItemRarity]:
    """Rarities a character of the given level can find."""
    all_rarities = list(MagicItemRarity)
    if level >= 17:
        return all_rarities
    if level >= 11:
        return all_rarities[:4]
    if level >= 5:
        return all_rarities[:3]
    if level >= 1:
        return all_rarities[:2]
    return []


@dataclass
class LootItem:
    """A single piece of generated loot."""
    name: str
    category: str
    rarity: Optional[MagicItemRarity]
    source: str


class LootGenerator:
    """Generates loot from content-pack tables using the campaign RNG."""

    def __init__(self, table_oracle: Optional[TableOracle] = None):
        self.table_oracle = table_oracle or TableOracle()

    @property
    def source(self) -> str:
        manager = self.table_oracle.table_manager
        if manager is None or manager.pack_label is None:
            return "unknown"
        return manager.pack_label.split("@", 1)[0]

    def random_loot(
        self,
        campaign: Campaign,
        character_level: int,
        include_magic: bool = True,
    ) -> list[LootItem]:
        """
        Generate loot for a character of the given level.

        Returns:
            A one-item list: a magic item when one is rolled, otherwise
            equipment (or a mundane trinket when no equipment table exists)
        """
        results: list[LootItem] = []

        rarities = rarities_for_level(character_level) if include_magic else []
        if rarities:
            rarity = CampaignRngAdapter(campaign, reason_prefix="Loot").choice(rarities)
            name = self._roll_item(campaign, RARITY_TABLES[rarity], ["loot", rarity.value])
            if name:
                results.append(LootItem(name=name, category="Magic Item", rarity=rarity, source=self.source))

        if not results:
            name = self._roll_item(campaign, "loot_equipment", ["loot", "equipment"]) or FALLBACK_ITEM
            results.append(LootItem(name=name, category="Equipment", rarity=None, source=self.source))

        for item in results:
            get_run_log().log_generation("loot", f"{item.name} ({item.category})")
        logger.info(f"Generated loot for level {character_level}: {[item.name for item in results]}")
        return results

    def _roll_item(self, campaign: Campaign, table_id: str, tags: list[str]) -> Optional[str]:
        execution = self.table_oracle.roll_table(campaign, table_id, tags)
        if execution is None or not execution.roll_results:
            return None
        return execution.first_log
