"""
Loot generation for the solo oracle engine.

This module provides:
- LootGenerator: Level-appropriate magic items with an equipment fallback
"""

from src.items.loot_generator import LootGenerator, LootItem, MagicItemRarity, rarities_for_level

__all__ = ["LootGenerator", "LootItem", "MagicItemRarity", "rarities_for_level"]
