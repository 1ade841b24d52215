"""
NPC generation for the solo oracle engine.

Rolls NPCs from the npc_* content-pack tables, with detail scaled by
importance (minor, supporting, major).
"""

from src.npc.npc_generator import (
    NpcGenerator,
    NpcGenerationOptions,
    build_appearance_short,
)

__all__ = [
    "NpcGenerator",
    "NpcGenerationOptions",
    "build_appearance_short",
]
