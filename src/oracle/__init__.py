"""
Oracle Module for the solo oracle engine.

Provides the scene oracle and the scene pacing state machine that uses it.

Key components:
- MythicOracle: Scene checks, meaning words, random events, Chaos Factor
- CampaignRngAdapter: Deterministic, logged draws from the campaign dice stream
- SoloCampaignEngine: Resolve, alter, narrate and finalize scenes
- WeightedList: Weighted character and thread tracking

Usage:
    from src.oracle import SoloCampaignEngine, BookkeepingInput, SceneType

    engine = SoloCampaignEngine()
    scene = engine.resolve_scene(campaign, "We search the chapel crypt")
    packet = engine.build_narration_context(campaign, scene)
    engine.finalize_scene(campaign, scene, BookkeepingInput(summary="Found a key"))
"""

from src.oracle.mythic_gme import (
    MythicOracle,
    SceneType,
    FateLikelihood,
    AlterationMethod,
    SceneAdjustment,
    RandomEventFocus,
    MeaningWords,
    RandomEvent,
    WordLists,
    DEFAULT_WORD_LISTS,
    WORD_LIST_A,
    WORD_LIST_B,
    CHAOS_MIN,
    CHAOS_MAX,
    clamp_chaos,
    classify_scene,
    fate_target,
    update_chaos_factor,
)

from src.oracle.dice_rng_adapter import CampaignRngAdapter

from src.oracle.weighted_list import WeightedList, apply_list_updates

from src.oracle.solo_campaign_engine import (
    SoloCampaignEngine,
    ScenePhase,
    SceneRecord,
    BookkeepingInput,
    NarrationContextPacket,
    unique_strings,
)

__all__ = [
    # Oracle
    "MythicOracle",
    "SceneType",
    "FateLikelihood",
    "AlterationMethod",
    "SceneAdjustment",
    "RandomEventFocus",
    "MeaningWords",
    "RandomEvent",
    "WordLists",
    "DEFAULT_WORD_LISTS",
    "WORD_LIST_A",
    "WORD_LIST_B",
    "CHAOS_MIN",
    "CHAOS_MAX",
    "clamp_chaos",
    "classify_scene",
    "fate_target",
    "update_chaos_factor",
    # RNG
    "CampaignRngAdapter",
    # Weighted lists
    "WeightedList",
    "apply_list_updates",
    # Scene engine
    "SoloCampaignEngine",
    "ScenePhase",
    "SceneRecord",
    "BookkeepingInput",
    "NarrationContextPacket",
    "unique_strings",
]
