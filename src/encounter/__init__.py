"""
Travel encounters for the solo oracle engine.

This module provides the periodic encounter check made while travelling and
the table-driven travel events it can trigger.
"""

from src.encounter.travel_encounter_engine import (
    TravelEnvironment,
    TravelTimeOfDay,
    TravelConditions,
    EncounterFrequency,
    EncounterCheckOutcome,
    TravelEventOutcome,
    TravelEventResolution,
    TravelEncounterEngine,
    ENCOUNTER_FREQUENCIES,
    follow_up_table_ids,
)

__all__ = [
    "TravelEnvironment",
    "TravelTimeOfDay",
    "TravelConditions",
    "EncounterFrequency",
    "EncounterCheckOutcome",
    "TravelEventOutcome",
    "TravelEventResolution",
    "TravelEncounterEngine",
    "ENCOUNTER_FREQUENCIES",
    "follow_up_table_ids",
]
