"""Check resolution module.

Provides d20 skill and contested check validation and evaluation.
"""

from src.resolution.skill_resolver import (
    AdvantageState,
    CheckOutcome,
    CheckRequest,
    CheckRequestDraft,
    CheckResult,
    CheckType,
    Ruleset,
    SkillDefinition,
    SkillResolver,
    SRD_RULESET,
    default_partial_success_dc,
    get_ruleset,
)

__all__ = [
    "AdvantageState",
    "CheckOutcome",
    "CheckRequest",
    "CheckRequestDraft",
    "CheckResult",
    "CheckType",
    "Ruleset",
    "SkillDefinition",
    "SkillResolver",
    "SRD_RULESET",
    "default_partial_success_dc",
    "get_ruleset",
]
