"""
Tests for skill check validation and evaluation.
"""

import pytest

from src.resolution.skill_resolver import (
    SRD_RULESET,
    AdvantageState,
    CheckOutcome,
    CheckRequest,
    CheckRequestDraft,
    CheckType,
    SkillResolver,
    default_partial_success_dc,
    get_ruleset,
)

RESOLVER = SkillResolver()


def draft(**overrides) -> CheckRequestDraft:
    values = dict(requires_roll=True, check_type="skill_check", skill="Stealth", stakes="You are seen.")
    values.update(overrides)
    return CheckRequestDraft(**values)


class TestRuleset:
    """Tests for ruleset lookups."""

    @pytest.mark.parametrize("dc,band", [(1, 5), (7, 5), (8, 10), (12, 10), (13, 15), (29, 30), (45, 30)])
    def test_snap_dc(self, dc, band):
        assert SRD_RULESET.snap_dc(dc) == band

    def test_snap_none(self):
        assert SRD_RULESET.snap_dc(None) is None

    def test_find_skill_case_insensitive(self):
        assert SRD_RULESET.find_skill(" sleight of hand ").default_ability == "Dexterity"
        assert SRD_RULESET.find_skill("Lockpicking") is None

    def test_get_ruleset_fallback(self):
        assert get_ruleset(None) is SRD_RULESET
        assert get_ruleset("unknown") is SRD_RULESET


class TestFinalizeCheckRequest:
    """Tests for turning drafts into requests."""

    def test_skill_check(self):
        request = RESOLVER.finalize_check_request(draft(dc=14, advantage_state="Advantage", reason=" sneaking "))
        assert request.check_type == CheckType.SKILL_CHECK
        assert request.skill_name == "Stealth"
        assert request.dc == 15
        assert request.advantage_state == AdvantageState.ADVANTAGE
        assert request.reason == "sneaking"
        assert request.opponent_dc is None

    def test_default_dc(self):
        assert RESOLVER.finalize_check_request(draft()).dc == 10

    def test_contested(self):
        request = RESOLVER.finalize_check_request(draft(check_type="contested_check", opponent_skill=" Perception ",
                                                        opponent_dc=17, dc=20))
        assert request.dc is None
        assert request.opponent_skill == "Perception"
        assert request.opponent_dc == 15

    @pytest.mark.parametrize(
        "overrides",
        [
            {"requires_roll": False},
            {"check_type": "saving_throw"},
            {"skill": "   "},
            {"skill": "Lockpicking"},
        ],
    )
    def test_rejected(self, overrides):
        assert RESOLVER.finalize_check_request(draft(**overrides)) is None

    def test_ability_override(self):
        assert RESOLVER.finalize_check_request(draft(ability_override="intelligence")).ability_override == "Intelligence"
        assert RESOLVER.finalize_check_request(draft(ability_override="Luck")).ability_override is None

    def test_unknown_advantage_is_normal(self):
        assert RESOLVER.finalize_check_request(draft(advantage_state="lucky")).advantage_state == AdvantageState.NORMAL

    def test_partial_dc_defaulted(self):
        """Test that a partial outcome without a DC gets one five below."""
        request = RESOLVER.finalize_check_request(draft(dc=15, partial_success_outcome="You slip but make noise."))
        assert request.partial_success_dc == 10

    def test_partial_dc_floor(self):
        assert default_partial_success_dc(5) == 5


class TestEvaluateCheck:
    """Tests for outcome evaluation."""

    def _request(self, **kwargs) -> CheckRequest:
        values = dict(check_type=CheckType.SKILL_CHECK, skill_name="Stealth", dc=15, stakes="You are seen.")
        values.update(kwargs)
        return CheckRequest(**values)

    def test_success(self):
        result = RESOLVER.evaluate_check(self._request(), roll=13, modifier=2)
        assert result.outcome == CheckOutcome.SUCCESS
        assert result.success
        assert result.total == 15
        assert result.consequence == "Success."

    def test_partial_success(self):
        request = self._request(partial_success_dc=10, partial_success_outcome="Noise.")
        result = RESOLVER.evaluate_check(request, roll=10, modifier=2)
        assert result.total == 12
        assert result.outcome == CheckOutcome.PARTIAL_SUCCESS
        assert result.consequence == "Noise."

    def test_failure_uses_stakes(self):
        result = RESOLVER.evaluate_check(self._request(partial_success_dc=10), roll=4, modifier=1)
        assert result.outcome == CheckOutcome.FAILURE
        assert result.consequence == "You are seen."

    def test_contested(self):
        request = CheckRequest(check_type=CheckType.CONTESTED_CHECK, skill_name="Athletics", opponent_dc=15)
        assert RESOLVER.evaluate_check(request, 15).outcome == CheckOutcome.SUCCESS
        assert RESOLVER.evaluate_check(request, 14).outcome == CheckOutcome.FAILURE

    def test_build_record(self):
        resolver = SkillResolver()
        request = self._request()
        record = resolver.build_record("I sneak past", request, resolver.evaluate_check(request, 18, 1))
        assert record.skill == "Stealth"
        assert record.check_type == "skill_check"
        assert record.total == 19
        assert record.outcome == "success"
        unrolled = resolver.build_record("I sneak past", request)
        assert unrolled.outcome is None
