"""
Tests for the Mythic-style oracle rules and the campaign RNG adapter.
"""

import pytest

from src.data_models import Campaign, DiceRoller
from src.observability.run_log import get_run_log
from src.oracle.dice_rng_adapter import CampaignRngAdapter
from src.oracle.mythic_gme import (
    CHAOS_MAX,
    CHAOS_MIN,
    DEFAULT_WORD_LISTS,
    AlterationMethod,
    FateLikelihood,
    MeaningWords,
    MythicOracle,
    RandomEvent,
    RandomEventFocus,
    SceneAdjustment,
    SceneType,
    WordLists,
    classify_scene,
    clamp_chaos,
    fate_target,
    update_chaos_factor,
)

from tests.helpers import TEST_SEED, ScriptedRandom, fixed_oracle


class TestSceneCheck:
    """Tests for scene classification."""

    @pytest.mark.parametrize(
        "roll,expected",
        [
            (7, SceneType.EXPECTED),
            (6, SceneType.EXPECTED),
            (5, SceneType.ALTERED),
            (4, SceneType.INTERRUPT),
            (3, SceneType.ALTERED),
            (2, SceneType.INTERRUPT),
            (1, SceneType.ALTERED),
        ],
    )
    def test_classify_at_chaos_five(self, roll, expected):
        assert classify_scene(5, roll) == expected

    def test_high_chaos_disrupts_more(self):
        """Test that every roll up to chaos 9 is altered or interrupted."""
        types = {classify_scene(9, roll) for roll in range(1, 10)}
        assert types == {SceneType.ALTERED, SceneType.INTERRUPT}
        assert classify_scene(9, 10) == SceneType.EXPECTED

    def test_title(self):
        assert SceneType.INTERRUPT.title == "Interrupt"


class TestChaosFactor:
    """Tests for chaos drift and bounds."""

    def test_in_control_lowers(self):
        assert update_chaos_factor(5, pcs_in_control=True) == 4

    def test_out_of_control_raises(self):
        assert update_chaos_factor(5, pcs_in_control=False) == 6

    def test_bounds(self):
        """Test that chaos never leaves 1-9."""
        assert update_chaos_factor(CHAOS_MIN, pcs_in_control=True) == CHAOS_MIN
        assert update_chaos_factor(CHAOS_MAX, pcs_in_control=False) == CHAOS_MAX

    @pytest.mark.parametrize("value,expected", [(-4, 1), (0, 1), (5, 5), (12, 9)])
    def test_clamp(self, value, expected):
        assert clamp_chaos(value) == expected

    def test_staticmethods_on_oracle(self):
        """Test that the rules are reachable through the oracle."""
        assert MythicOracle.update_chaos_factor(3, True) == 2
        assert MythicOracle.classify_scene(5, 8) == SceneType.EXPECTED


class TestFateTarget:
    """Tests for fate question targets."""

    @pytest.mark.parametrize(
        "likelihood,base",
        [
            (FateLikelihood.IMPOSSIBLE, 5),
            (FateLikelihood.UNLIKELY, 25),
            (FateLikelihood.FIFTY_FIFTY, 50),
            (FateLikelihood.LIKELY, 70),
            (FateLikelihood.VERY_LIKELY, 85),
            (FateLikelihood.NEARLY_CERTAIN, 95),
        ],
    )
    def test_base_at_chaos_five(self, likelihood, base):
        assert fate_target(likelihood, 5) == base

    def test_chaos_shifts_target(self):
        assert fate_target(FateLikelihood.FIFTY_FIFTY, 9) == 70
        assert fate_target(FateLikelihood.FIFTY_FIFTY, 1) == 30

    def test_clamped(self):
        assert fate_target(FateLikelihood.IMPOSSIBLE, 1) == 5
        assert fate_target(FateLikelihood.NEARLY_CERTAIN, 9) == 95

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("50_50", FateLikelihood.FIFTY_FIFTY),
            ("50/50", FateLikelihood.FIFTY_FIFTY),
            ("50-50", FateLikelihood.FIFTY_FIFTY),
            ("very likely", FateLikelihood.VERY_LIKELY),
            ("VeryLikely", FateLikelihood.VERY_LIKELY),
            ("Nearly Certain", FateLikelihood.NEARLY_CERTAIN),
            (" unlikely ", FateLikelihood.UNLIKELY),
            ("maybe", None),
            (None, None),
        ],
    )
    def test_from_name(self, name, expected):
        assert FateLikelihood.from_name(name) == expected


class TestOracleDraws:
    """Tests for meaning words and random events."""

    def test_meaning_words(self):
        """Test that words come from list A then list B."""
        words = fixed_oracle(choices=[0, 23]).generate_meaning_words()
        assert words == MeaningWords(DEFAULT_WORD_LISTS.list_a[0], DEFAULT_WORD_LISTS.list_b[23])
        assert str(words) == "ancient / wound"

    def test_random_event_draws_focus_first(self):
        """Test focus, first word, second word draw order."""
        event = fixed_oracle(choices=[1, 2, 3]).generate_random_event()
        assert event.focus == RandomEventFocus.NEW_NPC
        assert event.meaning_words == MeaningWords("broken", "cargo")
        assert str(event) == "New NPC: broken / cargo"

    def test_custom_lists_and_focuses(self):
        """Test that injected word lists and focuses are used."""
        oracle = MythicOracle(
            rng=ScriptedRandom(choices=[0, 0, 0]),
            word_lists=WordLists(("red",), ("door",)),
            focus_options=[RandomEventFocus.PC_POSITIVE],
        )
        assert oracle.generate_random_event() == RandomEvent(
            RandomEventFocus.PC_POSITIVE, MeaningWords("red", "door")
        )

    def test_dice(self):
        oracle = fixed_oracle(ints=[10, 100])
        assert oracle.roll_d10() == 10
        assert oracle.roll_d100() == 100

    def test_default_rng(self):
        """Test that an oracle without an rng still rolls in range."""
        assert 1 <= MythicOracle().roll_d10() <= 10


class TestAlterationText:
    """Tests for alteration and adjustment labels."""

    def test_every_method_has_text(self):
        for method in AlterationMethod:
            assert method.label and method.guidance

    def test_every_adjustment_has_text(self):
        for adjustment in SceneAdjustment:
            assert adjustment.label and adjustment.guidance

    def test_labels(self):
        assert AlterationMethod.FATE_QUESTION.label == "Ask a Fate Question"
        assert SceneAdjustment.RAISE_STAKES.label == "Raise the Stakes"


class TestCampaignRngAdapter:
    """Tests for drawing oracle dice from the campaign stream."""

    def test_randint_matches_dice_roller(self, campaign):
        """Test that draws equal a DiceRoller at the same cursor."""
        adapter = CampaignRngAdapter(campaign)
        values = [adapter.randint(1, 10) for _ in range(5)]
        roller = DiceRoller(TEST_SEED)
        assert values == [roller.randint(1, 10) for _ in range(5)]
        assert campaign.rng_sequence == 5
        assert adapter.roll_count == 5

    def test_reads_cursor_each_draw(self, campaign):
        """Test that draws resume after rolls made elsewhere."""
        adapter = CampaignRngAdapter(campaign)
        adapter.randint(1, 6)
        campaign.rng_sequence = 40
        value = adapter.randint(1, 6)
        assert value == DiceRoller(TEST_SEED, 40).randint(1, 6)
        assert campaign.rng_sequence == 41

    def test_choice(self, campaign):
        adapter = CampaignRngAdapter(campaign)
        options = ("a", "b", "c")
        assert adapter.choice(options) == DiceRoller(TEST_SEED).choice(options)
        assert campaign.rng_sequence == 1

    def test_errors_do_not_advance(self, campaign):
        """Test that invalid draws raise without consuming the stream."""
        adapter = CampaignRngAdapter(campaign)
        with pytest.raises(IndexError):
            adapter.choice([])
        with pytest.raises(ValueError):
            adapter.randint(3, 1)
        assert campaign.rng_sequence == 0
        assert adapter.roll_count == 0

    def test_draws_logged(self, campaign):
        """Test that each draw is recorded in the run log."""
        adapter = CampaignRngAdapter(campaign, reason_prefix="Scene")
        adapter.randint(1, 10)
        adapter.randint(5, 8)
        rolls = get_run_log().get_rolls()
        assert [r.notation for r in rolls] == ["d10", "range(5-8)"]
        assert rolls[0].reason == "Scene: d10 (roll #1)"
        assert rolls[1].rng_sequence == 2
        assert rolls[0].seed == TEST_SEED

    def test_seed_initialized(self):
        """Test that a seedless campaign gets a seed on first draw."""
        campaign = Campaign()
        CampaignRngAdapter(campaign).randint(1, 4)
        assert campaign.rng_seed is not None

    def test_oracle_on_campaign_is_reproducible(self):
        """Test that two campaigns with one seed give one random event."""
        def event():
            return MythicOracle(rng=CampaignRngAdapter(Campaign(rng_seed=7))).generate_random_event()

        assert event() == event()
