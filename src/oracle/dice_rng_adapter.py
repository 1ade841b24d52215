"""
Deterministic RNG adapter bound to a campaign's dice stream.

The oracle and the loot generator expect an object with randint(a, b) and
choice(seq), the same surface as random.Random. This adapter provides that
surface on top of a DiceRoller positioned at the campaign's (seed, sequence)
cursor, so that every oracle draw:
- is reproducible from the campaign seed
- advances campaign.rng_sequence by exactly one
- is recorded in the RunLog
"""

from __future__ import annotations

from typing import Any, Sequence

from src.data_models import Campaign, DiceRoller
from src.observability.run_log import get_run_log
from src.tables.table_manager import ensure_campaign_seed


class CampaignRngAdapter:
    """
    Adapter that makes a campaign's dice stream look like random.Random.

    The cursor is read from the campaign on every draw, so table rolls made
    between oracle draws are never replayed.

    Usage:
        from src.oracle.dice_rng_adapter import CampaignRngAdapter
        from src.oracle.mythic_gme import MythicOracle

        oracle = MythicOracle(rng=CampaignRngAdapter(campaign, reason_prefix="Scene"))
    """

    def __init__(self, campaign: Campaign, reason_prefix: str = "Oracle"):
        """
        Initialize the adapter.

        Args:
            campaign: Campaign whose rng_seed/rng_sequence are used and advanced
            reason_prefix: Prefix for roll reasons in the run log
        """
        self._campaign = campaign
        self._reason_prefix = reason_prefix
        self._roll_count = 0

    def _draw_roller(self) -> DiceRoller:
        seed = ensure_campaign_seed(self._campaign)
        return DiceRoller(seed, self._campaign.rng_sequence)

    def _commit(self, roller: DiceRoller, notation: str, value: int, context: str) -> None:
        self._roll_count += 1
        self._campaign.rng_sequence = roller.sequence
        get_run_log().log_roll(
            notation=notation,
            total=value,
            reason=f"{self._reason_prefix}: {context} (roll #{self._roll_count})",
            seed=roller.seed,
            rng_sequence=roller.sequence,
        )

    def randint(self, a: int, b: int) -> int:
        """
        Return an integer in [a, b], inclusive.

        Raises:
            ValueError: If b < a
        """
        roller = self._draw_roller()
        value = roller.randint(a, b)
        notation = f"d{b - a + 1}" if a == 1 else f"range({a}-{b})"
        self._commit(roller, notation, value, notation)
        return value

    def choice(self, seq: Sequence[Any]) -> Any:
        """
        Choose an element from a non-empty sequence.

        Raises:
            IndexError: If the sequence is empty
        """
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        options = list(seq)
        roller = self._draw_roller()
        picked = roller.choice(options)
        self._commit(roller, f"choice/{len(options)}", options.index(picked) + 1, f"{picked}")
        return picked

    @property
    def roll_count(self) -> int:
        """Get the number of draws made through this adapter."""
        return self._roll_count
