"""
Tests for the table interpreter.

Covers entry selection, nested rolls, conditional rolls, unknown actions,
missing tables, the recursion ceiling and determinism of executions.
"""

from src.data_models import Campaign
from src.observability.run_log import get_run_log
from src.tables.table_manager import (
    CONDITIONAL_TABLE_ID,
    DEFAULT_TRAP_DC,
    TableManager,
    attach_table_rolls,
    location_summary,
    tags_summary,
)
from src.tables.table_types import (
    ConditionalRollAction,
    LogAction,
    RollContext,
    RollOnTableAction,
    SpawnTrapAction,
    TableDefinition,
    TableEntry,
    UnknownAction,
)

from tests.helpers import log_table


def context(**kwargs) -> RollContext:
    return RollContext(campaign_id="campaign-1", **kwargs)


class TestEntrySelection:
    """Tests for picking the entry a roll lands on."""

    def test_every_roll_in_tiled_range_resolves(self):
        """Test that a table tiling 1-20 covers every roll exactly once."""
        rows = [(1, 5, "low"), (6, 10, "mid"), (11, 19, "high"), (20, 20, "crit")]
        table = log_table("tiled", "d20", rows)
        for roll in range(1, 21):
            matches = [e for e in table.entries if e.matches_roll(roll)]
            assert len(matches) == 1
            assert table.resolve_entry(roll) is matches[0]

    def test_unmatched_roll_falls_back_to_first_entry(self):
        """Test that a roll outside every range uses the first entry."""
        table = log_table("gappy", "d1", [(5, 6, "first"), (7, 8, "second")])
        manager = TableManager([table])
        execution = manager.execute("gappy", context(), 1, 0)
        assert execution.first_log == "first"
        assert execution.roll_results[0].entry.range_label == "5-6"

    def test_entry_matches_roll(self, tiny_manager):
        """Test that the logged color matches the d4 roll."""
        colors = {1: "red", 2: "green", 3: "blue", 4: "black"}
        for sequence in range(10):
            execution = tiny_manager.execute("colors", context(), 314, sequence)
            result = execution.roll_results[0]
            assert execution.first_log == colors[result.roll.total]


class TestExecution:
    """Tests for TableManager.execute."""

    def test_missing_table(self):
        """Test that a missing table gives a diagnostic, not an exception."""
        execution = TableManager().execute("nope", context(), 1, 0)
        assert execution.roll_results == []
        assert execution.logs == ["Missing table: nope"]
        assert execution.max_sequence is None

    def test_nested_roll_order_and_sequence(self, tiny_manager):
        """Test that nested rolls follow the parent roll on the same stream."""
        execution = tiny_manager.execute("chain", context(), 55, 7)
        assert [r.table_id for r in execution.roll_results] == ["chain", "colors"]
        assert [r.sequence for r in execution.roll_results] == [8, 9]
        assert execution.logs[-1] == "chain done"
        assert execution.max_sequence == 9

    def test_sequence_monotonic(self, table_manager):
        """Test that the cursor advances by at least the number of draws."""
        start = 40
        execution = table_manager.execute("room_contents", context(), 2024, start)
        draws = sum(len(r.roll.rolls) for r in execution.roll_results)
        assert execution.max_sequence >= start + draws

    def test_determinism(self, table_manager):
        """Test that identical inputs give identical executions."""
        for table_id in ("dungeon_edge", "room_contents", "npc_species", "travel_event"):
            a = table_manager.execute(table_id, context(), 8080, 12)
            b = table_manager.execute(table_id, context(), 8080, 12)
            assert [(r.table_id, r.roll.rolls, r.sequence) for r in a.roll_results] == [
                (r.table_id, r.roll.rolls, r.sequence) for r in b.roll_results
            ]
            assert a.logs == b.logs
            assert [e.summary for e in a.spawned_edges] == [e.summary for e in b.spawned_edges]

    def test_unknown_action_ignored(self):
        """Test that unknown actions are carried but do nothing."""
        table = TableDefinition(
            table_id="future",
            name="Future",
            scope="test",
            dice_spec="d1",
            entries=(
                TableEntry(1, 1, (UnknownAction(kind="summonDragon", raw={"type": "summonDragon"}),
                                  LogAction(message="still here"))),
            ),
        )
        execution = TableManager([table]).execute("future", context(), 1, 0)
        assert execution.logs == ["still here"]
        assert len(execution.roll_results) == 1

    def test_spawn_trap_defaults(self):
        """Test that unspecified trap fields get defaults."""
        table = TableDefinition(
            table_id="trap",
            name="Trap",
            scope="test",
            dice_spec="d1",
            entries=(TableEntry(1, 1, (SpawnTrapAction(category="magical"),)),),
        )
        execution = TableManager([table]).execute("trap", context(), 1, 0)
        trap = execution.spawned_traps[0]
        assert trap.category == "magical"
        assert trap.detection_dc == DEFAULT_TRAP_DC
        assert trap.disarm_dc == DEFAULT_TRAP_DC
        assert trap.detection_skill == "Investigation"
        assert trap.save_skill is None

    def test_empty_log_message_skipped(self):
        """Test that a log action without text adds nothing."""
        table = TableDefinition(
            table_id="blank",
            name="Blank",
            scope="test",
            dice_spec="d1",
            entries=(TableEntry(1, 1, (LogAction(message=""), LogAction(message=None))),),
        )
        assert TableManager([table]).execute("blank", context(), 1, 0).logs == []


class TestConditionalRoll:
    """Tests for conditionalRoll actions."""

    def _manager(self, threshold: int) -> TableManager:
        table = TableDefinition(
            table_id="gate",
            name="Gate",
            scope="test",
            dice_spec="d1",
            entries=(
                TableEntry(1, 1, (
                    ConditionalRollAction(
                        dice_spec="d6",
                        threshold=threshold,
                        then_actions=(LogAction(message="then"),),
                        else_actions=(LogAction(message="else"),),
                    ),
                )),
            ),
        )
        return TableManager([table])

    def test_then_branch_at_or_below_threshold(self):
        """Test that a roll <= threshold runs the then branch."""
        execution = self._manager(6).execute("gate", context(), 17, 0)
        assert execution.logs == ["then"]

    def test_else_branch_above_threshold(self):
        """Test that a roll above the threshold runs the else branch."""
        execution = self._manager(0).execute("gate", context(), 17, 0)
        assert execution.logs == ["else"]

    def test_conditional_roll_recorded(self):
        """Test that the conditional die is recorded after the table roll."""
        execution = self._manager(3).execute("gate", context(), 17, 0)
        assert [r.table_id for r in execution.roll_results] == ["gate", CONDITIONAL_TABLE_ID]
        assert execution.roll_results[1].sequence == 2

    def test_incomplete_conditional_skipped(self):
        """Test that a conditional without a threshold makes no roll."""
        table = TableDefinition(
            table_id="broken",
            name="Broken",
            scope="test",
            dice_spec="d1",
            entries=(TableEntry(1, 1, (ConditionalRollAction(dice_spec="d6"),)),),
        )
        execution = TableManager([table]).execute("broken", context(), 1, 0)
        assert len(execution.roll_results) == 1


class TestRecursionCeiling:
    """Tests for the table recursion depth limit."""

    LOOP = TableDefinition(
        table_id="loop",
        name="Loop",
        scope="test",
        dice_spec="d1",
        entries=(TableEntry(1, 1, (RollOnTableAction(table_id="loop"),)),),
    )

    def _looping_manager(self, max_depth: int) -> TableManager:
        return TableManager([self.LOOP], max_depth=max_depth)

    def test_self_reference_terminates(self):
        """Test that a self-referencing table stops at the ceiling."""
        execution = self._looping_manager(3).execute("loop", context(), 1, 0)
        assert len(execution.roll_results) == 4
        assert execution.logs == ["Table recursion limit reached at loop (depth 4)"]

    def test_default_ceiling(self):
        """Test the default ceiling of 16 nested levels."""
        execution = TableManager([self.LOOP]).execute("loop", context(), 1, 0)
        assert len(execution.roll_results) == 17
        assert execution.logs[-1].startswith("Table recursion limit reached")

    def test_limit_logged_as_warning(self, caplog):
        """Test that hitting the ceiling logs a warning."""
        with caplog.at_level("WARNING", logger="src.tables.table_manager"):
            self._looping_manager(1).execute("loop", context(), 1, 0)
        assert "recursion limit" in caplog.text

    def test_starting_depth_counts(self):
        """Test that a context already past the ceiling makes no roll."""
        execution = self._looping_manager(2).execute("loop", context(depth=3), 1, 0)
        assert execution.roll_results == []
        assert len(execution.logs) == 1


class TestRegistry:
    """Tests for table registration."""

    def test_from_pack(self, tiny_pack, tiny_manager):
        """Test a manager built from a pack holds its tables and label."""
        assert tiny_manager.pack_label == "tiny@1.0"
        assert tiny_manager.table_ids() == sorted(t.table_id for t in tiny_pack.tables)

    def test_register_replaces(self, tiny_manager):
        """Test that registering the same ID replaces the table."""
        tiny_manager.register_table(log_table("colors", "d1", [(1, 1, "white")]))
        assert tiny_manager.execute("colors", context(), 1, 0).logs == ["white"]

    def test_bundled_pack_tables(self, table_manager):
        """Test that the bundled pack provides the generator tables."""
        for table_id in ("dungeon_start", "dungeon_next_node", "dungeon_edge", "room_contents",
                         "npc_species", "travel_event", "loot_equipment"):
            assert table_manager.has_table(table_id)


class TestCampaignHelpers:
    """Tests for attaching rolls to a campaign."""

    def test_attach_table_rolls(self, tiny_manager):
        """Test that rolls become records and advance the cursor."""
        campaign = Campaign(rng_seed=5, rng_sequence=3)
        execution = tiny_manager.execute("chain", context(), 5, 3)
        records = attach_table_rolls(campaign, execution.roll_results, "Tags: test")
        assert [r.table_id for r in records] == ["chain", "colors"]
        assert campaign.table_rolls == records
        assert campaign.rng_sequence == 5
        assert records[0].outcome_summary == "Actions: rollOnTable, log"
        assert records[0].context_summary == "Tags: test"

    def test_attach_never_rewinds(self, tiny_manager):
        """Test that attaching old rolls does not move the cursor back."""
        campaign = Campaign(rng_seed=5, rng_sequence=50)
        execution = tiny_manager.execute("colors", context(), 5, 0)
        attach_table_rolls(campaign, execution.roll_results, "")
        assert campaign.rng_sequence == 50

    def test_summaries(self):
        """Test the context summary helpers."""
        assert tags_summary(["a", "b"]) == "Tags: a, b"
        assert location_summary(None, ["dungeon"]) == "Location n/a tags: dungeon"
        assert location_summary("loc-1", ["x", "y"]) == "Location loc-1 tags: x, y"


class TestTableLookupLogging:
    """Tests for run log integration."""

    def test_top_level_lookup_logged_once(self, tiny_manager):
        """Test that a nested execution logs a single lookup."""
        tiny_manager.execute("chain", context(), 9, 0)
        lookups = get_run_log().get_table_lookups()
        assert len(lookups) == 1
        assert lookups[0].table_id == "chain"
        assert lookups[0].nested_rolls == 1
        assert lookups[0].rng_sequence == 2

    def test_missing_table_not_logged(self):
        """Test that a missing table logs no lookup."""
        TableManager().execute("nope", context(), 1, 0)
        assert get_run_log().get_table_lookups() == []
