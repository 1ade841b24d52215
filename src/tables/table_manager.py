"""
Table management and execution for the solo oracle engine.

Provides centralized access to content-pack tables and interprets their
outcome actions. Nested table references and conditional rolls are resolved
recursively against the same (seed, sequence) stream, so a single top-level
call is fully reproducible from its starting cursor.
"""

from typing import Iterable, Optional
import logging

from src.config import DEFAULT_MAX_TABLE_DEPTH
from src.data_models import Campaign, DiceRoller, TableRollRecord
from src.observability.run_log import get_run_log
from src.tables.content_pack import get_default_pack
from src.tables.table_types import (
    ConditionalRollAction,
    ContentPack,
    LogAction,
    OutcomeAction,
    RollContext,
    RollOnTableAction,
    SpawnEdgeAction,
    SpawnNodeAction,
    SpawnTrapAction,
    TableDefinition,
    TableEntry,
    TableExecution,
    TableRollResult,
    TableSpawnEdge,
    TableSpawnNode,
    TableSpawnTrap,
)


logger = logging.getLogger(__name__)

CONDITIONAL_TABLE_ID = "conditional"

# Defaults for actions that leave fields unspecified
DEFAULT_NODE_TYPE = "room"
DEFAULT_NODE_SUMMARY = "Unremarkable space"
DEFAULT_EDGE_TYPE = "open"
DEFAULT_EDGE_SUMMARY = "Connection"
DEFAULT_TRAP_CATEGORY = "mechanical"
DEFAULT_TRAP_TRIGGER = "pressure plate"
DEFAULT_TRAP_DETECTION_SKILL = "Investigation"
DEFAULT_TRAP_DISARM_SKILL = "Thieves' Tools"
DEFAULT_TRAP_DC = 13
DEFAULT_TRAP_EFFECT = "Alarm and minor injury"


class TableManager:
    """
    Central registry and interpreter for roll tables.

    Handles table registration and lookup, and executes a table's outcome
    actions including nested table rolls. Execution never raises for content
    problems: missing tables and runaway recursion produce a diagnostic log
    line in the result instead.
    """

    def __init__(
        self,
        tables: Iterable[TableDefinition] = (),
        max_depth: int = DEFAULT_MAX_TABLE_DEPTH,
        pack_label: Optional[str] = None,
    ):
        # Tables indexed by ID
        self._tables: dict[str, TableDefinition] = {}
        self.max_depth = max_depth
        self.pack_label = pack_label

        for table in tables:
            self.register_table(table)

    @classmethod
    def from_pack(
        cls,
        pack: ContentPack,
        max_depth: int = DEFAULT_MAX_TABLE_DEPTH,
    ) -> "TableManager":
        """Create a manager holding every table of a content pack."""
        return cls(pack.tables, max_depth=max_depth, pack_label=pack.label)

    # =========================================================================
    # REGISTRY
    # =========================================================================

    def register_table(self, table: TableDefinition) -> None:
        """Register a table, replacing any table with the same ID."""
        if table.table_id in self._tables:
            logger.debug(f"Replacing table {table.table_id}")
        self._tables[table.table_id] = table

    def register_pack(self, pack: ContentPack) -> None:
        """Merge all tables from another pack into the registry."""
        for table in pack.tables:
            self.register_table(table)
        logger.info(f"Registered {len(pack.tables)} tables from {pack.label}")

    def get_table(self, table_id: str) -> Optional[TableDefinition]:
        """Get a table by ID."""
        return self._tables.get(table_id)

    def has_table(self, table_id: str) -> bool:
        return table_id in self._tables

    def table_ids(self) -> list[str]:
        """List registered table IDs in sorted order."""
        return sorted(self._tables)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def execute(
        self,
        table_id: str,
        context: RollContext,
        seed: int,
        sequence: int,
    ) -> TableExecution:
        """
        Roll on a table and run the actions of the selected entry.

        Args:
            table_id: ID of the table to roll on
            context: Ambient attribution; depth is bumped for nested calls
            seed: RNG seed of the campaign stream
            sequence: Cursor to start rolling from

        Returns:
            TableExecution with every roll made, in order. Callers advance
            their cursor to execution.max_sequence.
        """
        execution = self._execute_table(table_id, context, seed, sequence)
        self._log_table_lookup(table_id, execution)
        return execution

    def _execute_table(
        self,
        table_id: str,
        context: RollContext,
        seed: int,
        sequence: int,
    ) -> TableExecution:
        if self._depth_exceeded(table_id, context):
            return TableExecution(logs=[self._depth_message(table_id, context)])

        table = self._tables.get(table_id)
        if table is None:
            logger.debug(f"Missing table: {table_id}")
            return TableExecution(logs=[f"Missing table: {table_id}"])

        roller = DiceRoller(seed, sequence)
        roll = roller.roll(table.dice_spec)

        entry = table.resolve_entry(roll.total)
        if entry is None:
            entry = table.entries[0] if table.entries else TableEntry(roll.total, roll.total)

        execution = TableExecution()
        execution.roll_results.append(
            TableRollResult(
                table_id=table_id,
                entry=entry,
                roll=roll,
                sequence=roller.sequence,
                seed=seed,
            )
        )
        logger.debug(f"Rolled {roll} on {table_id} -> {entry.range_label}")

        nested, _ = self._run_actions(entry.actions, context, seed, roller.sequence)
        execution.merge(nested)
        return execution

    def _run_actions(
        self,
        actions: Iterable[OutcomeAction],
        context: RollContext,
        seed: int,
        sequence: int,
    ) -> tuple[TableExecution, int]:
        """Execute an action list in order, returning results and the new cursor."""
        execution = TableExecution()
        cursor = sequence

        for action in actions:
            if isinstance(action, SpawnNodeAction):
                execution.spawned_nodes.append(
                    TableSpawnNode(
                        node_type=action.node_type or DEFAULT_NODE_TYPE,
                        summary=action.summary or DEFAULT_NODE_SUMMARY,
                        tags=list(action.tags),
                    )
                )
            elif isinstance(action, SpawnEdgeAction):
                execution.spawned_edges.append(
                    TableSpawnEdge(
                        edge_type=action.edge_type or DEFAULT_EDGE_TYPE,
                        summary=action.summary or DEFAULT_EDGE_SUMMARY,
                        tags=list(action.tags),
                    )
                )
            elif isinstance(action, SpawnTrapAction):
                execution.spawned_traps.append(_trap_from_action(action))
            elif isinstance(action, RollOnTableAction):
                if not action.table_id:
                    continue
                nested = self._execute_table(action.table_id, context.nested(), seed, cursor)
                execution.merge(nested)
                if nested.roll_results:
                    cursor = nested.roll_results[-1].sequence
            elif isinstance(action, ConditionalRollAction):
                cursor = self._run_conditional(action, context, seed, cursor, execution)
            elif isinstance(action, LogAction):
                if action.message:
                    execution.logs.append(action.message)
            else:
                logger.debug(f"Ignoring unknown action kind: {action.kind}")

        return execution, cursor

    def _run_conditional(
        self,
        action: ConditionalRollAction,
        context: RollContext,
        seed: int,
        cursor: int,
        execution: TableExecution,
    ) -> int:
        if not action.dice_spec or action.threshold is None:
            return cursor

        roller = DiceRoller(seed, cursor)
        roll = roller.roll(action.dice_spec)
        cursor = roller.sequence
        execution.roll_results.append(
            TableRollResult(
                table_id=CONDITIONAL_TABLE_ID,
                entry=TableEntry(roll.total, roll.total),
                roll=roll,
                sequence=cursor,
                seed=seed,
            )
        )

        branch = action.then_actions if roll.total <= action.threshold else action.else_actions
        nested_context = context.nested()
        if self._depth_exceeded(CONDITIONAL_TABLE_ID, nested_context):
            execution.logs.append(self._depth_message(CONDITIONAL_TABLE_ID, nested_context))
            return cursor

        nested, cursor = self._run_actions(branch, nested_context, seed, cursor)
        execution.merge(nested)
        return cursor

    def _depth_exceeded(self, table_id: str, context: RollContext) -> bool:
        if context.depth <= self.max_depth:
            return False
        logger.warning(
            f"Table recursion limit reached at {table_id} "
            f"(depth {context.depth}, max {self.max_depth})"
        )
        return True

    @staticmethod
    def _depth_message(table_id: str, context: RollContext) -> str:
        return f"Table recursion limit reached at {table_id} (depth {context.depth})"

    def _log_table_lookup(self, table_id: str, execution: TableExecution) -> None:
        """Log a top-level execution to the observability RunLog."""
        if not execution.roll_results:
            return
        table = self._tables.get(table_id)
        first = execution.roll_results[0]
        get_run_log().log_table_lookup(
            table_id=table_id,
            table_name=table.name if table else table_id,
            roll_total=first.roll.total,
            entry_range=first.entry.range_label,
            result_text=execution.first_log or "",
            nested_rolls=len(execution.roll_results) - 1,
            rng_sequence=execution.max_sequence or 0,
        )


def _trap_from_action(action: SpawnTrapAction) -> TableSpawnTrap:
    return TableSpawnTrap(
        category=action.category or DEFAULT_TRAP_CATEGORY,
        trigger=action.trigger or DEFAULT_TRAP_TRIGGER,
        detection_skill=action.detection_skill or DEFAULT_TRAP_DETECTION_SKILL,
        detection_dc=action.detection_dc if action.detection_dc is not None else DEFAULT_TRAP_DC,
        disarm_skill=action.disarm_skill or DEFAULT_TRAP_DISARM_SKILL,
        disarm_dc=action.disarm_dc if action.disarm_dc is not None else DEFAULT_TRAP_DC,
        effect=action.effect or DEFAULT_TRAP_EFFECT,
        save_skill=action.save_skill,
        save_dc=action.save_dc,
    )


# =============================================================================
# CAMPAIGN HELPERS
# =============================================================================


def ensure_campaign_seed(campaign: Campaign) -> int:
    """Return the campaign's RNG seed, initializing it from the clock if unset."""
    had_seed = campaign.rng_seed is not None
    seed = campaign.ensure_seed()
    if not had_seed:
        logger.info(f"Initialized campaign seed {seed}")
    return seed


def attach_table_rolls(
    campaign: Campaign,
    results: list[TableRollResult],
    context_summary: str,
) -> list[TableRollRecord]:
    """
    Persist roll results on the campaign and advance its RNG cursor.

    Returns:
        The new TableRollRecords, in execution order
    """
    records = []
    for result in results:
        record = TableRollRecord(
            table_id=result.table_id,
            entry_range=result.entry.range_label,
            dice_spec=result.roll.spec,
            roll_total=result.roll.total,
            modifier=result.roll.modifier,
            seed=result.seed,
            sequence=result.sequence,
            context_summary=context_summary,
            outcome_summary="Actions: " + ", ".join(result.entry.action_kinds),
        )
        campaign.table_rolls.append(record)
        records.append(record)

    if results:
        campaign.rng_sequence = max(
            campaign.rng_sequence, max(result.sequence for result in results)
        )
    return records


def tags_summary(tags: Iterable[str]) -> str:
    return "Tags: " + ", ".join(tags)


def location_summary(location_id: Optional[str], tags: Iterable[str]) -> str:
    return f"Location {location_id or 'n/a'} tags: " + ", ".join(tags)


# Global table manager instance
_table_manager: Optional[TableManager] = None


def get_table_manager() -> TableManager:
    """
    Get the global TableManager, built from the default content pack.

    Raises:
        ContentPackError: If the default pack cannot be loaded
    """
    global _table_manager
    if _table_manager is None:
        _table_manager = TableManager.from_pack(get_default_pack())
    return _table_manager


def set_table_manager(manager: Optional[TableManager]) -> None:
    """Replace the global TableManager (None clears it)."""
    global _table_manager
    _table_manager = manager
