"""
Single-table rolls against a campaign.

TableOracle is the thin layer generators use when they just want "roll this
table for this campaign": it builds the roll context, reads the campaign's
RNG cursor, executes the table and persists the roll records.
"""

from typing import Optional, Sequence
import logging

from src.data_models import Campaign
from src.tables.content_pack import ContentPackError
from src.tables.table_manager import (
    TableManager,
    attach_table_rolls,
    ensure_campaign_seed,
    get_table_manager,
    tags_summary,
)
from src.tables.table_types import RollContext, TableExecution


logger = logging.getLogger(__name__)


def resolve_table_manager(table_manager: Optional[TableManager]) -> Optional[TableManager]:
    """Return the given manager, else the global one, else None if the pack fails to load."""
    if table_manager is not None:
        return table_manager
    try:
        return get_table_manager()
    except ContentPackError as e:
        logger.warning(f"Content pack unavailable: {e}")
        return None


class TableOracle:
    """Rolls individual tables using a campaign's seed and cursor."""

    def __init__(self, table_manager: Optional[TableManager] = None):
        self._table_manager = table_manager

    @property
    def table_manager(self) -> Optional[TableManager]:
        if self._table_manager is None:
            self._table_manager = resolve_table_manager(None)
        return self._table_manager

    def roll_table(
        self,
        campaign: Campaign,
        table_id: str,
        tags: Sequence[str] = (),
    ) -> Optional[TableExecution]:
        """
        Execute a table and record its rolls on the campaign.

        Returns:
            The execution, or None if no content pack is available
        """
        manager = self.table_manager
        if manager is None:
            return None

        seed = ensure_campaign_seed(campaign)
        context = RollContext(
            campaign_id=campaign.campaign_id,
            scene_id=campaign.active_scene_id,
            location_id=campaign.active_location_id,
            node_id=campaign.active_node_id,
            tags=tuple(tags),
        )
        execution = manager.execute(table_id, context, seed, campaign.rng_sequence)
        attach_table_rolls(campaign, execution.roll_results, tags_summary(tags))
        return execution

    def roll_message(
        self,
        campaign: Campaign,
        table_id: str,
        tags: Sequence[str] = (),
    ) -> Optional[str]:
        """Roll a table and return its first log line, if any."""
        execution = self.roll_table(campaign, table_id, tags)
        if execution is None:
            return None
        return execution.first_log
