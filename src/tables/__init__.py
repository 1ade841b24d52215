"""
Roll tables for the solo oracle engine.

This module provides:
- Table definitions and tagged outcome actions
- Content pack loading with the bundled solo_default pack
- The table interpreter, with nested rolls and a recursion ceiling
- Single-table rolls against a campaign
- Importers for user JSON tables, markdown tables and keyword lists
"""

from src.tables.table_types import (
    ActionKind,
    # Outcome actions
    SpawnNodeAction,
    SpawnEdgeAction,
    SpawnTrapAction,
    RollOnTableAction,
    ConditionalRollAction,
    LogAction,
    UnknownAction,
    OutcomeAction,
    parse_action,
    action_to_dict,
    # Definitions
    TableEntry,
    TableDefinition,
    ContentPack,
    # Execution
    RollContext,
    TableRollResult,
    TableSpawnNode,
    TableSpawnEdge,
    TableSpawnTrap,
    TableExecution,
)
from src.tables.content_pack import (
    ContentPackError,
    parse_content_pack,
    load_content_pack,
    configure_default_pack,
    get_default_pack,
    reset_default_pack,
)
from src.tables.table_manager import (
    TableManager,
    attach_table_rolls,
    ensure_campaign_seed,
    get_table_manager,
    set_table_manager,
)
from src.tables.table_oracle import TableOracle
from src.tables.table_importers import (
    UserTableImporter,
    MarkdownTableImporter,
    ImportedTable,
    ImportedTableEntry,
    CreativeKeywordImporter,
    CreativeKeywordPicker,
    parse_range,
)

__all__ = [
    "ActionKind",
    "SpawnNodeAction",
    "SpawnEdgeAction",
    "SpawnTrapAction",
    "RollOnTableAction",
    "ConditionalRollAction",
    "LogAction",
    "UnknownAction",
    "OutcomeAction",
    "parse_action",
    "action_to_dict",
    "TableEntry",
    "TableDefinition",
    "ContentPack",
    "RollContext",
    "TableRollResult",
    "TableSpawnNode",
    "TableSpawnEdge",
    "TableSpawnTrap",
    "TableExecution",
    "ContentPackError",
    "parse_content_pack",
    "load_content_pack",
    "configure_default_pack",
    "get_default_pack",
    "reset_default_pack",
    "TableManager",
    "attach_table_rolls",
    "ensure_campaign_seed",
    "get_table_manager",
    "set_table_manager",
    "TableOracle",
    "UserTableImporter",
    "MarkdownTableImporter",
    "ImportedTable",
    "ImportedTableEntry",
    "CreativeKeywordImporter",
    "CreativeKeywordPicker",
    "parse_range",
]
