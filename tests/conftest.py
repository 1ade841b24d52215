"""
Pytest fixtures for the solo oracle engine test suite.

Provides reusable fixtures for campaigns, table managers and hand-built
content packs, and keeps the process-wide singletons clean between tests.
"""

import pytest

from src.data_models import Campaign
from src.observability.run_log import reset_run_log
from src.tables.content_pack import get_default_pack, reset_default_pack
from src.tables.table_manager import TableManager, set_table_manager
from src.tables.table_types import (
    ContentPack,
    LogAction,
    RollOnTableAction,
    SpawnEdgeAction,
    SpawnNodeAction,
    TableDefinition,
    TableEntry,
)

from tests.helpers import TEST_SEED, log_table


# =============================================================================
# GLOBAL STATE
# =============================================================================


@pytest.fixture(autouse=True)
def clean_globals():
    """Reset the run log and global table manager around every test."""
    reset_run_log()
    set_table_manager(None)
    yield
    reset_run_log()
    set_table_manager(None)
    reset_default_pack()


@pytest.fixture
def clean_run_log():
    """Provide a freshly reset RunLog."""
    log = reset_run_log()
    yield log
    reset_run_log()


# =============================================================================
# CAMPAIGN FIXTURES
# =============================================================================


@pytest.fixture
def campaign():
    """A fresh campaign with a fixed seed."""
    return Campaign(title="Test Campaign", rng_seed=TEST_SEED)


# =============================================================================
# TABLE FIXTURES
# =============================================================================


@pytest.fixture
def table_manager():
    """TableManager over the bundled solo_default pack, installed globally."""
    manager = TableManager.from_pack(get_default_pack())
    set_table_manager(manager)
    return manager


@pytest.fixture
def tiny_pack():
    """
    A small hand-built pack.

    - fixed_room: always spawns a room with one open edge
    - corridor: always spawns a passage
    - edge_door: always spawns a locked door edge
    - colors: d4 log table tiling 1-4
    - chain: rolls on colors, then logs "chain done"
    """
    return ContentPack(
        pack_id="tiny",
        version="1.0",
        tables=(
            TableDefinition(
                table_id="fixed_room",
                name="Fixed Room",
                scope="test",
                dice_spec="d1",
                entries=(
                    TableEntry(1, 1, (
                        SpawnNodeAction(node_type="room", summary="Square hall", tags=("entry",)),
                        SpawnEdgeAction(edge_type="door", summary="Oak door", tags=()),
                    )),
                ),
            ),
            TableDefinition(
                table_id="corridor",
                name="Corridor",
                scope="test",
                dice_spec="d1",
                entries=(
                    TableEntry(1, 1, (SpawnNodeAction(node_type="passage", summary="Damp corridor"),)),
                ),
            ),
            TableDefinition(
                table_id="edge_door",
                name="Edge Door",
                scope="test",
                dice_spec="d1",
                entries=(
                    TableEntry(1, 1, (SpawnEdgeAction(edge_type="door", summary="Barred door", tags=("locked",)),)),
                ),
            ),
            log_table("colors", "d4", [(1, 1, "red"), (2, 2, "green"), (3, 3, "blue"), (4, 4, "black")]),
            TableDefinition(
                table_id="chain",
                name="Chain",
                scope="test",
                dice_spec="d1",
                entries=(
                    TableEntry(1, 1, (RollOnTableAction(table_id="colors"), LogAction(message="chain done"))),
                ),
            ),
        ),
    )


@pytest.fixture
def tiny_manager(tiny_pack):
    """TableManager over the tiny pack."""
    return TableManager.from_pack(tiny_pack)
