"""
Test helpers for the solo oracle engine test suite.

Provides:
- log_table for building small hand-written roll tables
- ScriptedRandom, a random.Random stand-in that replays fixed values
- fixed_oracle for a MythicOracle driven by ScriptedRandom
- TEST_SEED, the campaign seed shared by fixtures and tests
"""

from typing import Any, Sequence

from src.oracle.mythic_gme import MythicOracle
from src.tables.table_types import LogAction, TableDefinition, TableEntry


TEST_SEED = 424242


def log_table(table_id: str, dice_spec: str, rows: list[tuple[int, int, str]]) -> TableDefinition:
    """Build a table whose entries only log text."""
    return TableDefinition(
        table_id=table_id,
        name=table_id.replace("_", " ").title(),
        scope="test",
        dice_spec=dice_spec,
        entries=tuple(
            TableEntry(low, high, (LogAction(message=text),)) for low, high, text in rows
        ),
    )


class ScriptedRandom:
    """
    Replays scripted values for randint and choice.

    randint pops the next integer; choice pops the next index into the
    sequence it is given. Running out of script raises AssertionError so a
    test that rolls more often than expected fails loudly.
    """

    def __init__(self, ints: Sequence[int] = (), choices: Sequence[int] = ()):
        self.ints = list(ints)
        self.choices = list(choices)

    def randint(self, a: int, b: int) -> int:
        assert self.ints, "ScriptedRandom ran out of integers"
        value = self.ints.pop(0)
        assert a <= value <= b, f"Scripted value {value} outside {a}-{b}"
        return value

    def choice(self, seq: Sequence[Any]) -> Any:
        assert self.choices, "ScriptedRandom ran out of choices"
        return seq[self.choices.pop(0)]


def fixed_oracle(ints: Sequence[int] = (), choices: Sequence[int] = ()) -> MythicOracle:
    """A MythicOracle whose dice are scripted."""
    return MythicOracle(rng=ScriptedRandom(ints, choices))
