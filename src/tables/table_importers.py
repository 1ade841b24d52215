"""
Importers that turn user-supplied material into roll tables.

- UserTableImporter: JSON exports of the form {"table": [{"name", "rows"}]}
- MarkdownTableImporter: pipe tables in markdown documents
- CreativeKeywordImporter / CreativeKeywordPicker: keyword lists for prompts

Importers never raise on malformed input; they log a warning and return
what they could parse.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union
import json
import logging
import uuid

from src.data_models import SeededRNG
from src.tables.table_types import LogAction, TableDefinition, TableEntry


logger = logging.getLogger(__name__)


# =============================================================================
# SHARED PARSING
# =============================================================================


def parse_range(text: str) -> Optional[tuple[int, int]]:
    """
    Parse a roll-range cell.

    Accepts "3-5", "6+" (treated as the single value 6), "4" and "00"
    (which means 100). Returns None for anything else.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        return None

    if "-" in cleaned:
        low_text, high_text = cleaned.split("-", 1)
        low, high = _parse_number(low_text), _parse_number(high_text)
        if low is None or high is None:
            return None
        return low, high

    if cleaned.endswith("+"):
        low = _parse_number(cleaned[:-1])
        return (low, low) if low is not None else None

    value = _parse_number(cleaned)
    return (value, value) if value is not None else None


def _parse_number(text: str) -> Optional[int]:
    trimmed = text.strip()
    if trimmed == "00":
        return 100
    try:
        return int(trimmed)
    except ValueError:
        return None


def column_pair_count(max_columns: int) -> int:
    """Wide tables with an even column count hold several roll/result pairs."""
    if max_columns >= 4 and max_columns % 2 == 0:
        return max_columns // 2
    return 1


def slugify(text: str) -> str:
    """Lowercase, replace non-alphanumerics with '-', collapse runs."""
    chars = [c if c.isalnum() else "-" for c in text.lower()]
    slug = "-".join(part for part in "".join(chars).split("-") if part)
    return slug or str(uuid.uuid4())


def unique_id(base: str, used_ids: set[str]) -> str:
    candidate = base
    counter = 2
    while candidate in used_ids:
        candidate = f"{base}-{counter}"
        counter += 1
    used_ids.add(candidate)
    return candidate


def _dice_spec_for(die_max: int) -> str:
    return f"d{die_max}" if die_max > 0 else "d100"


def _log_entry(low: int, high: int, text: str) -> TableEntry:
    return TableEntry(min_roll=low, max_roll=high, actions=(LogAction(message=text),))


# =============================================================================
# JSON TABLE EXPORTS
# =============================================================================


class UserTableImporter:
    """Converts JSON table exports into TableDefinitions."""

    def import_tables(
        self,
        data: Union[str, bytes],
        scope: str = "user",
    ) -> list[TableDefinition]:
        """
        Import every table in a {"table": [{"name": ..., "rows": [[...]]}]} document.

        Each row is read as roll/result cell pairs. Tables with several
        pairs per row are split into one table per pair, named
        "{name} Part N". Rows whose range cannot be parsed, or whose result
        is empty, are skipped.
        """
        try:
            root = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not parse table import: {e}")
            return []

        if not isinstance(root, dict) or not isinstance(root.get("table"), list):
            logger.warning("Table import has no 'table' list")
            return []

        definitions: list[TableDefinition] = []
        used_ids: set[str] = set()

        for table in root["table"]:
            if not isinstance(table, dict):
                continue
            name = table.get("name")
            rows = table.get("rows")
            if not isinstance(name, str) or not isinstance(rows, list):
                continue

            max_columns = max((len(r) for r in rows if isinstance(r, list)), default=0)
            pair_count = column_pair_count(max_columns)
            entries_by_pair: list[list[TableEntry]] = [[] for _ in range(pair_count)]

            for row in rows:
                if not isinstance(row, list):
                    continue
                for pair_index in range(pair_count):
                    roll_index = pair_index * 2
                    result_index = roll_index + 1
                    if result_index >= len(row):
                        continue
                    roll_text = row[roll_index] if isinstance(row[roll_index], str) else ""
                    result_text = row[result_index] if isinstance(row[result_index], str) else ""
                    parsed = parse_range(roll_text)
                    if parsed is None or not result_text:
                        continue
                    entries_by_pair[pair_index].append(_log_entry(*parsed, result_text))

            for pair_index, entries in enumerate(entries_by_pair):
                if not entries:
                    continue
                die_max = max(entry.max_roll for entry in entries)
                suffix = "" if pair_count == 1 else f" Part {pair_index + 1}"
                table_name = f"{name}{suffix}"
                definitions.append(
                    TableDefinition(
                        table_id=unique_id(slugify(table_name), used_ids),
                        name=table_name,
                        scope=scope,
                        dice_spec=_dice_spec_for(die_max),
                        entries=tuple(entries),
                    )
                )

        logger.info(f"Imported {len(definitions)} user tables")
        return definitions


# =============================================================================
# MARKDOWN TABLES
# =============================================================================


@dataclass
class ImportedTableEntry:
    min_roll: int
    max_roll: int
    result: str


@dataclass
class ImportedTable:
    """A table read from markdown, before it becomes a TableDefinition."""
    name: str
    die_max: int
    entries: list[ImportedTableEntry] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def to_definition(
        self,
        table_id: Optional[str] = None,
        scope: str = "user",
    ) -> TableDefinition:
        return TableDefinition(
            table_id=table_id or slugify(self.name),
            name=self.name,
            scope=scope,
            dice_spec=_dice_spec_for(self.die_max),
            entries=tuple(_log_entry(e.min_roll, e.max_roll, e.result) for e in self.entries),
        )


class MarkdownTableImporter:
    """Finds pipe tables in markdown text and reads them as roll tables."""

    def import_markdown(self, text: str, default_name: str = "Imported Table") -> list[ImportedTable]:
        """
        Import every pipe table in a markdown document.

        The nearest preceding '#' heading names each table. A table starts
        at a line containing '|' followed by a separator row and runs until
        the first line without a '|'.
        """
        lines = text.split("\n")
        tables: list[ImportedTable] = []
        current_heading = default_name

        i = 0
        while i < len(lines):
            line = lines[i].strip()
            heading = self._parse_heading(line)
            if heading is not None:
                current_heading = heading
                i += 1
                continue

            if "|" in line and i + 1 < len(lines) and self._is_separator_line(lines[i + 1]):
                rows, next_index = self._collect_rows(lines, i)
                parsed = self._parse_table_rows(rows, current_heading, len(tables))
                tables.extend(parsed)
                i = next_index
                continue
            i += 1

        return tables

    @staticmethod
    def _parse_heading(line: str) -> Optional[str]:
        if not line.startswith("#"):
            return None
        heading = line.lstrip("#").strip()
        return heading or None

    @staticmethod
    def _is_separator_line(line: str) -> bool:
        stripped = line.replace("|", "").strip()
        return "-" in stripped and all(c in "-: " for c in stripped)

    @staticmethod
    def _collect_rows(lines: list[str], start_index: int) -> tuple[list[str], int]:
        rows = []
        index = start_index + 2
        while index < len(lines) and "|" in lines[index]:
            rows.append(lines[index])
            index += 1
        return rows, index

    @staticmethod
    def _parse_row(line: str) -> list[str]:
        parts = [part.strip() for part in line.split("|")]
        if parts and not parts[0]:
            parts.pop(0)
        if parts and not parts[-1]:
            parts.pop()
        return parts

    def _parse_table_rows(
        self,
        rows: list[str],
        base_name: str,
        index_offset: int,
    ) -> list[ImportedTable]:
        parsed_rows = [self._parse_row(row) for row in rows]
        max_columns = max((len(row) for row in parsed_rows), default=0)
        if max_columns < 2:
            return []

        pair_count = column_pair_count(max_columns)
        tables = []
        for pair_index in range(pair_count):
            roll_index = pair_index * 2
            result_index = roll_index + 1
            entries = []
            for row in parsed_rows:
                if result_index >= len(row):
                    continue
                parsed = parse_range(row[roll_index])
                if parsed is None or not row[result_index]:
                    continue
                entries.append(ImportedTableEntry(parsed[0], parsed[1], row[result_index]))

            if not entries:
                continue
            die_max = max(entry.max_roll for entry in entries)
            if pair_count == 1:
                name = base_name
            else:
                name = f"{base_name} {pair_index + 1 + index_offset}"
            tables.append(ImportedTable(name=name, die_max=die_max, entries=entries))

        return tables


# =============================================================================
# CREATIVE KEYWORDS
# =============================================================================


class CreativeKeywordImporter:
    """Reads keyword lists used as creative prompts."""

    def parse_keywords(self, data: Union[str, bytes, list[Any], dict[str, Any]]) -> list[str]:
        """
        Parse a JSON list of keywords or a {"keywords": [...]} object.

        Blank entries are dropped and duplicates removed case-insensitively,
        keeping the first spelling seen.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Could not parse keyword list: {e}")
                return []

        if isinstance(data, dict):
            data = data.get("keywords")
        if not isinstance(data, list):
            return []
        return self._dedupe([word for word in data if isinstance(word, str)])

    @staticmethod
    def _dedupe(words: list[str]) -> list[str]:
        seen: set[str] = set()
        results = []
        for word in words:
            trimmed = word.strip()
            if not trimmed or trimmed.lower() in seen:
                continue
            seen.add(trimmed.lower())
            results.append(trimmed)
        return results


class CreativeKeywordPicker:
    """Draws keywords without replacement from a seeded stream."""

    def draw(
        self,
        keywords: list[str],
        count: int,
        seed: int,
        sequence: int = 0,
    ) -> list[str]:
        if not keywords or count <= 0:
            return []

        rng = SeededRNG(seed)
        for _ in range(max(0, sequence)):
            rng.next()

        pool = list(keywords)
        picks = []
        for _ in range(min(count, len(pool))):
            picks.append(pool.pop(rng.next_int(len(pool))))
        return picks
