"""
Content pack loading.

A content pack is a versioned JSON bundle of table definitions. The bundled
'solo_default' pack ships in src/tables/data. Packs are immutable once
loaded; the default pack is loaded lazily on first use and cached for the
life of the process.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from src.config import BUNDLED_PACK_PATH
from src.tables.table_types import ContentPack


logger = logging.getLogger(__name__)


class ContentPackError(Exception):
    """Raised when a content pack cannot be read or parsed."""


def parse_content_pack(text: str, source: str = "<string>") -> ContentPack:
    """
    Parse content-pack JSON text.

    Raises:
        ContentPackError: If the JSON is malformed or missing required fields
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ContentPackError(f"Invalid JSON in content pack {source}: {e}") from e

    if not isinstance(data, dict):
        raise ContentPackError(f"Content pack {source} must be a JSON object")

    try:
        return ContentPack.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ContentPackError(f"Malformed content pack {source}: {e!r}") from e


def load_content_pack(file_path: Path) -> ContentPack:
    """
    Load a content pack from a JSON file.

    Args:
        file_path: Path to the pack JSON

    Returns:
        The parsed ContentPack

    Raises:
        ContentPackError: If the file is missing, unreadable or malformed
    """
    file_path = Path(file_path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ContentPackError(f"Cannot read content pack {file_path}: {e}") from e

    pack = parse_content_pack(text, source=str(file_path))
    logger.info(f"Loaded content pack {pack.label} ({len(pack.tables)} tables) from {file_path}")
    return pack


# Process-wide cache of the default pack
_default_pack: Optional[ContentPack] = None
_default_pack_path: Path = BUNDLED_PACK_PATH


def configure_default_pack(file_path: Path) -> None:
    """Point the default pack at a different file and drop any cached copy."""
    global _default_pack_path
    _default_pack_path = Path(file_path)
    reset_default_pack()


def get_default_pack() -> ContentPack:
    """
    Get the process-wide default ContentPack, loading it on first use.

    Raises:
        ContentPackError: If the pack cannot be loaded. Nothing is cached in
            that case, so a later call retries.
    """
    global _default_pack
    if _default_pack is None:
        _default_pack = load_content_pack(_default_pack_path)
    return _default_pack


def reset_default_pack() -> None:
    """Clear the cached default pack."""
    global _default_pack
    _default_pack = None
