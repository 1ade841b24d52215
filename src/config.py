"""
Engine configuration.

EngineConfig collects the few knobs the engine exposes: the RNG seed for new
campaigns, which content pack to load, the table recursion ceiling and how
much scene history goes into narration context. Values can come from code,
from a plain dict, or from SOLO_ORACLE_* environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)

BUNDLED_PACK_PATH = Path(__file__).parent / "tables" / "data" / "solo_default_tables.json"
DEFAULT_MAX_TABLE_DEPTH = 16
DEFAULT_RECENT_SCENE_COUNT = 3


@dataclass
class EngineConfig:
    """Configuration for an engine session."""

    seed: Optional[int] = None
    content_pack_path: Path = field(default_factory=lambda: BUNDLED_PACK_PATH)
    max_table_depth: int = DEFAULT_MAX_TABLE_DEPTH
    recent_scene_count: int = DEFAULT_RECENT_SCENE_COUNT
    ruleset_id: str = "srd_5e"
    verbose: bool = False

    def __post_init__(self):
        """Ensure paths are Path objects and limits are sane."""
        if isinstance(self.content_pack_path, str):
            self.content_pack_path = Path(self.content_pack_path)
        if self.max_table_depth < 1:
            raise ValueError(f"max_table_depth must be positive, got {self.max_table_depth}")
        if self.recent_scene_count < 0:
            raise ValueError(f"recent_scene_count must be >= 0, got {self.recent_scene_count}")

    @property
    def uses_bundled_pack(self) -> bool:
        return self.content_pack_path == BUNDLED_PACK_PATH

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {name for name in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "EngineConfig":
        """
        Build a config from SOLO_ORACLE_* environment variables.

        Recognized variables:
            SOLO_ORACLE_SEED: integer seed for new campaigns
            SOLO_ORACLE_PACK: path to a content pack JSON file
            SOLO_ORACLE_MAX_DEPTH: table recursion ceiling
            SOLO_ORACLE_RECENT_SCENES: scenes kept in narration context
            SOLO_ORACLE_RULESET: ruleset for skill checks
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        if env.get("SOLO_ORACLE_SEED"):
            data["seed"] = int(env["SOLO_ORACLE_SEED"])
        if env.get("SOLO_ORACLE_PACK"):
            data["content_pack_path"] = Path(env["SOLO_ORACLE_PACK"])
        if env.get("SOLO_ORACLE_MAX_DEPTH"):
            data["max_table_depth"] = int(env["SOLO_ORACLE_MAX_DEPTH"])
        if env.get("SOLO_ORACLE_RECENT_SCENES"):
            data["recent_scene_count"] = int(env["SOLO_ORACLE_RECENT_SCENES"])
        if env.get("SOLO_ORACLE_RULESET"):
            data["ruleset_id"] = env["SOLO_ORACLE_RULESET"]
        return cls.from_dict(data)
