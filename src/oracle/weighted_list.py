"""
Weighted entity tracker for scene bookkeeping.

Characters and threads are kept in weighted lists: names are deduplicated
case-insensitively, featuring a name bumps its weight (capped at 3) and
removal is by normalized key.
"""

from typing import Callable, Iterable, Optional, Union

from src.data_models import CharacterEntry, ThreadEntry


MIN_WEIGHT = 1
MAX_WEIGHT = 3

WeightedEntry = Union[CharacterEntry, ThreadEntry]
EntryFactory = Callable[..., WeightedEntry]


def normalize_key(name: str) -> Optional[str]:
    """Trimmed, lowercased key for a name; None for blank names."""
    trimmed = name.strip()
    if not trimmed:
        return None
    return trimmed.lower()


class WeightedList:
    """
    A list of weighted entries keyed by lowercase name.

    Wraps an existing list (such as campaign.characters) and edits it in
    place, so the campaign never holds a second copy of the entries.

    Usage:
        threads = WeightedList(campaign.threads, factory=ThreadEntry.create)
        threads.add_new(["Find the missing heir"])
        threads.feature_existing(["find the missing heir"])
    """

    def __init__(
        self,
        entries: Optional[list[WeightedEntry]] = None,
        factory: EntryFactory = CharacterEntry.create,
    ):
        self._entries = entries if entries is not None else []
        self._factory = factory

    @property
    def entries(self) -> list[WeightedEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = normalize_key(name)
        return key is not None and self._find(key) is not None

    def _find(self, key: str) -> Optional[WeightedEntry]:
        for entry in self._entries:
            if entry.key == key:
                return entry
        return None

    def add_new(self, names: Iterable[str]) -> list[WeightedEntry]:
        """
        Add names not already tracked, at weight 1.

        Returns:
            The entries that were created
        """
        added = []
        for name in names:
            key = normalize_key(name)
            if key is None or self._find(key) is not None:
                continue
            entry = self._factory(name.strip(), MIN_WEIGHT)
            self._entries.append(entry)
            added.append(entry)
        return added

    def feature_existing(self, names: Iterable[str]) -> None:
        """Bump the weight of each tracked name once, up to 3."""
        keys = {key for key in (normalize_key(name) for name in names) if key}
        for entry in self._entries:
            if entry.key in keys:
                entry.weight = min(MAX_WEIGHT, entry.weight + 1)

    def remove(self, names: Iterable[str]) -> None:
        """Drop entries whose key matches any of the names."""
        keys = {key for key in (normalize_key(name) for name in names) if key}
        if not keys:
            return
        self._entries[:] = [entry for entry in self._entries if entry.key not in keys]


def apply_list_updates(
    entries: list[WeightedEntry],
    new: Iterable[str],
    featured: Iterable[str],
    removed: Iterable[str],
    factory: EntryFactory,
) -> None:
    """Add, then feature, then remove names on a campaign list in place."""
    tracker = WeightedList(entries, factory=factory)
    tracker.add_new(new)
    tracker.feature_existing(featured)
    tracker.remove(removed)
