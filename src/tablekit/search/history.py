"""Recent searches persisted per table, newest first."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from loguru import logger

from ..core.storage import KeyValueStore

MAX_HISTORY = 20


@dataclass(frozen=True)
class SearchHistoryEntry:
    query: str
    mode: str
    timestamp: str

    @classmethod
    def create(cls, query: str, mode: str) -> SearchHistoryEntry:
        now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        return cls(query=query, mode=mode, timestamp=now.replace("+00:00", "Z"))

    @property
    def mode_label(self) -> str:
        return {"regex": "Regex", "operator": "Operator", "column": "Column"}.get(
            self.mode, "Simple"
        )


class SearchHistory:
    """Capped, de-duplicated by (query, mode), stored as a JSON list."""

    def __init__(self, storage: KeyValueStore, key: str, max_items: int = MAX_HISTORY) -> None:
        self._storage = storage
        self._key = key
        self.max_items = max_items
        self._entries = self._load()

    def _load(self) -> list[SearchHistoryEntry]:
        raw = self._storage.get(self._key) or []
        entries = []
        for item in raw:
            try:
                entries.append(SearchHistoryEntry(**item))
            except TypeError:
                logger.warning("Skipping malformed search history entry: {!r}", item)
        return entries[: self.max_items]

    def _save(self) -> None:
        self._storage.set(self._key, [asdict(e) for e in self._entries])

    def add(self, query: str, mode: str) -> SearchHistoryEntry:
        entry = SearchHistoryEntry.create(query, mode)
        self._entries = [
            e for e in self._entries if not (e.query == query and e.mode == mode)
        ]
        self._entries.insert(0, entry)
        del self._entries[self.max_items:]
        self._save()
        return entry

    def recent(self, n: int = 10) -> list[SearchHistoryEntry]:
        return self._entries[:n]

    def clear(self) -> None:
        self._entries = []
        self._storage.delete(self._key)

    @property
    def entries(self) -> list[SearchHistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
