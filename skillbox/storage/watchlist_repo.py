"""Watchlist repository (data access layer)."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..domain.models import WatchlistEntry

logger = logging.getLogger(__name__)


class WatchlistStore(ABC):
    """Abstract watchlist storage keyed by uppercase symbol."""

    @abstractmethod
    def add(self, entry: WatchlistEntry) -> None:
        """Insert or overwrite the entry for ``entry.symbol``."""
        pass

    @abstractmethod
    def remove(self, symbol: str) -> bool:
        """Delete an entry, return False if it was absent."""
        pass

    @abstractmethod
    def get(self, symbol: str) -> Optional[WatchlistEntry]:
        """Get entry for symbol if present."""
        pass

    @abstractmethod
    def list_entries(self) -> List[WatchlistEntry]:
        """All entries in insertion order."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemoryWatchlistStore(WatchlistStore):
    """Process-local watchlist backed by an insertion-ordered dict."""

    def __init__(self):
        self._entries: Dict[str, WatchlistEntry] = {}

    @staticmethod
    def _key(symbol: str) -> str:
        return symbol.strip().upper()

    def add(self, entry: WatchlistEntry) -> None:
        key = self._key(entry.symbol)
        replaced = key in self._entries
        self._entries[key] = entry
        logger.debug("Watchlist %s: %s", "updated" if replaced else "added", key)

    def remove(self, symbol: str) -> bool:
        key = self._key(symbol)
        if key not in self._entries:
            return False
        del self._entries[key]
        logger.debug("Watchlist removed: %s", key)
        return True

    def get(self, symbol: str) -> Optional[WatchlistEntry]:
        return self._entries.get(self._key(symbol))

    def list_entries(self) -> List[WatchlistEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Watchlist cleared: %d entries removed", count)

    def __len__(self) -> int:
        return len(self._entries)
