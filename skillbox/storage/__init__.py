"""Storage backends."""

from .watchlist_repo import InMemoryWatchlistStore, WatchlistStore

__all__ = ["WatchlistStore", "InMemoryWatchlistStore"]
