"""Data models for Track Finder."""

from trackfinder.models.track import Candidate, FolderWatchState, IndexEntry, TrackDescriptor
from trackfinder.models.cache_state import CacheState
from trackfinder.models.config import AppConfig

__all__ = [
    "TrackDescriptor",
    "IndexEntry",
    "Candidate",
    "FolderWatchState",
    "CacheState",
    "AppConfig",
]
