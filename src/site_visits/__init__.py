"""Session-deduplicated visit counting with local history and remote sync."""

from site_visits.config import ValidationResult, VisitSettings
from site_visits.counter import VisitCounter
from site_visits.merge import merge, merge_histories
from site_visits.models import (
    PageContext,
    RecorderState,
    Session,
    Snapshot,
    SyncState,
    VisitEvent,
    VisitRecord,
    VisitStats,
)
from site_visits.navigation import ManualNavigationSource, NavigationSource
from site_visits.recorder import VisitRecorder
from site_visits.session import SessionTracker
from site_visits.stats import compute_stats
from site_visits.storage import JsonFileStorage, KeyValueStorage, LocalStore, MemoryStorage
from site_visits.sync import RemoteSync

__all__ = [
    "ValidationResult",
    "VisitSettings",
    "VisitCounter",
    "merge",
    "merge_histories",
    "PageContext",
    "RecorderState",
    "Session",
    "Snapshot",
    "SyncState",
    "VisitEvent",
    "VisitRecord",
    "VisitStats",
    "ManualNavigationSource",
    "NavigationSource",
    "VisitRecorder",
    "SessionTracker",
    "compute_stats",
    "JsonFileStorage",
    "KeyValueStorage",
    "LocalStore",
    "MemoryStorage",
    "RemoteSync",
]
