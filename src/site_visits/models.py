"""Data models for visit tracking and sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Session:
    """An ephemeral per-tab visit session. Times are epoch milliseconds."""

    session_id: str
    start_time: int
    last_activity: int

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "lastActivity": self.last_activity,
        }


@dataclass(frozen=True)
class VisitRecord:
    """One counted visit. Immutable once created."""

    timestamp: str  # ISO 8601, UTC
    page: str
    session: str
    user_agent: str  # truncated to 100 chars
    referrer: str  # "Direct" when absent
    visit_number: int

    @property
    def key(self) -> tuple[str, str]:
        """Identity used when merging histories."""
        return (self.session, self.timestamp)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "page": self.page,
            "session": self.session,
            "userAgent": self.user_agent,
            "referrer": self.referrer,
            "visitNumber": self.visit_number,
        }


@dataclass
class Snapshot:
    """Sync-relevant state at one point in time, local or remote."""

    counter: int = 0
    history: list[VisitRecord] = field(default_factory=list)
    last_session_id: str | None = None


@dataclass(frozen=True)
class PageContext:
    """What the host page reports about itself."""

    path: str
    user_agent: str = ""
    referrer: str = ""


@dataclass(frozen=True)
class VisitEvent:
    """Payload of the visit-updated notification."""

    total_visits: int
    current_page: str
    is_new_session: bool
    session_id: str

    def to_dict(self) -> dict:
        return {
            "totalVisits": self.total_visits,
            "currentPage": self.current_page,
            "isNewSession": self.is_new_session,
            "sessionId": self.session_id,
        }


class RecorderState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    RECORDED = "recorded"
    SKIPPED = "skipped"


@dataclass
class SyncState:
    """Per-page-lifetime sync bookkeeping. Never persisted."""

    last_sync: float = 0.0
    is_syncing: bool = False
    retry_count: int = 0
    last_error: str | None = None


@dataclass
class VisitStats:
    """Aggregate view over the local history."""

    total_visits: int
    today_visits: int
    week_visits: int
    page_stats: dict[str, int] = field(default_factory=dict)
    most_visited_page: str = "/"
    recent_visits: list[VisitRecord] = field(default_factory=list)
    current_session: str = ""
