"""Counts at most one visit per session and notifies observers on every evaluation."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime
from typing import Callable

from site_visits.models import PageContext, RecorderState, VisitEvent, VisitRecord, VisitStats
from site_visits.navigation import NavigationSource
from site_visits.parser import (
    DIRECT_REFERRER,
    MAX_USER_AGENT_LENGTH,
    format_timestamp,
    parse_counter,
    parse_history,
)
from site_visits.session import SessionTracker
from site_visits.stats import compute_stats
from site_visits.storage.local_store import HISTORY_KEY, VISITS_KEY, LocalStore

logger = logging.getLogger(__name__)

VisitListener = Callable[[VisitEvent], None]


class VisitRecorder:
    """Per-page-load state machine: Idle -> Evaluating -> Recorded | Skipped.

    Re-entered on every navigation event. Observers receive a VisitEvent on
    each evaluation and on manual counter changes.

    Args:
        store: Durable visit store.
        tracker: Session tracker sharing the same store.
        page: Current page as reported by the host.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        store: LocalStore,
        tracker: SessionTracker,
        page: PageContext,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._tracker = tracker
        self.page = page
        self._clock = clock
        self._listeners: list[VisitListener] = []
        self.state = RecorderState.IDLE

    @property
    def total_visits(self) -> int:
        return self._store.read_counter()

    def subscribe(self, listener: VisitListener) -> Callable[[], None]:
        """Register a visit-updated listener; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach(self, source: NavigationSource) -> Callable[[], None]:
        """Re-evaluate on every path change reported by `source`."""
        return source.subscribe(self.handle_navigation)

    def start(self) -> VisitEvent:
        """Page-load entry point: repair the counter, then evaluate the visit."""
        logger.debug("Current visit count: %d", self.total_visits)
        self.check_integrity()
        return self.record_visit()

    def handle_navigation(self, path: str) -> VisitEvent:
        self.page = PageContext(
            path=path,
            user_agent=self.page.user_agent,
            referrer=self.page.referrer,
        )
        return self.record_visit()

    def record_visit(self) -> VisitEvent:
        """Count the visit if this is a new session; always notify."""
        self.state = RecorderState.EVALUATING
        if not self._tracker.is_new_session():
            self.state = RecorderState.SKIPPED
            logger.debug("Same session, not counting %s again", self.page.path)
            return self._notify(is_new_session=False)

        session_id = self._tracker.current_session_id()
        total = self._store.read_counter() + 1
        self._store.write_counter(total)
        self._store.append_history(
            VisitRecord(
                timestamp=format_timestamp(self._clock()),
                page=self.page.path,
                session=session_id,
                user_agent=self.page.user_agent[:MAX_USER_AGENT_LENGTH],
                referrer=self.page.referrer or DIRECT_REFERRER,
                visit_number=total,
            )
        )
        self.state = RecorderState.RECORDED
        logger.info("New session visit #%d on %s", total, self.page.path)
        return self._notify(is_new_session=True)

    def check_integrity(self) -> bool:
        """Restore a zeroed counter from the history. Returns True if repaired."""
        visits = self._store.read_counter()
        history = self._store.read_history()
        logger.debug(
            "Integrity check: %d visits, %d history records", visits, len(history)
        )
        if visits != 0 or not history:
            return False
        max_visit_number = max(record.visit_number for record in history)
        if max_visit_number <= 0:
            return False
        self.set_visits(max_visit_number)
        logger.warning("Visit counter was 0, restored to %d from history", max_visit_number)
        return True

    def set_visits(self, count: int) -> bool:
        """Manually override the counter. Accepts only non-negative integers."""
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            logger.warning("Rejected visit count override %r", count)
            return False
        self._store.write_counter(count)
        logger.info("Visit count set to %d", count)
        self._notify(is_new_session=False)
        return True

    def stats(self, now: datetime | None = None) -> VisitStats:
        return compute_stats(
            self._store.read_history(),
            self._store.read_counter(),
            session_id=self._tracker.current_session_id(),
            now=now,
        )

    def backup(self) -> str:
        """Serialize the counter and history to a JSON backup document."""
        snapshot = self._store.read_snapshot()
        return json.dumps(
            {
                VISITS_KEY: str(snapshot.counter),
                HISTORY_KEY: json.dumps([r.to_dict() for r in snapshot.history]),
                "backupTime": format_timestamp(self._clock()),
            },
            indent=2,
        )

    def restore(self, data: str | dict) -> bool:
        """Load a backup produced by `backup()`. Returns False on bad input."""
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                logger.warning("Failed to restore visit data: %s", e)
                return False
        if not isinstance(data, dict):
            logger.warning("Failed to restore visit data: backup is not an object")
            return False

        if data.get(VISITS_KEY) is not None:
            self._store.write_counter(parse_counter(data[VISITS_KEY]))
        if data.get(HISTORY_KEY) is not None:
            self._store.write_history(parse_history(data[HISTORY_KEY]))
        logger.info("Visit data restored")
        self._notify(is_new_session=False)
        return True

    def clear_data(self) -> None:
        """Forget all visit data and the current session."""
        self._store.reset()
        self._tracker.clear()
        self.state = RecorderState.IDLE
        logger.info("Visit data cleared")

    def _notify(self, is_new_session: bool) -> VisitEvent:
        event = VisitEvent(
            total_visits=self._store.read_counter(),
            current_page=self.page.path,
            is_new_session=is_new_session,
            session_id=self._tracker.current_session_id(),
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning("Visit listener %r failed: %s", listener, e)
        return event
