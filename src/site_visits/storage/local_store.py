"""Durable per-browser record of the visit counter, history and last session id."""

from __future__ import annotations

import logging

from site_visits.exceptions import StorageError
from site_visits.models import Snapshot, VisitRecord
from site_visits.parser import dump_history, parse_counter, parse_history
from site_visits.storage.base import KeyValueStorage

logger = logging.getLogger(__name__)

VISITS_KEY = "websiteVisits"
HISTORY_KEY = "visitHistory"
LAST_SESSION_KEY = "lastSessionId"

DEFAULT_MAX_HISTORY = 100


class LocalStore:
    """Owns the counter, visit history and last session id in durable storage.

    Reads never fail: missing or corrupt values come back as 0 / empty.
    Writes are best-effort: a storage failure is logged and dropped.

    Args:
        storage: Durable backend (the browser's local storage equivalent).
        max_history: History cap; oldest entries are evicted first.
    """

    def __init__(self, storage: KeyValueStorage, max_history: int = DEFAULT_MAX_HISTORY):
        self._storage = storage
        self.max_history = max(1, max_history)

    def read_counter(self) -> int:
        return parse_counter(self._get(VISITS_KEY))

    def write_counter(self, value: int) -> None:
        self._set(VISITS_KEY, str(int(value)))

    def read_history(self) -> list[VisitRecord]:
        """History in append order (oldest first)."""
        return parse_history(self._get(HISTORY_KEY))

    def write_history(self, records: list[VisitRecord]) -> None:
        """Replace the history, keeping only the newest `max_history` entries."""
        self._set(HISTORY_KEY, dump_history(records[-self.max_history:]))

    def append_history(self, record: VisitRecord) -> None:
        history = self.read_history()
        history.append(record)
        self.write_history(history)

    def read_last_session_id(self) -> str | None:
        return self._get(LAST_SESSION_KEY)

    def write_last_session_id(self, session_id: str) -> None:
        self._set(LAST_SESSION_KEY, session_id)

    def read_snapshot(self) -> Snapshot:
        return Snapshot(
            counter=self.read_counter(),
            history=self.read_history(),
            last_session_id=self.read_last_session_id(),
        )

    def reset(self) -> None:
        """Forget all visit data. Debugging and tests only."""
        for key in (VISITS_KEY, HISTORY_KEY, LAST_SESSION_KEY):
            try:
                self._storage.remove_item(key)
            except StorageError as e:
                logger.warning("Failed clearing %s: %s", key, e)

    def _get(self, key: str) -> str | None:
        try:
            return self._storage.get_item(key)
        except StorageError as e:
            logger.warning("Failed reading %s from local storage: %s", key, e)
            return None

    def _set(self, key: str, value: str) -> None:
        try:
            self._storage.set_item(key, value)
        except StorageError as e:
            logger.warning("Failed writing %s to local storage: %s", key, e)
