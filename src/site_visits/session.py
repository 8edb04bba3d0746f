"""Decides whether a page load starts a new visit session."""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from typing import Callable

from site_visits.exceptions import StorageError
from site_visits.models import Session
from site_visits.storage.base import KeyValueStorage
from site_visits.storage.local_store import LocalStore

logger = logging.getLogger(__name__)

SESSION_KEY = "visitSessionData"
SESSION_TIMEOUT = 30 * 60  # seconds

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_session_id(now_ms: int) -> str:
    """Time-based prefix plus a random base-36 suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"session_{now_ms}_{suffix}"


class SessionTracker:
    """Tracks the per-tab session and compares it with the last counted one.

    Args:
        session_storage: Ephemeral per-tab storage holding the session descriptor.
        local_store: Durable store holding the last counted session id.
        timeout: Session lifetime in seconds, measured from its start.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        session_storage: KeyValueStorage,
        local_store: LocalStore,
        timeout: float = SESSION_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = session_storage
        self._local = local_store
        self.timeout = timeout
        self._clock = clock

    def current_session_id(self) -> str:
        """Return the live session id, minting a new session if it expired."""
        now = int(self._clock() * 1000)
        session = self._load()
        if session is not None and now - session.start_time < self.timeout * 1000:
            session.last_activity = now
            self._save(session)
            return session.session_id

        session = Session(session_id=new_session_id(now), start_time=now, last_activity=now)
        self._save(session)
        logger.debug("Started session %s", session.session_id)
        return session.session_id

    def is_new_session(self) -> bool:
        """True exactly once per session: the first time it is seen here."""
        current = self.current_session_id()
        if self._local.read_last_session_id() != current:
            self._local.write_last_session_id(current)
            return True
        return False

    def clear(self) -> None:
        try:
            self._storage.remove_item(SESSION_KEY)
        except StorageError as e:
            logger.warning("Failed clearing session data: %s", e)

    def _load(self) -> Session | None:
        try:
            raw = self._storage.get_item(SESSION_KEY)
        except StorageError as e:
            logger.warning("Failed reading session data: %s", e)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return Session(
                session_id=str(data["sessionId"]),
                start_time=int(data["startTime"]),
                last_activity=int(data.get("lastActivity", data["startTime"])),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding corrupt session data: %s", e)
            return None

    def _save(self, session: Session) -> None:
        try:
            self._storage.set_item(SESSION_KEY, json.dumps(session.to_dict()))
        except StorageError as e:
            logger.warning("Failed writing session data: %s", e)
