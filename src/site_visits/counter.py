"""Wires storage, session tracking, recording and remote sync for one page."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from site_visits.config import VisitSettings
from site_visits.models import PageContext, VisitEvent
from site_visits.navigation import ManualNavigationSource
from site_visits.recorder import VisitRecorder
from site_visits.remote.client import RemoteStoreClient
from site_visits.session import SessionTracker
from site_visits.storage.base import KeyValueStorage
from site_visits.storage.local_store import LocalStore
from site_visits.storage.memory import MemoryStorage
from site_visits.sync import RemoteSync

logger = logging.getLogger(__name__)


class VisitCounter:
    """One page's visit-counting context.

    Args:
        local_storage: Durable per-profile storage shared across tabs.
        page: The page being loaded.
        settings: Counter and remote sync settings.
        session_storage: Per-tab storage; a fresh in-memory one when omitted.
        remote_client: Overrides the client built from `settings`.
        clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        local_storage: KeyValueStorage,
        page: PageContext,
        settings: VisitSettings | None = None,
        session_storage: KeyValueStorage | None = None,
        remote_client: RemoteStoreClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or VisitSettings()
        self.settings.validate()
        self.store = LocalStore(local_storage, max_history=self.settings.max_history_records)
        self.tracker = SessionTracker(
            session_storage if session_storage is not None else MemoryStorage(),
            self.store,
            timeout=self.settings.session_timeout,
            clock=clock,
        )
        self.recorder = VisitRecorder(self.store, self.tracker, page, clock=clock)
        self.navigation = ManualNavigationSource(page.path)
        self.recorder.attach(self.navigation)
        self.sync = RemoteSync(self.settings, self.store, client=remote_client, clock=clock)

    def load(self) -> VisitEvent:
        """Handle the page load: integrity check plus visit evaluation."""
        return self.recorder.start()

    def navigate(self, path: str) -> bool:
        """Report a single-page route change."""
        return self.navigation.path_changed(path)

    async def start_sync(self) -> None:
        """Start remote sync if enabled; call from a running event loop."""
        if self.settings.enabled:
            self.sync.start()

    async def stop_sync(self) -> None:
        await self.sync.stop()

    def unload(self) -> threading.Thread | None:
        """Page teardown: best-effort push of local state."""
        if not self.settings.enabled:
            return None
        return self.sync.on_unload()
