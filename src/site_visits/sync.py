"""Periodic read-merge-write reconciliation of local visit data with the remote store."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import suppress
from typing import Awaitable, Callable

from site_visits.config import VisitSettings
from site_visits.exceptions import RemoteFetchError, RemotePushError
from site_visits.merge import merge
from site_visits.models import Snapshot, SyncState
from site_visits.remote.client import RemoteStoreClient
from site_visits.storage.local_store import LocalStore

logger = logging.getLogger(__name__)


class RemoteSync:
    """Keeps the local store and the shared remote document converged.

    Every sync fetches the remote document, merges it with local state,
    writes the result locally and pushes it back. Only one push runs at a
    time; overlapping requests are dropped. Failed pushes are retried with
    linear backoff up to `settings.max_retries` attempts.

    Without configured credentials every operation is a logged no-op.

    Args:
        settings: Endpoint, credential, interval and retry settings.
        store: Local visit store to reconcile.
        client: Remote client; built from `settings` when omitted.
        clock: Returns the current time in epoch seconds.
        sleep: Awaitable delay used for retry backoff and the sync timer.
    """

    def __init__(
        self,
        settings: VisitSettings,
        store: LocalStore,
        client: RemoteStoreClient | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings
        self.state = SyncState()
        self._store = store
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._warned_unconfigured = False

    def _ready(self) -> bool:
        if not self.settings.is_configured:
            if not self._warned_unconfigured:
                logger.info("Remote sync is not configured, skipping remote operations")
                self._warned_unconfigured = True
            return False
        if self._client is None:
            self._client = RemoteStoreClient(self.settings)
        return True

    async def fetch_remote(self) -> Snapshot | None:
        """Remote snapshot, or None on any failure."""
        if not self._ready():
            return None
        try:
            return await self._client.fetch()
        except RemoteFetchError as e:
            logger.warning("Could not fetch remote visit data: %s", e)
            self.state.last_error = str(e)
            return None

    async def sync_now(self, local: Snapshot | None = None) -> bool:
        """Fetch, merge, store locally and push. Returns True if the push succeeded."""
        if not self._ready():
            return False
        if local is None:
            local = self._store.read_snapshot()

        remote = await self.fetch_remote()
        merged = merge(local, remote, self._store.max_history)
        if remote is not None:
            merged = self._write_local(merged)
            logger.debug("Merged remote data: %d visits", merged.counter)
        return await self.push(merged)

    async def manual_sync(self) -> bool:
        success = await self.sync_now()
        if success:
            logger.info("Manual sync succeeded")
        else:
            logger.warning("Manual sync failed: %s", self.state.last_error)
        return success

    async def push(self, snapshot: Snapshot) -> bool:
        """Push `snapshot`, retrying on failure. Dropped if a push is in flight."""
        if not self._ready():
            return False
        if self.state.is_syncing:
            logger.info("Sync already in progress, dropping request")
            return False

        self.state.is_syncing = True
        self.state.retry_count = 0
        try:
            while True:
                try:
                    await self._client.push(snapshot)
                except RemotePushError as e:
                    self.state.last_error = str(e)
                    self.state.retry_count += 1
                    if self.state.retry_count >= self.settings.max_retries:
                        logger.warning(
                            "Giving up on remote push after %d attempts: %s",
                            self.state.retry_count, e,
                        )
                        return False
                    delay = self.settings.retry_delay * self.state.retry_count
                    logger.warning(
                        "Remote push failed (attempt %d), retrying in %.1fs: %s",
                        self.state.retry_count, delay, e,
                    )
                    await self._sleep(delay)
                    continue

                self.state.last_sync = self._clock()
                self.state.last_error = None
                self.state.retry_count = 0
                logger.info("Synced %d visits to remote store", snapshot.counter)
                return True
        finally:
            self.state.is_syncing = False

    def start(self) -> asyncio.Task | None:
        """Run one sync now and then every `sync_interval` seconds.

        Must be called from a running event loop. Returns the timer task.
        """
        if not self._ready():
            return None
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def on_unload(self) -> threading.Thread | None:
        """Fire-and-forget push of local state while the page is torn down."""
        if not self._ready():
            return None
        return self._client.send_beacon(self._store.read_snapshot())

    def status(self) -> dict:
        return {
            "last_sync": self.state.last_sync,
            "is_syncing": self.state.is_syncing,
            "retry_count": self.state.retry_count,
            "last_error": self.state.last_error,
            "next_sync": self.state.last_sync + self.settings.sync_interval,
            "is_configured": self.settings.is_configured,
        }

    async def _run(self) -> None:
        await self._tick()
        while True:
            await self._sleep(self.settings.sync_interval)
            await self._tick()

    async def _tick(self) -> None:
        try:
            await self.sync_now()
        except Exception as e:
            logger.exception("Scheduled sync failed")
            self.state.last_error = str(e)

    def _write_local(self, merged: Snapshot) -> Snapshot:
        # Visits recorded while the fetch was in flight must survive the write.
        final = merge(self._store.read_snapshot(), merged, self._store.max_history)
        self._store.write_counter(final.counter)
        self._store.write_history(list(reversed(final.history)))
        return final
