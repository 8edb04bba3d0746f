"""HTTP client for the shared remote visit document."""

from __future__ import annotations

import logging
import threading
import time

from site_visits.config import VisitSettings
from site_visits.exceptions import RemoteFetchError, RemotePushError
from site_visits.models import Snapshot
from site_visits.remote.wire import decode_document, encode_document

logger = logging.getLogger(__name__)


class RemoteStoreClient:
    """Full-document GET / PUT against a JSON key-value store.

    Args:
        settings: Supplies the endpoint, resource id, credential and timeout.
        transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(self, settings: VisitSettings, transport=None):
        try:
            import httpx  # noqa: F401
        except ImportError:
            raise ImportError(
                "httpx is required for RemoteStoreClient. "
                "Install with: pip install site-visits[remote]"
            )
        self.settings = settings
        self._transport = transport

    @property
    def url(self) -> str:
        return self.settings.resource_url

    def _headers(self) -> dict[str, str]:
        return {
            "X-Master-Key": self.settings.api_key,
            "Content-Type": "application/json",
        }

    async def fetch(self) -> Snapshot | None:
        """Fetch the remote snapshot. Returns None if the document is malformed."""
        import httpx

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(self.url, headers=self._headers())
                response.raise_for_status()
                payload = response.json()
            snapshot = decode_document(payload)
        except Exception as e:
            raise RemoteFetchError(f"Fetch failed: {e}") from e

        if snapshot is None:
            logger.warning("Ignoring malformed remote document from %s", self.url)
        else:
            logger.debug("Fetched remote snapshot: %d visits", snapshot.counter)
        return snapshot

    async def push(self, snapshot: Snapshot) -> None:
        """Replace the remote document with `snapshot`."""
        import httpx

        body = encode_document(snapshot, time.time())
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.put(self.url, headers=self._headers(), json=body)
                response.raise_for_status()
        except Exception as e:
            raise RemotePushError(f"Push failed: {e}") from e

    def send_beacon(self, snapshot: Snapshot) -> threading.Thread:
        """Best-effort POST on a daemon thread; never blocks the caller.

        Delivery is not guaranteed and the request cannot be cancelled.
        Failures are only logged.
        """
        body = encode_document(snapshot, time.time())
        thread = threading.Thread(
            target=self._post_beacon,
            args=(body,),
            name="site-visits-beacon",
            daemon=True,
        )
        thread.start()
        return thread

    def _post_beacon(self, body: dict) -> None:
        import httpx

        try:
            with httpx.Client(
                timeout=self.settings.request_timeout,
                transport=self._transport,
            ) as client:
                response = client.post(self.url, headers=self._headers(), json=body)
                response.raise_for_status()
        except Exception as e:
            logger.warning("Unload beacon to %s failed: %s", self.url, e)
