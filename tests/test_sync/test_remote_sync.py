"""Tests for remote sync."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from site_visits.config import VisitSettings
from site_visits.models import Snapshot, VisitRecord
from site_visits.remote.client import RemoteStoreClient
from site_visits.storage.local_store import LocalStore
from site_visits.storage.memory import MemoryStorage
from site_visits.sync import RemoteSync


def _record(day: int, session: str, n: int) -> VisitRecord:
    return VisitRecord(
        timestamp=f"2024-01-{day:02d}T12:00:00.000Z",
        page="/",
        session=session,
        user_agent="",
        referrer="Direct",
        visit_number=n,
    )


def _remote_body(counter: int, records: list[VisitRecord]) -> dict:
    return {
        "record": {
            "websiteVisits": str(counter),
            "visitHistory": json.dumps([r.to_dict() for r in records]),
            "lastSessionId": "remote",
        }
    }


class FakeRemote:
    """httpx handler serving one document and recording every request."""

    def __init__(self, body=None, get_status=200, put_status=200):
        self.body = body
        self.get_status = get_status
        self.put_status = put_status
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.method == "GET":
            if self.get_status != 200:
                return httpx.Response(self.get_status)
            return httpx.Response(200, json=self.body or {"record": {"websiteVisits": "0"}})
        if self.put_status != 200:
            return httpx.Response(self.put_status)
        self.body = {"record": json.loads(request.content)}
        return httpx.Response(200, json=self.body)

    def methods(self):
        return [r.method for r in self.requests]


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def settings():
    return VisitSettings(enabled=True, api_key="secret", bin_id="bin123", retry_delay=1.0)


@pytest.fixture
def store():
    return LocalStore(MemoryStorage())


def _sync(settings, store, remote, sleep=None):
    client = RemoteStoreClient(settings, transport=httpx.MockTransport(remote))
    return RemoteSync(settings, store, client=client, clock=lambda: 1000.0, sleep=sleep or RecordingSleep())


def test_sync_merges_remote_into_local(settings, store):
    store.write_counter(2)
    store.append_history(_record(4, "l1", 1))
    store.append_history(_record(5, "l2", 2))
    remote = FakeRemote(body=_remote_body(5, [_record(1, "r1", 1), _record(2, "r2", 2), _record(3, "r3", 3)]))
    sync = _sync(settings, store, remote)

    assert asyncio.run(sync.sync_now()) is True

    assert store.read_counter() == 5
    history = store.read_history()
    assert len(history) == 5
    # Stored oldest first so appends keep evicting the oldest entries.
    assert [r.session for r in history] == ["r1", "r2", "r3", "l1", "l2"]
    assert remote.methods() == ["GET", "PUT"]
    pushed = remote.body["record"]
    assert pushed["websiteVisits"] == "5"
    assert len(json.loads(pushed["visitHistory"])) == 5
    assert sync.state.last_sync == 1000.0
    assert sync.state.last_error is None


def test_fetch_failure_leaves_local_untouched(settings, store):
    store.write_counter(3)
    remote = FakeRemote(get_status=500)
    sync = _sync(settings, store, remote)

    assert asyncio.run(sync.sync_now()) is True

    assert store.read_counter() == 3
    assert remote.methods() == ["GET", "PUT"]
    assert remote.body["record"]["websiteVisits"] == "3"


def test_push_retries_then_gives_up(settings, store):
    sleep = RecordingSleep()
    remote = FakeRemote(put_status=500)
    sync = _sync(settings, store, remote, sleep=sleep)

    assert asyncio.run(sync.sync_now()) is False

    assert remote.methods().count("PUT") == 3
    assert sync.state.retry_count == settings.max_retries
    assert "Push failed" in sync.state.last_error
    assert sync.state.is_syncing is False
    assert sleep.delays == [1.0, 2.0]


def test_push_recovers_on_retry(settings, store):
    remote = FakeRemote()
    attempts = []

    def flaky(request):
        if request.method == "PUT":
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(502)
        return remote(request)

    client = RemoteStoreClient(settings, transport=httpx.MockTransport(flaky))
    sync = RemoteSync(settings, store, client=client, sleep=RecordingSleep())

    assert asyncio.run(sync.push(Snapshot(counter=1))) is True
    assert len(attempts) == 2
    assert sync.state.retry_count == 0
    assert sync.state.last_error is None


def test_concurrent_push_is_dropped(settings, store):
    remote = FakeRemote()
    sync = _sync(settings, store, remote)
    sync.state.is_syncing = True

    assert asyncio.run(sync.push(Snapshot(counter=1))) is False
    assert remote.requests == []


def test_unconfigured_sync_is_a_no_op(store):
    remote = FakeRemote()
    settings = VisitSettings(enabled=True)
    sync = _sync(settings, store, remote)

    assert asyncio.run(sync.sync_now()) is False
    assert asyncio.run(sync.fetch_remote()) is None
    assert sync.on_unload() is None
    assert sync.start() is None
    assert remote.requests == []
    assert sync.status()["is_configured"] is False


def test_visits_recorded_during_fetch_are_kept(settings, store):
    remote = FakeRemote(body=_remote_body(4, []))

    def handler(request):
        if request.method == "GET":
            # A visit lands locally while the fetch is in flight.
            store.write_counter(7)
        return remote(request)

    client = RemoteStoreClient(settings, transport=httpx.MockTransport(handler))
    sync = RemoteSync(settings, store, client=client, sleep=RecordingSleep())

    asyncio.run(sync.sync_now(Snapshot(counter=2)))
    assert store.read_counter() == 7
    assert remote.body["record"]["websiteVisits"] == "7"


def test_on_unload_sends_beacon(settings, store):
    store.write_counter(6)
    remote = FakeRemote()
    sync = _sync(settings, store, remote)

    thread = sync.on_unload()
    thread.join(timeout=5)

    assert remote.methods() == ["POST"]


def test_start_runs_initial_and_periodic_syncs(store):
    settings = VisitSettings(enabled=True, api_key="secret", bin_id="bin123", sync_interval=0.01)
    remote = FakeRemote()
    client = RemoteStoreClient(settings, transport=httpx.MockTransport(remote))
    sync = RemoteSync(settings, store, client=client)

    async def scenario():
        task = sync.start()
        assert sync.start() is task
        await asyncio.sleep(0.1)
        await sync.stop()
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert remote.methods().count("GET") >= 2


def test_status(settings, store):
    sync = _sync(settings, store, FakeRemote())
    asyncio.run(sync.sync_now())
    status = sync.status()
    assert status["last_sync"] == 1000.0
    assert status["next_sync"] == 1000.0 + settings.sync_interval
    assert status["is_syncing"] is False
    assert status["is_configured"] is True


def test_overflowing_remote_history_is_tolerated(settings, store):
    store.write_counter(2)
    body = (
        b'{"record": {"websiteVisits": "3", "visitHistory": '
        b'"[{\\"timestamp\\": \\"2024-01-15T09:00:00.000Z\\", \\"session\\": \\"s1\\", \\"visitNumber\\": 1e999}]"}}'
    )

    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, content=body, headers={"Content-Type": "application/json"})
        return httpx.Response(200, json={})

    client = RemoteStoreClient(settings, transport=httpx.MockTransport(handler))
    sync = RemoteSync(settings, store, client=client, sleep=RecordingSleep())

    assert asyncio.run(sync.sync_now()) is True
    assert store.read_counter() == 3
    assert [r.session for r in store.read_history()] == ["s1"]


def test_undecodable_remote_document_is_a_soft_failure(settings, store):
    store.write_counter(2)
    remote = FakeRemote()
    sync = _sync(settings, store, remote)

    with patch("site_visits.remote.client.decode_document", side_effect=OverflowError("boom")):
        assert asyncio.run(sync.fetch_remote()) is None
    assert "Fetch failed" in sync.state.last_error
    assert store.read_counter() == 2


class _StopLoop(Exception):
    pass


def test_scheduled_sync_keeps_running_after_error(settings, store):
    delays = []

    async def sleep(delay):
        delays.append(delay)
        if len(delays) == 2:
            raise _StopLoop()

    sync = RemoteSync(settings, store, client=MagicMock(), sleep=sleep)
    sync.sync_now = AsyncMock(side_effect=[RuntimeError("unexpected"), True])

    with pytest.raises(_StopLoop):
        asyncio.run(sync._run())

    assert sync.sync_now.await_count == 2
    assert sync.state.last_error == "unexpected"
    assert delays == [settings.sync_interval, settings.sync_interval]
