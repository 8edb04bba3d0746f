"""Combine a local and a remote snapshot.

Counters take the maximum, since both sides only ever increment. Histories
are unioned, deduplicated on (session, timestamp), sorted newest first and
capped. The max-counter rule undercounts when two devices both increment
between syncs; it is an approximation, not a replicated counter.
"""

from __future__ import annotations

from site_visits.models import Snapshot, VisitRecord
from site_visits.parser import timestamp_sort_key
from site_visits.storage.local_store import DEFAULT_MAX_HISTORY


def merge_histories(
    local: list[VisitRecord],
    remote: list[VisitRecord],
    limit: int = DEFAULT_MAX_HISTORY,
) -> list[VisitRecord]:
    """Union of both histories, newest first, at most `limit` entries."""
    seen: dict[tuple[str, str], VisitRecord] = {}
    for record in [*local, *remote]:
        seen.setdefault(record.key, record)
    merged = sorted(seen.values(), key=timestamp_sort_key, reverse=True)
    return merged[:limit]


def merge(
    local: Snapshot,
    remote: Snapshot | None,
    limit: int = DEFAULT_MAX_HISTORY,
) -> Snapshot:
    """Merge `remote` into `local`. An absent remote returns `local` unchanged."""
    if remote is None:
        return local
    return Snapshot(
        counter=max(local.counter, remote.counter),
        history=merge_histories(local.history, remote.history, limit),
        last_session_id=local.last_session_id or remote.last_session_id,
    )
