"""Parse stored or remote visit data into normalized records."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from site_visits.models import VisitRecord

logger = logging.getLogger(__name__)

MAX_USER_AGENT_LENGTH = 100
DIRECT_REFERRER = "Direct"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_timestamp(ts: float) -> str:
    """Epoch seconds to ISO 8601 in UTC with millisecond precision and a Z suffix."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime | None:
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def timestamp_sort_key(record: VisitRecord) -> tuple[datetime, str, str]:
    """Total order over records; unparsable timestamps sort as oldest."""
    return (parse_timestamp(record.timestamp) or _EPOCH, record.timestamp, record.session)


def parse_counter(raw: str | int | None) -> int:
    """Stored counter to int; missing, invalid or negative values read as 0."""
    if raw is None:
        return 0
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring invalid visit counter value %r", raw)
        return 0
    return max(0, value)


def parse_record(raw: dict) -> VisitRecord | None:
    """Normalize one raw history entry; returns None for invalid entries."""
    if not isinstance(raw, dict):
        return None
    timestamp = raw.get("timestamp")
    session = raw.get("session")
    if not isinstance(timestamp, str) or not timestamp:
        return None
    if not isinstance(session, str) or not session:
        return None

    try:
        visit_number = int(raw.get("visitNumber") or 0)
    except (TypeError, ValueError, OverflowError):
        visit_number = 0

    return VisitRecord(
        timestamp=timestamp,
        page=str(raw.get("page") or "/"),
        session=session,
        user_agent=str(raw.get("userAgent") or "")[:MAX_USER_AGENT_LENGTH],
        referrer=str(raw.get("referrer") or DIRECT_REFERRER),
        visit_number=max(0, visit_number),
    )


def parse_history(raw: str | list | None) -> list[VisitRecord]:
    """Decode a history array (JSON text or already-decoded list).

    Invalid entries are dropped; an undecodable document yields an empty list.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Visit history is not valid JSON: %s", e)
            return []
    if not isinstance(raw, list):
        logger.warning("Visit history is not a list (got %s)", type(raw).__name__)
        return []

    records = []
    for item in raw:
        record = parse_record(item)
        if record is None:
            logger.debug("Dropping malformed history entry: %r", item)
            continue
        records.append(record)
    return records


def dump_history(records: list[VisitRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], ensure_ascii=False)
