"""Wire format of the remote visit document.

The stored record is a flat JSON object::

    {"websiteVisits": "12", "visitHistory": "[...]", "lastSessionId": "...",
     "lastUpdate": "2024-01-01T00:00:00.000Z", "version": "1.0"}

``websiteVisits`` is a decimal string and ``visitHistory`` a JSON-encoded
array. Reads return the record wrapped as ``{"record": {...}}``.
"""

from __future__ import annotations

import json
import logging

from site_visits.models import Snapshot
from site_visits.parser import format_timestamp, parse_history

logger = logging.getLogger(__name__)

WIRE_VERSION = "1.0"


def encode_document(snapshot: Snapshot, now: float) -> dict:
    """Build the flat record body for PUT and beacon POST requests."""
    return {
        "websiteVisits": str(snapshot.counter),
        "visitHistory": json.dumps([r.to_dict() for r in snapshot.history], ensure_ascii=False),
        "lastSessionId": snapshot.last_session_id,
        "lastUpdate": format_timestamp(now),
        "version": WIRE_VERSION,
    }


def decode_document(payload: object) -> Snapshot | None:
    """Parse a GET response body; returns None for malformed documents."""
    if not isinstance(payload, dict):
        return None
    record = payload.get("record", payload)
    if not isinstance(record, dict):
        return None
    if "websiteVisits" not in record and "visitHistory" not in record:
        logger.warning("Remote document has no visit fields")
        return None

    raw_visits = record.get("websiteVisits")
    if raw_visits in (None, ""):
        counter = 0
    else:
        try:
            counter = int(str(raw_visits).strip())
        except ValueError:
            logger.warning("Remote websiteVisits is not an integer: %r", raw_visits)
            return None
        if counter < 0:
            logger.warning("Remote websiteVisits is negative: %r", raw_visits)
            return None

    raw_history = record.get("visitHistory")
    if raw_history is not None and not isinstance(raw_history, (str, list)):
        logger.warning("Remote visitHistory has unexpected type %s", type(raw_history).__name__)
        return None

    last_session_id = record.get("lastSessionId")
    return Snapshot(
        counter=counter,
        history=parse_history(raw_history),
        last_session_id=last_session_id if isinstance(last_session_id, str) else None,
    )
