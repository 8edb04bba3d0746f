"""Aggregate statistics over the local visit history."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta

from site_visits.models import VisitRecord, VisitStats
from site_visits.parser import parse_timestamp

RECENT_VISITS = 10


def compute_stats(
    history: list[VisitRecord],
    total_visits: int,
    session_id: str = "",
    now: datetime | None = None,
) -> VisitStats:
    """Summarize `history` (append order). Days are counted in `now`'s timezone."""
    now = now or datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.astimezone()
    today = now.date()
    week_ago = now - timedelta(days=7)

    today_visits = 0
    week_visits = 0
    for record in history:
        visited = parse_timestamp(record.timestamp)
        if visited is None:
            continue
        visited = visited.astimezone(now.tzinfo)
        if visited.date() == today:
            today_visits += 1
        if visited >= week_ago:
            week_visits += 1

    page_stats = Counter(record.page for record in history)
    most_visited = page_stats.most_common(1)[0][0] if page_stats else "/"

    return VisitStats(
        total_visits=total_visits,
        today_visits=today_visits,
        week_visits=week_visits,
        page_stats=dict(page_stats),
        most_visited_page=most_visited,
        recent_visits=history[-RECENT_VISITS:],
        current_session=session_id,
    )
