"""Staleness policy — one algorithm, a TTL per entity type."""

from datetime import timedelta

JOB_TTL = timedelta(days=3)
INSIGHT_TTL = timedelta(days=7)


def most_recent(timestamps):
    """Latest of ``timestamps`` ignoring None, or None when there are none."""
    present = [ts for ts in timestamps if ts is not None]
    return max(present) if present else None


def is_stale(most_recent_created_at, now, ttl) -> bool:
    """True when nothing exists yet or the newest record is older than ``ttl``."""
    if most_recent_created_at is None:
        return True
    return now - most_recent_created_at > ttl
