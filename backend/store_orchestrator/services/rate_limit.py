from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import math
from typing import NamedTuple

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from store_orchestrator.models.rate_limit_hit import RateLimitHit


class RateLimitDecision(NamedTuple):
    allowed: bool
    remaining: int
    retry_after_seconds: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def key_lock_statement(key: str):
    """Transaction-scoped PostgreSQL advisory lock for one limiter key."""
    return select(func.pg_advisory_xact_lock(func.hashtext(key)))


class RateLimiter:
    """Sliding-window limiter: at most ``max_requests`` hits per key in any ``window_seconds`` span."""

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], datetime] = _utcnow):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def allow(self, db: Session, key: str) -> RateLimitDecision:
        now = self.clock()
        window_start = now - timedelta(seconds=self.window_seconds)
        # Count and insert must not interleave for one key. PostgreSQL needs the advisory
        # lock under READ COMMITTED; SQLite takes its database write lock at the DELETE below.
        if db.get_bind().dialect.name == "postgresql":
            db.execute(key_lock_statement(key))

        db.execute(delete(RateLimitHit).where(RateLimitHit.key == key, RateLimitHit.hit_at <= window_start))
        count = db.scalar(select(func.count(RateLimitHit.id)).where(RateLimitHit.key == key)) or 0

        if count >= self.max_requests:
            oldest = db.scalar(select(func.min(RateLimitHit.hit_at)).where(RateLimitHit.key == key))
            db.commit()
            retry_after = self.window_seconds
            if oldest is not None:
                retry_after = max(1, math.ceil((_as_utc(oldest) - window_start).total_seconds()))
            return RateLimitDecision(False, 0, retry_after)

        db.add(RateLimitHit(key=key, hit_at=now))
        db.commit()
        return RateLimitDecision(True, self.max_requests - count - 1, 0)
