from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session

from store_orchestrator.models.rate_limit_hit import RateLimitHit
from store_orchestrator.services.rate_limit import RateLimiter, key_lock_statement


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def _session() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    RateLimitHit.__table__.create(engine)
    return Session(engine)


def test_rate_limit_allows_then_blocks_within_window():
    limiter = RateLimiter(max_requests=2, window_seconds=60)

    with _session() as db:
        ok_1, remaining_1, _ = limiter.allow(db, "create:127.0.0.1")
        ok_2, remaining_2, _ = limiter.allow(db, "create:127.0.0.1")
        ok_3, remaining_3, retry_after = limiter.allow(db, "create:127.0.0.1")

    assert ok_1 is True and remaining_1 == 1
    assert ok_2 is True and remaining_2 == 0
    assert ok_3 is False and remaining_3 == 0
    assert 0 < retry_after <= 60


def test_rate_limit_is_per_key():
    limiter = RateLimiter(max_requests=1, window_seconds=60)

    with _session() as db:
        assert limiter.allow(db, "create:10.0.0.1").allowed
        assert not limiter.allow(db, "create:10.0.0.1").allowed
        assert limiter.allow(db, "create:10.0.0.2").allowed


def test_rate_limit_window_slides():
    clock = FakeClock()
    limiter = RateLimiter(max_requests=5, window_seconds=900, clock=clock)

    with _session() as db:
        for _ in range(5):
            clock.now += timedelta(minutes=1)
            assert limiter.allow(db, "create:ip").allowed

        clock.now += timedelta(minutes=5)
        blocked = limiter.allow(db, "create:ip")
        assert not blocked.allowed
        # The oldest hit (12:01) leaves the window at 12:16.
        assert blocked.retry_after_seconds == 6 * 60

        clock.now += timedelta(minutes=6, seconds=1)
        assert limiter.allow(db, "create:ip").allowed
        assert not limiter.allow(db, "create:ip").allowed


def test_postgres_lock_is_scoped_to_the_key():
    statement = key_lock_statement("create:10.0.0.1").compile(
        dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
    )

    assert "pg_advisory_xact_lock(hashtext('create:10.0.0.1'))" in str(statement)


def test_window_check_opens_with_a_write():
    limiter = RateLimiter(max_requests=5, window_seconds=60)
    statements = []

    with _session() as db:
        event.listen(
            db.get_bind(),
            "before_cursor_execute",
            lambda conn, cursor, statement, *args: statements.append(statement),
        )
        limiter.allow(db, "create:ip")

    # The DELETE takes SQLite's write lock before the hits are counted.
    assert [s.split()[0].upper() for s in statements[:3]] == ["DELETE", "SELECT", "INSERT"]
    assert not any("pg_advisory_xact_lock" in s for s in statements)
