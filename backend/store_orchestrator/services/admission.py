from typing import Protocol

from prometheus_client import Counter
from sqlalchemy.orm import Session

from store_orchestrator.core.config import Settings
from store_orchestrator.core.errors import RateLimitedError, StoreCapReachedError
from store_orchestrator.services.rate_limit import RateLimiter
from store_orchestrator.services.registry import StoreRegistry

api_rate_limited_total = Counter("api_rate_limited_total", "Total API requests rejected by rate limiting")


class AdmissionPolicy(Protocol):
    def check(self, db: Session, identity: str) -> None:
        """Raise ``AdmissionDeniedError`` to reject a create request."""


class RateLimitPolicy:
    def __init__(self, limiter: RateLimiter, scope: str = "create"):
        self.limiter = limiter
        self.scope = scope

    def check(self, db: Session, identity: str) -> None:
        decision = self.limiter.allow(db, f"{self.scope}:{identity}")
        if not decision.allowed:
            api_rate_limited_total.inc()
            raise RateLimitedError(
                "Rate limit exceeded. Please try again later.",
                retry_after=decision.retry_after_seconds,
            )


class ActiveStoreCapPolicy:
    def __init__(self, max_active_stores: int):
        self.max_active_stores = max_active_stores

    def check(self, db: Session, identity: str) -> None:
        if StoreRegistry(db).count_active() >= self.max_active_stores:
            raise StoreCapReachedError("Maximum active store limit reached.")


def default_policies(settings: Settings) -> list[AdmissionPolicy]:
    limiter = RateLimiter(settings.rate_limit_create_per_window, settings.rate_limit_window_seconds)
    return [RateLimitPolicy(limiter), ActiveStoreCapPolicy(settings.max_active_stores)]
