from store_orchestrator.models.base import Base
from store_orchestrator.models.provisioning_job import ProvisioningJob
from store_orchestrator.models.rate_limit_hit import RateLimitHit
from store_orchestrator.models.store import Store
from store_orchestrator.models.store_event import StoreEvent

__all__ = ["Base", "ProvisioningJob", "RateLimitHit", "Store", "StoreEvent"]
