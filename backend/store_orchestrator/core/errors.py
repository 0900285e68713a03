class StoreOrchestratorError(Exception):
    """Base class for domain errors raised by the orchestrator services."""


class StoreNotFoundError(StoreOrchestratorError):
    def __init__(self, store_id: str):
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class DuplicateStoreError(StoreOrchestratorError):
    def __init__(self, store_id: str):
        super().__init__(f"Store already exists: {store_id}")
        self.store_id = store_id


class InvalidEngineError(StoreOrchestratorError):
    def __init__(self, engine: str):
        super().__init__(f"Invalid store engine: {engine}")
        self.engine = engine


class AdmissionDeniedError(StoreOrchestratorError):
    status_code = 403

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class RateLimitedError(AdmissionDeniedError):
    status_code = 429


class StoreCapReachedError(AdmissionDeniedError):
    status_code = 409
