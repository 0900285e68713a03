from datetime import datetime, timezone
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import Counter
from sqlalchemy.orm import Session

from store_orchestrator.core.config import Settings
from store_orchestrator.core.errors import AdmissionDeniedError, DuplicateStoreError, StoreNotFoundError
from store_orchestrator.db.session import get_db
from store_orchestrator.models.enums import StoreStatus
from store_orchestrator.models.store import Store
from store_orchestrator.schemas.store import (
    CreateStoreRequest,
    StoreDetailResponse,
    StoreEventResponse,
    StoreResponse,
)
from store_orchestrator.services.container import Services, get_services
from store_orchestrator.services.endpoints import resolve_endpoint
from store_orchestrator.services.events import log_event, recent_events
from store_orchestrator.services.queue import ProvisionJob
from store_orchestrator.services.registry import StoreRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])
stores_created_total = Counter("stores_created_total", "Total stores queued for creation")
stores_deleted_total = Counter("stores_deleted_total", "Total stores torn down and removed")
stores_teardown_failed_total = Counter("stores_teardown_failed_total", "Total store teardowns that failed")

MAX_ID_ATTEMPTS = 3


def _request_identity(request: Request) -> str:
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _generate_store_id(settings: Settings) -> str:
    return f"{settings.store_id_prefix}-{uuid.uuid4().hex[: settings.store_id_suffix_length]}"


def _to_store_response(store: Store) -> StoreResponse:
    return StoreResponse(
        id=store.id,
        name=store.name,
        type=store.type,
        status=store.status,
        url=store.url,
        created_at=store.created_at,
    )


@router.get("", response_model=list[StoreResponse])
def list_stores(db: Session = Depends(get_db)) -> list[StoreResponse]:
    return [_to_store_response(s) for s in StoreRegistry(db).list_all()]


@router.post("", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
def create_store(
    payload: CreateStoreRequest,
    request: Request,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
) -> StoreResponse:
    if payload.type not in services.catalog:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid store engine '{payload.type}'. Available: {', '.join(services.catalog.names())}",
        )

    identity = _request_identity(request)
    try:
        for policy in services.admission_policies:
            policy.check(db, identity)
    except AdmissionDeniedError as exc:
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        raise HTTPException(status_code=exc.status_code, detail=str(exc), headers=headers) from exc

    settings = services.settings
    registry = StoreRegistry(db)
    for _ in range(MAX_ID_ATTEMPTS):
        store_id = _generate_store_id(settings)
        endpoint = resolve_endpoint(store_id, settings.environment, settings)
        store = Store(
            id=store_id,
            name=payload.name,
            type=payload.type,
            status=StoreStatus.PROVISIONING,
            url=endpoint.url,
            created_at=datetime.now(timezone.utc),
        )
        try:
            registry.insert(store)
            break
        except DuplicateStoreError:
            logger.warning("Generated store id %s already exists; drawing a new one", store_id)
    else:
        raise HTTPException(status_code=503, detail="Could not allocate a unique store id. Try again.")

    # The store row is flushed above, so the job can never be seen without its record.
    services.queue.enqueue(db, ProvisionJob(store_id=store.id, hostname=endpoint.hostname, type=store.type))
    log_event(db, store.id, "queued", f"Provisioning queued for {identity}")
    db.commit()
    stores_created_total.inc()
    logger.info("Queued store %s (%s) at %s", store.id, store.type, store.url)

    return _to_store_response(store)


@router.get("/{store_id}", response_model=StoreDetailResponse)
def get_store(store_id: str, db: Session = Depends(get_db)) -> StoreDetailResponse:
    store = StoreRegistry(db).get(store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    events = recent_events(db, store.id)
    base = _to_store_response(store)
    return StoreDetailResponse(
        **base.model_dump(),
        events=[
            StoreEventResponse(id=e.id, event_type=e.event_type, message=e.message, created_at=e.created_at)
            for e in events
        ],
    )


@router.delete("/{store_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_store(
    store_id: str,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
) -> Response:
    registry = StoreRegistry(db)
    store = registry.get(store_id)
    if not store:
        # Deleting an unknown id is a no-op so retries from the UI are safe.
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Deleting takes the store out of reconciliation and turns any in-flight worker write into a no-op.
    registry.update_status(store_id, StoreStatus.DELETING)
    cancelled = services.queue.cancel_pending(db, store_id)
    log_event(db, store_id, "delete_started", f"Teardown requested; cancelled {cancelled} queued job(s)")
    db.commit()

    result = services.driver.teardown(store_id, timeout_seconds=services.settings.helm_timeout_seconds)
    if not result.ok:
        if not registry.transition(store_id, StoreStatus.TEARDOWN_FAILED, expected=(StoreStatus.DELETING,)):
            logger.warning("Store %s changed during teardown; leaving its status as is", store_id)
        log_event(db, store_id, "teardown_failed", result.output or "teardown failed")
        db.commit()
        stores_teardown_failed_total.inc()
        logger.error("Teardown of store %s failed:\n%s", store_id, result.output)
        raise HTTPException(
            status_code=502,
            detail="Store teardown failed. The store is marked TeardownFailed and can be deleted again.",
        )

    try:
        registry.delete(store_id)
    except StoreNotFoundError:
        logger.info("Store %s was removed by a concurrent delete", store_id)
    log_event(db, store_id, "deleted", "Namespace and release removed")
    db.commit()
    stores_deleted_total.inc()
    logger.info("Deleted store %s", store_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
