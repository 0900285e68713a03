from sqlalchemy import select
from sqlalchemy.orm import Session

from store_orchestrator.models.store_event import StoreEvent

# Keeps helm/kubectl output readable in the event log without storing whole manifests.
MAX_MESSAGE_CHARS = 4000


def log_event(db: Session, store_id: str, event_type: str, message: str) -> None:
    db.add(StoreEvent(store_id=store_id, event_type=event_type, message=message[-MAX_MESSAGE_CHARS:]))


def recent_events(db: Session, store_id: str, limit: int = 50) -> list[StoreEvent]:
    return list(
        db.scalars(
            select(StoreEvent)
            .where(StoreEvent.store_id == store_id)
            .order_by(StoreEvent.created_at.desc(), StoreEvent.id.desc())
            .limit(limit)
        ).all()
    )
