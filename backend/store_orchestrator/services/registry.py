from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from store_orchestrator.core.errors import DuplicateStoreError, StoreNotFoundError
from store_orchestrator.models.enums import StoreStatus
from store_orchestrator.models.store import Store

ACTIVE_STATUSES = (StoreStatus.PROVISIONING, StoreStatus.READY, StoreStatus.DELETING, StoreStatus.TEARDOWN_FAILED)


class StoreRegistry:
    """Store records keyed by id. Callers own the transaction and commit."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, store: Store) -> Store:
        if self.db.get(Store, store.id) is not None:
            raise DuplicateStoreError(store.id)
        self.db.add(store)
        self.db.flush()
        return store

    def get(self, store_id: str, fresh: bool = False) -> Store | None:
        if fresh:
            # Bypass the identity map so deletes and status writes from other sessions are seen.
            return self.db.scalar(
                select(Store).where(Store.id == store_id).execution_options(populate_existing=True)
            )
        return self.db.get(Store, store_id)

    def list_all(self) -> list[Store]:
        return list(self.db.scalars(select(Store).order_by(Store.created_at.desc(), Store.id.desc())).all())

    def update_status(self, store_id: str, status: StoreStatus) -> Store:
        store = self.db.get(Store, store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        store.status = status
        self.db.add(store)
        return store

    def transition(self, store_id: str, new_status: StoreStatus, expected: tuple[StoreStatus, ...]) -> bool:
        """Set ``new_status`` only while the row is still in one of ``expected``.

        Returns ``False`` when the store is gone or another writer moved it first.
        """
        result = self.db.execute(
            update(Store)
            .where(Store.id == store_id, Store.status.in_(expected))
            .values(status=new_status)
            .execution_options(synchronize_session="fetch")
        )
        return bool(result.rowcount)

    def delete(self, store_id: str) -> None:
        store = self.db.get(Store, store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        self.db.delete(store)

    def count_active(self) -> int:
        return self.db.scalar(select(func.count(Store.id)).where(Store.status.in_(ACTIVE_STATUSES))) or 0

    def stuck_in_provisioning(self, created_before: datetime) -> list[Store]:
        return list(
            self.db.scalars(
                select(Store)
                .where(Store.status == StoreStatus.PROVISIONING, Store.created_at < created_before)
                .order_by(Store.created_at.asc())
            ).all()
        )
