from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from store_orchestrator.models.base import Base


class StoreEvent(Base):
    __tablename__ = "store_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # No foreign key: events outlive the store record as a teardown audit trail.
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_type: Mapped[str] = mapped_column(String(80), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
