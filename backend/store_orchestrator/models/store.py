from datetime import datetime

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from store_orchestrator.models.base import Base
from store_orchestrator.models.enums import StoreStatus


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[StoreStatus] = mapped_column(
        Enum(StoreStatus, name="store_status", values_callable=lambda enum_cls: [item.value for item in enum_cls]),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
