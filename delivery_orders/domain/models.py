import uuid

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from delivery_orders.core.config import settings
from delivery_orders.infrastructure.database import Base

class OrderRecord(Base):
    """One order document.

    Fields we filter, sort or search on live in their own columns; the rest of
    the payload (items, customer, totals, ...) is kept untouched in `data`.
    """
    __tablename__ = settings.ORDERS_COLLECTION

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    order_id = Column(String(16), index=True, nullable=False)
    status = Column(String(32), index=True, nullable=False)
    # copy of data["customer"]["name"]; byte-wise "C" collation keeps prefix ranges exact on Postgres
    customer_name = Column(String().with_variant(String(collation="C"), "postgresql"), index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True, nullable=False)

    def to_document(self) -> dict:
        return {
            **(self.data or {}),
            "orderId": self.order_id,
            "status": self.status,
            "timestamp": self.created_at,
        }

class ConfigDocument(Base):
    """Settings managed by the shop's back office, e.g. the opening hours."""
    __tablename__ = "config_documents"

    key = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
