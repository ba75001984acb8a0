import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import asc, desc
from sqlalchemy.exc import SQLAlchemyError
from delivery_orders.interfaces.IOrderRepository import IOrderRepository
from delivery_orders.domain.exceptions import UpstreamError
from delivery_orders.domain.models import OrderRecord
from delivery_orders.domain.schemas import OrderEntry
from delivery_orders.infrastructure.database import SessionLocal

logger = logging.getLogger(__name__)

# Highest BMP private-use code point, sorts after any real name character
PREFIX_SENTINEL = "\uf8ff"

# Kept in their own columns, not inside the JSON payload
COLUMN_FIELDS = ("orderId", "status", "timestamp")


def _customer_name(data: Dict[str, Any]) -> Optional[str]:
    customer = data.get("customer")
    if isinstance(customer, dict):
        return customer.get("name")
    return None


def _entry(record: OrderRecord) -> OrderEntry:
    return OrderEntry(id=record.id, data=record.to_document())


class PostgresOrderRepository(IOrderRepository):

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    @contextmanager
    def _session(self, action: str):
        session = self.session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Error while {action}: {e}")
            session.rollback()
            raise UpstreamError(f"Database error while {action}") from e
        finally:
            session.close()

    def add(self, data: Dict[str, Any]) -> OrderEntry:
        with self._session("creating order") as session:
            record = OrderRecord(
                order_id=data["orderId"],
                status=data["status"],
                customer_name=_customer_name(data),
                data={k: v for k, v in data.items() if k not in COLUMN_FIELDS},
            )
            session.add(record)
            session.commit()
            session.refresh(record)  # pick up the server-side timestamp
            return _entry(record)

    def get(self, order_id: str) -> Optional[OrderEntry]:
        with self._session(f"reading order {order_id}") as session:
            record = session.get(OrderRecord, order_id)
            return _entry(record) if record else None

    def update_status(self, order_id: str, status: str) -> None:
        with self._session(f"updating order {order_id}") as session:
            session.query(OrderRecord).filter(OrderRecord.id == order_id).update(
                {OrderRecord.status: status}, synchronize_session=False
            )
            session.commit()

    def list_all(self) -> List[OrderEntry]:
        """
        Retrieves every order.
        Ordered by created_at DESC (Newest first).
        """
        with self._session("listing orders") as session:
            records = session.query(OrderRecord).order_by(desc(OrderRecord.created_at)).all()
            return [_entry(r) for r in records]

    def list_by_status(self, statuses: Sequence[str]) -> List[OrderEntry]:
        """
        Retrieves orders in any of the given statuses.
        Ordered by created_at ASC so the kitchen works first-in, first-out.
        """
        with self._session("listing active orders") as session:
            records = (
                session.query(OrderRecord)
                .filter(OrderRecord.status.in_(list(statuses)))
                .order_by(asc(OrderRecord.created_at))
                .all()
            )
            return [_entry(r) for r in records]

    def list_created_since(self, start: datetime) -> List[OrderEntry]:
        with self._session("listing today's orders") as session:
            records = session.query(OrderRecord).filter(OrderRecord.created_at >= start).all()
            return [_entry(r) for r in records]

    def find_by_order_code(self, code: str) -> List[OrderEntry]:
        with self._session("searching by order code") as session:
            records = session.query(OrderRecord).filter(OrderRecord.order_id == code).all()
            return [_entry(r) for r in records]

    def find_by_customer_prefix(self, prefix: str) -> List[OrderEntry]:
        with self._session("searching by customer name") as session:
            records = (
                session.query(OrderRecord)
                .filter(OrderRecord.customer_name.between(prefix, prefix + PREFIX_SENTINEL))
                .order_by(asc(OrderRecord.customer_name))
                .all()
            )
            return [_entry(r) for r in records]
