import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from delivery_orders.interfaces.IStoreConfigRepository import IStoreConfigRepository
from delivery_orders.domain.exceptions import UpstreamError
from delivery_orders.domain.models import ConfigDocument
from delivery_orders.infrastructure.database import SessionLocal

logger = logging.getLogger(__name__)

class PostgresStoreConfigRepository(IStoreConfigRepository):
    """Read-only access to documents owned by the back office."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def get_document(self, key: str) -> Optional[Dict[str, Any]]:
        session = self.session_factory()
        try:
            document = session.get(ConfigDocument, key)
            return dict(document.data) if document else None
        except SQLAlchemyError as e:
            logger.error(f"❌ DB Read Error ({key}): {e}")
            raise UpstreamError(f"Database error while reading {key}") from e
        finally:
            session.close()
