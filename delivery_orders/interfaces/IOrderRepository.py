from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from delivery_orders.domain.schemas import OrderEntry

class IOrderRepository(ABC):
    @abstractmethod
    def add(self, data: Dict[str, Any]) -> OrderEntry:
        """Insert a new order; the store assigns `id` and `timestamp`."""
        pass

    @abstractmethod
    def get(self, order_id: str) -> Optional[OrderEntry]:
        pass

    @abstractmethod
    def update_status(self, order_id: str, status: str) -> None:
        pass

    @abstractmethod
    def list_all(self) -> List[OrderEntry]:
        """All orders, newest first."""
        pass

    @abstractmethod
    def list_by_status(self, statuses: Sequence[str]) -> List[OrderEntry]:
        """Orders whose status is in `statuses`, oldest first."""
        pass

    @abstractmethod
    def list_created_since(self, start: datetime) -> List[OrderEntry]:
        pass

    @abstractmethod
    def find_by_order_code(self, code: str) -> List[OrderEntry]:
        pass

    @abstractmethod
    def find_by_customer_prefix(self, prefix: str) -> List[OrderEntry]:
        """Orders whose customer name starts with `prefix`, ordered by name."""
        pass
