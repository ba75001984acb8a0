from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

class IStoreConfigRepository(ABC):
    @abstractmethod
    def get_document(self, key: str) -> Optional[Dict[str, Any]]:
        pass
