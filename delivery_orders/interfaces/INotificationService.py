from abc import ABC, abstractmethod
from typing import List

class INotificationService(ABC):
    @abstractmethod
    def send_template(self, phone: str, template_name: str, parameter_groups: List[List[str]]) -> bool:
        """Send a WhatsApp template message. Never raises; returns False on failure."""
        pass
