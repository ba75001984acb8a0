"""Which WhatsApp template goes out when an order reaches a given status."""

from typing import Callable, Dict, List, Mapping, Tuple

from delivery_orders.core.config import Settings, settings
from delivery_orders.domain.schemas import OrderEntry

ParameterBuilder = Callable[[OrderEntry], List[List[str]]]
NotificationRule = Tuple[str, ParameterBuilder]
StatusNotificationPolicy = Mapping[str, NotificationRule]

TEMPLATE_OUT_FOR_DELIVERY = "pedido_saiu_para_entrega"
TEMPLATE_READY_FOR_PICKUP = "pedido_pronto_para_retirada"


def _first_name(order: OrderEntry) -> str:
    customer = order.data.get("customer") or {}
    name = (customer.get("name") or "").strip()
    return name.split()[0] if name else "cliente"


def out_for_delivery_params(order: OrderEntry) -> List[List[str]]:
    # "Olá {{1}}, seu pedido #{{2}} saiu para entrega!"
    return [[_first_name(order), str(order.data.get("orderId", ""))]]


def ready_for_pickup_params(order: OrderEntry) -> List[List[str]]:
    # "Olá {{1}}, seu pedido #{{2}} está pronto para retirada."
    return [[_first_name(order)], [str(order.data.get("orderId", ""))]]


def default_policy(config: Settings = settings) -> Dict[str, NotificationRule]:
    """Build the status -> (template, parameter builder) table from settings.

    An empty table turns notifications off.
    """
    if not config.NOTIFY_ON_STATUS_CHANGE:
        return {}
    return {
        config.ORDER_STATUS_OUT_FOR_DELIVERY: (TEMPLATE_OUT_FOR_DELIVERY, out_for_delivery_params),
        config.ORDER_STATUS_READY_FOR_PICKUP: (TEMPLATE_READY_FOR_PICKUP, ready_for_pickup_params),
    }
