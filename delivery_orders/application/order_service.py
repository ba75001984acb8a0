import asyncio
import logging
from datetime import datetime, time
from itertools import chain
from typing import Any, Callable, Dict, List, Optional

import pydantic
import pytz

from delivery_orders.core.config import Settings, settings
from delivery_orders.domain import opening_hours
from delivery_orders.domain.exceptions import NotFoundError, ValidationError
from delivery_orders.domain.schemas import (
    SERVER_FIELDS,
    CreatedOrder,
    DashboardStats,
    OrderCreate,
    OrderEntry,
    OrderTracking,
    StatusUpdate,
    StoreStatus,
)
from delivery_orders.application.notification_policy import StatusNotificationPolicy
from delivery_orders.interfaces.INotificationService import INotificationService
from delivery_orders.interfaces.IOrderRepository import IOrderRepository
from delivery_orders.interfaces.IStoreConfigRepository import IStoreConfigRepository

logger = logging.getLogger(__name__)


def _describe(error: pydantic.ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    return f"Dados do pedido inválidos: {field} - {first['msg']}"


def _order_total(data: Dict[str, Any]) -> float:
    totals = data.get("totals")
    if not isinstance(totals, dict):
        return 0
    return totals.get("total") or 0


class OrderService:
    """Every order operation exposed by the API.

    Holds no per-request state: repositories, the notifier and the
    notification policy are built once at startup and injected here.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        config_repo: IStoreConfigRepository,
        notifier: INotificationService,
        notification_policy: Optional[StatusNotificationPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        config: Settings = settings,
    ):
        self.order_repo = order_repo
        self.config_repo = config_repo
        self.notifier = notifier
        self.notification_policy = dict(notification_policy or {})
        self.config = config
        self.timezone = pytz.timezone(config.BUSINESS_TIMEZONE)
        self.clock = clock or (lambda: datetime.now(self.timezone))

    def now(self) -> datetime:
        """Current time in the shop's timezone, whatever the server's zone is."""
        return self.clock().astimezone(self.timezone)

    def _order_code(self) -> str:
        # Last 6 digits of the epoch in milliseconds; short enough to read out loud
        return str(int(self.clock().timestamp() * 1000))[-6:]

    # --- ORDERS ---

    def create_order(self, payload: Any) -> CreatedOrder:
        if not isinstance(payload, dict):
            raise ValidationError("Dados do pedido inválidos.")
        try:
            order = OrderCreate.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(_describe(e)) from e

        # Explicit nulls are caller data; only fields never sent stay out
        data = order.model_dump(exclude_unset=True)
        for field in SERVER_FIELDS:
            data.pop(field, None)
        data["orderId"] = self._order_code()
        data["status"] = self.config.ORDER_STATUS_INITIAL

        created = self.order_repo.add(data)
        logger.info(f"🧾 Order {created.data['orderId']} created ({created.id})")
        return CreatedOrder(message="Pedido criado com sucesso!", id=created.id, data=created.data)

    def update_status(self, order_id: str, payload: Any) -> OrderEntry:
        """Change only the status field. Returns the order as it is after the update."""
        try:
            update = StatusUpdate.model_validate(payload if isinstance(payload, dict) else {})
        except pydantic.ValidationError as e:
            raise ValidationError("Novo status é obrigatório.") from e

        order = self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError(f"Pedido {order_id} não encontrado.")

        # Transitions are not checked; the panel may move an order anywhere
        self.order_repo.update_status(order_id, update.status)
        logger.info(f"🔄 Order {order_id}: {order.data.get('status')} -> {update.status}")
        return OrderEntry(id=order.id, data={**order.data, "status": update.status})

    def get_tracking(self, order_id: str) -> OrderTracking:
        order = self.order_repo.get(order_id)
        if order is None:
            raise NotFoundError(f"Pedido {order_id} não encontrado.")
        return OrderTracking(
            status=order.data.get("status"),
            orderId=order.data.get("orderId"),
            deliveryMode=order.data.get("deliveryMode"),
        )

    def list_orders(self) -> List[OrderEntry]:
        return self.order_repo.list_all()

    def list_active_orders(self) -> List[OrderEntry]:
        return self.order_repo.list_by_status(self.config.ORDER_STATUSES_ACTIVE)

    # --- NOTIFICATIONS ---

    def notify_status_change(self, order: OrderEntry) -> None:
        """Send the template mapped to the order's new status, if any.

        Runs after the response has been sent; nothing here may raise.
        """
        rule = self.notification_policy.get(order.data.get("status"))
        if rule is None:
            return

        template_name, build_parameters = rule
        try:
            customer = order.data.get("customer") or {}
            phone = customer.get("phone")
            if not phone:
                logger.info(f"📵 Order {order.id} has no customer phone, skipping '{template_name}'")
                return
            self.notifier.send_template(phone, template_name, build_parameters(order))
        except Exception:
            logger.exception(f"❌ Notification '{template_name}' for order {order.id} failed")

    # --- STORE & DASHBOARD ---

    def store_status(self) -> StoreStatus:
        hours = self.config_repo.get_document(self.config.OPERATING_HOURS_KEY)
        if hours is None:
            logger.warning("⚠️ Operating hours not configured, reporting store as closed.")
        return StoreStatus(status=opening_hours.store_status(hours, self.now()))

    def dashboard_stats(self) -> DashboardStats:
        today = self.now().date()
        start_of_day = self.timezone.localize(datetime.combine(today, time.min))
        orders = self.order_repo.list_created_since(start_of_day)

        total_revenue = 0
        concluded = 0
        for order in orders:
            if order.data.get("status") == self.config.ORDER_STATUS_COMPLETED:
                total_revenue += _order_total(order.data)
                concluded += 1

        return DashboardStats(
            totalRevenue=total_revenue,
            totalOrdersConcluded=concluded,
            averageTicket=total_revenue / concluded if concluded else 0,
            todaysOrdersCount=len(orders),
        )

    # --- SEARCH ---

    async def search(self, term: Optional[str]) -> List[OrderEntry]:
        term = (term or "").strip()
        if not term:
            raise ValidationError("Termo de busca é obrigatório.")

        # Both lookups run side by side; if either fails the search fails
        by_code, by_name = await asyncio.gather(
            asyncio.to_thread(self.order_repo.find_by_order_code, term),
            asyncio.to_thread(self.order_repo.find_by_customer_prefix, term),
        )

        results: Dict[str, OrderEntry] = {}
        for entry in chain(by_code, by_name):
            results.setdefault(entry.id, entry)
        return list(results.values())
