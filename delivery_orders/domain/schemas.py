from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Fields only the server may set
SERVER_FIELDS = ("id", "orderId", "status", "timestamp")


class Customer(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    phone: str | None = None


class Totals(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: float | None = None


class OrderCreate(BaseModel):
    """Order payload sent by the storefront. Unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    items: list[Any] = Field(..., min_length=1)
    customer: Customer | None = None
    deliveryMode: Literal["delivery", "pickup"] | None = None
    totals: Totals | None = None


class StatusUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    status: str = Field(..., min_length=1)


class OrderEntry(BaseModel):
    """One stored order as returned by list and search routes."""

    id: str
    data: dict[str, Any]


class OrderTracking(BaseModel):
    """Reduced view used by the customer's tracking page."""

    status: str | None = None
    orderId: str | None = None
    deliveryMode: str | None = None


class CreatedOrder(BaseModel):
    message: str
    id: str
    data: dict[str, Any]


class DashboardStats(BaseModel):
    totalRevenue: float = 0
    totalOrdersConcluded: int = 0
    averageTicket: float = 0
    todaysOrdersCount: int = 0


class StoreStatus(BaseModel):
    status: Literal["aberta", "fechada"]


class DaySchedule(BaseModel):
    model_config = ConfigDict(extra="ignore")

    isClosed: bool = False
    open: str | None = None
    close: str | None = None
