from typing import Any, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Request
import logging

from delivery_orders.application.order_service import OrderService
from delivery_orders.domain.exceptions import NotFoundError, ValidationError
from delivery_orders.domain.schemas import (
    CreatedOrder,
    DashboardStats,
    OrderEntry,
    OrderTracking,
    StoreStatus,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def get_order_service(request: Request) -> OrderService:
    """Retrieves the OrderService built by the composition root (app.state)."""
    service = getattr(request.app.state, "order_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Serviço indisponível.")
    return service


# --- OPERATIONS PANEL ---

@router.get("/active-orders", response_model=List[OrderEntry])
def list_active_orders(service: OrderService = Depends(get_order_service)):
    """Orders still needing attention, oldest first."""
    try:
        return service.list_active_orders()
    except Exception:
        logger.exception("❌ Failed to list active orders")
        raise HTTPException(status_code=500, detail="Erro ao buscar pedidos ativos.")


@router.get("/dashboard-stats", response_model=DashboardStats)
def dashboard_stats(service: OrderService = Depends(get_order_service)):
    try:
        return service.dashboard_stats()
    except Exception:
        logger.exception("❌ Failed to compute dashboard stats")
        raise HTTPException(status_code=500, detail="Erro ao buscar dados do dashboard.")


@router.get("/search", response_model=List[OrderEntry])
async def search_orders(term: Optional[str] = None, service: OrderService = Depends(get_order_service)):
    """Exact order code or customer name prefix."""
    try:
        return await service.search(term)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception(f"❌ Search failed for term={term!r}")
        raise HTTPException(status_code=500, detail="Erro ao realizar busca.")


@router.get("/orders", response_model=List[OrderEntry])
def list_orders(service: OrderService = Depends(get_order_service)):
    try:
        return service.list_orders()
    except Exception:
        logger.exception("❌ Failed to list orders")
        raise HTTPException(status_code=500, detail="Erro ao buscar pedidos.")


@router.patch("/orders/{order_id}")
def update_order_status(
    order_id: str,
    background_tasks: BackgroundTasks,
    payload: Any = Body(None),
    service: OrderService = Depends(get_order_service),
):
    try:
        order = service.update_status(order_id, payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(f"❌ Failed to update order {order_id}")
        raise HTTPException(status_code=500, detail="Erro ao atualizar pedido.")

    # Runs after the response is sent, failures only reach the logs
    background_tasks.add_task(service.notify_status_change, order)
    return {"message": f"Pedido {order_id} atualizado com sucesso!"}


# --- CUSTOMER APP ---

@router.get("/orders/{order_id}", response_model=OrderTracking)
def get_order_status(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        return service.get_tracking(order_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception(f"❌ Failed to read order {order_id}")
        raise HTTPException(status_code=500, detail="Erro ao buscar o pedido.")


@router.post("/orders", response_model=CreatedOrder, status_code=201)
def create_order(payload: Any = Body(None), service: OrderService = Depends(get_order_service)):
    try:
        return service.create_order(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("❌ Failed to create order")
        raise HTTPException(status_code=500, detail="Erro ao criar pedido.")


@router.get("/store-status", response_model=StoreStatus)
def get_store_status(service: OrderService = Depends(get_order_service)):
    try:
        return service.store_status()
    except Exception:
        logger.exception("❌ Failed to compute store status")
        raise HTTPException(status_code=500, detail="Erro ao verificar status da loja.")
