import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import OperationalError
from delivery_orders.core.config import settings
from delivery_orders.core.logging_config import setup_logging

# 1. Infrastructure & Application Imports
from delivery_orders.domain import models  # noqa: F401  (registers the tables on Base)
from delivery_orders.infrastructure.database import Base, engine
from delivery_orders.infrastructure.notification_service import WhatsAppNotificationService
from delivery_orders.infrastructure.repositories.order_repository import PostgresOrderRepository
from delivery_orders.infrastructure.repositories.store_config_repository import PostgresStoreConfigRepository
from delivery_orders.application.notification_policy import default_policy
from delivery_orders.application.order_service import OrderService
from delivery_orders.interfaces import orders_api

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# DATABASE CONNECTION (With Retry Logic)
# ---------------------------------------------------------
def connect_database(retries: int = settings.DB_CONNECT_RETRIES,
                     wait_seconds: float = settings.DB_CONNECT_WAIT_SECONDS) -> bool:
    for attempt in range(retries):
        try:
            logger.info(f"🔄 Attempting DB connection ({attempt + 1}/{retries})...")
            Base.metadata.create_all(bind=engine)
            logger.info("✅ DB Connected and Tables Created.")
            return True
        except OperationalError:
            logger.warning(f"⚠️ DB not ready yet. Waiting {wait_seconds}s...")
            time.sleep(wait_seconds)
    logger.error("❌ Could not connect to DB after retries.")
    return False


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def build_order_service() -> OrderService:
    return OrderService(
        order_repo=PostgresOrderRepository(),
        config_repo=PostgresStoreConfigRepository(),
        notifier=WhatsAppNotificationService(),
        notification_policy=default_policy(),
    )


def create_app(order_service: Optional[OrderService] = None) -> FastAPI:
    """Build the API. Pass `order_service` to skip the database and wire fakes."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if order_service is None:
            app.state.database_ready = await asyncio.to_thread(connect_database)
            try:
                app.state.order_service = build_order_service()
            except Exception:
                logger.exception("❌ Error initializing services")
        yield

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    if order_service is not None:
        app.state.order_service = order_service
        app.state.database_ready = True

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include Routers
    app.include_router(orders_api.router)

    @app.get("/", response_class=PlainTextResponse)
    def liveness():
        return f"{settings.PROJECT_NAME} está funcionando!"

    @app.get("/health")
    def health_check(request: Request):
        # Without the database the service still answers, but every order route fails
        ready = getattr(request.app.state, "database_ready", False)
        has_service = hasattr(request.app.state, "order_service")
        status = "active" if ready and has_service else "degraded"
        return {"status": status, "system": settings.PROJECT_NAME}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
