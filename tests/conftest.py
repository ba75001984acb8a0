"""Test fixtures: in-memory stand-ins for the database and WhatsApp clients."""

import uuid
from datetime import datetime, timedelta

import pytest
import pytz
from fastapi.testclient import TestClient

from delivery_orders.application.notification_policy import default_policy
from delivery_orders.application.order_service import OrderService
from delivery_orders.core.config import settings
from delivery_orders.domain.schemas import OrderEntry
from delivery_orders.interfaces.INotificationService import INotificationService
from delivery_orders.interfaces.IOrderRepository import IOrderRepository
from delivery_orders.interfaces.IStoreConfigRepository import IStoreConfigRepository
from delivery_orders.main import create_app

SAO_PAULO = pytz.timezone("America/Sao_Paulo")

# A Wednesday, mid-morning in the shop's timezone
NOW = SAO_PAULO.localize(datetime(2024, 5, 15, 10, 0))


class InMemoryOrderRepository(IOrderRepository):
    """Dict-backed repository; timestamps come from an increasing fake clock."""

    def __init__(self):
        self.documents = {}
        self.writes = 0
        self._next_timestamp = NOW - timedelta(hours=1)

    def seed(self, data, timestamp=None, order_id=None):
        """Insert a document directly, bypassing the service."""
        order_id = order_id or uuid.uuid4().hex
        if timestamp is None:
            timestamp = self._tick()
        self.documents[order_id] = {**data, "timestamp": timestamp}
        return order_id

    def _tick(self):
        self._next_timestamp += timedelta(seconds=1)
        return self._next_timestamp

    def _entry(self, order_id):
        return OrderEntry(id=order_id, data=dict(self.documents[order_id]))

    def add(self, data):
        self.writes += 1
        order_id = self.seed(data)
        return self._entry(order_id)

    def get(self, order_id):
        if order_id not in self.documents:
            return None
        return self._entry(order_id)

    def update_status(self, order_id, status):
        self.writes += 1
        self.documents[order_id]["status"] = status

    def _sorted(self, ids, reverse=False):
        ids = sorted(ids, key=lambda i: self.documents[i]["timestamp"], reverse=reverse)
        return [self._entry(i) for i in ids]

    def list_all(self):
        return self._sorted(self.documents, reverse=True)

    def list_by_status(self, statuses):
        return self._sorted([i for i, d in self.documents.items() if d.get("status") in statuses])

    def list_created_since(self, start):
        return [self._entry(i) for i, d in self.documents.items() if d["timestamp"] >= start]

    def find_by_order_code(self, code):
        return [self._entry(i) for i, d in self.documents.items() if d.get("orderId") == code]

    def find_by_customer_prefix(self, prefix):
        end = prefix + "\uf8ff"
        matches = []
        for order_id, data in self.documents.items():
            name = (data.get("customer") or {}).get("name")
            if name is not None and prefix <= name <= end:
                matches.append((name, order_id))
        return [self._entry(order_id) for _, order_id in sorted(matches)]


class InMemoryStoreConfigRepository(IStoreConfigRepository):
    def __init__(self):
        self.documents = {}

    def get_document(self, key):
        document = self.documents.get(key)
        return dict(document) if document is not None else None


class RecordingNotifier(INotificationService):
    def __init__(self):
        self.sent = []
        self.error = None

    def send_template(self, phone, template_name, parameter_groups):
        if self.error:
            raise self.error
        self.sent.append((phone, template_name, parameter_groups))
        return True


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def set(self, hour, minute=0):
        self.now = SAO_PAULO.localize(datetime(2024, 5, 15, hour, minute))

    def __call__(self):
        return self.now


@pytest.fixture
def order_repo():
    return InMemoryOrderRepository()


@pytest.fixture
def config_repo():
    return InMemoryStoreConfigRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def order_service(order_repo, config_repo, notifier, clock):
    return OrderService(
        order_repo=order_repo,
        config_repo=config_repo,
        notifier=notifier,
        notification_policy=default_policy(settings),
        clock=clock,
    )


@pytest.fixture
def test_client(order_service):
    """Create a test client for the app, wired to the in-memory fakes."""
    return TestClient(create_app(order_service=order_service))
