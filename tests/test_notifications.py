"""Tests for WhatsApp notifications on status changes."""

import json

import pytest

from delivery_orders.application.notification_policy import (
    TEMPLATE_OUT_FOR_DELIVERY,
    TEMPLATE_READY_FOR_PICKUP,
    default_policy,
)
from delivery_orders.application.order_service import OrderService
from delivery_orders.core.config import Settings
from delivery_orders.domain.schemas import OrderEntry
from delivery_orders.infrastructure.notification_service import (
    WhatsAppNotificationService,
    normalize_phone,
    whatsapp_address,
)


@pytest.fixture
def twilio_client(mocker):
    client = mocker.MagicMock()
    client.messages.create.return_value = mocker.MagicMock(sid="SM123")
    return client


@pytest.fixture
def whatsapp(twilio_client):
    return WhatsAppNotificationService(
        client=twilio_client,
        templates={TEMPLATE_OUT_FOR_DELIVERY: "HXdelivery"},
        from_number="+5511900000000",
        country_code="55",
    )


@pytest.fixture
def customer_order(order_repo):
    return order_repo.seed(
        {
            "orderId": "424242",
            "status": "preparo",
            "deliveryMode": "delivery",
            "customer": {"name": "Maria Silva", "phone": "(11) 98765-4321"},
        }
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("(11) 98765-4321", "5511987654321"),
        ("11987654321", "5511987654321"),
        ("+55 11 98765-4321", "5511987654321"),
        ("55119876543", "55119876543"),
        ("8765-4321", "87654321"),
        ("", ""),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw, "55") == expected


def test_whatsapp_address():
    assert whatsapp_address("5511987654321") == "whatsapp:+5511987654321"
    assert whatsapp_address("+14155238886") == "whatsapp:+14155238886"
    assert whatsapp_address("whatsapp:+14155238886") == "whatsapp:+14155238886"


def test_send_template(whatsapp, twilio_client):
    sent = whatsapp.send_template("(11) 98765-4321", TEMPLATE_OUT_FOR_DELIVERY, [["Maria", "424242"]])

    assert sent is True
    twilio_client.messages.create.assert_called_once_with(
        from_="whatsapp:+5511900000000",
        to="whatsapp:+5511987654321",
        content_sid="HXdelivery",
        content_variables=json.dumps({"1": "Maria", "2": "424242"}),
    )


def test_send_template_flattens_groups(whatsapp, twilio_client):
    whatsapp.send_template("11987654321", TEMPLATE_OUT_FOR_DELIVERY, [["Maria"], ["424242", "30 min"]])

    variables = json.loads(twilio_client.messages.create.call_args.kwargs["content_variables"])
    assert variables == {"1": "Maria", "2": "424242", "3": "30 min"}


def test_send_template_swallows_api_errors(whatsapp, twilio_client):
    twilio_client.messages.create.side_effect = RuntimeError("401 Unauthorized")
    assert whatsapp.send_template("11987654321", TEMPLATE_OUT_FOR_DELIVERY, [["Maria"]]) is False


def test_send_template_unknown_template(whatsapp, twilio_client):
    assert whatsapp.send_template("11987654321", "missing_template", [["Maria"]]) is False
    twilio_client.messages.create.assert_not_called()


def test_send_template_without_phone(whatsapp, twilio_client):
    assert whatsapp.send_template("n/a", TEMPLATE_OUT_FOR_DELIVERY, [["Maria"]]) is False
    twilio_client.messages.create.assert_not_called()


def test_disabled_without_credentials(mocker):
    mocker.patch("delivery_orders.infrastructure.notification_service.settings.TWILIO_ACCOUNT_SID", None)
    client_class = mocker.patch("delivery_orders.infrastructure.notification_service.Client")

    service = WhatsAppNotificationService(templates={}, from_number="+5511900000000")

    assert service.enabled is False
    client_class.assert_not_called()
    assert service.send_template("11987654321", TEMPLATE_OUT_FOR_DELIVERY, []) is False


def test_default_policy():
    policy = default_policy(Settings())
    assert set(policy) == {"entrega", "pronto_retirada"}
    assert policy["entrega"][0] == TEMPLATE_OUT_FOR_DELIVERY
    assert policy["pronto_retirada"][0] == TEMPLATE_READY_FOR_PICKUP

    order = OrderEntry(id="abc", data={"orderId": "424242", "customer": {"name": "Maria Silva"}})
    assert policy["entrega"][1](order) == [["Maria", "424242"]]
    assert policy["pronto_retirada"][1](order) == [["Maria"], ["424242"]]


def test_policy_disabled_by_setting():
    assert default_policy(Settings(NOTIFY_ON_STATUS_CHANGE=False)) == {}


# --- Status updates trigger notifications ---

def test_out_for_delivery_notifies_customer(test_client, notifier, customer_order):
    response = test_client.patch(f"/orders/{customer_order}", json={"status": "entrega"})

    assert response.status_code == 200
    assert notifier.sent == [("(11) 98765-4321", TEMPLATE_OUT_FOR_DELIVERY, [["Maria", "424242"]])]


def test_ready_for_pickup_notifies_customer(test_client, notifier, customer_order):
    test_client.patch(f"/orders/{customer_order}", json={"status": "pronto_retirada"})
    assert notifier.sent == [("(11) 98765-4321", TEMPLATE_READY_FOR_PICKUP, [["Maria"], ["424242"]])]


def test_other_statuses_do_not_notify(test_client, notifier, customer_order):
    test_client.patch(f"/orders/{customer_order}", json={"status": "concluido"})
    assert notifier.sent == []


def test_notification_failure_does_not_change_response(test_client, notifier, order_repo, customer_order):
    notifier.error = RuntimeError("WhatsApp API down")

    response = test_client.patch(f"/orders/{customer_order}", json={"status": "entrega"})

    assert response.status_code == 200
    assert response.json() == {"message": f"Pedido {customer_order} atualizado com sucesso!"}
    assert order_repo.documents[customer_order]["status"] == "entrega"


def test_no_phone_no_notification(test_client, notifier, order_repo):
    order_id = order_repo.seed({"orderId": "1", "status": "preparo", "customer": {"name": "Ana"}})
    response = test_client.patch(f"/orders/{order_id}", json={"status": "entrega"})
    assert response.status_code == 200
    assert notifier.sent == []


def test_failed_update_sends_nothing(test_client, notifier):
    response = test_client.patch("/orders/nope", json={"status": "entrega"})
    assert response.status_code == 404
    assert notifier.sent == []


def test_empty_policy_disables_notifications(order_repo, config_repo, notifier, customer_order):
    service = OrderService(order_repo=order_repo, config_repo=config_repo, notifier=notifier, notification_policy={})

    order = service.update_status(customer_order, {"status": "entrega"})
    service.notify_status_change(order)

    assert notifier.sent == []


def test_normalize_phone_area_code_matching_country_code():
    # 11 digits starting with "55" read as already prefixed, even for area code 55
    assert normalize_phone("(55) 99123-4567", "55") == "55991234567"
    assert normalize_phone("(54) 99123-4567", "55") == "5554991234567"
