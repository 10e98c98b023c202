import json

import httpx
import pytest

from paybridge.checkout.errors import UpstreamError, ValidationError
from paybridge.checkout.models import CartSnapshot, CustomerRecord
from paybridge.commandes import shopify_client


@pytest.fixture
def customer(customer_data):
    return CustomerRecord.parse(customer_data)


@pytest.fixture
def cart(cart_data):
    return CartSnapshot.parse(cart_data)


def test_to_major_units():
    assert shopify_client.to_major_units(1000) == "10.00"
    assert shopify_client.to_major_units(1999) == "19.99"
    assert shopify_client.to_major_units(5) == "0.05"


def test_order_payload_shape(customer, cart):
    order = shopify_client.build_order_payload(customer, cart, "chk_1", "TXN123")["order"]

    assert order["email"] == "aoife@example.com"
    assert order["financial_status"] == "paid"
    assert order["fulfillment_status"] is None
    assert order["send_receipt"] is True
    assert order["send_fulfillment_receipt"] is False
    assert order["note"] == "Paid via SumUp. Checkout ID: chk_1"
    assert order["tags"] == "SumUp, Paid"
    assert order["billing_address"] == order["shipping_address"]
    assert order["shipping_address"]["address1"] == "12 O'Connell Street"
    assert order["shipping_address"]["zip"] == "D01 F5P2"
    assert order["line_items"] == [{"title": "Product", "quantity": 1, "price": "10.00", "variant_id": 4242}]
    assert order["transactions"] == [
        {
            "kind": "sale",
            "status": "success",
            "amount": "10.00",
            "currency": "EUR",
            "gateway": "SumUp",
            "authorization": "TXN123",
        }
    ]


def test_authorization_falls_back_to_session_id(customer, cart):
    order = shopify_client.build_order_payload(customer, cart, "chk_1")["order"]
    assert order["transactions"][0]["authorization"] == "chk_1"


def test_line_item_title_fallback_and_sku(customer):
    cart = CartSnapshot.parse({"items": [{"quantity": 2, "price": 250, "sku": "SKU-1"}]})
    items = shopify_client.to_line_items(cart)
    assert items == [{"title": "Article", "quantity": 2, "price": "2.50", "sku": "SKU-1"}]


@pytest.mark.parametrize("empty", [None, CartSnapshot(items=[])])
async def test_empty_cart_never_calls_shopify(monkeypatch, customer, empty):
    calls = []
    monkeypatch.setattr(shopify_client, "_TRANSPORT", httpx.MockTransport(lambda r: calls.append(r)))

    with pytest.raises(ValidationError):
        await shopify_client.create_order(customer, empty, "chk_1")
    assert calls == []


async def test_create_order_posts_to_admin_api(monkeypatch, customer, cart):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("x-shopify-access-token")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"order": {"id": 777, "order_number": 1001}})

    monkeypatch.setattr(shopify_client, "_TRANSPORT", httpx.MockTransport(handler))
    order = await shopify_client.create_order(customer, cart, "chk_1", "TXN123")

    assert order.to_dict() == {"id": 777, "order_number": 1001}
    assert seen["url"] == "https://test-shop.myshopify.com/admin/api/2024-10/orders.json"
    assert seen["token"] == "shpat_test"
    assert seen["body"]["order"]["line_items"][0]["price"] == "10.00"


async def test_create_order_rejected_is_upstream_error(monkeypatch, customer, cart):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"errors": {"line_items": ["is invalid"]}})

    monkeypatch.setattr(shopify_client, "_TRANSPORT", httpx.MockTransport(handler))
    with pytest.raises(UpstreamError) as exc:
        await shopify_client.create_order(customer, cart, "chk_1")
    assert exc.value.service == "Shopify"
    assert exc.value.upstream_status == 422


async def test_created_order_with_unreadable_body_is_not_an_error(monkeypatch, customer, cart):
    # 201 mais corps HTML: la commande existe, seul son numéro est inconnu
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, text="<html>created</html>")

    monkeypatch.setattr(shopify_client, "_TRANSPORT", httpx.MockTransport(handler))
    order = await shopify_client.create_order(customer, cart, "chk_1")

    assert order.to_dict() == {"id": None, "order_number": None}


async def test_missing_credentials_never_post(monkeypatch, customer, cart):
    from paybridge import config
    from paybridge.checkout.errors import ConfigurationError

    calls = []
    monkeypatch.setattr(config, "SHOPIFY_ACCESS_TOKEN", "")
    monkeypatch.setattr(shopify_client, "_TRANSPORT", httpx.MockTransport(lambda r: calls.append(r)))

    with pytest.raises(ConfigurationError):
        await shopify_client.create_order(customer, cart, "chk_1")
    assert calls == []
