"""
Parcours complets tels que les vit le navigateur:
page /checkout -> 'sent' (submit) -> polling check-payment -> save-customer-data -> redirection.
"""
import json
from urllib.parse import quote

import pytest

from paybridge.checkout.models import CheckoutStatus as S


def _open_checkout(client, fake_sumup, cart_data):
    params = {
        "amount": "10.00",
        "currency": "EUR",
        "order_id": "1001",
        "return_url": "https://shop.example/thanks?ref=abc",
        "cart_items": quote(json.dumps(cart_data)),
    }
    r = client.get("/checkout", params=params)
    assert r.status_code == 200
    return fake_sumup.last_id


def _config_from_page(html):
    start = html.index('<script id="checkout-config" type="application/json">') + len(
        '<script id="checkout-config" type="application/json">'
    )
    return json.loads(html[start:html.index("</script>", start)])


def test_paid_order_end_to_end(client, fake_sumup, fake_shopify, store, customer_data, cart_data):
    page = client.get(
        "/checkout",
        params={
            "amount": "10.00",
            "currency": "EUR",
            "order_id": "1001",
            "return_url": "https://shop.example/thanks?ref=abc",
            "cart_items": quote(json.dumps(cart_data)),
        },
    )
    cfg = _config_from_page(page.text)
    checkout_id = cfg["checkoutId"]
    assert cfg["tracked"] is True
    assert cfg["pollIntervalMs"] == 2000
    assert cfg["pollTimeoutMs"] == 120000
    assert cfg["returnUrl"] == "https://shop.example/thanks?ref=abc"

    # 'sent': formulaire valide enregistré
    assert client.post(f"/api/checkout/{checkout_id}/submit", json={"customerData": customer_data}).status_code == 200

    # Premier tick de polling: rien encore
    assert client.get(f"/api/check-payment/{checkout_id}").json()["status"] == "PENDING"

    # SumUp enregistre une transaction SUCCESSFUL, le drapeau de session reste PENDING
    fake_sumup.pay(checkout_id, "TXN-E2E")
    assert client.get(f"/api/check-payment/{checkout_id}").json()["status"] == "PAID"

    saved = client.post(
        "/api/save-customer-data",
        json={"checkoutId": checkout_id, "customerData": customer_data, "cartData": cfg["cartData"]},
    ).json()

    assert saved["status"] == "success"
    assert saved["session_status"] == "CONFIRMED"
    order = fake_shopify.payloads[0]["order"]
    assert order["line_items"] == [{"title": "Product", "quantity": 1, "price": "10.00", "variant_id": 4242}]
    assert order["transactions"][0]["amount"] == "10.00"
    assert order["transactions"][0]["currency"] == "EUR"
    assert order["transactions"][0]["authorization"] == "TXN-E2E"
    assert store.get(checkout_id).status is S.CONFIRMED

    # Page de succès atteinte après redirection
    success = client.get("/payment/success", params={"checkout_id": checkout_id})
    assert "#1001" in success.text


def test_declined_payment_end_to_end(client, fake_sumup, fake_shopify, store, customer_data, cart_data):
    checkout_id = _open_checkout(client, fake_sumup, cart_data)
    client.post(f"/api/checkout/{checkout_id}/submit", json={"customerData": customer_data})

    fake_sumup.decline(checkout_id)
    assert client.get(f"/api/check-payment/{checkout_id}").json()["status"] == "FAILED"

    saved = client.post(
        "/api/save-customer-data",
        json={"checkoutId": checkout_id, "customerData": customer_data, "cartData": cart_data},
    ).json()

    assert saved["status"] == "failed"
    assert fake_shopify.payloads == []
    assert store.get(checkout_id).status is S.FAILED
    # Pas de nouvelle soumission possible sur ce checkout: il faut en ouvrir un nouveau
    again = client.post(f"/api/checkout/{checkout_id}/submit", json={"customerData": customer_data})
    assert again.status_code == 409


def test_retry_after_failure_opens_distinct_checkout(client, fake_sumup, cart_data):
    first = _open_checkout(client, fake_sumup, cart_data)
    second = _open_checkout(client, fake_sumup, cart_data)
    assert first != second
    assert all(c["reference"].startswith("shopify-1001-") for c in fake_sumup.created)


@pytest.mark.parametrize("repeat", [2, 3])
def test_repeated_save_never_duplicates_order(client, fake_sumup, fake_shopify, customer_data, cart_data, repeat):
    checkout_id = _open_checkout(client, fake_sumup, cart_data)
    fake_sumup.pay(checkout_id)
    body = {"checkoutId": checkout_id, "customerData": customer_data, "cartData": cart_data}

    statuses = [client.post("/api/save-customer-data", json=body).json()["status"] for _ in range(repeat)]

    assert statuses == ["success"] * repeat
    assert len(fake_shopify.payloads) == 1


def test_anonymous_checkout_redirects_to_success_page(client, fake_sumup, fake_shopify, customer_data):
    page = client.get("/checkout", params={"amount": "25.50", "currency": "eur"})
    cfg = _config_from_page(page.text)
    assert cfg["tracked"] is False
    assert cfg["returnUrl"] == "http://testserver/payment/success"

    fake_sumup.pay(cfg["checkoutId"])
    saved = client.post(
        "/api/save-customer-data", json={"checkoutId": cfg["checkoutId"], "customerData": customer_data, "cartData": None}
    ).json()

    assert saved["status"] == "success"
    assert saved["mode"] == "tracking_only"
    assert fake_shopify.payloads == []
