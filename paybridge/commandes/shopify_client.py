"""
Adaptateur Shopify Admin API: création de commande (POST /orders.json).
- Une seule écriture distante, jamais rejouée.
- Adresse de facturation = adresse de livraison (pas de saisie séparée).
- Une ligne par article du panier, prix converti des unités mineures vers "X.YY".
- Une transaction unique « sale/success » portant le code d'autorisation SumUp.
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional
import logging

import httpx

from paybridge import config
from paybridge.checkout.errors import ConfigurationError, UpstreamError, ValidationError
from paybridge.checkout.models import CartSnapshot, CustomerRecord

logger = logging.getLogger(__name__)

SERVICE = "Shopify"
GATEWAY = "SumUp"

_TRANSPORT: Optional[httpx.AsyncBaseTransport] = None


@dataclass
class CommerceOrder:
    id: Any
    order_number: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "order_number": self.order_number}


# module paybridge.commandes.shopify_client
def to_major_units(minor: int) -> str:
    """1000 -> "10.00" (arrondi au centime, ROUND_HALF_UP)."""
    value = (Decimal(int(minor)) / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{value:.2f}"


def _address(customer: CustomerRecord) -> Dict[str, Any]:
    return {
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "address1": customer.address,
        "phone": customer.phone,
        "city": customer.city,
        "zip": customer.postal_code,
        "country": customer.country,
    }


def to_line_items(cart: CartSnapshot) -> List[Dict[str, Any]]:
    line_items: List[Dict[str, Any]] = []
    for item in cart.items:
        line: Dict[str, Any] = {
            "title": item.title or "Article",
            "quantity": item.quantity,
            "price": to_major_units(item.price),
        }
        if item.variant_id:
            line["variant_id"] = item.variant_id
        if item.sku:
            line["sku"] = item.sku
        line_items.append(line)
    return line_items


def build_order_payload(
    customer: CustomerRecord,
    cart: CartSnapshot,
    session_id: str,
    transaction_code: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Construit le corps {"order": {...}} envoyé à Shopify.
    - authorization: code de la transaction confirmée, sinon l'id de session SumUp.
    """
    address = _address(customer)
    return {
        "order": {
            "email": customer.email,
            "financial_status": "paid",
            "fulfillment_status": None,
            "send_receipt": True,
            "send_fulfillment_receipt": False,
            "note": f"Paid via SumUp. Checkout ID: {session_id}",
            "line_items": to_line_items(cart),
            "customer": {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
                "phone": customer.phone,
            },
            "billing_address": dict(address),
            "shipping_address": dict(address),
            "transactions": [
                {
                    "kind": "sale",
                    "status": "success",
                    "amount": to_major_units(cart.total_price or 0),
                    "currency": cart.currency or "EUR",
                    "gateway": GATEWAY,
                    "authorization": transaction_code or session_id,
                }
            ],
            "tags": "SumUp, Paid",
        }
    }


def require_shopify() -> str:
    if not config.SHOPIFY_STORE or not config.SHOPIFY_ACCESS_TOKEN:
        raise ConfigurationError("SHOPIFY_STORE / SHOPIFY_ACCESS_TOKEN manquant")
    return config.SHOPIFY_ACCESS_TOKEN


def orders_url() -> str:
    return f"https://{config.SHOPIFY_STORE}/admin/api/{config.SHOPIFY_API_VERSION}/orders.json"


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={
            "X-Shopify-Access-Token": require_shopify(),
            "Content-Type": "application/json",
        },
        timeout=config.HTTP_TIMEOUT_SECONDS,
        transport=_TRANSPORT,
    )


async def create_order(
    customer: CustomerRecord,
    cart: Optional[CartSnapshot],
    session_id: str,
    transaction_code: Optional[str] = None,
) -> CommerceOrder:
    """
    Crée la commande Shopify correspondant à un paiement confirmé.
    - Panier vide/absent: ValidationError, aucun appel distant.
    - Non-2xx ou erreur réseau: UpstreamError, pas de retry.
    - 2xx au corps illisible: la commande existe, CommerceOrder sans id.
    """
    if cart is None or cart.is_empty:
        raise ValidationError("Aucun article dans le panier", fields=["cartData.items"])

    payload = build_order_payload(customer, cart, session_id, transaction_code)
    logger.info("shopify.create_order session_id=%s items=%s", session_id, len(cart.items))
    try:
        async with _client() as client:
            response = await client.post(orders_url(), json=payload)
    except httpx.HTTPError as e:
        logger.error("shopify.create_order transport error session_id=%s: %s", session_id, e)
        raise UpstreamError(SERVICE, None, str(e)) from e

    if not response.is_success:
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        logger.error("shopify.create_order failed session_id=%s status=%s body=%s", session_id, response.status_code, body)
        raise UpstreamError(SERVICE, response.status_code, body)

    # 2xx: la commande existe côté Shopify même si le corps est illisible
    try:
        body = response.json()
    except ValueError:
        logger.warning(
            "shopify.create_order unreadable body session_id=%s status=%s", session_id, response.status_code
        )
        return CommerceOrder(id=None, order_number=None)
    order = (body.get("order") if isinstance(body, dict) else None) or {}
    logger.info("shopify.create_order ok session_id=%s order_id=%s number=%s", session_id, order.get("id"), order.get("order_number"))
    return CommerceOrder(id=order.get("id"), order_number=order.get("order_number"))
