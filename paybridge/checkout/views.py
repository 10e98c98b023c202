# module paybridge.checkout.views

"""Pages et API du parcours de paiement.
- Web: /checkout (widget SumUp + formulaire client), /payment/success, /payment/failure
- API: statut normalisé pour le polling navigateur, soumission du formulaire,
  confirmation + création de commande (save-customer-data)
Les erreurs métier des routes API sont traduites en JSON par app_setup.exceptions;
les pages HTML rendent elles-mêmes leur page d'échec.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from paybridge import config
from paybridge.utils.rate_limit import optional_rate_limit
from paybridge.utils.templates import templates

from .deps import get_orchestrator
from .errors import CheckoutError, ValidationError
from .labels import labels_for
from .models import CartSnapshot
from .service import CheckoutOrchestrator

logger = logging.getLogger(__name__)

web_router = APIRouter(tags=["Checkout Pages"])
api_router = APIRouter(prefix="/api", tags=["Checkout API"])

WIDGET_LOCALES = {"en": "en-US", "fr": "fr-FR", "nl": "nl-NL"}


def _page_context(**extra: Any) -> Dict[str, Any]:
    locale = config.CHECKOUT_LOCALE
    ctx: Dict[str, Any] = {"labels": labels_for(locale), "locale": locale[:2] or "en"}
    ctx.update(extra)
    return ctx


def _failure_page(request: Request, exc: CheckoutError, return_url: Optional[str]) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "failure.html",
        _page_context(message=exc.message, return_url=return_url),
        status_code=exc.status_code,
    )


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Corps JSON invalide")
    if not isinstance(body, dict):
        raise ValidationError("Corps JSON invalide")
    return body


@web_router.get(
    "/checkout",
    response_class=HTMLResponse,
    dependencies=[Depends(optional_rate_limit(times=30, seconds=60))],
)
async def checkout_page(
    request: Request,
    amount: Optional[str] = None,
    currency: Optional[str] = None,
    order_id: Optional[str] = None,
    return_url: Optional[str] = None,
    cart_items: Optional[str] = None,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """
    Page de paiement appelée par la boutique.
    - 400 si amount/currency manquent ou sont invalides (aucun appel SumUp).
    - 500 (page d'échec + lien retour boutique) si SumUp refuse la création.
    - Sinon: widget monté sur le checkout SumUp, panier renvoyé tel quel à la confirmation.
    """
    try:
        cart = CartSnapshot.from_query(cart_items)
        binding = await orchestrator.create_checkout(amount, currency, order_id, return_url, cart)
    except CheckoutError as e:
        if e.status_code >= 500:
            logger.error("checkout.page creation failed order_id=%s: %s", order_id, e.message)
        else:
            logger.info("checkout.page rejected: %s", e.message)
        return _failure_page(request, e, return_url)

    locale = config.CHECKOUT_LOCALE[:2] or "en"
    client_config = {
        "checkoutId": binding.session_id,
        "cartData": binding.cart_payload,
        "returnUrl": binding.return_destination,
        "tracked": binding.tracked,
        "widgetLocale": WIDGET_LOCALES.get(locale, "en-US"),
        "pollIntervalMs": int(config.POLL_INTERVAL_SECONDS * 1000),
        "pollTimeoutMs": int(config.POLL_TIMEOUT_SECONDS * 1000),
        "labels": labels_for(locale),
    }
    return templates.TemplateResponse(
        request,
        "checkout.html",
        _page_context(
            amount=f"{binding.amount:.2f}",
            currency=binding.currency,
            cart=binding.cart_payload,
            return_url=(return_url or "").strip() or None,
            sdk_url=config.SUMUP_SDK_URL,
            client_config=client_config,
        ),
    )


@web_router.get("/payment/success", response_class=HTMLResponse)
def payment_success(request: Request, checkout_id: Optional[str] = None,
                    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    session = orchestrator.store.get(checkout_id) if checkout_id else None
    return templates.TemplateResponse(
        request,
        "success.html",
        _page_context(checkout_id=checkout_id, order=session.commerce_order if session else None),
    )


@web_router.get("/payment/failure", response_class=HTMLResponse)
def payment_failure(request: Request, return_url: Optional[str] = None):
    labels = labels_for(config.CHECKOUT_LOCALE)
    return templates.TemplateResponse(
        request,
        "failure.html",
        _page_context(message=labels["failed"], return_url=return_url),
    )


@api_router.get("/check-payment/{session_id}")
async def check_payment(session_id: str, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Statut normalisé (PAID dès qu'une transaction est SUCCESSFUL) + checkout SumUp brut."""
    provider = await orchestrator.check_payment(session_id)
    return JSONResponse({"status": provider.status, "checkout": provider.raw})


@api_router.post("/checkout/{session_id}/submit")
async def submit_checkout(session_id: str, request: Request,
                          orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """
    Le widget a émis 'sent': enregistre le formulaire client (CREATED -> SUBMITTED).
    - 400 si le formulaire est incomplet, 404 pour un checkout non suivi.
    - Lance le polling serveur si SERVER_SIDE_POLLING est actif.
    """
    body = await _json_body(request)
    session = await orchestrator.submit_customer(session_id, body.get("customerData"))
    polling = False
    if config.SERVER_SIDE_POLLING:
        orchestrator.start_polling(session.session_id)
        polling = True
    return JSONResponse({"status": "submitted", "server_polling": polling, "session": session.to_dict()})


@api_router.post(
    "/save-customer-data",
    dependencies=[Depends(optional_rate_limit(times=20, seconds=60))],
)
async def save_customer_data(request: Request, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """
    Confirmation finale après un statut PAID côté navigateur.
    - Entrée JSON: {"checkoutId" (ou "sessionId"), "customerData": {...}, "cartData": {...} | null}
    - Réponses: success | partial_success (commande à réconcilier) | failed | pending
    - Idempotent: un second appel rejoue le résultat sans recréer de commande.
    """
    body = await _json_body(request)
    session_id = body.get("checkoutId") or body.get("sessionId")
    result = await orchestrator.confirm_payment(session_id, body.get("customerData"), body.get("cartData"))
    logger.info("checkout.save_customer_data session_id=%s status=%s", session_id, result.status)
    return JSONResponse(result.to_dict())
