import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from paybridge.app_setup.exceptions import error_payload
from paybridge.checkout.deps import get_orchestrator
from paybridge.checkout.errors import CheckoutError
from paybridge.checkout.service import CheckoutOrchestrator
from paybridge.payments import sumup_client

logger = logging.getLogger(__name__)
router = APIRouter(tags=["SumUp"])

# module paybridge.payments.views
@router.post("/webhook/sumup", include_in_schema=False)
async def webhook_sumup(request: Request, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """
    Webhook SumUp (CHECKOUT_STATUS_CHANGED).
    - Toujours acquitté par 200 "OK", même si le corps est illisible ou le checkout inconnu.
    - Le statut est relu chez SumUp puis appliqué à la session suivie (même machine à états
      que le polling); matérialise si le client a déjà soumis ses coordonnées.
    """
    try:
        payload: Dict[str, Any] = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    logger.info("payments.webhook event_type=%s id=%s", payload.get("event_type"), payload.get("id"))
    try:
        outcome = await orchestrator.handle_notification(payload)
        logger.info("payments.webhook outcome=%s", outcome)
    except CheckoutError as e:
        logger.warning("payments.webhook not processed: %s", e.message)
    return PlainTextResponse("OK", status_code=200)


@router.get("/transactions")
async def transactions():
    """Diagnostic: historique des transactions du compte marchand."""
    data = await sumup_client.list_transactions()
    return JSONResponse({"status": "success", "transactions": data})


@router.get("/test-sumup")
async def test_sumup():
    """Diagnostic: vérifie la clé API via le profil marchand (GET /me)."""
    try:
        merchant = await sumup_client.get_merchant_profile()
    except CheckoutError as e:
        logger.error("payments.test_sumup failed: %s", e.message)
        payload = error_payload(e)
        payload["hint"] = "Check if your API key is valid and has the correct permissions"
        return JSONResponse(payload, status_code=500)
    return JSONResponse({"status": "success", "message": "SumUp connection successful", "merchant": merchant})
