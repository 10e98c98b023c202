"""
Adaptateur SumUp: centralise les appels REST (checkouts, statut, diagnostics).
- Un seul essai par appel, pas de retry.
- Toute réponse non-2xx devient UpstreamError(status, body) avec le body tel quel.
- Le statut de session est toujours normalisé (voir normalize_status).
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

import httpx

from paybridge import config
from paybridge.checkout.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

SERVICE = "SumUp"
SUCCESSFUL = "SUCCESSFUL"
PAID = "PAID"
FAILED = "FAILED"

# Point d'injection du transport httpx (tests: httpx.MockTransport)
_TRANSPORT: Optional[httpx.AsyncBaseTransport] = None


@dataclass
class ProviderSession:
    id: str
    status: str
    raw_status: str
    transactions: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in (PAID, FAILED)

    @property
    def transaction_code(self) -> Optional[str]:
        txn = successful_transaction(self.transactions)
        return (txn or {}).get("transaction_code") or None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "status": self.status, "raw_status": self.raw_status, "transactions": self.transactions}


# module paybridge.payments.sumup_client
def successful_transaction(transactions: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    for txn in transactions or []:
        if isinstance(txn, dict) and str(txn.get("status") or "").upper() == SUCCESSFUL:
            return txn
    return None


def normalize_status(raw_status: Optional[str], transactions: Optional[List[Dict[str, Any]]]) -> str:
    """
    Statut effectif d'un checkout SumUp.
    - PAID dès qu'une transaction est SUCCESSFUL, quel que soit le statut de session
      (le drapeau de session peut rester PENDING après un débit réussi).
    - Sinon le statut brut en majuscules (PENDING, FAILED, ...).
    """
    if successful_transaction(transactions):
        return PAID
    return str(raw_status or "").upper()


def to_provider_session(data: Dict[str, Any]) -> ProviderSession:
    raw_status = str((data or {}).get("status") or "")
    transactions = (data or {}).get("transactions") or []
    return ProviderSession(
        id=str((data or {}).get("id") or ""),
        status=normalize_status(raw_status, transactions),
        raw_status=raw_status,
        transactions=transactions,
        raw=data or {},
    )


def require_sumup() -> str:
    """Retourne la clé API SumUp ou lève ConfigurationError si absente."""
    if not config.SUMUP_API_KEY:
        raise ConfigurationError("SUMUP_API_KEY manquant")
    return config.SUMUP_API_KEY


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=config.SUMUP_BASE_URL,
        headers={
            "Authorization": f"Bearer {require_sumup()}",
            "Content-Type": "application/json",
        },
        timeout=config.HTTP_TIMEOUT_SECONDS,
        transport=_TRANSPORT,
    )


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


async def _request(method: str, path: str, **kwargs: Any) -> Any:
    try:
        async with _client() as client:
            response = await client.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        logger.error("sumup.%s %s transport error: %s", method, path, e)
        raise UpstreamError(SERVICE, None, str(e)) from e
    if not response.is_success:
        body = _body(response)
        logger.error("sumup.%s %s failed status=%s body=%s", method, path, response.status_code, body)
        raise UpstreamError(SERVICE, response.status_code, body)
    return _body(response)


async def open_session(
    *,
    reference: str,
    amount: Decimal,
    currency: str,
    payee: str,
    description: str,
) -> ProviderSession:
    """
    Crée un checkout SumUp (POST /checkouts).
    - reference: checkout_reference unique par tentative
    - payee: pay_to_email du marchand
    Retour: ProviderSession (id attribué par SumUp, statut initial PENDING)
    """
    payload = {
        "checkout_reference": reference,
        "amount": float(amount),
        "currency": currency,
        "pay_to_email": payee,
        "description": description,
    }
    logger.info("sumup.open_session reference=%s amount=%s currency=%s", reference, amount, currency)
    data = await _request("POST", "/checkouts", json=payload)
    session = to_provider_session(data)
    if not session.id:
        raise UpstreamError(SERVICE, None, data)
    return session


async def get_session_status(session_id: str) -> ProviderSession:
    """Lit un checkout (GET /checkouts/{id}) et normalise son statut."""
    data = await _request("GET", f"/checkouts/{session_id}")
    session = to_provider_session(data)
    logger.debug("sumup.status session_id=%s raw=%s normalized=%s", session_id, session.raw_status, session.status)
    return session


async def get_merchant_profile() -> Dict[str, Any]:
    """Diagnostic: profil marchand (GET /me)."""
    return await _request("GET", "/me")


async def list_transactions() -> Any:
    """Diagnostic: historique des transactions (GET /me/transactions)."""
    return await _request("GET", "/me/transactions")
