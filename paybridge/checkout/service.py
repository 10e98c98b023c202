"""
Cas d'usage 'checkout': orchestre SumUp, Shopify, le store et la machine à états.

Étapes du parcours:
  1) create_checkout: validation, checkout SumUp, enregistrement (si order_id fourni).
  2) submit_customer: formulaire client valide -> CREATED -> SUBMITTED.
  3) check_payment / refresh_status: statut normalisé (PENDING*, PAID, FAILED).
  4) confirm_payment: sur PAID, matérialise la commande Shopify une seule fois.
  5) handle_notification: webhook SumUp, même machine à états que le polling.

Garantie « exactly-once »: toute lecture/écriture d'une session passe par le verrou
de session (SessionLatch); le résultat de matérialisation est mémorisé et rejoué
tel quel aux appels suivants, jusqu'à l'éviction de la session (prune, SESSION_TTL_SECONDS).
"""
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
import time

from paybridge import config
from paybridge.payments import sumup_client
from paybridge.commandes import shopify_client

from . import state
from .errors import CheckoutError, SessionNotFoundError, UpstreamError, ValidationError
from .latch import SessionLatch
from .models import (
    CartSnapshot,
    CheckoutBinding,
    CheckoutSession,
    CheckoutStatus,
    ConfirmationResult,
    CustomerRecord,
    parse_amount,
    parse_currency,
    utcnow,
)
from .poller import TIMED_OUT, StatusPoller
from .store import SessionStore

logger = logging.getLogger(__name__)

S = CheckoutStatus


# module paybridge.checkout.service
def make_reference(order_ref: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """
    Référence unique par tentative: shopify-{order_id}-{epoch_ms} ou shopify-{epoch_ms}.
    Deux tentatives pour la même commande restent distinctes grâce à l'horodatage.
    """
    ts = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"shopify-{order_ref}-{ts}" if order_ref else f"shopify-{ts}"


def success_destination() -> str:
    return f"{config.BASE_URL}/payment/success"


class CheckoutOrchestrator:
    def __init__(
        self,
        store: SessionStore,
        latch: Optional[SessionLatch] = None,
        *,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        session_ttl: Optional[float] = None,
        session_max_age: Optional[float] = None,
    ) -> None:
        self.store = store
        self.latch = latch or SessionLatch()
        self.poll_interval = poll_interval if poll_interval is not None else config.POLL_INTERVAL_SECONDS
        self.poll_timeout = poll_timeout if poll_timeout is not None else config.POLL_TIMEOUT_SECONDS
        self.session_ttl = session_ttl if session_ttl is not None else config.SESSION_TTL_SECONDS
        self.session_max_age = session_max_age if session_max_age is not None else config.SESSION_MAX_AGE_SECONDS
        self.pollers: Dict[str, StatusPoller] = {}

    # --- 1) Création ---------------------------------------------------------
    async def create_checkout(
        self,
        amount: Any,
        currency: Any,
        order_ref: Optional[str] = None,
        return_url: Optional[str] = None,
        cart_data: Any = None,
    ) -> CheckoutBinding:
        """
        Ouvre un checkout SumUp et retourne la liaison à rendre côté navigateur.
        - ValidationError avant tout appel sortant (montant <= 0, devise manquante...).
        - UpstreamError si SumUp échoue: rien n'est enregistré.
        - La session n'est mémorisée que si order_ref est fourni (checkouts anonymes non suivis).
        """
        value = parse_amount(amount)
        code = parse_currency(currency)
        order_ref = (order_ref or "").strip() or None
        return_url = (return_url or "").strip() or None
        cart = cart_data if isinstance(cart_data, CartSnapshot) else CartSnapshot.parse(cart_data)

        self.prune()
        reference = make_reference(order_ref)
        provider = await sumup_client.open_session(
            reference=reference,
            amount=value,
            currency=code,
            payee=config.SUMUP_EMAIL,
            description=f"Shopify Order {order_ref or ''}".strip(),
        )
        logger.info("checkout.created session_id=%s reference=%s", provider.id, reference)

        tracked = order_ref is not None
        if tracked:
            self.store.put(
                CheckoutSession(
                    session_id=provider.id,
                    amount=value,
                    currency=code,
                    checkout_reference=reference,
                    order_reference=order_ref,
                    return_url=return_url,
                    cart_snapshot=cart,
                )
            )
        return CheckoutBinding(
            session_id=provider.id,
            amount=value,
            currency=code,
            cart_payload=cart.model_dump() if cart else None,
            return_destination=return_url or success_destination(),
            tracked=tracked,
        )

    # --- 2) Soumission -------------------------------------------------------
    async def submit_customer(self, session_id: str, customer_data: Any) -> CheckoutSession:
        """
        Le widget a signalé l'envoi du paiement: valide le formulaire puis CREATED -> SUBMITTED.
        Formulaire invalide: ValidationError, SumUp n'est pas contacté.
        """
        session_id = _require_session_id(session_id)
        customer = CustomerRecord.parse(customer_data)
        async with self.latch.hold(session_id):
            session = self.store.get(session_id)
            if session is None:
                raise SessionNotFoundError(f"Session inconnue: {session_id}")
            state.transition(session, S.SUBMITTED)
            session.customer = customer
            self.store.update(session)
        logger.info("checkout.submitted session_id=%s", session_id)
        return session

    # --- 3) Statut -----------------------------------------------------------
    async def check_payment(self, session_id: str) -> sumup_client.ProviderSession:
        """Lecture seule du statut SumUp normalisé (route de polling navigateur)."""
        return await sumup_client.get_session_status(_require_session_id(session_id))

    async def refresh_status(self, session_id: str) -> str:
        """
        Relit SumUp et applique le statut sur la session suivie.
        Sur CONFIRMED avec un client connu, matérialise (une seule fois).
        Retourne le statut normalisé (utilisé comme check() du StatusPoller).
        """
        async with self.latch.hold(session_id):
            provider = await sumup_client.get_session_status(session_id)
            session = self.store.get(session_id)
            if session is None:
                return provider.status
            self._apply(session, provider)
            if session.status is S.CONFIRMED and session.customer is not None and session.result is None:
                await self._materialize(session, None)
            self.store.update(session)
            return provider.status

    # --- 4) Confirmation -----------------------------------------------------
    async def confirm_payment(self, session_id: str, customer_data: Any, cart_data: Any = None) -> ConfirmationResult:
        """
        Confirmation déclenchée par le navigateur après un statut PAID.
        - Valide session_id et formulaire avant tout appel sortant.
        - Rejoue le résultat mémorisé si la session est déjà confirmée/échouée.
        - Adopte un checkout anonyme inconnu du store pour garantir l'unicité.
        """
        session_id = _require_session_id(session_id)
        customer = CustomerRecord.parse(customer_data)
        client_cart = CartSnapshot.parse(cart_data)

        async with self.latch.hold(session_id):
            session = self.store.get(session_id)
            if session is not None and session.result is not None:
                logger.info("checkout.confirm replay session_id=%s status=%s", session_id, session.result.status)
                return session.result
            if session is not None and session.status is S.FAILED:
                return _failed_result()

            provider = await sumup_client.get_session_status(session_id)

            if session is None:
                session = _adopt(session_id, provider, client_cart)
                self.store.put(session)
            if session.status in (S.CREATED, S.SUBMITTED):
                state.transition(session, S.SUBMITTED)
            session.customer = customer

            self._apply(session, provider)
            if session.status is S.CONFIRMED:
                result = await self._materialize(session, client_cart)
            elif session.status is S.FAILED:
                result = _failed_result()
            else:
                result = ConfirmationResult(
                    status="pending",
                    message="Paiement en cours de vérification",
                    session_status=session.status,
                )
            self.store.update(session)
            return result

    # --- 5) Webhook ----------------------------------------------------------
    async def handle_notification(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Notification asynchrone SumUp ({"event_type": "CHECKOUT_STATUS_CHANGED", "id": ...}).
        Le contenu n'est pas cru sur parole: le statut est relu chez SumUp.
        Ne lève jamais: le webhook est toujours acquitté.
        """
        session_id = str((payload or {}).get("id") or (payload or {}).get("checkout_id") or "").strip()
        if not session_id:
            return {"handled": False, "reason": "no_checkout_id"}
        if self.store.get(session_id) is None:
            return {"handled": False, "reason": "untracked", "session_id": session_id}
        try:
            status = await self.refresh_status(session_id)
        except UpstreamError as e:
            logger.warning("checkout.webhook refresh failed session_id=%s: %s", session_id, e)
            return {"handled": False, "reason": "upstream_error", "session_id": session_id}
        session = self.store.get(session_id)
        return {
            "handled": True,
            "session_id": session_id,
            "provider_status": status,
            "session_status": session.status.value if session else None,
        }

    # --- Polling serveur -----------------------------------------------------
    def start_polling(self, session_id: str) -> StatusPoller:
        """Lance (ou retourne) le poller serveur de la session."""
        existing = self.pollers.get(session_id)
        if existing is not None and existing.running:
            return existing

        async def _check() -> str:
            return await self.refresh_status(session_id)

        poller = StatusPoller(_check, interval=self.poll_interval, timeout=self.poll_timeout, label=session_id)
        self.pollers[session_id] = poller
        task = poller.start()
        task.add_done_callback(lambda t: self._on_poll_done(session_id, t))
        return poller

    def _on_poll_done(self, session_id: str, task: Any) -> None:
        self.pollers.pop(session_id, None)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error("checkout.poller crashed session_id=%s: %s", session_id, task.exception())
            return
        if task.result() == TIMED_OUT:
            session = self.store.get(session_id)
            if session is not None and state.can_transition(session.status, S.TIMED_OUT):
                state.transition(session, S.TIMED_OUT)
                self.store.update(session)
                logger.info("checkout.timed_out session_id=%s", session_id)

    def cancel_polling(self) -> None:
        for poller in list(self.pollers.values()):
            poller.cancel()

    # --- Éviction -------------------------------------------------------------
    def prune(self, now: Optional[datetime] = None) -> int:
        """
        Retire du store les sessions périmées:
        - CONFIRMED/FAILED résolues depuis plus de session_ttl (le résultat n'est plus rejoué);
        - toute session créée depuis plus de session_max_age.
        Une session verrouillée ou suivie par un poller est conservée.
        """
        now = now or utcnow()
        removed = 0
        for session in self.store.values():
            if self.latch.is_held(session.session_id) or session.session_id in self.pollers:
                continue
            resolved_age = (now - session.resolved_at).total_seconds() if session.resolved_at else None
            age = (now - session.created_at).total_seconds()
            if (resolved_age is not None and resolved_age > self.session_ttl) or age > self.session_max_age:
                self.store.remove(session.session_id)
                removed += 1
        if removed:
            logger.info("checkout.prune removed=%s remaining=%s", removed, len(self.store.values()))
        return removed

    # --- Interne -------------------------------------------------------------
    def _apply(self, session: CheckoutSession, provider: sumup_client.ProviderSession) -> None:
        previous = session.status
        new_status = state.apply_provider_status(session, provider.status)
        if new_status is S.CONFIRMED:
            session.transaction_code = provider.transaction_code
        if new_status is not None and new_status is not previous:
            logger.info("checkout.transition session_id=%s %s -> %s", session.session_id, previous.value, new_status.value)

    async def _materialize(self, session: CheckoutSession, client_cart: Optional[CartSnapshot]) -> ConfirmationResult:
        """
        Crée la commande Shopify d'une session CONFIRMED (appelé sous verrou, une seule fois).
        - Panier: snapshot mémorisé à la création, sinon panier renvoyé par le navigateur.
        - Sans panier: mode « tracking_only », paiement confirmé, aucune commande demandée.
        - Échec après confirmation (Shopify ou configuration): « partial_success »
          journalisé pour réconciliation, mémorisé et jamais rejoué.
        """
        cart = session.cart_snapshot if session.cart_snapshot and not session.cart_snapshot.is_empty else client_cart
        if cart is None or cart.is_empty:
            logger.info("checkout.materialize tracking_only session_id=%s", session.session_id)
            result = ConfirmationResult(
                status="success",
                message="Paiement confirmé (aucun panier: pas de commande créée)",
                session_status=session.status,
                mode="tracking_only",
            )
        else:
            try:
                order = await shopify_client.create_order(
                    session.customer, cart, session.session_id, session.transaction_code
                )
                session.commerce_order = order.to_dict()
                result = ConfirmationResult(
                    status="success",
                    message="Paiement confirmé, commande créée",
                    session_status=session.status,
                    mode="order",
                    order=order.to_dict(),
                )
            except CheckoutError as e:
                logger.error(
                    "checkout.materialize failed session_id=%s order_ref=%s: %s (reconciliation manuelle requise)",
                    session.session_id,
                    session.order_reference,
                    e,
                )
                result = _partial_result(session, e.message)
            except Exception as e:
                # La commande a pu être créée: ne jamais relancer l'écriture Shopify
                logger.exception(
                    "checkout.materialize crashed session_id=%s order_ref=%s (reconciliation manuelle requise)",
                    session.session_id,
                    session.order_reference,
                )
                result = _partial_result(session, f"{type(e).__name__}: {e}")
        session.result = result
        return result


def _require_session_id(session_id: Optional[str]) -> str:
    value = str(session_id or "").strip()
    if not value:
        raise ValidationError("checkoutId manquant", fields=["checkoutId"])
    return value


def _failed_result() -> ConfirmationResult:
    return ConfirmationResult(
        status="failed",
        message="Paiement refusé. Veuillez réessayer.",
        session_status=S.FAILED,
    )


def _partial_result(session: CheckoutSession, error: str) -> ConfirmationResult:
    session.materialization_error = error
    return ConfirmationResult(
        status="partial_success",
        message="Paiement confirmé, commande en attente de traitement manuel",
        session_status=session.status,
        mode="order",
        error=error,
    )


def _adopt(session_id: str, provider: sumup_client.ProviderSession, cart: Optional[CartSnapshot]) -> CheckoutSession:
    """Session anonyme (sans order_id) vue pour la première fois à la confirmation."""
    raw = provider.raw or {}
    try:
        amount = Decimal(str(raw.get("amount") or "0"))
    except InvalidOperation:
        amount = Decimal("0")
    logger.info("checkout.adopt session_id=%s", session_id)
    return CheckoutSession(
        session_id=session_id,
        amount=amount,
        currency=str(raw.get("currency") or (cart.currency if cart else "")).upper(),
        checkout_reference=str(raw.get("checkout_reference") or ""),
    )
