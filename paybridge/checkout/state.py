"""
Machine à états de confirmation:
    CREATED -> SUBMITTED -> (PENDING)* -> {CONFIRMED | FAILED | TIMED_OUT}

- CONFIRMED et FAILED n'ont aucune transition sortante (arête à sens unique).
- TIMED_OUT est un arrêt « doux »: la session peut encore se résoudre plus tard
  (webhook, confirmation tardive).
- SUBMITTED -> SUBMITTED: le client peut renvoyer un formulaire corrigé.
"""
from typing import Dict, FrozenSet, Optional

from .errors import InvalidTransitionError
from .models import CheckoutSession, CheckoutStatus, utcnow

S = CheckoutStatus

ALLOWED: Dict[CheckoutStatus, FrozenSet[CheckoutStatus]] = {
    S.CREATED: frozenset({S.SUBMITTED}),
    S.SUBMITTED: frozenset({S.SUBMITTED, S.PENDING, S.CONFIRMED, S.FAILED, S.TIMED_OUT}),
    S.PENDING: frozenset({S.PENDING, S.CONFIRMED, S.FAILED, S.TIMED_OUT}),
    S.TIMED_OUT: frozenset({S.PENDING, S.CONFIRMED, S.FAILED}),
    S.CONFIRMED: frozenset(),
    S.FAILED: frozenset(),
}

# Statuts SumUp (normalisés) terminaux
PAID = "PAID"
FAILED = "FAILED"


def can_transition(current: CheckoutStatus, target: CheckoutStatus) -> bool:
    return target in ALLOWED.get(current, frozenset())


def transition(session: CheckoutSession, target: CheckoutStatus) -> CheckoutSession:
    if not can_transition(session.status, target):
        raise InvalidTransitionError(session.status.value, target.value)
    session.status = target
    if is_final(target) and session.resolved_at is None:
        session.resolved_at = utcnow()
    return session


def is_final(status: CheckoutStatus) -> bool:
    return not ALLOWED.get(status)


def target_for_provider_status(normalized: str) -> CheckoutStatus:
    """Statut SumUp normalisé -> état local visé."""
    if normalized == PAID:
        return S.CONFIRMED
    if normalized == FAILED:
        return S.FAILED
    return S.PENDING


def apply_provider_status(session: CheckoutSession, normalized: str) -> Optional[CheckoutStatus]:
    """
    Reporte un statut SumUp observé sur la session.
    - Retourne le nouvel état, ou None si la session n'a pas encore été soumise
      (CREATED) ou est déjà finale: le statut est seulement mémorisé.
    """
    session.provider_status = normalized
    target = target_for_provider_status(normalized)
    if not can_transition(session.status, target):
        return None
    transition(session, target)
    return target
