"""
Taxonomie des erreurs du parcours de paiement.
- ValidationError: entrée manquante/malformée (400), jamais envoyée en amont.
- UpstreamError: réponse non-2xx de SumUp ou Shopify (500), conserve status/body.
- PaymentTimeoutError: fenêtre de polling dépassée (arrêt « doux », non fatal).
Le mapping HTTP est centralisé dans paybridge.app_setup.exceptions.
"""
from typing import Any, List, Optional


class CheckoutError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CheckoutError):
    status_code = 400

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])


class InvalidTransitionError(ValidationError):
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Transition interdite: {current} -> {target}")
        self.current = current
        self.target = target


class SessionNotFoundError(CheckoutError):
    status_code = 404


class DuplicateSessionError(CheckoutError):
    status_code = 409


class ConfigurationError(CheckoutError):
    status_code = 500


class UpstreamError(CheckoutError):
    """Appel sortant en échec: status None si l'erreur est réseau (pas de réponse)."""

    status_code = 500

    def __init__(self, service: str, upstream_status: Optional[int], body: Any = None):
        detail = f"{service} a répondu {upstream_status}" if upstream_status else f"{service} injoignable"
        super().__init__(detail)
        self.service = service
        self.upstream_status = upstream_status
        self.body = body


class PaymentTimeoutError(CheckoutError):
    status_code = 200
