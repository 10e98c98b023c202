"""
Modèles du parcours checkout.
- Entrées client (pydantic): CartItem, CartSnapshot, CustomerRecord.
- Enregistrements internes (dataclasses): CheckoutSession, CheckoutBinding, ConfirmationResult.
Montants panier en unités mineures (centimes), montant de session en Decimal.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

logger = logging.getLogger(__name__)


class CheckoutStatus(str, Enum):
    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


class CartItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    quantity: int = Field(gt=0)
    price: int = Field(ge=0)  # prix unitaire en unités mineures
    variant_id: Optional[Any] = None
    sku: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _title_fallback(cls, data: Any) -> Any:
        # Shopify envoie parfois product_title à la place de title
        if isinstance(data, dict) and not data.get("title") and data.get("product_title"):
            data = {**data, "title": data["product_title"]}
        return data


class CartSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: List[CartItem] = Field(default_factory=list)
    total_price: Optional[int] = None
    currency: str = "EUR"

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return (v or "EUR").strip().upper()

    @model_validator(mode="after")
    def _default_total(self) -> "CartSnapshot":
        if self.total_price is None:
            self.total_price = sum(it.price * it.quantity for it in self.items)
        return self

    @property
    def is_empty(self) -> bool:
        return not self.items

    @classmethod
    def parse(cls, data: Any) -> Optional["CartSnapshot"]:
        """
        Construit un snapshot depuis un dict (corps JSON) ou None.
        - None/{} -> None (pas de panier)
        - structure invalide -> ValidationError
        """
        if not data:
            return None
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError("Panier invalide", fields=_error_fields(e)) from e

    @classmethod
    def from_query(cls, raw: Optional[str]) -> Optional["CartSnapshot"]:
        """
        Décode le paramètre cart_items (JSON url-encodé).
        - JSON illisible: journalisé et ignoré (checkout sans panier)
        """
        if not raw:
            return None
        try:
            data = json.loads(unquote(raw))
        except ValueError:
            logger.warning("checkout.cart_items JSON illisible, ignoré")
            return None
        return cls.parse(data)


_CUSTOMER_REQUIRED = ("firstName", "lastName", "email", "address", "postalCode", "city", "country")


class CustomerRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    email: str = Field(min_length=1)
    phone: str = ""
    address: str = Field(min_length=1)
    postal_code: str = Field(alias="postalCode", min_length=1)
    city: str = Field(min_length=1)
    country: str = Field(min_length=1)

    @field_validator("phone", mode="before")
    @classmethod
    def _phone_none(cls, v: Any) -> Any:
        return v or ""

    @classmethod
    def parse(cls, data: Any) -> "CustomerRecord":
        """Valide le formulaire client; liste les champs manquants dans l'erreur."""
        if not isinstance(data, dict):
            raise ValidationError("Données client manquantes", fields=list(_CUSTOMER_REQUIRED))
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            fields = _error_fields(e)
            raise ValidationError(
                "Champs obligatoires manquants: " + ", ".join(fields), fields=fields
            ) from e


def _error_fields(e: PydanticValidationError) -> List[str]:
    fields: List[str] = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        if loc and loc not in fields:
            fields.append(loc)
    return fields


def parse_amount(value: Any) -> Decimal:
    """
    Montant de session: décimal strictement positif, au plus 2 décimales.
    - Aucune perte de précision: 10.005 est refusé plutôt qu'arrondi.
    """
    if value is None or str(value).strip() == "":
        raise ValidationError("Paramètre amount manquant", fields=["amount"])
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Montant invalide", fields=["amount"])
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Le montant doit être supérieur à 0", fields=["amount"])
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationError("Montant: 2 décimales maximum", fields=["amount"])
    return amount.quantize(Decimal("0.01"))


def parse_currency(value: Any) -> str:
    currency = str(value or "").strip().upper()
    if not currency:
        raise ValidationError("Paramètre currency manquant", fields=["currency"])
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError("Devise ISO 4217 invalide", fields=["currency"])
    return currency


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckoutSession:
    session_id: str
    amount: Decimal
    currency: str
    checkout_reference: str = ""
    order_reference: Optional[str] = None
    return_url: Optional[str] = None
    cart_snapshot: Optional[CartSnapshot] = None
    created_at: datetime = field(default_factory=utcnow)
    status: CheckoutStatus = CheckoutStatus.CREATED
    customer: Optional[CustomerRecord] = None
    provider_status: Optional[str] = None
    transaction_code: Optional[str] = None
    resolved_at: Optional[datetime] = None
    commerce_order: Optional[Dict[str, Any]] = None
    result: Optional["ConfirmationResult"] = None
    materialization_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "order_reference": self.order_reference,
            "checkout_reference": self.checkout_reference,
            "amount": f"{self.amount:.2f}",
            "currency": self.currency,
            "return_url": self.return_url,
            "status": self.status.value,
            "provider_status": self.provider_status,
            "created_at": self.created_at.isoformat(),
            "has_customer": self.customer is not None,
            "has_cart": self.cart_snapshot is not None and not self.cart_snapshot.is_empty,
            "commerce_order": self.commerce_order,
            "materialization_error": self.materialization_error,
        }


@dataclass
class CheckoutBinding:
    """Liaison rendue au navigateur: id de session, panier à renvoyer, destination finale."""

    session_id: str
    amount: Decimal
    currency: str
    cart_payload: Optional[Dict[str, Any]]
    return_destination: str
    tracked: bool


@dataclass
class ConfirmationResult:
    """
    Issue visible d'une confirmation.
    - status: success | partial_success | failed | pending
    - mode: "order" (commande Shopify créée/tentée) ou "tracking_only" (aucun panier)
    """

    status: str
    message: str
    session_status: CheckoutStatus
    mode: Optional[str] = None
    order: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "session_status": self.session_status.value,
        }
        if self.mode:
            payload["mode"] = self.mode
        if self.order:
            payload["order"] = self.order
        if self.error:
            payload["error"] = self.error
        return payload
